"""Read side of the ledger.

``LedgerRepository`` is the only place that queries transactions for
aggregation. Balances are derived on read with the pure aggregator and can
be memoized in ``BalanceCache``; the cache never changes on its own, it only
drops entries when a ``BalancesInvalidated`` message arrives on the ledger
event bus. Both the cache and the bus live in one process, so the cache is
only correct for a single worker (see ``Settings.BALANCE_CACHE_ENABLED``).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import String, func, or_
from sqlalchemy.orm import Query, Session

from budgetup import models
from budgetup.core.config import settings
from budgetup.domain.aggregator import (
    ZERO,
    TransactionTotals,
    compute_account_balance,
    compute_totals,
    quantize_money,
)
from budgetup.domain.events import BALANCES_INVALIDATED, Event, EventBus, ledger_events
from budgetup.domain.types import TxnType
from budgetup.utils.normalization import fold_text

logger = logging.getLogger(__name__)


@dataclass
class TransactionFilters:
    organization_id: int
    type: Optional[TxnType] = None
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None


class BalanceCache:
    """Thread-safe ``account_id -> balance`` memo.

    Every eviction bumps ``generation``. A reader that computed a balance
    from data loaded before an eviction must not store it, so ``put`` takes
    the generation observed before the read and ignores stale writes.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._balances: dict[int, Decimal] = {}
        self._generation = 0
        self.hits = 0
        self.misses = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self, account_id: int) -> Optional[Decimal]:
        with self._lock:
            value = self._balances.get(account_id)
            if value is None:
                self.misses += 1
            else:
                self.hits += 1
        logger.debug("balance cache %s for account %s", "hit" if value is not None else "miss", account_id)
        return value

    def put(self, account_id: int, balance: Decimal, generation: Optional[int] = None) -> bool:
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._balances[account_id] = balance
            return True

    def evict(self, account_ids: Iterable[int]) -> int:
        with self._lock:
            self._generation += 1
            dropped = 0
            for account_id in account_ids:
                if self._balances.pop(account_id, None) is not None:
                    dropped += 1
        return dropped

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._balances.clear()

    def __contains__(self, account_id: int) -> bool:
        with self._lock:
            return account_id in self._balances

    def __len__(self) -> int:
        with self._lock:
            return len(self._balances)

    def on_balances_invalidated(self, event: Event) -> int:
        message = event.payload
        dropped = self.evict(message.account_ids)
        logger.debug(
            "invalidated %d cached balance(s) for accounts %s (%s)",
            dropped,
            sorted(message.account_ids),
            message.reason,
        )
        return dropped

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(BALANCES_INVALIDATED, self.on_balances_invalidated)

    def detach(self, bus: EventBus) -> None:
        bus.unsubscribe(BALANCES_INVALIDATED, self.on_balances_invalidated)


balance_cache = BalanceCache()
balance_cache.attach(ledger_events)


def default_balance_cache() -> Optional[BalanceCache]:
    return balance_cache if settings.BALANCE_CACHE_ENABLED else None


class LedgerRepository:
    """Query interface for balances, filtered transactions and totals."""

    def __init__(self, db: Session, cache: Optional[BalanceCache] = None) -> None:
        self.db = db
        self.cache = cache

    # ---- balances ---------------------------------------------------------

    def transactions_for_account(self, account_id: int) -> list[models.Transaction]:
        """Every transaction that names the account as source or transfer target."""
        return (
            self.db.query(models.Transaction)
            .filter(
                or_(
                    models.Transaction.account_id == account_id,
                    models.Transaction.transfer_to_account_id == account_id,
                )
            )
            .all()
        )

    def account_balance(self, account: models.Account) -> Decimal:
        if self.cache is None:
            return compute_account_balance(account, self.transactions_for_account(account.id))
        cached = self.cache.get(account.id)
        if cached is not None:
            return cached
        generation = self.cache.generation
        balance = compute_account_balance(account, self.transactions_for_account(account.id))
        self.cache.put(account.id, balance, generation)
        return balance

    def account_balances(self, organization_id: int) -> list[tuple[models.Account, Decimal]]:
        """``(account, current_balance)`` for every account, ordered by name."""
        accounts = (
            self.db.query(models.Account)
            .filter(models.Account.organization_id == organization_id)
            .order_by(models.Account.name, models.Account.id)
            .all()
        )
        results: dict[int, Decimal] = {}
        missing: list[models.Account] = []
        for account in accounts:
            cached = self.cache.get(account.id) if self.cache is not None else None
            if cached is None:
                missing.append(account)
            else:
                results[account.id] = cached

        if missing:
            generation = self.cache.generation if self.cache is not None else None
            history = (
                self.db.query(models.Transaction)
                .filter(models.Transaction.organization_id == organization_id)
                .all()
            )
            for account in missing:
                balance = compute_account_balance(account, history)
                results[account.id] = balance
                if self.cache is not None:
                    self.cache.put(account.id, balance, generation)

        return [(account, results[account.id]) for account in accounts]

    def total_balance(self, balances: Iterable[tuple[models.Account, Decimal]]) -> Decimal:
        return quantize_money(sum((balance for _, balance in balances), ZERO))

    # ---- filtered sets ----------------------------------------------------

    def _filtered_query(self, filters: TransactionFilters) -> Query:
        Txn = models.Transaction
        query = self.db.query(Txn).filter(Txn.organization_id == filters.organization_id)
        if filters.type is not None:
            query = query.filter(Txn.type == filters.type)
        if filters.account_id is not None:
            query = query.filter(Txn.account_id == filters.account_id)
        if filters.category_id is not None:
            query = query.filter(Txn.category_id == filters.category_id)
        if filters.start_date is not None:
            query = query.filter(Txn.occurred_at >= filters.start_date)
        if filters.end_date is not None:
            query = query.filter(Txn.occurred_at <= filters.end_date)
        term = fold_text((filters.search or "").strip())
        if term:
            query = query.filter(
                or_(
                    self._folded(Txn.description).contains(term, autoescape=True),
                    self._folded(func.coalesce(Txn.notes, "")).contains(term, autoescape=True),
                )
            )
        return query

    def _folded(self, column):
        # SQLite's lower() leaves non-ASCII letters alone
        if self.db.get_bind().dialect.name == "sqlite":
            return func.casefold(column, type_=String)
        return func.lower(column, type_=String)

    def count(self, filters: TransactionFilters) -> int:
        return self._filtered_query(filters).count()

    def filtered_transactions(
        self,
        filters: TransactionFilters,
        *,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[models.Transaction]:
        """Newest first; ties broken by id so paging is stable."""
        query = self._filtered_query(filters).order_by(
            models.Transaction.occurred_at.desc(),
            models.Transaction.id.desc(),
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def totals(self, filters: TransactionFilters) -> TransactionTotals:
        return compute_totals(self._filtered_query(filters).all())
