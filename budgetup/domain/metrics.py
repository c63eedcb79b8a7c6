"""Dashboard aggregates built on top of the transaction totals.

Everything here is pure: callers hand in already scoped transaction rows
(one organization, optionally one date window) and get plain dicts back.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from .aggregator import ZERO, read_field, compute_totals, quantize_money, to_decimal
from .types import TxnType, coerce_txn_type

HUNDRED = Decimal("100")


def month_start(value: date) -> date:
    return value.replace(day=1)


def add_months(value: date, delta: int) -> date:
    """Shift a month-start date by ``delta`` months."""
    index = value.year * 12 + (value.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def _occurred(txn: Any) -> date:
    value = read_field(txn, "occurred_at")
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    return value


def change_pct(current: Decimal, previous: Decimal, *, signed: bool = False) -> Decimal:
    """Percentage change between two periods.

    ``signed`` is used for balances, which may be negative: the base is
    ``abs(previous)`` and a zero base yields +100 / -100 / 0 by sign of
    ``current``.
    """
    if signed:
        if previous != 0:
            return quantize_money((current - previous) / abs(previous) * HUNDRED)
        if current > 0:
            return Decimal("100.00")
        if current < 0:
            return Decimal("-100.00")
        return Decimal("0.00")
    if previous > 0:
        return quantize_money((current - previous) / previous * HUNDRED)
    if current > 0:
        return Decimal("100.00")
    return Decimal("0.00")


def monthly_balance(transactions: Iterable[Any], *, end_month: date, months: int = 12) -> list[dict[str, Any]]:
    """Income/expense per month for the ``months`` months ending at ``end_month``.

    Transfers don't move money in or out of the organization and are left
    out. Months without activity are zero-filled; ``cumulative_balance`` is
    the running net over the window.
    """
    last = month_start(end_month)
    first = add_months(last, -(months - 1))
    buckets: dict[date, list[Any]] = defaultdict(list)
    for txn in transactions:
        if coerce_txn_type(read_field(txn, "type")) is TxnType.TRANSFER:
            continue
        key = month_start(_occurred(txn))
        if first <= key <= last:
            buckets[key].append(txn)

    rows: list[dict[str, Any]] = []
    cumulative = ZERO
    for offset in range(months):
        key = add_months(first, offset)
        totals = compute_totals(buckets.get(key, ()))
        cumulative += totals.net
        rows.append(
            {
                "month": key,
                "income": totals.income,
                "expense": totals.expense,
                "net_balance": totals.net,
                "cumulative_balance": cumulative,
                "transaction_count": totals.count,
            }
        )
    return rows


def month_kpis(transactions: Iterable[Any], *, today: date) -> dict[str, Any]:
    """Current month to date against the whole previous month."""
    current_start = month_start(today)
    previous_start = add_months(current_start, -1)
    current: list[Any] = []
    previous: list[Any] = []
    for txn in transactions:
        if coerce_txn_type(read_field(txn, "type")) is TxnType.TRANSFER:
            continue
        occurred = _occurred(txn)
        if current_start <= occurred <= today:
            current.append(txn)
        elif previous_start <= occurred < current_start:
            previous.append(txn)

    cur = compute_totals(current)
    prev = compute_totals(previous)
    return {
        "month": current_start,
        "current_month_income": cur.income,
        "current_month_expense": cur.expense,
        "current_month_balance": cur.net,
        "previous_month_income": prev.income,
        "previous_month_expense": prev.expense,
        "previous_month_balance": prev.net,
        "income_change_pct": change_pct(cur.income, prev.income),
        "expense_change_pct": change_pct(cur.expense, prev.expense),
        "balance_change_pct": change_pct(cur.net, prev.net, signed=True),
    }


def _ranked_expenses(
    transactions: Iterable[Any],
    key_field: str,
    describe,
    limit: int,
) -> tuple[list[dict[str, Any]], Decimal]:
    sums: dict[Any, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[Any, int] = defaultdict(int)
    grand_total = ZERO
    for txn in transactions:
        if coerce_txn_type(read_field(txn, "type")) is not TxnType.EXPENSE:
            continue
        key = read_field(txn, key_field)
        if key is None:
            continue
        amount = to_decimal(read_field(txn, "amount"))
        sums[key] += amount
        counts[key] += 1
        grand_total += amount

    ranked = sorted(sums.items(), key=lambda item: (-item[1], str(item[0])))[: max(limit, 0)]
    rows = []
    for key, total in ranked:
        pct = quantize_money(total / grand_total * HUNDRED) if grand_total > 0 else Decimal("0.00")
        rows.append(
            {
                **describe(key),
                "total_amount": quantize_money(total),
                "transaction_count": counts[key],
                "percentage": pct,
            }
        )
    return rows, quantize_money(grand_total)


def top_expense_categories(
    transactions: Iterable[Any],
    categories: Iterable[Any],
    *,
    limit: int = 5,
) -> tuple[list[dict[str, Any]], Decimal]:
    """Largest expense categories with their share of total expenses.

    Returns ``(rows, total_expenses)``.
    """
    by_id = {read_field(c, "id"): c for c in categories}

    def describe(category_id: Any) -> dict[str, Any]:
        cat = by_id.get(category_id)
        return {
            "category_id": category_id,
            "category_name": read_field(cat, "name") if cat is not None else None,
            "category_color": read_field(cat, "color") if cat is not None else None,
        }

    return _ranked_expenses(transactions, "category_id", describe, limit)


def top_expense_accounts(
    transactions: Iterable[Any],
    accounts: Iterable[Any],
    *,
    limit: int = 5,
) -> tuple[list[dict[str, Any]], Decimal]:
    by_id = {read_field(a, "id"): a for a in accounts}

    def describe(account_id: Any) -> dict[str, Any]:
        acc = by_id.get(account_id)
        acc_type = read_field(acc, "type") if acc is not None else None
        return {
            "account_id": account_id,
            "account_name": read_field(acc, "name") if acc is not None else None,
            "account_type": getattr(acc_type, "value", acc_type),
        }

    return _ranked_expenses(transactions, "account_id", describe, limit)
