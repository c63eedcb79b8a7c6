from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, NamedTuple

logger = logging.getLogger(__name__)

__all__ = [
    "BALANCES_INVALIDATED",
    "BalancesInvalidated",
    "Event",
    "EventBus",
    "invalidate_balances",
    "ledger_events",
]


class Event(NamedTuple):
    name: str
    ts: str
    payload: Any


Handler = Callable[[Event], Any]


class EventBus:
    """Synchronous in-process publish/subscribe.

    Handlers run in subscription order on the publishing thread; their
    return values are collected and handed back to the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.setdefault(name, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, payload: Any) -> List[Any]:
        handlers = list(self._subscribers.get(name, ()))
        if not handlers:
            return []
        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        logger.debug("publishing %s to %d handler(s)", name, len(handlers))
        return [handler(event) for handler in handlers]


BALANCES_INVALIDATED = "BALANCES_INVALIDATED"


@dataclass(frozen=True)
class BalancesInvalidated:
    """Derived balances of these accounts are stale."""

    account_ids: frozenset = field(default_factory=frozenset)
    reason: str = ""
    organization_id: Any = None

    @classmethod
    def for_accounts(cls, account_ids: Iterable[Any], reason: str, organization_id: Any = None) -> "BalancesInvalidated":
        return cls(
            account_ids=frozenset(a for a in account_ids if a is not None),
            reason=reason,
            organization_id=organization_id,
        )


ledger_events = EventBus()


def invalidate_balances(
    account_ids: Iterable[Any],
    reason: str,
    organization_id: Any = None,
    bus: EventBus | None = None,
) -> BalancesInvalidated:
    """Publish a ``BalancesInvalidated`` message and return it."""
    message = BalancesInvalidated.for_accounts(account_ids, reason, organization_id)
    if message.account_ids:
        (bus or ledger_events).publish(BALANCES_INVALIDATED, message)
    return message
