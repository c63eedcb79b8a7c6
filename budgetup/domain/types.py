from __future__ import annotations

from enum import Enum


class TxnType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class CategoryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class AccountType(str, Enum):
    CASH = "cash"
    BANK = "bank"
    CREDIT_CARD = "credit_card"


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


_ROLE_RANK: dict[Role, int] = {
    Role.MEMBER: 1,
    Role.ADMIN: 2,
    Role.OWNER: 3,
}


def has_role(role: "Role | str", required: "Role | str") -> bool:
    """True when ``role`` is at least as privileged as ``required``."""
    return _ROLE_RANK[Role(role)] >= _ROLE_RANK[Role(required)]


def coerce_txn_type(value: "TxnType | str") -> TxnType:
    if isinstance(value, TxnType):
        return value
    return TxnType(str(getattr(value, "value", value)).strip().lower())
