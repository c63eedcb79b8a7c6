from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping

from .types import TxnType, coerce_txn_type

MONEY_QUANT = Decimal("0.01")
ZERO = Decimal("0")


def read_field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def signed_amount_for(account_id: Any, txn: Any) -> Decimal:
    """Effect of one transaction on the balance of ``account_id``."""
    txn_type = coerce_txn_type(read_field(txn, "type"))
    amount = to_decimal(read_field(txn, "amount"))
    delta = ZERO
    if read_field(txn, "account_id") == account_id:
        if txn_type is TxnType.INCOME:
            delta += amount
        else:
            # expense and transfer-out both leave the source account
            delta -= amount
    if txn_type is TxnType.TRANSFER and read_field(txn, "transfer_to_account_id") == account_id:
        delta += amount
    return delta


def compute_account_balance(account: Any, transactions: Iterable[Any]) -> Decimal:
    """Current balance = initial balance + signed transaction history.

    ``transactions`` may include rows that don't touch the account; they
    contribute nothing.
    """
    account_id = read_field(account, "id")
    balance = to_decimal(read_field(account, "initial_balance"))
    for txn in transactions:
        balance += signed_amount_for(account_id, txn)
    return quantize_money(balance)


@dataclass(frozen=True)
class TransactionTotals:
    income: Decimal = ZERO
    expense: Decimal = ZERO
    transfer: Decimal = ZERO
    net: Decimal = ZERO
    total: Decimal = ZERO
    count: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "income": self.income,
            "expense": self.expense,
            "transfer": self.transfer,
            "net": self.net,
            "total": self.total,
            "count": self.count,
        }


def compute_totals(transactions: Iterable[Any]) -> TransactionTotals:
    """Unsigned per-type sums over an already filtered transaction set."""
    sums = {TxnType.INCOME: ZERO, TxnType.EXPENSE: ZERO, TxnType.TRANSFER: ZERO}
    count = 0
    for txn in transactions:
        sums[coerce_txn_type(read_field(txn, "type"))] += to_decimal(read_field(txn, "amount"))
        count += 1
    income = quantize_money(sums[TxnType.INCOME])
    expense = quantize_money(sums[TxnType.EXPENSE])
    transfer = quantize_money(sums[TxnType.TRANSFER])
    return TransactionTotals(
        income=income,
        expense=expense,
        transfer=transfer,
        net=income - expense,
        total=income + expense + transfer,
        count=count,
    )
