from __future__ import annotations

import itertools
import random
from decimal import Decimal
from types import SimpleNamespace

from budgetup.domain.aggregator import (
    TransactionTotals,
    compute_account_balance,
    compute_totals,
    signed_amount_for,
)


def _txn(type_, amount, account_id="A", transfer_to=None, category_id=None):
    return {
        "type": type_,
        "amount": Decimal(str(amount)),
        "account_id": account_id,
        "transfer_to_account_id": transfer_to,
        "category_id": category_id,
    }


class TestComputeAccountBalance:
    def test_no_transactions_returns_initial_balance(self):
        account = {"id": "A", "initial_balance": Decimal("1234.56")}
        assert compute_account_balance(account, []) == Decimal("1234.56")

    def test_end_to_end_scenario(self):
        """1000 + 500 income - 200 expense - 100 transfer out = 1200"""
        account = {"id": "A", "initial_balance": Decimal("1000")}
        txns = [
            _txn("income", 500, category_id="C1"),
            _txn("expense", 200, category_id="C2"),
            _txn("transfer", 100, transfer_to="B"),
        ]
        assert compute_account_balance(account, txns) == Decimal("1200.00")

    def test_transfer_conserves_money(self):
        x = {"id": "X", "initial_balance": Decimal("800.00")}
        y = {"id": "Y", "initial_balance": Decimal("150.25")}
        transfer = _txn("transfer", "99.75", account_id="X", transfer_to="Y")

        bx = compute_account_balance(x, [transfer])
        by = compute_account_balance(y, [transfer])

        assert bx == Decimal("700.25")
        assert by == Decimal("250.00")
        assert bx + by == x["initial_balance"] + y["initial_balance"]

    def test_unrelated_transactions_are_ignored(self):
        account = {"id": "A", "initial_balance": Decimal("10")}
        txns = [
            _txn("income", 500, account_id="B"),
            _txn("transfer", 40, account_id="B", transfer_to="C"),
        ]
        assert compute_account_balance(account, txns) == Decimal("10.00")

    def test_accepts_orm_like_objects(self):
        account = SimpleNamespace(id=7, initial_balance=Decimal("5.00"))
        txns = [SimpleNamespace(**_txn("income", "2.50", account_id=7))]
        assert compute_account_balance(account, txns) == Decimal("7.50")

    def test_income_naming_account_as_target_does_not_count(self):
        # only transfers credit the target account
        txn = _txn("income", 50, account_id="B", transfer_to="A")
        assert signed_amount_for("A", txn) == Decimal("0")

    def test_rounds_to_cents(self):
        account = {"id": "A", "initial_balance": 0.1}
        txns = [_txn("income", "0.2")]
        assert compute_account_balance(account, txns) == Decimal("0.30")


class TestComputeTotals:
    def test_mixed_types_example(self):
        totals = compute_totals([
            _txn("income", 100),
            _txn("expense", 40),
            _txn("transfer", 30, transfer_to="B"),
        ])
        assert totals == TransactionTotals(
            income=Decimal("100.00"),
            expense=Decimal("40.00"),
            transfer=Decimal("30.00"),
            net=Decimal("60.00"),
            total=Decimal("170.00"),
            count=3,
        )

    def test_empty(self):
        totals = compute_totals([])
        assert totals.count == 0
        assert totals.net == Decimal("0") and totals.total == Decimal("0")

    def test_permutation_invariant(self):
        txns = [
            _txn("income", "10.10"),
            _txn("expense", "3.33"),
            _txn("transfer", "7.07", transfer_to="B"),
            _txn("income", "0.01"),
            _txn("expense", "99.99"),
        ]
        expected = compute_totals(txns)
        for perm in itertools.permutations(txns):
            assert compute_totals(perm) == expected

    def test_net_and_total_identities(self):
        rng = random.Random(42)
        for _ in range(50):
            txns = [
                _txn(rng.choice(["income", "expense", "transfer"]), Decimal(rng.randint(1, 100000)) / 100)
                for _ in range(rng.randint(0, 20))
            ]
            totals = compute_totals(txns)
            assert totals.net == totals.income - totals.expense
            assert totals.total == totals.income + totals.expense + totals.transfer
            assert totals.count == len(txns)

    def test_transfer_amount_is_reported_unsigned(self):
        totals = compute_totals([_txn("transfer", 25, transfer_to="B")])
        assert totals.transfer == Decimal("25.00")
        assert totals.net == Decimal("0.00")

    def test_as_dict_keys(self):
        assert set(compute_totals([]).as_dict()) == {"income", "expense", "transfer", "net", "total", "count"}
