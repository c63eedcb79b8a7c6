from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from budgetup.domain.errors import (
    CategoryTypeMismatch,
    ForbiddenField,
    InvalidAmount,
    InvalidItbisPct,
    InvalidTransactionType,
    MissingRequiredField,
    SameAccountTransfer,
    TransactionValidationError,
)
from budgetup.domain.validator import (
    ExpenseEntry,
    IncomeEntry,
    TransactionDraft,
    TransferEntry,
    parse_amount,
    validate_transaction,
)


def _draft(**overrides):
    base = {
        "type": "expense",
        "account_id": "A",
        "category_id": "C",
        "amount": 100,
        "occurred_at": "2024-01-15",
        "description": "Rent",
    }
    base.update(overrides)
    return base


def test_accepts_valid_expense():
    entry = validate_transaction(_draft(), category_type="expense")
    assert isinstance(entry, ExpenseEntry)
    assert entry.amount == Decimal("100.00")
    assert entry.occurred_at == date(2024, 1, 15)
    assert entry.description == "Rent"
    assert entry.currency == "DOP"
    assert entry.itbis_pct is None


def test_income_without_category_is_missing_category_id():
    with pytest.raises(MissingRequiredField) as exc:
        validate_transaction(_draft(type="income", category_id=None))
    assert exc.value.field == "category_id"


def test_transfer_to_same_account_is_rejected():
    with pytest.raises(SameAccountTransfer) as exc:
        validate_transaction(
            _draft(type="transfer", category_id=None, account_id="A", transfer_to_account_id="A")
        )
    assert exc.value.field == "transfer_to_account_id"
    # distinguishable from the generic missing-field error
    assert not isinstance(exc.value, MissingRequiredField)


def test_transfer_requires_target():
    with pytest.raises(MissingRequiredField) as exc:
        validate_transaction(_draft(type="transfer", category_id=None))
    assert exc.value.field == "transfer_to_account_id"


def test_transfer_with_category_is_forbidden():
    with pytest.raises(ForbiddenField) as exc:
        validate_transaction(_draft(type="transfer", transfer_to_account_id="B"))
    assert exc.value.field == "category_id"


def test_income_with_transfer_target_is_forbidden():
    with pytest.raises(ForbiddenField) as exc:
        validate_transaction(_draft(type="income", transfer_to_account_id="B"), category_type="income")
    assert exc.value.field == "transfer_to_account_id"


def test_category_type_must_match():
    with pytest.raises(CategoryTypeMismatch) as exc:
        validate_transaction(_draft(type="income"), category_type="expense")
    assert exc.value.field == "category_id"
    assert exc.value.expected == "income"
    assert exc.value.actual == "expense"


def test_category_type_check_skipped_when_unknown():
    assert isinstance(validate_transaction(_draft(type="income")), IncomeEntry)


def test_itbis_on_income_is_rejected():
    with pytest.raises(ForbiddenField) as exc:
        validate_transaction(_draft(type="income", itbis_pct=18), category_type="income")
    assert exc.value.field == "itbis_pct"


def test_itbis_on_expense_is_kept():
    entry = validate_transaction(_draft(itbis_pct="18"))
    assert entry.itbis_pct == Decimal("18.00")


@pytest.mark.parametrize("value", ["-1", "100.5", "abc"])
def test_itbis_out_of_range(value):
    with pytest.raises(InvalidItbisPct):
        validate_transaction(_draft(itbis_pct=value))


@pytest.mark.parametrize("amount", [0, -5, "-0.01", "abc", True, float("nan"), "1000000000000", "1.234"])
def test_invalid_amounts(amount):
    with pytest.raises(InvalidAmount) as exc:
        validate_transaction(_draft(amount=amount))
    assert exc.value.field == "amount"


def test_missing_amount_is_missing_field():
    with pytest.raises(MissingRequiredField) as exc:
        validate_transaction(_draft(amount=""))
    assert exc.value.field == "amount"


def test_parse_amount_normalizes():
    assert parse_amount("12.5") == Decimal("12.50")
    assert parse_amount(0.1) == Decimal("0.10")
    assert parse_amount("3.100") == Decimal("3.10")


@pytest.mark.parametrize("value", [None, "", "   "])
def test_type_required(value):
    with pytest.raises(MissingRequiredField) as exc:
        validate_transaction(_draft(type=value))
    assert exc.value.field == "type"


def test_unknown_type():
    with pytest.raises(InvalidTransactionType):
        validate_transaction(_draft(type="refund"))


def test_type_is_case_insensitive():
    assert isinstance(validate_transaction(_draft(type="EXPENSE")), ExpenseEntry)


def test_description_is_trimmed_and_required():
    entry = validate_transaction(_draft(description="  Rent  "))
    assert entry.description == "Rent"
    with pytest.raises(MissingRequiredField) as exc:
        validate_transaction(_draft(description="   "))
    assert exc.value.field == "description"


def test_description_length_limit():
    with pytest.raises(TransactionValidationError) as exc:
        validate_transaction(_draft(description="x" * 501))
    assert exc.value.field == "description"


def test_notes_length_limit():
    with pytest.raises(TransactionValidationError) as exc:
        validate_transaction(_draft(notes="n" * 1001))
    assert exc.value.field == "notes"


def test_occurred_at_accepts_dates_and_datetimes():
    assert validate_transaction(_draft(occurred_at=date(2024, 2, 1))).occurred_at == date(2024, 2, 1)
    assert validate_transaction(_draft(occurred_at=datetime(2024, 2, 1, 13, 5))).occurred_at == date(2024, 2, 1)
    with pytest.raises(TransactionValidationError) as exc:
        validate_transaction(_draft(occurred_at="15/01/2024"))
    assert exc.value.field == "occurred_at"


def test_currency_defaults_and_uppercases():
    assert validate_transaction(_draft(currency="usd")).currency == "USD"
    assert validate_transaction(_draft(), default_currency="USD").currency == "USD"
    with pytest.raises(TransactionValidationError) as exc:
        validate_transaction(_draft(currency="EUR"), allowed_currencies=["DOP", "USD"])
    assert exc.value.field == "currency"


def test_transfer_entry_has_no_category():
    entry = validate_transaction(
        TransactionDraft(
            type="transfer",
            account_id=1,
            transfer_to_account_id=2,
            amount="50",
            occurred_at="2024-03-01",
            description="Move",
        )
    )
    assert isinstance(entry, TransferEntry)
    record = entry.as_record()
    assert record["category_id"] is None
    assert record["itbis_pct"] is None
    assert record["transfer_to_account_id"] == 2


def test_stale_cross_type_fields_are_rejected_after_type_switch():
    # expense draft switched to transfer without clearing its category
    draft = _draft(type="transfer", transfer_to_account_id="B", itbis_pct=None)
    with pytest.raises(ForbiddenField):
        validate_transaction(draft)


def test_errors_expose_kind_and_field():
    with pytest.raises(TransactionValidationError) as exc:
        validate_transaction(_draft(type="income", category_id=None))
    assert exc.value.kind == "MissingRequiredField"
    assert exc.value.to_dict() == {
        "error": "MissingRequiredField",
        "field": "category_id",
        "detail": "category_id is required",
    }


def test_future_dates_are_rejected():
    today = date(2024, 6, 30)
    assert validate_transaction(_draft(occurred_at="2024-06-30"), today=today).occurred_at == today
    with pytest.raises(TransactionValidationError) as exc:
        validate_transaction(_draft(occurred_at="2024-07-01"), today=today)
    assert exc.value.field == "occurred_at"
    # a timestamp later today is still today
    assert validate_transaction(_draft(occurred_at=datetime(2024, 6, 30, 23, 59)), today=today).occurred_at == today


def test_far_future_rejected_against_current_date():
    with pytest.raises(TransactionValidationError) as exc:
        validate_transaction(_draft(occurred_at="2999-01-01"))
    assert exc.value.field == "occurred_at"


@pytest.mark.parametrize("url", ["not a url", "ftp://files.example.com/f.pdf", "/receipts/1.pdf", "http://"])
def test_attachment_url_must_be_http(url):
    with pytest.raises(TransactionValidationError) as exc:
        validate_transaction(_draft(attachment_url=url))
    assert exc.value.field == "attachment_url"


def test_attachment_url_kept_and_blank_dropped():
    url = "https://files.example.com/receipts/abril.pdf"
    assert validate_transaction(_draft(attachment_url=f" {url} ")).attachment_url == url
    assert validate_transaction(_draft(attachment_url="")).attachment_url is None
