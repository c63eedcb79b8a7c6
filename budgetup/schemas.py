from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .domain.types import AccountType, CategoryType, Role, TxnType

MAX_MONEY = Decimal("999999999999.99")


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _upper_currency(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    value = value.strip().upper()
    return value or None


# ---- Users / organizations ----------------------------------------------


class UserCreate(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    display_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class UserOut(BaseModel):
    id: int
    email: str
    display_name: Optional[str]
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    seed_defaults: bool = True

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _strip_required(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: Optional[str]) -> Optional[str]:
        return _upper_currency(value)


class OrganizationOut(BaseModel):
    id: int
    name: str
    currency: str
    created_by: Optional[int]
    created_at: datetime
    role: Optional[Role] = None

    model_config = ConfigDict(from_attributes=True)


class MembershipCreate(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    role: Role = Role.MEMBER

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class MembershipUpdate(BaseModel):
    role: Role


class MembershipOut(BaseModel):
    id: int
    user_id: int
    organization_id: int
    role: Role
    email: Optional[str] = None
    display_name: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---- Invitations -----------------------------------------------------------

INVITATION_CODE_PATTERN = r"^[A-Z0-9\-]+$"


def _invitable_role(value: Role) -> Role:
    if value == Role.OWNER:
        raise ValueError("invitations grant admin or member only")
    return value


class InvitationCreate(BaseModel):
    organization_id: int
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    role: Role = Role.MEMBER

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("role")
    @classmethod
    def _check_role(cls, value: Role) -> Role:
        return _invitable_role(value)


class InvitationUpdate(BaseModel):
    role: Role

    @field_validator("role")
    @classmethod
    def _check_role(cls, value: Role) -> Role:
        return _invitable_role(value)


class InvitationAccept(BaseModel):
    code: str = Field(min_length=6, max_length=50, pattern=INVITATION_CODE_PATTERN)

    @field_validator("code", mode="before")
    @classmethod
    def _normalize_code(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class OrganizationJoin(BaseModel):
    invitation_code: str = Field(min_length=6, max_length=50, pattern=INVITATION_CODE_PATTERN)

    @field_validator("invitation_code", mode="before")
    @classmethod
    def _normalize_code(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class InvitationOut(BaseModel):
    id: int
    organization_id: int
    email: str
    role: Role
    code: str
    status: str
    expires_at: datetime
    used_at: Optional[datetime]
    created_by: Optional[int]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvitationDetails(BaseModel):
    organization_id: int
    organization_name: str
    organization_currency: str
    email: str
    role: Role
    status: str
    expires_at: datetime


class InvitationAccepted(BaseModel):
    organization: OrganizationOut
    role: Role


class InvitationStats(BaseModel):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    expired: int = 0


class InvitationCleanup(BaseModel):
    organization_id: int
    days_old: Optional[int] = Field(default=None, gt=0)


class InvitationCleanupResult(BaseModel):
    deleted: int
    stats: InvitationStats


# ---- Audit log --------------------------------------------------------------


class AuditLogOut(BaseModel):
    id: int
    organization_id: int
    user_id: Optional[int]
    user_email: Optional[str] = None
    action: str
    table_name: str
    record_id: Optional[int]
    old_values: Optional[dict[str, Any]]
    new_values: Optional[dict[str, Any]]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogManual(BaseModel):
    organization_id: int
    action: Literal["login", "logout", "invite_sent", "role_changed"]
    table_name: str = Field(min_length=1, max_length=50)
    record_id: Optional[int] = None
    metadata: Optional[dict[str, Any]] = None


# ---- Accounts -------------------------------------------------------------


class AccountCreate(BaseModel):
    organization_id: int
    name: str = Field(min_length=1, max_length=255)
    type: AccountType
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    initial_balance: Decimal = Field(default=Decimal("0"), ge=0, le=MAX_MONEY, decimal_places=2)
    account_number: Optional[str] = Field(default=None, max_length=50)

    model_config = ConfigDict(extra="ignore")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _strip_required(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: Optional[str]) -> Optional[str]:
        return _upper_currency(value)

    @field_validator("account_number")
    @classmethod
    def _blank_account_number(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[AccountType] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    initial_balance: Optional[Decimal] = Field(default=None, ge=0, le=MAX_MONEY, decimal_places=2)
    account_number: Optional[str] = Field(default=None, max_length=50)

    model_config = ConfigDict(extra="ignore")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _strip_required(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: Optional[str]) -> Optional[str]:
        return _upper_currency(value)


class AccountOut(BaseModel):
    id: int
    organization_id: int
    name: str
    type: AccountType
    currency: str
    initial_balance: Decimal
    account_number: Optional[str]
    current_balance: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_row(cls, row: Any, balance: Decimal) -> "AccountOut":
        return cls(
            id=row.id,
            organization_id=row.organization_id,
            name=row.name,
            type=row.type,
            currency=row.currency,
            initial_balance=row.initial_balance,
            account_number=row.account_number,
            current_balance=balance,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class AccountBalancesOut(BaseModel):
    balances: list[AccountOut]
    total_balance: Decimal


# ---- Categories -----------------------------------------------------------

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class CategoryCreate(BaseModel):
    organization_id: int
    name: str = Field(min_length=1, max_length=255)
    type: CategoryType
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _strip_required(value)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    type: Optional[CategoryType] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _strip_required(value)


class CategoryOut(BaseModel):
    id: int
    organization_id: int
    name: str
    type: CategoryType
    color: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---- Transactions ---------------------------------------------------------


class TransactionCreate(BaseModel):
    """Raw draft. Type-dependent rules run in the ledger validator so that
    errors come back tagged with the offending field."""

    organization_id: int
    type: TxnType
    amount: Optional[Decimal] = None
    currency: Optional[str] = Field(default=None, max_length=3)
    description: Optional[str] = None
    occurred_at: Optional[date] = None
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    transfer_to_account_id: Optional[int] = None
    itbis_pct: Optional[Decimal] = None
    notes: Optional[str] = None
    attachment_url: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class TransactionUpdate(BaseModel):
    type: Optional[TxnType] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = Field(default=None, max_length=3)
    description: Optional[str] = None
    occurred_at: Optional[date] = None
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    transfer_to_account_id: Optional[int] = None
    itbis_pct: Optional[Decimal] = None
    notes: Optional[str] = None
    attachment_url: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class TransactionOut(BaseModel):
    id: int
    organization_id: int
    type: TxnType
    amount: Decimal
    currency: str
    description: str
    occurred_at: date
    account_id: int
    category_id: Optional[int]
    transfer_to_account_id: Optional[int]
    itbis_pct: Optional[Decimal]
    notes: Optional[str]
    attachment_url: Optional[str]
    created_by: Optional[int]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionTotalsOut(BaseModel):
    income: Decimal
    expense: Decimal
    transfer: Decimal
    net: Decimal
    total: Decimal
    count: int


class TransactionTotalsResponse(BaseModel):
    totals: TransactionTotalsOut


class TransactionImportError(BaseModel):
    row: int
    field: Optional[str] = None
    error: str
    message: str


class TransactionImportResult(BaseModel):
    total_count: int
    imported: int
    skipped: int
    errors: list[TransactionImportError] = Field(default_factory=list)


# ---- Metrics --------------------------------------------------------------


class KpisOut(BaseModel):
    month: date
    currency: str
    current_month_income: Decimal
    current_month_expense: Decimal
    current_month_balance: Decimal
    previous_month_income: Decimal
    previous_month_expense: Decimal
    previous_month_balance: Decimal
    income_change_pct: Decimal
    expense_change_pct: Decimal
    balance_change_pct: Decimal


class MonthlyBalanceItem(BaseModel):
    month: date
    income: Decimal
    expense: Decimal
    net_balance: Decimal
    cumulative_balance: Decimal
    transaction_count: int


class MonthlyBalanceOut(BaseModel):
    data: list[MonthlyBalanceItem]
    months: int


class TopCategoryItem(BaseModel):
    category_id: int
    category_name: Optional[str]
    category_color: Optional[str]
    total_amount: Decimal
    transaction_count: int
    percentage: Decimal


class TopCategoriesOut(BaseModel):
    data: list[TopCategoryItem]
    total_expenses: Decimal
    limit: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class TopAccountItem(BaseModel):
    account_id: int
    account_name: Optional[str]
    account_type: Optional[AccountType]
    total_amount: Decimal
    transaction_count: int
    percentage: Decimal


class TopAccountsOut(BaseModel):
    data: list[TopAccountItem]
    total_expenses: Decimal
    limit: int
