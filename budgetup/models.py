from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    Boolean,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .core.config import settings
from .core.database import Base
from .domain.types import AccountType, CategoryType, Role, TxnType

__all__ = [
    "Account",
    "AccountType",
    "AuditLog",
    "Category",
    "CategoryType",
    "Invitation",
    "Membership",
    "Organization",
    "Role",
    "Transaction",
    "TxnType",
    "User",
    "now_local_naive",
]


try:
    LOCAL_ZONE = ZoneInfo(getattr(settings, "TIMEZONE", "America/Santo_Domingo"))
except Exception:
    LOCAL_ZONE = ZoneInfo("America/Santo_Domingo")


def now_local_naive() -> datetime:
    """Return naive datetime normalized to configured local timezone."""
    return datetime.now(LOCAL_ZONE).replace(tzinfo=None)


def today_local() -> date:
    return now_local_naive().date()


def _enum_values(enum_cls) -> list[str]:
    # persist the lowercase values ("income"), not the member names
    return [member.value for member in enum_cls]


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive, nullable=False)


class User(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    memberships: Mapped[list["Membership"]] = relationship(back_populates="user", cascade="all, delete-orphan")


class Organization(Base, TimestampMixin):
    """Tenant boundary; every account, category and transaction belongs to one."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="DOP", nullable=False)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("user.id", ondelete="SET NULL"))

    memberships: Mapped[list["Membership"]] = relationship(back_populates="organization", cascade="all, delete-orphan")
    accounts: Mapped[list["Account"]] = relationship(back_populates="organization")
    categories: Mapped[list["Category"]] = relationship(back_populates="organization")


class Membership(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organization.id", ondelete="CASCADE"), nullable=False)
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name="membership_role", values_callable=_enum_values),
        nullable=False,
        default=Role.MEMBER,
    )

    user: Mapped[User] = relationship(back_populates="memberships")
    organization: Mapped[Organization] = relationship(back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="uq_membership_user_org"),
    )


class Account(Base, TimestampMixin):
    """A place money lives. Its balance is always derived, never stored."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organization.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[AccountType] = mapped_column(
        SAEnum(AccountType, name="account_type", values_callable=_enum_values),
        nullable=False,
    )
    currency: Mapped[str] = mapped_column(String(3), default="DOP", nullable=False)
    initial_balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    account_number: Mapped[str | None] = mapped_column(String(50))

    organization: Mapped[Organization] = relationship(back_populates="accounts")
    transactions_out: Mapped[list["Transaction"]] = relationship(
        "Transaction",
        back_populates="account",
        foreign_keys="Transaction.account_id",
    )
    transactions_in: Mapped[list["Transaction"]] = relationship(
        "Transaction",
        back_populates="transfer_to_account",
        foreign_keys="Transaction.transfer_to_account_id",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_account_name"),
        CheckConstraint("initial_balance >= 0", name="ck_account_initial_balance"),
    )


class Category(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organization.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[CategoryType] = mapped_column(
        SAEnum(CategoryType, name="category_type", values_callable=_enum_values),
        nullable=False,
    )
    color: Mapped[str | None] = mapped_column(String(7))  # #RRGGBB

    organization: Mapped[Organization] = relationship(back_populates="categories")

    __table_args__ = (
        UniqueConstraint("organization_id", "name", "type", name="uq_category_name_type"),
    )


class Transaction(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organization.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[TxnType] = mapped_column(
        SAEnum(TxnType, name="txn_type", values_callable=_enum_values),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="DOP", nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    occurred_at: Mapped[date] = mapped_column(Date, nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("account.id"), nullable=False)
    category_id: Mapped[int | None] = mapped_column(ForeignKey("category.id"))
    transfer_to_account_id: Mapped[int | None] = mapped_column(ForeignKey("account.id"))
    itbis_pct: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    notes: Mapped[str | None] = mapped_column(Text)
    attachment_url: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("user.id", ondelete="SET NULL"))

    account: Mapped[Account] = relationship(
        "Account",
        back_populates="transactions_out",
        foreign_keys=[account_id],
    )
    transfer_to_account: Mapped["Account | None"] = relationship(
        "Account",
        back_populates="transactions_in",
        foreign_keys=[transfer_to_account_id],
    )
    category: Mapped["Category | None"] = relationship("Category", foreign_keys=[category_id])

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_txn_amount_positive"),
        CheckConstraint(
            "transfer_to_account_id IS NULL OR transfer_to_account_id != account_id",
            name="ck_txn_transfer_not_self",
        ),
        CheckConstraint(
            "(type = 'transfer' AND transfer_to_account_id IS NOT NULL AND category_id IS NULL)"
            " OR (type != 'transfer' AND category_id IS NOT NULL AND transfer_to_account_id IS NULL)",
            name="ck_txn_type_links",
        ),
        Index("ix_txn_org_occurred", "organization_id", "occurred_at"),
        Index("ix_txn_account", "account_id"),
        Index("ix_txn_transfer_to", "transfer_to_account_id"),
        Index("ix_txn_category", "category_id"),
    )

    def touched_account_ids(self) -> set[int]:
        return {a for a in (self.account_id, self.transfer_to_account_id) if a is not None}


class Invitation(Base):
    """A one-time code that turns into a membership when its invitee accepts it."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organization.id", ondelete="CASCADE"), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name="invitation_role", values_callable=_enum_values),
        nullable=False,
        default=Role.MEMBER,
    )
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("user.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, nullable=False)

    organization: Mapped[Organization] = relationship()

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'member')", name="ck_invitation_role"),
        Index("ix_invitation_org_email", "organization_id", "email"),
        Index("ix_invitation_expires_used", "expires_at", "used_at"),
    )

    @property
    def status(self) -> str:
        if self.used_at is not None:
            return "accepted"
        if self.expires_at <= now_local_naive():
            return "expired"
        return "pending"


class AuditLog(Base):
    """Append-only record of a change to an organization's ledger data."""

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organization.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("user.id", ondelete="SET NULL"))
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    table_name: Mapped[str] = mapped_column(String(50), nullable=False)
    record_id: Mapped[int | None] = mapped_column(Integer)
    old_values: Mapped[dict | None] = mapped_column(JSON)
    new_values: Mapped[dict | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, nullable=False)

    user: Mapped["User | None"] = relationship()

    __table_args__ = (
        Index("ix_audit_org_created", "organization_id", "created_at"),
        Index("ix_audit_table_record", "table_name", "record_id"),
    )
