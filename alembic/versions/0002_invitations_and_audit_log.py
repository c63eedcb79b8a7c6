"""invitations and audit log

Revision ID: 0002_invitations_audit
Revises: 0001_initial
Create Date: 2026-10-19 15:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002_invitations_audit"
down_revision: Union[str, None] = "0001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "invitation",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("role", sa.Enum("owner", "admin", "member", name="invitation_role"), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used_at", sa.DateTime(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["user.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("code"),
        sa.CheckConstraint("role IN ('admin', 'member')", name="ck_invitation_role"),
    )
    op.create_index("ix_invitation_org_email", "invitation", ["organization_id", "email"], unique=False)
    op.create_index("ix_invitation_expires_used", "invitation", ["expires_at", "used_at"], unique=False)

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("table_name", sa.String(length=50), nullable=False),
        sa.Column("record_id", sa.Integer(), nullable=True),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_audit_org_created", "audit_log", ["organization_id", "created_at"], unique=False)
    op.create_index("ix_audit_table_record", "audit_log", ["table_name", "record_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_table_record", table_name="audit_log")
    op.drop_index("ix_audit_org_created", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_invitation_expires_used", table_name="invitation")
    op.drop_index("ix_invitation_org_email", table_name="invitation")
    op.drop_table("invitation")
