"""Create tenant tables

Revision ID: t001
Revises: None
Create Date: 2024-06-10 00:00:00.000000+00:00

What:  Residents and managers of one apartment complex.
Where: Every apartment database (branch `tenant`, run with -x tenant=<name>).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "t001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = ("tenant",)
depends_on: Union[str, Sequence[str], None] = None


def _approval_identity_columns():
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(128), nullable=False, comment="bcrypt hash"),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'pending'"),
            comment="pending, approved, rejected",
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "residents",
        *_approval_identity_columns(),
        sa.Column("unit_number", sa.String(20), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_residents_email", "residents", ["email"], unique=True)

    op.create_table(
        "managers",
        *_approval_identity_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_managers_email", "managers", ["email"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_managers_email", table_name="managers")
    op.drop_table("managers")
    op.drop_index("ix_residents_email", table_name="residents")
    op.drop_table("residents")
