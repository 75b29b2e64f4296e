"""Create central tables

Revision ID: c001
Revises: None
Create Date: 2024-06-10 00:00:00.000000+00:00

What:  Service providers, central managers, the apartment registry, service
       listings and their reviews.
Where: Central database only (branch `central`).

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "c001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = ("central",)
depends_on: Union[str, Sequence[str], None] = None


def _identity_columns():
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
    ]


def upgrade() -> None:
    op.create_table(
        "service_providers",
        *_identity_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_service_providers_email", "service_providers", ["email"], unique=True
    )

    op.create_table(
        "central_managers",
        *_identity_columns(),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'pending'"),
            comment="pending, approved, rejected",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_central_managers_email", "central_managers", ["email"], unique=True
    )

    # Registry of tenant databases, scanned in creation order during login
    op.create_table(
        "apartments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("apartment_name", sa.String(120), nullable=False),
        sa.Column(
            "database_name",
            sa.String(120),
            nullable=False,
            comment="Tenant database; slug of apartment_name",
        ),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("apartment_name"),
        sa.UniqueConstraint("database_name", name="uq_apartments_database_name"),
    )

    op.create_table(
        "services",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False, comment="Public image URLs"),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("available_hours", sa.String(120), nullable=True),
        sa.Column("service_provider_id", sa.Uuid(), nullable=False),
        sa.Column("service_provider_name", sa.String(120), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["service_provider_id"], ["service_providers.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    # Bounding-box prefilter of the nearby search
    op.create_index("idx_services_lat_lng", "services", ["latitude", "longitude"])

    op.create_table(
        "service_reviews",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("service_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("user_model", sa.String(32), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_service_reviews_rating"),
    )
    op.create_index("ix_service_reviews_service_id", "service_reviews", ["service_id"])


def downgrade() -> None:
    op.drop_index("ix_service_reviews_service_id", table_name="service_reviews")
    op.drop_table("service_reviews")
    op.drop_index("idx_services_lat_lng", table_name="services")
    op.drop_table("services")
    op.drop_table("apartments")
    op.drop_index("ix_central_managers_email", table_name="central_managers")
    op.drop_table("central_managers")
    op.drop_index("ix_service_providers_email", table_name="service_providers")
    op.drop_table("service_providers")
