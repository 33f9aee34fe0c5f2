"""Create users, categories, accounts and account_categories

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

Rollback: downgrade() drops all four tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp_columns() -> list:
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        _id_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'user'")),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "preferences",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
            comment="Report delivery and notification preferences (camelCase JSON)",
        ),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "categories",
        _id_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(32), nullable=False, server_default=sa.text("'#3498db'")),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "account_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Denormalized row count of account_categories for this category",
        ),
        sa.Column("sentiment_score", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("sentiment_confidence", sa.Float(), nullable=False, server_default=sa.text("0")),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_categories_name"),
        sa.CheckConstraint(
            "sentiment_score BETWEEN -100 AND 100", name="ck_categories_sentiment_score"
        ),
        sa.CheckConstraint(
            "sentiment_confidence BETWEEN 0 AND 100", name="ck_categories_sentiment_confidence"
        ),
    )

    op.create_table(
        "accounts",
        _id_column(),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("profile_image_url", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("follower_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("following_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("priority", sa.Integer(), nullable=False, server_default=sa.text("3")),
        sa.Column("last_scraped", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "scraping_frequency",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("360"),
            comment="Minutes between scrapes, derived from priority",
        ),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("accuracy_score", sa.Integer(), nullable=False, server_default=sa.text("50")),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_accounts_username"),
        sa.CheckConstraint("priority BETWEEN 1 AND 5", name="ck_accounts_priority"),
        sa.CheckConstraint("accuracy_score BETWEEN 0 AND 100", name="ck_accounts_accuracy_score"),
    )

    op.create_table(
        "account_categories",
        sa.Column("account_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("category_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("account_id", "category_id"),
    )
    # Membership lookups go category → accounts; the PK already covers account → categories
    op.create_index(
        "ix_account_categories_category_id", "account_categories", ["category_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_account_categories_category_id", table_name="account_categories")
    op.drop_table("account_categories")
    op.drop_table("accounts")
    op.drop_table("categories")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
