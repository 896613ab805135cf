"""Create google_tokens table.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Databases created by the single-account release already hold this table
(with the same columns); the upgrade adopts it instead of failing.
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Upgrade database schema."""
    inspector = sa.inspect(op.get_bind())
    if inspector.has_table("google_tokens"):
        return

    op.create_table(
        "google_tokens",
        sa.Column(
            "id",
            sa.String(length=320),
            nullable=False,
            comment="Account key: the account email, or 'default' for legacy rows",
        ),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("token_type", sa.String(length=50), nullable=True),
        sa.Column(
            "expiry_date",
            sa.BigInteger(),
            nullable=True,
            comment="Access token expiry, epoch milliseconds",
        ),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table("google_tokens")
