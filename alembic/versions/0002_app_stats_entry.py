"""Add download statistics entries.

Revision ID: 0002_app_stats_entry
Revises: 0001_initial
Create Date: 2026-09-09
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0002_app_stats_entry"
down_revision: str | None = "0001_initial"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "app_stats_entry",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("app_id", sa.String(length=64), sa.ForeignKey("app.id"), nullable=False),
        sa.Column("build_id", sa.String(length=64), sa.ForeignKey("build.id"), nullable=True),
        sa.Column("current_update_id", sa.String(length=64), nullable=True),
        sa.Column("embedded_update_id", sa.String(length=64), nullable=True),
        sa.Column("runtime_version", sa.String(length=255), nullable=False),
        sa.Column("platform", sa.String(length=16), nullable=False),
        sa.Column("channel", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_app_stats_entry_app_id", "app_stats_entry", ["app_id"])
    op.create_index("ix_app_stats_entry_build_id", "app_stats_entry", ["build_id"])
    op.create_index("ix_app_stats_entry_created_at", "app_stats_entry", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_app_stats_entry_created_at", table_name="app_stats_entry")
    op.drop_index("ix_app_stats_entry_build_id", table_name="app_stats_entry")
    op.drop_index("ix_app_stats_entry_app_id", table_name="app_stats_entry")
    op.drop_table("app_stats_entry")
