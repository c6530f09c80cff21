"""Store reported update ids as unbounded text.

Devices send whatever is in their update headers, so the ids are not
guaranteed to fit a 64 character column.

Revision ID: 0003_stats_update_ids_text
Revises: 0002_app_stats_entry
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0003_stats_update_ids_text"
down_revision: str | None = "0002_app_stats_entry"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_COLUMNS = ("current_update_id", "embedded_update_id")


def upgrade() -> None:
    with op.batch_alter_table("app_stats_entry") as batch_op:
        for column in _COLUMNS:
            batch_op.alter_column(
                column,
                existing_type=sa.String(length=64),
                type_=sa.Text(),
                existing_nullable=True,
            )


def downgrade() -> None:
    with op.batch_alter_table("app_stats_entry") as batch_op:
        for column in _COLUMNS:
            batch_op.alter_column(
                column,
                existing_type=sa.Text(),
                type_=sa.String(length=64),
                existing_nullable=True,
            )
