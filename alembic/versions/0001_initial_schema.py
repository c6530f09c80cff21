"""Initial update distribution schema.

Revision ID: 0001_initial
Revises:
Create Date: 2026-09-02
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "organization",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "app",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "organization_id",
            sa.String(length=64),
            sa.ForeignKey("organization.id"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("signing_key", sa.Text(), nullable=True),
        sa.Column(
            "save_download_statistics",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_app_organization_id", "app", ["organization_id"])

    op.create_table(
        "app_runtime",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("app_id", sa.String(length=64), sa.ForeignKey("app.id"), nullable=False),
        sa.Column("runtime_version", sa.String(length=255), nullable=False),
        sa.Column("platform", sa.String(length=16), nullable=False),
        sa.Column("channel", sa.String(length=255), nullable=False, server_default="production"),
        sa.Column("active_build_id", sa.String(length=64), nullable=True),
        sa.Column("is_rollback", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "app_id", "runtime_version", "platform", "channel", name="uq_app_runtime_target"
        ),
    )
    op.create_index("ix_app_runtime_app_id", "app_runtime", ["app_id"])

    op.create_table(
        "build",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column(
            "app_runtime_id",
            sa.String(length=64),
            sa.ForeignKey("app_runtime.id"),
            nullable=False,
        ),
        sa.Column("state", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_build_app_runtime_id", "build", ["app_runtime_id"])
    op.create_index("ix_build_state", "build", ["state"])

    # SQLite cannot add constraints after the fact; the column stays a plain reference there.
    if op.get_bind().dialect.name != "sqlite":
        op.create_foreign_key(
            "fk_app_runtime_active_build",
            "app_runtime",
            "build",
            ["active_build_id"],
            ["id"],
        )

    op.create_table(
        "build_asset",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("build_id", sa.String(length=64), sa.ForeignKey("build.id"), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("hash", sa.String(length=64), nullable=False),
        sa.Column("md5_key", sa.String(length=32), nullable=False),
        sa.Column("content_type", sa.String(length=255), nullable=False),
        sa.Column("extension", sa.String(length=32), nullable=True),
        sa.Column("original_name", sa.Text(), nullable=True),
        sa.Column("destination", sa.String(length=16), nullable=False, server_default="LOCAL"),
        sa.Column("file_path", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_build_asset_build_id", "build_asset", ["build_id"])
    op.create_index("ix_build_asset_hash", "build_asset", ["hash"])


def downgrade() -> None:
    op.drop_index("ix_build_asset_hash", table_name="build_asset")
    op.drop_index("ix_build_asset_build_id", table_name="build_asset")
    op.drop_table("build_asset")

    if op.get_bind().dialect.name != "sqlite":
        op.drop_constraint("fk_app_runtime_active_build", "app_runtime", type_="foreignkey")

    op.drop_index("ix_build_state", table_name="build")
    op.drop_index("ix_build_app_runtime_id", table_name="build")
    op.drop_table("build")

    op.drop_index("ix_app_runtime_app_id", table_name="app_runtime")
    op.drop_table("app_runtime")

    op.drop_index("ix_app_organization_id", table_name="app")
    op.drop_table("app")

    op.drop_table("organization")
