"""ORM models for apps, runtimes, builds and download statistics."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from apps.api.app.db.base import Base


def _new_id() -> str:
    return uuid4().hex


class Platform(str, Enum):
    IOS = "ios"
    ANDROID = "android"


class BuildState(str, Enum):
    """Publication state of a build.

    Only ``FINALIZED`` builds are servable. New states (for example an
    abandoned upload) slot in here without touching callers that ask
    ``is_servable``.
    """

    DRAFT = "draft"
    FINALIZED = "finalized"


class AssetType(str, Enum):
    BUNDLE = "BUNDLE"
    ASSET = "ASSET"


class StorageDestination(str, Enum):
    LOCAL = "LOCAL"
    S3 = "S3"


class Organization(Base):
    __tablename__ = "organization"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class App(Base):
    __tablename__ = "app"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    organization_id: Mapped[str] = mapped_column(
        ForeignKey("organization.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    signing_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    save_download_statistics: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class AppRuntime(Base):
    __tablename__ = "app_runtime"
    __table_args__ = (
        UniqueConstraint(
            "app_id", "runtime_version", "platform", "channel", name="uq_app_runtime_target"
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    app_id: Mapped[str] = mapped_column(ForeignKey("app.id"), nullable=False, index=True)
    runtime_version: Mapped[str] = mapped_column(String(255), nullable=False)
    platform: Mapped[str] = mapped_column(String(16), nullable=False)
    channel: Mapped[str] = mapped_column(String(255), nullable=False, default="production")
    active_build_id: Mapped[str | None] = mapped_column(
        ForeignKey("build.id", use_alter=True, name="fk_app_runtime_active_build"),
        nullable=True,
    )
    is_rollback: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class Build(Base):
    __tablename__ = "build"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    app_runtime_id: Mapped[str] = mapped_column(
        ForeignKey("app_runtime.id"), nullable=False, index=True
    )
    state: Mapped[str] = mapped_column(
        String(16), nullable=False, default=BuildState.DRAFT.value, index=True
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    build_metadata: Mapped[dict | None] = mapped_column(
        "metadata", JSON().with_variant(JSONB, "postgresql"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    @property
    def is_servable(self) -> bool:
        return self.state == BuildState.FINALIZED.value


class BuildAsset(Base):
    __tablename__ = "build_asset"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    build_id: Mapped[str] = mapped_column(ForeignKey("build.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    md5_key: Mapped[str] = mapped_column(String(32), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    extension: Mapped[str | None] = mapped_column(String(32), nullable=True)
    original_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    destination: Mapped[str] = mapped_column(
        String(16), nullable=False, default=StorageDestination.LOCAL.value
    )
    file_path: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class AppStatsEntry(Base):
    __tablename__ = "app_stats_entry"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    app_id: Mapped[str] = mapped_column(ForeignKey("app.id"), nullable=False, index=True)
    build_id: Mapped[str | None] = mapped_column(
        ForeignKey("build.id"), nullable=True, index=True
    )
    current_update_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    embedded_update_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    runtime_version: Mapped[str] = mapped_column(String(255), nullable=False)
    platform: Mapped[str] = mapped_column(String(16), nullable=False)
    channel: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )
