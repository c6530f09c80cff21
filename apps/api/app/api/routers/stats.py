"""Download statistics endpoints for operators."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.orm import Session

from apps.api.app.core.auth import AuthContext, require_auth_context
from apps.api.app.db.models import App, AppRuntime, Build
from apps.api.app.db.session import get_db_session
from apps.api.app.services.download_stats import (
    list_app_entries,
    list_build_entries,
    summarize_app_entries,
    summarize_build_entries,
)

router = APIRouter(prefix="/stats", tags=["stats"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlatformBreakdown(_CamelModel):
    count: int
    platforms: dict[str, int]


class BuildDownloads(_CamelModel):
    build_id: str
    message: str | None
    created_at: str
    runtime_version: str
    platform: str
    channel: str
    count: int
    platforms: dict[str, int]


class AppStatisticsResponse(_CamelModel):
    total_downloads: int
    by_runtime_version: dict[str, PlatformBreakdown]
    by_channel: dict[str, int]
    by_platform: dict[str, int]
    update_type_distribution: dict[str, int]
    timeline: dict[str, int]
    by_build: list[BuildDownloads]


class BuildStatisticsResponse(_CamelModel):
    build_id: str
    total_downloads: int
    by_platform: dict[str, int]
    by_channel: dict[str, int]
    timeline: dict[str, int]


@router.get("/apps/{app_id}", response_model=AppStatisticsResponse)
def app_statistics(
    app_id: str,
    days: int = Query(default=30, ge=1, le=365),
    auth: AuthContext = Depends(require_auth_context),
    db: Session = Depends(get_db_session),
) -> dict[str, Any]:
    app = db.get(App, app_id)
    if app is None or not auth.can_access(app.organization_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="app not found")

    entries = list_app_entries(db, app_id=app.id, days=days)
    return summarize_app_entries(db, entries)


@router.get("/builds/{build_id}", response_model=BuildStatisticsResponse)
def build_statistics(
    build_id: str,
    days: int = Query(default=30, ge=1, le=365),
    auth: AuthContext = Depends(require_auth_context),
    db: Session = Depends(get_db_session),
) -> dict[str, Any]:
    row = db.execute(
        select(Build, App.organization_id)
        .join(AppRuntime, AppRuntime.id == Build.app_runtime_id)
        .join(App, App.id == AppRuntime.app_id)
        .where(Build.id == build_id)
    ).first()
    if row is None or not auth.can_access(row.organization_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="build not found")
    build = row.Build

    entries = list_build_entries(db, build_id=build.id, days=days)
    return {"buildId": build.id, **summarize_build_entries(entries)}
