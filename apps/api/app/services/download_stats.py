"""Aggregation of recorded manifest requests into download statistics."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from apps.api.app.db.models import AppRuntime, AppStatsEntry, Build, Platform
from ota_protocol import to_iso_timestamp

_PLATFORMS = tuple(platform.value for platform in Platform)


def _platform_counts() -> dict[str, int]:
    return {platform: 0 for platform in _PLATFORMS}


def classify_update_type(entry: AppStatsEntry) -> str:
    """``native`` when the device runs its embedded update, ``ota`` when it runs a download."""
    if entry.embedded_update_id and entry.current_update_id == entry.embedded_update_id:
        return "native"
    if entry.current_update_id and entry.current_update_id != entry.embedded_update_id:
        return "ota"
    return "unknown"


def _window_start(days: int, now: datetime | None) -> datetime:
    return (now or datetime.utcnow()) - timedelta(days=days)


def list_app_entries(
    db: Session, *, app_id: str, days: int, now: datetime | None = None
) -> list[AppStatsEntry]:
    return list(
        db.scalars(
            select(AppStatsEntry)
            .where(
                AppStatsEntry.app_id == app_id,
                AppStatsEntry.created_at >= _window_start(days, now),
            )
            .order_by(AppStatsEntry.created_at.desc(), AppStatsEntry.id.desc())
        ).all()
    )


def list_build_entries(
    db: Session, *, build_id: str, days: int, now: datetime | None = None
) -> list[AppStatsEntry]:
    return list(
        db.scalars(
            select(AppStatsEntry)
            .where(
                AppStatsEntry.build_id == build_id,
                AppStatsEntry.created_at >= _window_start(days, now),
            )
            .order_by(AppStatsEntry.created_at.desc(), AppStatsEntry.id.desc())
        ).all()
    )


def _timeline(entries: Sequence[AppStatsEntry]) -> dict[str, int]:
    return dict(Counter(entry.created_at.date().isoformat() for entry in entries))


def summarize_app_entries(db: Session, entries: Sequence[AppStatsEntry]) -> dict[str, Any]:
    by_runtime_version: dict[str, dict[str, Any]] = {}
    by_build: dict[str, dict[str, Any]] = {}
    for entry in entries:
        runtime_bucket = by_runtime_version.setdefault(
            entry.runtime_version, {"count": 0, "platforms": _platform_counts()}
        )
        runtime_bucket["count"] += 1
        if entry.platform in runtime_bucket["platforms"]:
            runtime_bucket["platforms"][entry.platform] += 1

        if not entry.build_id:
            continue
        build_bucket = by_build.setdefault(
            entry.build_id, {"count": 0, "platforms": _platform_counts()}
        )
        build_bucket["count"] += 1
        if entry.platform in build_bucket["platforms"]:
            build_bucket["platforms"][entry.platform] += 1

    update_types = {"native": 0, "ota": 0, "unknown": 0}
    for entry in entries:
        update_types[classify_update_type(entry)] += 1

    build_rows = []
    if by_build:
        build_rows = db.execute(
            select(Build, AppRuntime)
            .join(AppRuntime, AppRuntime.id == Build.app_runtime_id)
            .where(Build.id.in_(sorted(by_build)))
            .order_by(Build.created_at.desc(), Build.id.asc())
        ).all()

    return {
        "totalDownloads": len(entries),
        "byRuntimeVersion": by_runtime_version,
        "byChannel": dict(Counter(entry.channel for entry in entries)),
        "byPlatform": dict(Counter(entry.platform for entry in entries)),
        "updateTypeDistribution": update_types,
        "timeline": _timeline(entries),
        "byBuild": [
            {
                "buildId": build.id,
                "message": build.message,
                "createdAt": to_iso_timestamp(build.created_at),
                "runtimeVersion": runtime.runtime_version,
                "platform": runtime.platform,
                "channel": runtime.channel,
                "count": by_build[build.id]["count"],
                "platforms": by_build[build.id]["platforms"],
            }
            for build, runtime in build_rows
        ],
    }


def summarize_build_entries(entries: Sequence[AppStatsEntry]) -> dict[str, Any]:
    return {
        "totalDownloads": len(entries),
        "byPlatform": dict(Counter(entry.platform for entry in entries)),
        "byChannel": dict(Counter(entry.channel for entry in entries)),
        "timeline": _timeline(entries),
    }
