"""Identity store lookups used by update resolution."""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from apps.api.app.db.models import App, AppRuntime, Build, BuildAsset
from apps.api.app.services.expo_updates.types import UpdateTarget


class UpdateStore(Protocol):
    def find_target(
        self,
        *,
        app_id: str,
        organization_id: str,
        runtime_version: str,
        platform: str,
        channel: str,
    ) -> UpdateTarget | None: ...

    def list_build_assets(self, build_id: str) -> list[BuildAsset]: ...


class SqlAlchemyUpdateStore:
    def __init__(self, db: Session) -> None:
        self._db = db

    def find_target(
        self,
        *,
        app_id: str,
        organization_id: str,
        runtime_version: str,
        platform: str,
        channel: str,
    ) -> UpdateTarget | None:
        """Load app, matching runtime and active build in a single query."""
        row = self._db.execute(
            select(App, AppRuntime, Build)
            .select_from(App)
            .outerjoin(
                AppRuntime,
                and_(
                    AppRuntime.app_id == App.id,
                    AppRuntime.runtime_version == runtime_version,
                    AppRuntime.platform == platform,
                    AppRuntime.channel == channel,
                ),
            )
            .outerjoin(Build, Build.id == AppRuntime.active_build_id)
            .where(App.id == app_id, App.organization_id == organization_id)
            .limit(1)
        ).first()
        if row is None:
            return None
        app, runtime, build = row
        return UpdateTarget(app=app, runtime=runtime, active_build=build)

    def list_build_assets(self, build_id: str) -> list[BuildAsset]:
        return list(
            self._db.scalars(
                select(BuildAsset)
                .where(BuildAsset.build_id == build_id)
                .order_by(BuildAsset.created_at.asc(), BuildAsset.id.asc())
            ).all()
        )
