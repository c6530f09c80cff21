"""Update resolution: decide between manifest, no-update and rollback.

Checks run in a fixed order and the first match wins:

1. unknown app (for the organization) is an error;
2. no runtime for version/platform/channel answers ``noUpdateAvailable``;
3. a rollback runtime answers ``rollBackToEmbedded`` unless the device
   already runs its embedded update (protocol 0 cannot roll back);
4. a missing or draft active build answers ``noUpdateAvailable``;
5. on protocol 1, a device already running the active build's manifest
   answers ``noUpdateAvailable``;
6. otherwise the active build's manifest is served.

Directives only exist in protocol 1. Protocol 0 clients always receive the
current manifest and any directive for them is an error.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from apps.api.app.db.models import App
from apps.api.app.services.expo_updates.errors import AppNotFoundError, ProtocolCapabilityError
from apps.api.app.services.expo_updates.manifest_builder import build_manifest, manifest_id_for
from apps.api.app.services.expo_updates.statistics import StatisticsSink, StatsRecord
from apps.api.app.services.expo_updates.store import UpdateStore
from apps.api.app.services.expo_updates.types import (
    Directive,
    Resolution,
    UpdateRequest,
    UpdateTarget,
)
from ota_protocol import to_iso_timestamp

logger = logging.getLogger("ota.updates")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UpdateResolutionEngine:
    def __init__(
        self,
        store: UpdateStore,
        *,
        asset_base_url: str,
        statistics: StatisticsSink | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._asset_base_url = asset_base_url
        self._statistics = statistics
        self._clock = clock

    def resolve(self, request: UpdateRequest) -> Resolution:
        target = self._store.find_target(
            app_id=request.app_id,
            organization_id=request.organization_id,
            runtime_version=request.runtime_version,
            platform=request.platform,
            channel=request.channel,
        )
        if target is None:
            raise AppNotFoundError("App not found")

        app = target.app
        if app.save_download_statistics:
            self._record_statistics(request, target)

        runtime = target.runtime
        if runtime is None:
            logger.info(
                "no runtime for app %s (%s/%s/%s)",
                app.id,
                request.runtime_version,
                request.platform,
                request.channel,
            )
            return self._no_update(request, app)

        if runtime.is_rollback:
            if request.protocol_version == 0:
                raise ProtocolCapabilityError("Rollbacks not supported on protocol version 0")
            if request.current_update_id == request.embedded_update_id:
                logger.info("app %s already runs its embedded update", app.id)
                return self._no_update(request, app)
            logger.info("runtime %s is a rollback for app %s", runtime.id, app.id)
            return self._rollback(request, app)

        build = target.active_build
        if build is None or not build.is_servable:
            logger.info("no active finalized build for app %s, runtime %s", app.id, runtime.id)
            return self._no_update(request, app)

        if request.protocol_version == 1:
            if manifest_id_for(build, runtime) == request.current_update_id:
                logger.info("app %s is up to date with build %s", app.id, build.id)
                return self._no_update(request, app)

        manifest = build_manifest(
            build=build,
            runtime=runtime,
            assets=self._store.list_build_assets(build.id),
            asset_base_url=self._asset_base_url,
        )
        return Resolution(app=app, protocol_version=request.protocol_version, manifest=manifest)

    def _no_update(self, request: UpdateRequest, app: App) -> Resolution:
        if request.protocol_version == 0:
            raise ProtocolCapabilityError(
                "NoUpdateAvailable directive not available in protocol version 0"
            )
        return Resolution(
            app=app,
            protocol_version=request.protocol_version,
            directive=Directive.no_update_available(),
        )

    def _rollback(self, request: UpdateRequest, app: App) -> Resolution:
        if request.protocol_version == 0:
            raise ProtocolCapabilityError("Rollbacks not supported on protocol version 0")
        directive = Directive.roll_back_to_embedded(commit_time=to_iso_timestamp(self._clock()))
        return Resolution(app=app, protocol_version=request.protocol_version, directive=directive)

    def _record_statistics(self, request: UpdateRequest, target: UpdateTarget) -> None:
        if self._statistics is None:
            return
        runtime = target.runtime
        build_id = None
        if runtime is not None and not runtime.is_rollback:
            build_id = runtime.active_build_id
        try:
            self._statistics.record(
                StatsRecord(
                    app_id=target.app.id,
                    build_id=build_id,
                    current_update_id=request.current_update_id,
                    embedded_update_id=request.embedded_update_id,
                    runtime_version=request.runtime_version,
                    platform=request.platform,
                    channel=request.channel,
                )
            )
        except Exception:
            logger.exception("failed to dispatch statistics for app %s", target.app.id)
