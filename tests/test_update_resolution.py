from datetime import datetime, timezone

import pytest

from apps.api.app.db.models import App, AppRuntime, Build, BuildAsset
from apps.api.app.services.expo_updates import (
    AppNotFoundError,
    ProtocolCapabilityError,
    UpdateRequest,
)
from apps.api.app.services.expo_updates.manifest_builder import manifest_id_for
from apps.api.app.services.expo_updates.resolution import UpdateResolutionEngine
from apps.api.app.services.expo_updates.statistics import StatsRecord
from apps.api.app.services.expo_updates.types import UpdateTarget
from ota_protocol import hex_digest_to_base64url

BUNDLE_HASH = "abc123" + "0" * 58
FIXED_NOW = datetime(2024, 7, 1, 8, 30, 0, 125_000, tzinfo=timezone.utc)


class FakeStore:
    def __init__(self, target: UpdateTarget | None, assets: list[BuildAsset] | None = None):
        self.target = target
        self.assets = assets or []
        self.lookups: list[dict[str, str]] = []

    def find_target(self, **kwargs: str) -> UpdateTarget | None:
        self.lookups.append(kwargs)
        return self.target

    def list_build_assets(self, build_id: str) -> list[BuildAsset]:
        return [asset for asset in self.assets if asset.build_id == build_id]


class RecordingSink:
    def __init__(self) -> None:
        self.entries: list[StatsRecord] = []

    def record(self, entry: StatsRecord) -> None:
        self.entries.append(entry)


class ExplodingSink:
    def record(self, entry: StatsRecord) -> None:
        raise RuntimeError("queue unavailable")


def _app(*, statistics: bool = False) -> App:
    return App(
        id="app-x",
        organization_id="org-1",
        title="App X",
        slug="app-x",
        save_download_statistics=statistics,
    )


def _runtime(*, is_rollback: bool = False, active_build_id: str | None = "build-1") -> AppRuntime:
    return AppRuntime(
        id="runtime-1",
        app_id="app-x",
        runtime_version="1.0.0",
        platform="ios",
        channel="production",
        is_rollback=is_rollback,
        active_build_id=active_build_id,
    )


def _build(*, state: str = "finalized") -> Build:
    return Build(
        id="build-1",
        app_runtime_id="runtime-1",
        state=state,
        updated_at=datetime(2024, 6, 1, 12, 0, 0),
    )


def _assets() -> list[BuildAsset]:
    return [
        BuildAsset(
            id="bundle-asset",
            build_id="build-1",
            type="BUNDLE",
            hash=BUNDLE_HASH,
            md5_key="0cc175b9c0f1b6a831c399e269772661",
            content_type="application/javascript",
            extension=".js",
            file_path="app-x/build-1/index.js",
        ),
        BuildAsset(
            id="image-asset",
            build_id="build-1",
            type="ASSET",
            hash="ff" * 32,
            md5_key="92eb5ffee6ae2fec3ad71c777531578f",
            content_type="image/png",
            extension=".png",
            file_path="app-x/build-1/logo.png",
        ),
    ]


def _request(protocol_version: int = 1, **overrides: str | None) -> UpdateRequest:
    fields = {
        "protocol_version": protocol_version,
        "platform": "ios",
        "runtime_version": "1.0.0",
        "app_id": "app-x",
        "organization_id": "org-1",
        "channel": "production",
        "current_update_id": None,
        "embedded_update_id": None,
    }
    fields.update(overrides)
    return UpdateRequest(**fields)


def _engine(store: FakeStore, statistics=None) -> UpdateResolutionEngine:
    return UpdateResolutionEngine(
        store,
        asset_base_url="https://updates.example.test",
        statistics=statistics,
        clock=lambda: FIXED_NOW,
    )


def _served_target() -> tuple[FakeStore, Build, AppRuntime]:
    build = _build()
    runtime = _runtime()
    store = FakeStore(UpdateTarget(app=_app(), runtime=runtime, active_build=build), _assets())
    return store, build, runtime


def test_unknown_app_is_not_found() -> None:
    with pytest.raises(AppNotFoundError) as exc_info:
        _engine(FakeStore(None)).resolve(_request())
    assert exc_info.value.status_code == 404


def test_lookup_uses_full_targeting_key() -> None:
    store = FakeStore(UpdateTarget(app=_app(), runtime=None, active_build=None))
    _engine(store).resolve(_request(channel="staging"))
    assert store.lookups == [
        {
            "app_id": "app-x",
            "organization_id": "org-1",
            "runtime_version": "1.0.0",
            "platform": "ios",
            "channel": "staging",
        }
    ]


def test_missing_runtime_answers_no_update() -> None:
    store = FakeStore(UpdateTarget(app=_app(), runtime=None, active_build=None))
    resolution = _engine(store).resolve(_request())

    assert resolution.part_name == "directive"
    assert resolution.payload() == {"type": "noUpdateAvailable"}
    assert resolution.protocol_version == 1


def test_draft_build_answers_no_update() -> None:
    store = FakeStore(
        UpdateTarget(app=_app(), runtime=_runtime(), active_build=_build(state="draft"))
    )
    resolution = _engine(store).resolve(_request())
    assert resolution.payload() == {"type": "noUpdateAvailable"}


def test_runtime_without_active_build_answers_no_update() -> None:
    store = FakeStore(
        UpdateTarget(app=_app(), runtime=_runtime(active_build_id=None), active_build=None)
    )
    resolution = _engine(store).resolve(_request())
    assert resolution.payload() == {"type": "noUpdateAvailable"}


def test_finalized_build_serves_manifest() -> None:
    store, _, _ = _served_target()
    resolution = _engine(store).resolve(_request())

    assert resolution.part_name == "manifest"
    payload = resolution.payload()
    assert payload["launchAsset"]["key"] == "0cc175b9c0f1b6a831c399e269772661"
    assert payload["launchAsset"]["hash"] == hex_digest_to_base64url(BUNDLE_HASH)
    assert [asset["key"] for asset in payload["assets"]] == ["92eb5ffee6ae2fec3ad71c777531578f"]


def test_rollback_when_device_runs_embedded_update_answers_no_update() -> None:
    store = FakeStore(
        UpdateTarget(
            app=_app(), runtime=_runtime(is_rollback=True, active_build_id=None), active_build=None
        )
    )
    resolution = _engine(store).resolve(
        _request(current_update_id="E1", embedded_update_id="E1")
    )
    assert resolution.payload() == {"type": "noUpdateAvailable"}


def test_rollback_when_device_runs_downloaded_update_answers_rollback() -> None:
    store = FakeStore(
        UpdateTarget(
            app=_app(), runtime=_runtime(is_rollback=True, active_build_id=None), active_build=None
        )
    )
    resolution = _engine(store).resolve(
        _request(current_update_id="E1", embedded_update_id="E2")
    )
    assert resolution.payload() == {
        "type": "rollBackToEmbedded",
        "parameters": {"commitTime": "2024-07-01T08:30:00.125Z"},
    }


def test_rollback_flag_wins_over_active_build() -> None:
    build = _build()
    store = FakeStore(
        UpdateTarget(app=_app(), runtime=_runtime(is_rollback=True), active_build=build),
        _assets(),
    )
    resolution = _engine(store).resolve(
        _request(current_update_id="E1", embedded_update_id="E2")
    )
    assert resolution.manifest is None
    assert resolution.directive is not None
    assert resolution.directive.type == "rollBackToEmbedded"


def test_manifest_id_is_stable_across_requests() -> None:
    store, build, runtime = _served_target()
    engine = _engine(store)

    first = engine.resolve(_request()).payload()
    second = engine.resolve(_request()).payload()

    assert first["id"] == second["id"] == manifest_id_for(build, runtime)


def test_device_on_current_manifest_converges_to_no_update() -> None:
    store, build, runtime = _served_target()
    engine = _engine(store)
    current = manifest_id_for(build, runtime)

    for _ in range(3):
        resolution = engine.resolve(_request(current_update_id=current))
        assert resolution.payload() == {"type": "noUpdateAvailable"}

    build.updated_at = datetime(2024, 6, 2, 12, 0, 0)
    resolution = engine.resolve(_request(current_update_id=current))
    assert resolution.part_name == "manifest"
    assert resolution.payload()["id"] != current


def test_protocol_zero_always_serves_manifest() -> None:
    store, build, runtime = _served_target()
    resolution = _engine(store).resolve(
        _request(protocol_version=0, current_update_id=manifest_id_for(build, runtime))
    )
    assert resolution.part_name == "manifest"
    assert resolution.protocol_version == 0


@pytest.mark.parametrize(
    "target",
    [
        UpdateTarget(app=_app(), runtime=None, active_build=None),
        UpdateTarget(app=_app(), runtime=_runtime(), active_build=_build(state="draft")),
        UpdateTarget(
            app=_app(), runtime=_runtime(is_rollback=True, active_build_id=None), active_build=None
        ),
    ],
)
def test_protocol_zero_cannot_receive_directives(target: UpdateTarget) -> None:
    with pytest.raises(ProtocolCapabilityError) as exc_info:
        _engine(FakeStore(target)).resolve(
            _request(protocol_version=0, current_update_id="E1", embedded_update_id="E2")
        )
    assert exc_info.value.status_code == 400


def test_statistics_recorded_when_enabled() -> None:
    sink = RecordingSink()
    store = FakeStore(
        UpdateTarget(app=_app(statistics=True), runtime=_runtime(), active_build=_build()),
        _assets(),
    )
    _engine(store, sink).resolve(_request(current_update_id="c1", embedded_update_id="e1"))

    assert sink.entries == [
        StatsRecord(
            app_id="app-x",
            build_id="build-1",
            current_update_id="c1",
            embedded_update_id="e1",
            runtime_version="1.0.0",
            platform="ios",
            channel="production",
        )
    ]


def test_statistics_for_rollback_runtime_has_no_build() -> None:
    sink = RecordingSink()
    store = FakeStore(
        UpdateTarget(
            app=_app(statistics=True),
            runtime=_runtime(is_rollback=True, active_build_id="build-1"),
            active_build=None,
        )
    )
    _engine(store, sink).resolve(_request(current_update_id="E1", embedded_update_id="E2"))
    assert sink.entries[0].build_id is None


def test_statistics_skipped_when_disabled() -> None:
    sink = RecordingSink()
    store, _, _ = _served_target()
    _engine(store, sink).resolve(_request())
    assert sink.entries == []


def test_statistics_failure_does_not_affect_response() -> None:
    store = FakeStore(
        UpdateTarget(app=_app(statistics=True), runtime=_runtime(), active_build=_build()),
        _assets(),
    )
    resolution = _engine(store, ExplodingSink()).resolve(_request())
    assert resolution.part_name == "manifest"
