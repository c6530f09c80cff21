"""Manifest assembly from build and asset records."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from apps.api.app.db.models import AppRuntime, AssetType, Build, BuildAsset
from apps.api.app.services.expo_updates.errors import BuildInvariantError
from apps.api.app.services.expo_updates.types import Manifest, ManifestAsset
from ota_protocol import build_manifest_id, hex_digest_to_base64url, to_iso_timestamp

logger = logging.getLogger("ota.updates")

DEFAULT_BUNDLE_EXTENSION = ".bundle"


def asset_url(asset_base_url: str, asset_id: str) -> str:
    return f"{asset_base_url.rstrip('/')}/expo/assets/{asset_id}"


def manifest_id_for(build: Build, runtime: AppRuntime) -> str:
    return build_manifest_id(
        build_id=build.id,
        runtime_version=runtime.runtime_version,
        updated_at=build.updated_at,
    )


def _to_manifest_asset(
    asset: BuildAsset,
    *,
    build_id: str,
    asset_base_url: str,
    default_extension: str,
) -> ManifestAsset:
    try:
        digest = hex_digest_to_base64url(asset.hash)
    except ValueError as exc:
        logger.error("invalid hash on asset %s of build %s", asset.id, build_id)
        raise BuildInvariantError(
            f"Invalid asset hash for asset {asset.id}", build_id=build_id
        ) from exc
    return ManifestAsset(
        hash=digest,
        key=asset.md5_key,
        file_extension=asset.extension or default_extension,
        content_type=asset.content_type,
        url=asset_url(asset_base_url, asset.id),
    )


def build_manifest(
    *,
    build: Build,
    runtime: AppRuntime,
    assets: Sequence[BuildAsset],
    asset_base_url: str,
) -> Manifest:
    """Assemble the manifest for ``build``.

    Raises ``BuildInvariantError`` when the build has no BUNDLE asset, which
    means the upload finalize step let an incomplete build through.
    """
    bundle = next((asset for asset in assets if asset.type == AssetType.BUNDLE.value), None)
    if bundle is None:
        logger.error("no bundle asset for build %s", build.id)
        raise BuildInvariantError("No bundle found for build", build_id=build.id)

    launch_asset = _to_manifest_asset(
        bundle,
        build_id=build.id,
        asset_base_url=asset_base_url,
        default_extension=DEFAULT_BUNDLE_EXTENSION,
    )
    other_assets = [
        _to_manifest_asset(
            asset, build_id=build.id, asset_base_url=asset_base_url, default_extension=""
        )
        for asset in assets
        if asset.type == AssetType.ASSET.value
    ]
    return Manifest(
        id=manifest_id_for(build, runtime),
        created_at=to_iso_timestamp(build.updated_at),
        runtime_version=runtime.runtime_version,
        launch_asset=launch_asset,
        assets=other_assets,
    )
