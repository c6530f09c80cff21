"""Expo updates protocol endpoints consumed by devices."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from apps.api.app.core.config import get_settings
from apps.api.app.db.models import Build, BuildAsset
from apps.api.app.db.session import get_db_session
from apps.api.app.services.expo_updates import build_update_delivery_service, parse_update_request
from apps.api.app.services.expo_updates.statistics import StatisticsSink
from apps.api.app.services.object_storage import LocalStorageBackend, StorageBackendRegistry

logger = logging.getLogger("ota.updates")

router = APIRouter(prefix="/expo", tags=["expo"])

ASSET_CACHE_CONTROL = "public, max-age=31536000, immutable"


def get_statistics_sink(request: Request) -> StatisticsSink | None:
    return getattr(request.app.state, "statistics_recorder", None)


def get_storage_registry(request: Request) -> StorageBackendRegistry:
    return request.app.state.storage_registry


def _collect_headers(request: Request) -> dict[str, list[str]]:
    collected: dict[str, list[str]] = {}
    for name, value in request.headers.items():
        collected.setdefault(name.lower(), []).append(value)
    return collected


@router.get("/manifest")
def get_manifest(
    request: Request,
    db: Session = Depends(get_db_session),
    statistics: StatisticsSink | None = Depends(get_statistics_sink),
) -> Response:
    """Answer an update check with a signed multipart manifest or directive."""
    update_request = parse_update_request(
        _collect_headers(request), dict(request.query_params)
    )
    service = build_update_delivery_service(db, settings=get_settings(), statistics=statistics)
    encoded = service.respond(update_request)
    return Response(content=encoded.body, headers=encoded.headers)


@router.get("/assets/{asset_id}")
def get_asset(
    asset_id: str,
    db: Session = Depends(get_db_session),
    storage: StorageBackendRegistry = Depends(get_storage_registry),
) -> Response:
    row = db.execute(
        select(BuildAsset, Build)
        .join(Build, Build.id == BuildAsset.build_id)
        .where(BuildAsset.id == asset_id)
    ).first()
    if row is None:
        logger.warning("asset not found: %s", asset_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="asset not found")
    asset, build = row
    if not build.is_servable:
        logger.warning("asset %s belongs to draft build %s", asset.id, build.id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="asset not available")

    try:
        backend = storage.get_backend(asset.destination)
    except LookupError:
        logger.error("no storage backend for asset %s (%s)", asset.id, asset.destination)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="asset storage unavailable",
        ) from None

    if isinstance(backend, LocalStorageBackend):
        try:
            content = backend.read_bytes(asset.file_path)
        except (OSError, ValueError):
            logger.error("asset file not found for asset %s: %s", asset.id, asset.file_path)
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="asset file not found"
            ) from None
        return Response(
            content=content,
            media_type=asset.content_type,
            headers={"Cache-Control": ASSET_CACHE_CONTROL},
        )

    return RedirectResponse(
        url=backend.get_url(asset.file_path), status_code=status.HTTP_302_FOUND
    )
