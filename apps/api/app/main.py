"""FastAPI application factory and app instance."""

from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict, deque
from collections.abc import Callable
from uuid import uuid4

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from apps.api.app.api.routers.expo import router as expo_router
from apps.api.app.api.routers.stats import router as stats_router
from apps.api.app.api.routers.system import router as system_router
from apps.api.app.core.auth import validate_auth_configuration
from apps.api.app.core.config import get_settings
from apps.api.app.core.ops import validate_runtime_configuration
from apps.api.app.services.expo_updates import UpdateProtocolError
from apps.api.app.services.expo_updates.statistics import BackgroundStatisticsRecorder
from apps.api.app.services.object_storage import build_storage_registry

logger = logging.getLogger("ota.updates")

_EXPO_REQUEST_HEADERS = [
    "content-type",
    "x-api-key",
    "x-organization-id",
    "expo-protocol-version",
    "expo-platform",
    "expo-runtime-version",
    "ota-channel-name",
    "expo-current-update-id",
    "expo-embedded-update-id",
    "ota-app-id",
    "ota-organization-id",
]


def _is_sensitive_path(path: str) -> bool:
    return path.startswith("/stats/")


class RequestOpsMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: FastAPI):
        super().__init__(app)
        self._hits: dict[tuple[str, str], deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def _is_rate_limited(self, *, organization_id: str, path: str) -> bool:
        settings = get_settings()
        if not settings.request_rate_limit_enabled or not _is_sensitive_path(path):
            return False

        now = time.monotonic()
        key = (organization_id, path)
        with self._lock:
            bucket = self._hits[key]
            cutoff = now - settings.request_rate_limit_window_seconds
            while bucket and bucket[0] < cutoff:
                bucket.popleft()
            if len(bucket) >= settings.request_rate_limit_max_requests:
                return True
            bucket.append(now)
            return False

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id
        organization_id = request.headers.get("X-Organization-ID", "default")

        if self._is_rate_limited(organization_id=organization_id, path=request.url.path):
            response = JSONResponse(
                status_code=429,
                content={"detail": "rate limit exceeded", "request_id": request_id},
            )
            response.headers["X-Request-ID"] = request_id
            return response

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


async def _update_protocol_error_handler(
    request: Request, exc: UpdateProtocolError
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("update request failed on %s: %s", request.url.path, exc.message)
    else:
        logger.info("update request rejected on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def create_app() -> FastAPI:
    """Create FastAPI app with deterministic configuration wiring."""
    settings = get_settings()
    validate_auth_configuration(
        security_enabled=settings.security_enabled,
        auth_api_keys=settings.auth_api_keys,
        auth_organization_keys=settings.auth_organization_keys,
    )
    validate_runtime_configuration(settings)
    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.state.storage_registry = build_storage_registry(settings)
    app.state.statistics_recorder = BackgroundStatisticsRecorder(
        max_queue_size=settings.statistics_queue_size
    )

    allowed_origins = [
        origin.strip()
        for origin in settings.cors_allowed_origins.split(",")
        if origin.strip()
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=_EXPO_REQUEST_HEADERS,
    )
    app.add_middleware(RequestOpsMiddleware)
    app.add_exception_handler(UpdateProtocolError, _update_protocol_error_handler)
    app.include_router(system_router)
    app.include_router(expo_router)
    app.include_router(stats_router)
    return app


app = create_app()
