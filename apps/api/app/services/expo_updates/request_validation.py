"""Validation of device update-check requests."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from apps.api.app.db.models import Platform
from apps.api.app.services.expo_updates.errors import RequestValidationError
from apps.api.app.services.expo_updates.types import DEFAULT_CHANNEL, UpdateRequest

SUPPORTED_PROTOCOL_VERSIONS = (0, 1)
_PLATFORMS = {platform.value for platform in Platform}


def _values(headers: Mapping[str, Sequence[str]], name: str) -> list[str]:
    return list(headers.get(name, ()))


def _first(headers: Mapping[str, Sequence[str]], name: str) -> str | None:
    values = _values(headers, name)
    if not values:
        return None
    return values[0]


def _parse_protocol_version(headers: Mapping[str, Sequence[str]]) -> int:
    values = _values(headers, "expo-protocol-version")
    if len(values) > 1:
        raise RequestValidationError("Unsupported protocol version. Expected either 0 or 1.")
    if not values:
        return 0
    try:
        version = int(values[0].strip())
    except ValueError:
        raise RequestValidationError(
            "Unsupported protocol version. Expected either 0 or 1."
        ) from None
    if version not in SUPPORTED_PROTOCOL_VERSIONS:
        raise RequestValidationError("Unsupported protocol version. Expected either 0 or 1.")
    return version


def parse_update_request(
    headers: Mapping[str, Sequence[str]],
    query: Mapping[str, str] | None = None,
) -> UpdateRequest:
    """Build an ``UpdateRequest`` from lower-cased headers and query parameters.

    ``headers`` maps each header name to every value the client sent, so a
    repeated ``expo-protocol-version`` can be rejected.
    """
    query = query or {}
    protocol_version = _parse_protocol_version(headers)

    platform = _first(headers, "expo-platform") or query.get("platform")
    if platform not in _PLATFORMS:
        raise RequestValidationError("Unsupported platform. Expected either ios or android.")

    runtime_version = _first(headers, "expo-runtime-version") or query.get("runtime-version")
    if not runtime_version:
        raise RequestValidationError("No runtimeVersion provided.")

    app_id = _first(headers, "ota-app-id")
    if not app_id:
        raise RequestValidationError("App ID is required")

    organization_id = _first(headers, "ota-organization-id")
    if not organization_id:
        raise RequestValidationError("Organization ID is required")

    return UpdateRequest(
        protocol_version=protocol_version,
        platform=platform,
        runtime_version=runtime_version,
        app_id=app_id,
        organization_id=organization_id,
        channel=_first(headers, "ota-channel-name") or DEFAULT_CHANNEL,
        current_update_id=_first(headers, "expo-current-update-id"),
        embedded_update_id=_first(headers, "expo-embedded-update-id"),
    )
