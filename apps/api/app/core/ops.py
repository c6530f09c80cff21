"""Operational safety helpers for request handling and config validation."""

from __future__ import annotations

from typing import Any

from apps.api.app.core.config import Settings

_REDACTED = "***REDACTED***"
_SENSITIVE_KEYS = {
    "api_key",
    "authorization",
    "token",
    "secret",
    "password",
    "signing_key",
    "private_key",
    "app_pk_secret",
}
_UPLOAD_PROVIDERS = {"local", "s3"}


def _is_sensitive_key(key: str) -> bool:
    key_lower = key.lower()
    normalized = key_lower.replace("-", "_")
    return (
        normalized in _SENSITIVE_KEYS
        or normalized.endswith("_key")
        or normalized.endswith("apikey")
        or normalized.endswith("_secret")
        or "authorization" in normalized
    )


def redact_sensitive_fields(value: Any) -> Any:
    if isinstance(value, dict):
        redacted: dict[str, Any] = {}
        for key, nested in value.items():
            if _is_sensitive_key(key):
                redacted[key] = _REDACTED
            else:
                redacted[key] = redact_sensitive_fields(nested)
        return redacted
    if isinstance(value, list):
        return [redact_sensitive_fields(item) for item in value]
    return value


def validate_runtime_configuration(settings: Settings) -> None:
    if settings.request_rate_limit_window_seconds <= 0:
        raise ValueError("Invalid runtime configuration: rate limit window must be > 0")
    if settings.request_rate_limit_max_requests <= 0:
        raise ValueError("Invalid runtime configuration: rate limit max requests must be > 0")
    if not settings.base_url.startswith(("http://", "https://")):
        raise ValueError("Invalid runtime configuration: base url must be http(s)")
    if settings.statistics_queue_size <= 0:
        raise ValueError("Invalid runtime configuration: statistics queue size must be > 0")

    provider = settings.upload_provider.strip().lower()
    if provider not in _UPLOAD_PROVIDERS:
        raise ValueError(
            "Invalid runtime configuration: unknown upload provider: " + settings.upload_provider
        )
    if provider == "s3":
        if not settings.s3_bucket:
            raise ValueError("Invalid runtime configuration: s3_bucket is required for s3")
        if settings.s3_endpoint and not settings.s3_endpoint.startswith(("http://", "https://")):
            raise ValueError("Invalid runtime configuration: s3 endpoint must be http(s)")
        if settings.s3_presign_ttl_seconds <= 0:
            raise ValueError("Invalid runtime configuration: s3 presign ttl must be > 0")
