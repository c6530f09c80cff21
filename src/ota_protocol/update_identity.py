"""Deterministic update identity helpers.

A manifest id is a content fingerprint of the build state shaped like an
RFC 4122 UUID. It is not random: the same build id, runtime version and
``updated_at`` always produce the same id, across calls and restarts.
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from typing import Any


def to_iso_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision and ``Z``.

    Naive datetimes are treated as UTC, matching how the ORM stores them.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def sha256_hex_to_uuid(value: str) -> str:
    """Regroup the first 32 hex characters into 8-4-4-4-12 form."""
    if len(value) < 32:
        raise ValueError("expected at least 32 hex characters")
    return f"{value[:8]}-{value[8:12]}-{value[12:16]}-{value[16:20]}-{value[20:32]}"


def build_manifest_id(*, build_id: str, runtime_version: str, updated_at: datetime) -> str:
    """Return the stable manifest id for one build state."""
    canonical = _canonical_json(
        {
            "id": build_id,
            "runtimeVersion": runtime_version,
            "updatedAt": to_iso_timestamp(updated_at),
        }
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return sha256_hex_to_uuid(digest)
