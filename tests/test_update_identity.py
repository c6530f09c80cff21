import hashlib
import json
from datetime import datetime, timedelta, timezone

import pytest

from ota_protocol import build_manifest_id, hex_digest_to_base64url, sha256_hex_to_uuid
from ota_protocol.update_identity import to_iso_timestamp


def test_iso_timestamp_uses_milliseconds_and_z_suffix() -> None:
    value = datetime(2024, 1, 2, 3, 4, 5, 678_900, tzinfo=timezone.utc)
    assert to_iso_timestamp(value) == "2024-01-02T03:04:05.678Z"


def test_iso_timestamp_treats_naive_values_as_utc() -> None:
    naive = datetime(2024, 1, 2, 3, 4, 5)
    assert to_iso_timestamp(naive) == "2024-01-02T03:04:05.000Z"


def test_iso_timestamp_converts_offsets_to_utc() -> None:
    value = datetime(2024, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2)))
    assert to_iso_timestamp(value) == "2024-01-02T03:04:05.000Z"


def test_sha256_hex_to_uuid_groups_first_32_characters() -> None:
    digest = "0123456789abcdef0123456789abcdefffffffff"
    assert sha256_hex_to_uuid(digest) == "01234567-89ab-cdef-0123-456789abcdef"


def test_sha256_hex_to_uuid_rejects_short_input() -> None:
    with pytest.raises(ValueError):
        sha256_hex_to_uuid("abc")


def test_manifest_id_is_fingerprint_of_build_state() -> None:
    updated_at = datetime(2024, 6, 1, 12, 0, 0, 250_000)
    canonical = json.dumps(
        {"id": "build-1", "runtimeVersion": "1.0.0", "updatedAt": "2024-06-01T12:00:00.250Z"},
        sort_keys=True,
        separators=(",", ":"),
    )
    expected = sha256_hex_to_uuid(hashlib.sha256(canonical.encode("utf-8")).hexdigest())

    manifest_id = build_manifest_id(
        build_id="build-1", runtime_version="1.0.0", updated_at=updated_at
    )

    assert manifest_id == expected
    assert manifest_id == build_manifest_id(
        build_id="build-1", runtime_version="1.0.0", updated_at=updated_at
    )


def test_manifest_id_changes_with_each_input() -> None:
    updated_at = datetime(2024, 6, 1, 12, 0, 0)
    baseline = build_manifest_id(build_id="b", runtime_version="1.0.0", updated_at=updated_at)

    assert baseline != build_manifest_id(
        build_id="c", runtime_version="1.0.0", updated_at=updated_at
    )
    assert baseline != build_manifest_id(
        build_id="b", runtime_version="1.0.1", updated_at=updated_at
    )
    assert baseline != build_manifest_id(
        build_id="b", runtime_version="1.0.0", updated_at=updated_at + timedelta(milliseconds=1)
    )


def test_asset_hash_is_unpadded_base64url_of_raw_digest() -> None:
    # 0xfb 0xff encodes to "+/8=" in standard base64.
    assert hex_digest_to_base64url("fbff") == "-_8"
    digest = hashlib.sha256(b"bundle").hexdigest()
    encoded = hex_digest_to_base64url(digest)
    assert "=" not in encoded
    assert len(encoded) == 43
