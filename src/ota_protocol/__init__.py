"""OTA update protocol helpers."""

from ota_protocol.asset_identity import hex_digest_to_base64url
from ota_protocol.update_identity import (
    build_manifest_id,
    sha256_hex_to_uuid,
    to_iso_timestamp,
)

__all__ = [
    "build_manifest_id",
    "hex_digest_to_base64url",
    "sha256_hex_to_uuid",
    "to_iso_timestamp",
]
