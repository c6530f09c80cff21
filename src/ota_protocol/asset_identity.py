"""Asset hash encodings used by update manifests."""

from __future__ import annotations

import base64


def hex_digest_to_base64url(hex_digest: str) -> str:
    """Encode the raw bytes of a hex digest as unpadded base64url."""
    raw = bytes.fromhex(hex_digest)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
