"""Multipart wire encoding for manifest and directive responses."""

from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from typing import Any

from urllib3.fields import RequestField
from urllib3.filepost import encode_multipart_formdata

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
EXTENSIONS_PAYLOAD: dict[str, Any] = {"assetRequestHeaders": {}}


@dataclass(frozen=True)
class MultipartPart:
    name: str
    body: str
    signature: str | None = None


@dataclass(frozen=True)
class EncodedResponse:
    body: bytes
    headers: dict[str, str]
    boundary: str


def serialize_payload(payload: dict[str, Any]) -> str:
    """Serialize a payload once; the same string is signed and transmitted."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _new_boundary() -> str:
    return "-" * 26 + secrets.token_hex(12)


def _to_field(part: MultipartPart) -> RequestField:
    field = RequestField(name=part.name, data=part.body)
    field.make_multipart(content_type=JSON_CONTENT_TYPE)
    if part.signature:
        field.headers["expo-signature"] = part.signature
    return field


def encode_multipart(
    parts: list[MultipartPart],
    *,
    protocol_version: int,
    boundary: str | None = None,
) -> EncodedResponse:
    boundary = boundary or _new_boundary()
    # urllib3 reports multipart/form-data; the update protocol wants multipart/mixed.
    body, _ = encode_multipart_formdata(
        [_to_field(part) for part in parts], boundary=boundary
    )
    return EncodedResponse(
        body=body,
        headers={
            "Content-Type": f"multipart/mixed; boundary={boundary}",
            "expo-protocol-version": str(protocol_version),
            "expo-sfv-version": "0",
            "Cache-Control": "private, max-age=0",
        },
        boundary=boundary,
    )


def encode_update_response(
    *,
    part_name: str,
    payload_json: str,
    protocol_version: int,
    signature: str | None,
    boundary: str | None = None,
) -> EncodedResponse:
    """Frame a manifest (with its extensions part) or a directive."""
    parts = [MultipartPart(name=part_name, body=payload_json, signature=signature)]
    if part_name == "manifest":
        parts.append(
            MultipartPart(name="extensions", body=serialize_payload(EXTENSIONS_PAYLOAD))
        )
    return encode_multipart(parts, protocol_version=protocol_version, boundary=boundary)
