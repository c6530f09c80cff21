"""Update delivery: resolve, sign and encode one update-check request."""

from __future__ import annotations

from apps.api.app.services.audit import log_structured_event
from apps.api.app.services.expo_updates.resolution import UpdateResolutionEngine
from apps.api.app.services.expo_updates.response_encoder import (
    EncodedResponse,
    encode_update_response,
    serialize_payload,
)
from apps.api.app.services.expo_updates.signing import PayloadSigner
from apps.api.app.services.expo_updates.types import UpdateRequest


class UpdateDeliveryService:
    def __init__(self, *, engine: UpdateResolutionEngine, signer: PayloadSigner) -> None:
        self._engine = engine
        self._signer = signer

    def respond(self, request: UpdateRequest) -> EncodedResponse:
        """Return the complete wire response; raises before any bytes exist on error."""
        resolution = self._engine.resolve(request)
        payload_json = serialize_payload(resolution.payload())
        signature = self._signer.signature_for(
            payload_json,
            signing_key_ciphertext=resolution.app.signing_key,
            app_id=resolution.app.id,
        )
        log_structured_event(
            "update.resolved",
            app_id=resolution.app.id,
            part=resolution.part_name,
            directive=resolution.directive.type if resolution.directive else None,
            protocol_version=resolution.protocol_version,
            runtime_version=request.runtime_version,
            platform=request.platform,
            channel=request.channel,
            signed=signature is not None,
        )
        return encode_update_response(
            part_name=resolution.part_name,
            payload_json=payload_json,
            protocol_version=resolution.protocol_version,
            signature=signature,
        )
