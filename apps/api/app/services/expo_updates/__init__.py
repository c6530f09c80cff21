"""Expo updates protocol: request validation, resolution, signing and encoding."""

from apps.api.app.services.expo_updates.errors import (
    AppNotFoundError,
    BuildInvariantError,
    ProtocolCapabilityError,
    RequestValidationError,
    SigningError,
    UpdateProtocolError,
)
from apps.api.app.services.expo_updates.factory import build_update_delivery_service
from apps.api.app.services.expo_updates.request_validation import parse_update_request
from apps.api.app.services.expo_updates.service import UpdateDeliveryService
from apps.api.app.services.expo_updates.types import Directive, Manifest, UpdateRequest

__all__ = [
    "AppNotFoundError",
    "BuildInvariantError",
    "Directive",
    "Manifest",
    "ProtocolCapabilityError",
    "RequestValidationError",
    "SigningError",
    "UpdateDeliveryService",
    "UpdateProtocolError",
    "UpdateRequest",
    "build_update_delivery_service",
    "parse_update_request",
]
