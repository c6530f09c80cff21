"""Typed update protocol errors."""

from __future__ import annotations


class UpdateProtocolError(RuntimeError):
    """Base error for terminal update protocol failures.

    ``status_code`` is the HTTP status the API layer responds with.
    """

    code = "update_protocol_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RequestValidationError(UpdateProtocolError):
    """Raised when update request headers or query parameters are invalid."""

    code = "invalid_update_request"
    status_code = 400


class AppNotFoundError(UpdateProtocolError):
    """Raised when no app matches the requested app and organization."""

    code = "app_not_found"
    status_code = 404


class ProtocolCapabilityError(UpdateProtocolError):
    """Raised when a response shape is not supported by the client's protocol version."""

    code = "unsupported_protocol_capability"
    status_code = 400


class BuildInvariantError(UpdateProtocolError):
    """Raised when a finalized build violates an upload-time invariant."""

    code = "build_invariant_violation"
    status_code = 500

    def __init__(self, message: str, *, build_id: str) -> None:
        super().__init__(message)
        self.build_id = build_id


class SigningError(UpdateProtocolError):
    """Raised when signing fails and the server is configured to fail closed."""

    code = "signing_failed"
    status_code = 500
