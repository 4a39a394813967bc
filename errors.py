"""Error taxonomy shared by the session, identity, storage and API layers."""
from __future__ import annotations


class ServiceError(Exception):
    """Base error carrying a stable ``kind`` and a human-readable message.

    Attributes:
        kind: Machine-readable error identifier surfaced to API clients.
        status_code: HTTP status used when the error reaches the API layer.
        message: Caller-facing description. Never includes credentials or traces.
    """

    kind = "service_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"[{self.kind}] {message}")


class InvalidArgument(ServiceError):  # Malformed input, never persisted
    kind = "invalid_argument"
    status_code = 400


class Unauthenticated(ServiceError):  # Missing or expired credential
    kind = "unauthenticated"
    status_code = 401


class Unauthorized(ServiceError):  # Malformed or unverifiable credential
    kind = "unauthorized"
    status_code = 403


class Forbidden(ServiceError):  # Valid credential, wrong owner
    kind = "forbidden"
    status_code = 403


class NotFound(ServiceError):
    kind = "not_found"
    status_code = 404


class InvalidState(ServiceError):  # Operation not legal for the current status
    kind = "invalid_state"
    status_code = 409


class UpstreamError(ServiceError):  # Generative service or store unavailable or unparseable
    kind = "upstream_error"
    status_code = 502


__all__ = [
    "ServiceError",
    "InvalidArgument",
    "Unauthenticated",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "InvalidState",
    "UpstreamError",
]
