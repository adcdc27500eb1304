"""Domain-level error taxonomy shared by the REST and realtime layers."""

from __future__ import annotations


class InterestConnectError(Exception):
    """Base class for errors surfaced to clients."""

    reason: str = "Internal server error"
    status_code: int = 500

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason


class Unauthorized(InterestConnectError):
    reason = "Invalid token"
    status_code = 401


class Forbidden(InterestConnectError):
    reason = "Forbidden"
    status_code = 403


class NotFound(InterestConnectError):
    reason = "Not found"
    status_code = 404


class Conflict(InterestConnectError):
    reason = "Conflict"
    status_code = 409


class ValidationFailed(InterestConnectError):
    reason = "Invalid payload"
    status_code = 400


class StoreUnavailable(InterestConnectError):
    """An external store call failed or exceeded its time budget."""

    reason = "Store unavailable"
    status_code = 500
