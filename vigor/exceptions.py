"""Custom exception hierarchy for Vigor.

Provides structured error types that the centralized error handler
translates into consistent JSON responses.
"""

from __future__ import annotations


class VigorError(Exception):
    """Base exception for all Vigor errors."""

    status_code: int = 500
    error_type: str = "INTERNAL_ERROR"

    def __init__(self, message: str = "An internal error occurred") -> None:
        self.message = message
        super().__init__(message)

    def to_body(self) -> dict[str, str]:
        return {"error": self.error_type, "message": self.message}


class SubscriptionValidationError(VigorError):
    """Malformed or missing subscription query parameter."""

    status_code = 422
    error_type = "VALIDATION_ERROR"

    def __init__(
        self, code: str, message: str, field: str, hint: str | None = None
    ) -> None:
        super().__init__(message)
        self.error_type = code
        self.field = field
        self.hint = hint

    def to_body(self) -> dict[str, str]:
        body = super().to_body()
        body["field"] = self.field
        if self.hint:
            body["hint"] = self.hint
        return body


class TenantAccessError(VigorError):
    """Caller asked for another tenant's data."""

    status_code = 403
    error_type = "FORBIDDEN"


class AuthenticationError(VigorError):
    """Missing or invalid credentials."""

    status_code = 401
    error_type = "UNAUTHORIZED"


class AuthorizationError(VigorError):
    """Authenticated, but the role or tenant context does not allow the action."""

    status_code = 403
    error_type = "FORBIDDEN"


class AuthConfigurationError(VigorError):
    """No usable auth provider is configured."""

    status_code = 503
    error_type = "AUTH_NOT_CONFIGURED"


class NotFoundError(VigorError):
    status_code = 404
    error_type = "NOT_FOUND"


class TransportClosedError(Exception):
    """A write was attempted on a connection whose transport is gone.

    Raised by transports and swallowed by the broadcaster, which prunes
    the connection; it never reaches an HTTP caller.
    """


class LiveStreamError(Exception):
    """A live-events stream attempt failed.

    ``permanent`` marks failures that retrying cannot fix (bad request,
    rejected credentials, wrong content type).
    """

    def __init__(self, message: str, *, permanent: bool, status_code: int | None = None) -> None:
        super().__init__(message)
        self.permanent = permanent
        self.status_code = status_code
