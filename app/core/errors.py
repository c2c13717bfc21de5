"""
Error taxonomy for the gateway.

Every error carries the HTTP status it is rendered with; the exception
handler in app.main turns them into ``{"error": message}`` bodies.
"""

from typing import Optional

from app.core.provider import ErrorKind, ProviderError


class ApiError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingToken(ApiError):
    status_code = 401
    default_message = "No token provided"


class InvalidToken(ApiError):
    status_code = 401
    default_message = "Invalid or expired token"


class SecretMismatch(ApiError):
    status_code = 401
    default_message = "Current password is incorrect"


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class ConfigurationError(ApiError):
    status_code = 500
    default_message = "Server is not configured for this operation"


class DownstreamError(ApiError):
    status_code = 500
    default_message = "Upstream provider error"


_KIND_TO_ERROR = {
    ErrorKind.UNAUTHORIZED: Unauthorized,
    ErrorKind.NOT_FOUND: NotFound,
    ErrorKind.INVALID_REQUEST: ValidationError,
    ErrorKind.DOWNSTREAM: DownstreamError,
}


def error_for(error: ProviderError, elevated: bool = False) -> ApiError:
    """Map a classified provider error onto the taxonomy.

    With ``elevated`` the call was made with the service-role key, so a rejected
    credential is ours, not the caller's, and surfaces as a downstream failure.
    """
    if elevated and error.kind == ErrorKind.UNAUTHORIZED:
        return DownstreamError(error.message)
    return _KIND_TO_ERROR.get(error.kind, DownstreamError)(error.message)
