"""
core/errors.py
--------------
Error taxonomy shared by the services and the HTTP layer.

Every error carries the HTTP status it maps to and renders as

    {"error": <message or code>, "details": <optional payload>}

The global handler in main.py does the rendering, so services raise these
directly and never build responses themselves.
"""

from typing import Any, Dict, Optional


class ApiError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        error: Optional[str] = None,
        details: Any = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.error = error or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers
        super().__init__(self.error)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class ConfigurationError(ApiError):
    status_code = 500
    default_message = "Signing provider credentials not configured"


class AuthenticationError(ApiError):
    status_code = 401
    default_message = "Unauthorized"

    def __init__(self, error: Optional[str] = None, details: Any = None) -> None:
        super().__init__(error, details, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(ApiError):
    status_code = 403
    default_message = "Forbidden"


class QuotaExceededError(AuthorizationError):
    """`error` is the machine-readable code the dashboard switches on."""


class RequestValidationFailed(ApiError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Conflict"


class ProviderError(ApiError):
    """Non-2xx answer (or no answer) from the signing provider."""

    status_code = 502
    default_message = "Signing provider request failed"
