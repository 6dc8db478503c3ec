"""Custom exceptions for QwenBot."""

from typing import Any, Optional


class QwenBotException(Exception):
    """Base exception for all QwenBot errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class APIException(QwenBotException):
    """Exception raised when a provider API call fails.

    ``kind`` carries the classified failure (see ``FailureKind``) so command
    handlers can pick a user-facing message without re-inspecting the cause.
    """

    def __init__(
        self,
        message: str,
        kind: Any = None,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.kind = kind
        self.status_code = status_code
        full_details = dict(details or {})
        if status_code is not None:
            full_details["status_code"] = status_code
        super().__init__(message, full_details)


class AuthenticationException(APIException):
    """Exception raised when API authentication fails."""

    pass


class RateLimitException(APIException):
    """Exception raised when rate limit is exceeded."""

    pass


class ServerException(APIException):
    """Exception raised for 5xx server errors."""

    pass


class APITimeoutException(APIException):
    """Exception raised when a request times out."""

    pass


class ContentPolicyException(APIException):
    """Exception raised when the provider rejects input on content policy."""

    pass


class BadRequestException(APIException):
    """Exception raised for malformed request parameters."""

    pass


class PersistenceException(QwenBotException):
    """Exception raised when a persisted record cannot be read or written."""

    pass


class PersonaValidationException(QwenBotException):
    """Exception raised when a persona template fails validation."""

    pass


class InvalidRequestException(QwenBotException):
    """Exception raised when user input is rejected before any state changes."""

    pass
