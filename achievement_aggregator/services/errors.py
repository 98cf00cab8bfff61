"""Error handling module for the Steam achievement aggregator.

This module provides:
- Custom exception classes for upstream, rate-limit, validation and configuration errors
- User-friendly error message generation with suggested actions
- Conversion of any exception into a transport-ready error response
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    UPSTREAM = "upstream"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class UpstreamErrorKind(Enum):
    """How an upstream call failed."""
    NETWORK = "network"
    HTTP = "http"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class UserFriendlyError:
    """User-friendly error representation with suggested actions."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    technical_details: str | None = None
    recoverable: bool = True


@dataclass(frozen=True)
class FieldError:
    """A single invalid input field."""
    path: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message}


@dataclass(frozen=True)
class ErrorResponse:
    """Transport-ready representation of a failed request."""
    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


class AppError(Exception):
    """Base exception class for application errors."""

    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = suggested_actions or []
        self.technical_details = technical_details
        self.recoverable = recoverable

    @property
    def status_code(self) -> int:
        """HTTP status the transport layer should answer with."""
        return 500

    def details(self) -> dict[str, Any] | None:
        """Structured details for the error response body."""
        return None

    def to_user_friendly(self) -> UserFriendlyError:
        """Convert to user-friendly error representation."""
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            technical_details=self.technical_details,
            recoverable=self.recoverable,
        )


class UpstreamError(AppError):
    """A call to the Steam Web API failed."""

    code = "STEAM_API_ERROR"

    def __init__(
        self,
        message: str,
        kind: UpstreamErrorKind,
        status_code: int | None = None,
        upstream_error_code: int | None = None,
        endpoint: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        suggested_actions = [
            "Try again in a few moments",
            "Check that the Steam Web API is reachable",
        ]
        if kind is UpstreamErrorKind.HTTP and status_code is not None:
            if status_code in (401, 403):
                suggested_actions = [
                    "Check that the Steam API key is valid",
                    "Make sure the profile and game details are public",
                ]
            elif status_code == 429:
                suggested_actions = [
                    "The Steam API quota was exceeded",
                    "Wait a few minutes before retrying",
                ]
            elif status_code >= 500:
                suggested_actions = [
                    "Steam is experiencing issues",
                    "Try again later",
                ]

        technical_details = f"Kind: {kind.value}"
        if endpoint:
            technical_details += f"\nEndpoint: {endpoint}"
        if status_code is not None:
            technical_details += f"\nStatus: {status_code}"
        if original_error:
            technical_details += f"\nError: {type(original_error).__name__}: {original_error}"

        super().__init__(
            message=message,
            category=ErrorCategory.UPSTREAM,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=True,
        )
        self.kind = kind
        self.upstream_status_code = status_code
        self.upstream_error_code = upstream_error_code
        self.endpoint = endpoint
        self.original_error = original_error

    @property
    def status_code(self) -> int:
        if self.kind is UpstreamErrorKind.NETWORK:
            return 503
        return 502

    def details(self) -> dict[str, Any] | None:
        return {
            "kind": self.kind.value,
            "upstreamStatus": self.upstream_status_code,
            "steamErrorCode": self.upstream_error_code,
        }


class RateLimitExceeded(AppError):
    """Admission rejected by a rate limiter."""

    code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        retry_after: int,
        limit: int,
        reset_at: int,
        message: str = "Too many requests",
    ) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.RATE_LIMIT,
            severity=ErrorSeverity.WARNING,
            suggested_actions=[f"Wait {retry_after} seconds before retrying"],
            technical_details=f"Limit: {limit}\nRetry after: {retry_after}s",
            recoverable=True,
        )
        self.retry_after = retry_after
        self.limit = limit
        self.reset_at = reset_at

    @property
    def status_code(self) -> int:
        return 429

    def details(self) -> dict[str, Any] | None:
        return {"retryAfter": self.retry_after}


class ValidationError(AppError):
    """Malformed caller input, with one entry per offending field."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        errors: list[FieldError],
        message: str = "Request validation failed",
    ) -> None:
        suggested_actions = ["Review the input requirements"]
        suggested_actions.extend(f"{e.path}: {e.message}" for e in errors)

        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING,
            suggested_actions=suggested_actions,
            technical_details="\n".join(f"Field: {e.path}" for e in errors) or None,
            recoverable=False,
        )
        self.errors = errors

    @property
    def status_code(self) -> int:
        return 400

    def details(self) -> dict[str, Any] | None:
        return {"errors": [e.to_dict() for e in self.errors]}


class ConfigurationError(AppError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        current_value: Any = None,
        expected: str | None = None,
    ) -> None:
        suggested_actions = [
            "Check the configuration settings",
            "Reset to default values if needed",
        ]
        if expected:
            suggested_actions.append(f"Expected: {expected}")

        technical_details = None
        if setting:
            technical_details = f"Setting: {setting}"
        if current_value is not None:
            technical_details = (technical_details or "") + f"\nCurrent: {current_value}"

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=False,
        )
        self.setting = setting
        self.current_value = current_value
        self.expected = expected


class ErrorHandlingService:
    """Centralized error handling: classification, logging and response building."""

    def __init__(self, expose_internal_messages: bool = False) -> None:
        """Initialize the error handling service.

        Args:
            expose_internal_messages: Include raw messages of unexpected errors
                in response bodies (development only)
        """
        self.expose_internal_messages = expose_internal_messages
        log.info("Error handling service initialized")

    def to_response(
        self,
        error: Exception,
        operation: str,
        context: dict[str, Any] | None = None,
    ) -> ErrorResponse:
        """Log an error and build the response the transport layer should send.

        Args:
            error: The exception that occurred
            operation: The operation being performed
            context: Additional context information

        Returns:
            Status code, envelope body and extra headers
        """
        app_error = self.convert(error)
        self._log_error(app_error, operation, context)

        message = app_error.message
        if (
            app_error.category is ErrorCategory.UNEXPECTED
            and type(app_error) is AppError
            and not self.expose_internal_messages
        ):
            message = "Internal server error"

        body: dict[str, Any] = {
            "success": False,
            "error": {
                "code": app_error.code,
                "message": message,
                "details": app_error.details(),
            },
        }
        headers: dict[str, str] = {}
        if isinstance(app_error, RateLimitExceeded):
            headers = {
                "X-RateLimit-Limit": str(app_error.limit),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(app_error.reset_at),
                "Retry-After": str(app_error.retry_after),
            }

        return ErrorResponse(status_code=app_error.status_code, body=body, headers=headers)

    def convert(self, error: Exception) -> AppError:
        """Convert a standard exception to an AppError."""
        if isinstance(error, AppError):
            return error

        if isinstance(error, httpx.HTTPStatusError):
            return UpstreamError(
                message=f"Steam API Error: {error.response.reason_phrase}",
                kind=UpstreamErrorKind.HTTP,
                status_code=error.response.status_code,
                original_error=error,
            )
        elif isinstance(error, httpx.RequestError):
            return UpstreamError(
                message="Network error contacting Steam API",
                kind=UpstreamErrorKind.NETWORK,
                original_error=error,
            )
        elif isinstance(error, json.JSONDecodeError):
            return UpstreamError(
                message="Steam API returned a malformed payload",
                kind=UpstreamErrorKind.UNEXPECTED,
                original_error=error,
            )

        return AppError(
            message=str(error) or "An unexpected error occurred",
            category=ErrorCategory.UNEXPECTED,
            severity=ErrorSeverity.ERROR,
            technical_details=f"{type(error).__name__}: {error}",
        )

    def _log_error(
        self,
        error: AppError,
        operation: str,
        context: dict[str, Any] | None,
    ) -> None:
        """Log error with full technical details."""
        log_method = log.warning if error.severity == ErrorSeverity.WARNING else log.error

        log_method(
            "Error occurred",
            error_message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            operation=operation,
            status_code=error.status_code,
            technical_details=error.technical_details,
            recoverable=error.recoverable,
            context=context,
        )


# Global error handling service instance
_error_service: ErrorHandlingService | None = None


def get_error_service() -> ErrorHandlingService:
    """Get the global error handling service instance."""
    global _error_service
    if _error_service is None:
        _error_service = ErrorHandlingService()
    return _error_service
