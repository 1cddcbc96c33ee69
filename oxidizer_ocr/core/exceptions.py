"""Exception hierarchy for the OCR pipeline.

Exceptions are raised only at input and I/O seams (target-hour parsing,
the external OCR service adapter). The orchestrator and the text-source
adapters convert them into result values, so callers of ``process`` never
see them.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification and monitoring."""

    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    EXTERNAL_SERVICE = "external_service"


class BaseError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        error_code: Code registered in ``errors.codes.ErrorCode``
        category: Error category for classification
        details: Additional context (dict)
        retryable: Whether the caller may retry the operation
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        category: ErrorCategory,
        details: Optional[dict[str, Any]] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.category = category
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat problem record.

        Returns:
            Dict containing standardized error information
        """
        return {
            "type": f"/errors/{self.error_code}",
            "title": self.message,
            "code": self.error_code,
            "detail": self.details.get("detail"),
            "category": self.category.value,
            "retryable": self.retryable,
        }


class ClientError(BaseError):
    """Base for errors caused by invalid caller input. Never retryable."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=ErrorCategory.CLIENT_ERROR,
            retryable=False,
            **kwargs,
        )


class InvalidTargetHourError(ClientError, ValueError):
    """Target hour is not an integer 0-23 or an ``HHMM`` / ``HH:MM`` label.

    Args:
        value: The rejected input
    """

    def __init__(self, value: Any):
        super().__init__(
            message=f"Invalid target hour: {value!r}",
            error_code="INVALID_TARGET_HOUR",
            details={"detail": "expected 0-23, 'HHMM' or 'HH:MM'", "value": repr(value)},
        )


class InvalidFallbackLevelError(ClientError, ValueError):
    """Fallback level is not one of strict, moderate or aggressive.

    Args:
        value: The rejected input
    """

    def __init__(self, value: Any):
        super().__init__(
            message=f"Invalid fallback level: {value!r}",
            error_code="INVALID_FALLBACK_LEVEL",
            details={"detail": "expected strict, moderate or aggressive", "value": repr(value)},
        )


class ImageNotFoundError(ClientError):
    """Image reference does not point to a readable file.

    Args:
        path: Path that was requested
    """

    def __init__(self, path: str):
        super().__init__(
            message=f"Image not found: {path}",
            error_code="NO_IMAGE",
            details={"path": path},
        )


class ServerError(BaseError):
    """Base for internal failures or failures of external dependencies."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=kwargs.pop("category", ErrorCategory.SERVER_ERROR),
            retryable=kwargs.pop("retryable", False),
            **kwargs,
        )


class ExternalServiceError(ServerError):
    """External recognition service failure.

    Raised when the OCR service times out, answers with an HTTP error or
    reports a failed job. Retryable, since the caller can re-submit the image.

    Args:
        service_name: Name of the external service
        error_type: Type of error ("timeout", "unavailable", "error")
        details: Additional error context
    """

    def __init__(self, service_name: str, error_type: str, **kwargs):
        additional_details = kwargs.pop("details", {})
        additional_details.update(
            {
                "service": service_name,
                "error_type": error_type,
            }
        )

        super().__init__(
            message=kwargs.pop("message", f"{service_name} service {error_type}"),
            error_code="ACQUISITION_FAILED",
            category=ErrorCategory.EXTERNAL_SERVICE,
            retryable=True,
            details=additional_details,
            **kwargs,
        )
