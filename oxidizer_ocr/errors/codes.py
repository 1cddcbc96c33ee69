"""
Centralized error code registry with specifications.

Provides single source of truth for error codes, including operator-facing
messages, error categories (client/server) and retryability flags.
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class ErrorSpec:
    """Specification for a single error type."""

    code: str
    int_code: int
    message: str  # Operator-facing message
    category: str  # "client_error" or "server_error"
    retryable: bool  # True if the caller can retry (e.g. re-photograph)


class ErrorCode(Enum):
    """Centralized error code registry.

    Usage:
        error_spec = ErrorCode.get_spec("NO_HEADER_ROW")
        print(error_spec.message, error_spec.category, error_spec.retryable)
    """

    # ========================================
    # ACQUISITION ERRORS (short-circuit to Failure)
    # ========================================
    NO_IMAGE = ErrorSpec(
        "NO_IMAGE",
        10,
        "No image or text was supplied",
        "client_error",
        False,
    )
    NO_TEXT = ErrorSpec(
        "NO_TEXT",
        11,
        "The recognition engine returned no text",
        "client_error",
        True,
    )
    NO_TEXT_SOURCE = ErrorSpec(
        "NO_TEXT_SOURCE",
        12,
        "No text recognition engine is configured",
        "server_error",
        False,
    )
    ACQUISITION_FAILED = ErrorSpec(
        "ACQUISITION_FAILED",
        20,
        "Text recognition failed",
        "server_error",
        True,
    )
    INVALID_TARGET_HOUR = ErrorSpec(
        "INVALID_TARGET_HOUR",
        13,
        "Target hour must be 0-23, 'HHMM' or 'HH:MM'",
        "client_error",
        False,
    )
    INVALID_FALLBACK_LEVEL = ErrorSpec(
        "INVALID_FALLBACK_LEVEL",
        14,
        "Fallback level must be strict, moderate or aggressive",
        "client_error",
        False,
    )

    # ========================================
    # PARSE ERRORS (trigger fallback escalation)
    # ========================================
    NO_HEADER_ROW = ErrorSpec(
        "NO_HEADER_ROW",
        30,
        "No row of hour labels was found in the table",
        "client_error",
        True,
    )
    HOUR_NOT_IN_HEADER = ErrorSpec(
        "HOUR_NOT_IN_HEADER",
        31,
        "The requested hour is not a column of the table",
        "client_error",
        True,
    )

    # ========================================
    # FIELD / VALIDATION OUTCOMES (reported, never raised)
    # ========================================
    COERCION_FAILED = ErrorSpec(
        "COERCION_FAILED",
        40,
        "Cell text could not be read as the expected type",
        "client_error",
        False,
    )
    VALUE_OUT_OF_BOUNDS = ErrorSpec(
        "VALUE_OUT_OF_BOUNDS",
        41,
        "Value is outside physical bounds",
        "client_error",
        False,
    )

    # ========================================
    # FALLBACK
    # ========================================
    UNKNOWN_ERROR = ErrorSpec(
        "UNKNOWN_ERROR",
        0,
        "Unknown error",
        "server_error",
        False,
    )

    @classmethod
    def get_spec(cls, code: str) -> ErrorSpec:
        """Get error specification by code string.

        Returns:
            ErrorSpec with category, message, and retryability.
            Returns default spec for unknown codes.
        """
        for error in cls:
            if error.value.code == code:
                return error.value
        return ErrorSpec(code, 0, f"Error: {code}", "server_error", False)


def make_error(
    code: str, message: str | None = None, details: str | None = None
) -> dict[str, str | int | None]:
    """Create error dict with integer code, message, and details.

    Looks up the integer code from the string code in ErrorCode.
    """
    spec = ErrorCode.get_spec(code)
    return {
        "code": spec.int_code,
        "message": message or spec.message,
        "details": details,
    }
