"""Error classification utilities for scheduled job failures."""

from enum import Enum

from pydantic import BaseModel

from cooked.core.db_client import DatabaseError, DuplicateRecordError, RecordNotFoundError


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Persistence errors
    ERR_DUPLICATE_RECORD = "ERR_DUPLICATE_RECORD"
    ERR_RECORD_NOT_FOUND = "ERR_RECORD_NOT_FOUND"
    ERR_DATABASE = "ERR_DATABASE"

    # Data errors
    ERR_INVALID_RECORD = "ERR_INVALID_RECORD"

    # Delivery errors
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class JobError(BaseModel):
    """Structured classification of an exception raised while processing one job candidate."""

    code: str
    message: str
    severity: ErrorSeverity


_NETWORK_PHRASES = ("connection", "timeout", "network", "503", "502", "504", "unreachable")


def classify_job_error(exception: Exception) -> JobError:  # noqa: PLR0911
    """Classify an exception raised while processing a single pact/participant.

    Args:
        exception: The exception raised during processing

    Returns:
        JobError with code, message, and severity
    """
    error_str = str(exception).lower()

    if isinstance(exception, DuplicateRecordError):
        return JobError(
            code=ErrorCode.ERR_DUPLICATE_RECORD,
            message="Record already exists (another run got there first).",
            severity=ErrorSeverity.LOW,
        )

    if isinstance(exception, RecordNotFoundError):
        return JobError(
            code=ErrorCode.ERR_RECORD_NOT_FOUND,
            message=str(exception),
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, ValueError):
        return JobError(
            code=ErrorCode.ERR_INVALID_RECORD,
            message=str(exception),
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, ConnectionError | TimeoutError) or any(p in error_str for p in _NETWORK_PHRASES):
        return JobError(
            code=ErrorCode.ERR_NETWORK_ERROR,
            message=str(exception),
            severity=ErrorSeverity.MEDIUM,
        )

    if isinstance(exception, DatabaseError):
        return JobError(
            code=ErrorCode.ERR_DATABASE,
            message=str(exception),
            severity=ErrorSeverity.HIGH,
        )

    return JobError(
        code=ErrorCode.ERR_UNKNOWN,
        message=str(exception) or type(exception).__name__,
        severity=ErrorSeverity.MEDIUM,
    )
