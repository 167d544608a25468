"""
Custom exceptions for travel-rules.

Provides specific error types for the failure modes of the rule store and
the bot layer, plus helpers for classifying database errors.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import (
    IntegrityError,
    NoResultFound,
    OperationalError,
    ProgrammingError,
)

# SQLSTATE codes (and socket errors surfaced by drivers) worth retrying
RETRYABLE_CODES = (
    "08000",  # connection_exception
    "08003",  # connection_does_not_exist
    "08006",  # connection_failure
    "57P01",  # admin_shutdown
    "57P03",  # cannot_connect_now
    "ECONNRESET",
    "ETIMEDOUT",
    "ENOTFOUND",
)

# Message fragments of drivers without SQLSTATE, mapped to the matching code
MESSAGE_CODES = (
    ("foreign key constraint", "23503"),
    ("unique constraint", "23505"),
    ("no such table", "42P01"),
    ("no such column", "42703"),
    ("syntax error", "42601"),
)


class AppError(Exception):
    """Base exception for all travel-rules errors."""

    def __init__(self, message: str, is_operational: bool = True):
        super().__init__(message)
        self.message = message
        self.is_operational = is_operational


class DatabaseError(AppError):
    """Error talking to the rule store."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        operation: str | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.operation = operation


class NotFoundError(AppError):
    """Requested record does not exist."""

    def __init__(self, resource: str, message: str | None = None):
        super().__init__(message or f"{resource} not found")
        self.resource = resource
        self.code = "NOT_FOUND"


def is_operational_error(error: BaseException) -> bool:
    """Expected errors (not found, validation, ...) as opposed to bugs."""
    if isinstance(error, AppError):
        return error.is_operational
    return False


def should_retry(error: BaseException) -> bool:
    """Whether an operation that failed with ``error`` is worth repeating."""
    if isinstance(error, DatabaseError):
        code = error.code or ""
        return any(retryable in code for retryable in RETRYABLE_CODES)

    code = getattr(error, "code", None)
    return code in ("ECONNREFUSED", "ETIMEDOUT")


def get_error_message(error: Any) -> str:
    """Extract a readable message from any error value."""
    if isinstance(error, AppError):
        return error.message
    if isinstance(error, BaseException):
        return str(error)
    if isinstance(error, str):
        return error
    return "Unknown error"


def _sqlstate(error: BaseException) -> str | None:
    """SQLSTATE of the driver error wrapped by SQLAlchemy, if any."""
    orig = getattr(error, "orig", None)
    for attr in ("pgcode", "sqlstate"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)

    # sqlite reports the cause only in the message text
    text = str(orig if orig is not None else error).lower()
    for fragment, code in MESSAGE_CODES:
        if fragment in text:
            return code
    return None


def classify_database_error(error: BaseException) -> DatabaseError | NotFoundError:
    """
    Map a low-level database exception onto the application error types.

    Args:
        error: Exception raised by SQLAlchemy or the DB driver

    Returns:
        DatabaseError or NotFoundError describing the failure
    """
    if isinstance(error, (DatabaseError, NotFoundError)):
        return error

    if isinstance(error, NoResultFound):
        return NotFoundError("Record", "Record not found in database")

    code = _sqlstate(error)
    message = str(error) or "Database error"

    if isinstance(error, IntegrityError) or code in ("23505", "23503"):
        if code == "23503":
            return DatabaseError("Foreign key violation", code, "insert")
        return DatabaseError("Duplicate record", code or "23505", "insert")

    if isinstance(error, ProgrammingError) or (code and code.startswith("42")):
        return DatabaseError("Database query error", code or "42000", "query")

    if isinstance(error, OperationalError) or (code and code.startswith("08")):
        # An OperationalError with no more specific cause is a lost connection
        return DatabaseError("Database connection failed", code or "08006", "connect")

    return DatabaseError(message, code, "unknown")
