"""
Error types for database operations.

Hierarchy:
- DatabaseError: base for failures that carry a stable error code
  - DatabaseConnectionError: pool could not be created or used
  - QueryError: a catalog query (or discovery as a whole) failed
  - QueryTimeoutError: a query exceeded its statement timeout
- ConfigurationError: bad URL, missing settings, unreadable config file
- ValidationError: invalid command options
"""

from enum import Enum
from typing import Optional, Type


class ErrorCode(str, Enum):
    """Stable error codes reported at the discovery boundary."""
    CONNECTION_ERROR = "CONNECTION_ERROR"
    QUERY_ERROR = "QUERY_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    SCHEMA_DISCOVERY_ERROR = "SCHEMA_DISCOVERY_ERROR"


class DatabaseError(Exception):
    """Base class for database operation failures."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "error_type": type(self).__name__,
            "code": self.code,
            "message": self.message,
        }


class DatabaseConnectionError(DatabaseError):
    """Failed to establish or use the connection pool."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONNECTION_ERROR.value)


class QueryError(DatabaseError):
    """
    A query failed.

    The orchestrator reuses this type with code SCHEMA_DISCOVERY_ERROR for
    the single failure it reports when discovery aborts.
    """

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        code: str = ErrorCode.QUERY_ERROR.value,
        pgcode: Optional[str] = None,
    ):
        super().__init__(message, code)
        self.query = query
        self.pgcode = pgcode


class QueryTimeoutError(DatabaseError):
    """A query was cancelled by the statement timeout."""

    def __init__(self, message: str, query: Optional[str] = None):
        super().__init__(message, ErrorCode.TIMEOUT_ERROR.value)
        self.query = query


class ConfigurationError(Exception):
    """Invalid or missing configuration."""


class ValidationError(Exception):
    """Invalid command options."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        base = super().__str__()
        if self.field:
            return f"{self.field}: {base}"
        return base


def error_message(error: BaseException) -> str:
    """Get a display message for any exception."""
    if isinstance(error, DatabaseError):
        return error.message
    return str(error) or type(error).__name__


def is_database_error_type(error: BaseException, error_type: Type[DatabaseError]) -> bool:
    """Check whether an exception is a specific kind of database error."""
    return isinstance(error, error_type)
