"""
Protocol definitions for pg_transfer.

This module contains the shared data types as Python dataclasses:
- SchemaInfo / TableInfo / ColumnInfo: discovered schema snapshot
- ForeignKeyInfo / UniqueConstraintInfo: key descriptors
- DiscoveryOptions: what to discover
- Result: success/failure outcome of a discovery run
- DatabaseError hierarchy: connection, query and timeout failures
"""

from .schema import (
    ObjectKind,
    ColumnInfo,
    ForeignKeyInfo,
    UniqueConstraintInfo,
    TableInfo,
    SchemaInfo,
    DiscoveryOptions,
)
from .result import (
    Result,
    success,
    failure,
    is_success,
    is_failure,
    error_to_result,
    try_sync,
)
from .errors import (
    ErrorCode,
    DatabaseError,
    DatabaseConnectionError,
    QueryError,
    QueryTimeoutError,
    ConfigurationError,
    ValidationError,
    error_message,
    is_database_error_type,
)

__all__ = [
    # Schema
    "ObjectKind",
    "ColumnInfo",
    "ForeignKeyInfo",
    "UniqueConstraintInfo",
    "TableInfo",
    "SchemaInfo",
    "DiscoveryOptions",
    # Result
    "Result",
    "success",
    "failure",
    "is_success",
    "is_failure",
    "error_to_result",
    "try_sync",
    # Errors
    "ErrorCode",
    "DatabaseError",
    "DatabaseConnectionError",
    "QueryError",
    "QueryTimeoutError",
    "ConfigurationError",
    "ValidationError",
    "error_message",
    "is_database_error_type",
]
