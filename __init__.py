"""
pg_transfer - PostgreSQL schema discovery and transfer tool

Reads the catalog of a PostgreSQL database and produces an immutable
snapshot of its tables, views and materialized views, with columns,
primary keys, foreign keys and unique constraints.

Usage:
    # As a module
    python -m pg_transfer discover --url postgresql://localhost/mydb

    # Programmatically
    from pg_transfer import SchemaDiscovery, create_connection_manager, parse_database_url

    with create_connection_manager(parse_database_url(url)) as manager:
        result = SchemaDiscovery(manager).discover_schema()
"""

__version__ = "0.3.0"
__author__ = "PostgreSQL Transfer Team"

# Main exports
from .connection import PostgresConnectionManager, QueryResult, create_connection_manager
from .config import Config, DatabaseConfig, parse_database_url
from .discovery.schema import SchemaDiscovery, create_schema_discovery

# Protocol exports
from .protocol.schema import DiscoveryOptions, SchemaInfo, TableInfo
from .protocol.result import Result
from .protocol.errors import DatabaseError, QueryError

__all__ = [
    # Version
    "__version__",
    # Connection
    "PostgresConnectionManager",
    "QueryResult",
    "create_connection_manager",
    # Config
    "Config",
    "DatabaseConfig",
    "parse_database_url",
    # Discovery
    "SchemaDiscovery",
    "create_schema_discovery",
    # Protocol
    "DiscoveryOptions",
    "SchemaInfo",
    "TableInfo",
    "Result",
    "DatabaseError",
    "QueryError",
]
