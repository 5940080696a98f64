"""
Mock components for testing pg_transfer.

The catalog executor answers discovery queries from in-memory catalog
data (catalog_data.py) so no live PostgreSQL server is needed.
"""

from .catalog_data import (
    USERS_CATALOG,
    COMPOSITE_FK_CATALOG,
    MIXED_CATALOG,
    column_row,
    fk_row,
)
from .mock_executor import MockCatalogExecutor, RecordedCall

__all__ = [
    # Executor
    'MockCatalogExecutor',
    'RecordedCall',
    # Catalog data
    'USERS_CATALOG',
    'COMPOSITE_FK_CATALOG',
    'MIXED_CATALOG',
    'column_row',
    'fk_row',
]
