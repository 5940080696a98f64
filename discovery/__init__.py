"""
Discovery module - Builds schema snapshots from the PostgreSQL catalog.

Components:
- build_filter / FilterClause: schema and relation predicates
- ObjectLister: lists tables, views and materialized views
- DetailResolver: columns, primary key, foreign keys, unique constraints
- SchemaDiscovery: orchestrates the above into one SchemaInfo
"""

from .filters import SYSTEM_SCHEMAS, FilterClause, build_filter
from .lister import ListedObject, ListingKind, ObjectLister
from .resolver import DetailResolver
from .schema import DISCOVERY_KINDS, SchemaDiscovery, create_schema_discovery

__all__ = [
    "SYSTEM_SCHEMAS",
    "FilterClause",
    "build_filter",
    "ListedObject",
    "ListingKind",
    "ObjectLister",
    "DetailResolver",
    "DISCOVERY_KINDS",
    "SchemaDiscovery",
    "create_schema_discovery",
]
