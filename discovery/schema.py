"""
SchemaDiscovery - builds a SchemaInfo snapshot of one database.

Sequence:
1. current_database()
2. tables, views, materialized views (fixed order): list, then resolve
   each listed relation
3. aggregate into one immutable SchemaInfo

Discovery is all-or-nothing: any failure yields a failed Result with code
SCHEMA_DISCOVERY_ERROR and no snapshot.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

from ..logging_setup import get_logger
from ..protocol.errors import ErrorCode, QueryError, error_message
from ..protocol.result import Result, failure, success
from ..protocol.schema import DiscoveryOptions, SchemaInfo, TableInfo
from .filters import FilterClause, build_filter
from .lister import ListedObject, ListingKind, ObjectLister
from .resolver import DetailResolver

# Snapshot bucket order
DISCOVERY_KINDS: Tuple[ListingKind, ...] = (
    ListingKind.BASE_TABLE,
    ListingKind.VIEW,
    ListingKind.MATERIALIZED_VIEW,
)


class SchemaDiscovery:
    """
    Discovers tables, views and materialized views with columns and keys.

    Args:
        executor: Object with ``execute(query, params) -> QueryResult``
        logger: Injected logger (defaults to pg_transfer.discovery)
        max_workers: 1 runs every query sequentially; more lists the three
            kinds concurrently and resolves relations in parallel
    """

    def __init__(
        self,
        executor,
        logger: Optional[logging.Logger] = None,
        max_workers: int = 1,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.executor = executor
        self.log = get_logger("discovery", logger)
        self.max_workers = max_workers
        self.lister = ObjectLister(executor, logger=logger)
        self.resolver = DetailResolver(
            executor,
            logger=logger,
            concurrent_lookups=max_workers > 1,
        )

    def discover_schema(self, options: Optional[DiscoveryOptions] = None) -> Result[SchemaInfo]:
        """
        Discover the complete database schema.

        Returns:
            success(SchemaInfo) or failure(QueryError) with code
            SCHEMA_DISCOVERY_ERROR
        """
        options = options or DiscoveryOptions()
        try:
            self.log.info(
                "Starting schema discovery",
                extra={"meta": {
                    "schemas": list(options.schemas or []),
                    "tables": list(options.tables or []),
                    "include_system_schemas": options.include_system_schemas,
                }},
            )
            snapshot = self._discover(options)
        except Exception as e:
            self.log.error(
                "Schema discovery failed",
                extra={"meta": {"error": error_message(e), "error_type": type(e).__name__}},
            )
            error = QueryError(
                f"Schema discovery failed: {error_message(e)}",
                query=getattr(e, "query", None),
                code=ErrorCode.SCHEMA_DISCOVERY_ERROR.value,
            )
            error.__cause__ = e
            return failure(error)

        counts = snapshot.counts()
        self.log.info(
            "Schema discovery completed successfully",
            extra={"meta": {
                "table_count": counts["tables"],
                "view_count": counts["views"],
                "materialized_view_count": counts["materialized_views"],
            }},
        )
        return success(snapshot)

    def _discover(self, options: DiscoveryOptions) -> SchemaInfo:
        database_name = self._get_database_name()
        filter_clause = build_filter(
            schemas=options.schemas,
            include_system_schemas=options.include_system_schemas,
            tables=options.tables,
        )

        listings = self._list_all(filter_clause)
        buckets = {kind: self._resolve_all(kind, listings[kind]) for kind in DISCOVERY_KINDS}

        return SchemaInfo(
            database_name=database_name,
            tables=buckets[ListingKind.BASE_TABLE],
            views=buckets[ListingKind.VIEW],
            materialized_views=buckets[ListingKind.MATERIALIZED_VIEW],
        )

    def _get_database_name(self) -> str:
        """Get current database name."""
        result = self.executor.execute("SELECT current_database()")
        if not result.rows:
            raise QueryError("current_database() returned no rows")
        return result.rows[0]["current_database"]

    def _list_all(self, filter_clause: FilterClause) -> Dict[ListingKind, List[ListedObject]]:
        """List every kind; listings are independent of each other."""
        if self.max_workers == 1:
            return {
                kind: self.lister.list_objects(kind, filter_clause)
                for kind in DISCOVERY_KINDS
            }

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(DISCOVERY_KINDS))) as pool:
            futures = {
                kind: pool.submit(self.lister.list_objects, kind, filter_clause)
                for kind in DISCOVERY_KINDS
            }
            return {kind: futures[kind].result() for kind in DISCOVERY_KINDS}

    def _resolve_all(self, kind: ListingKind, listed: List[ListedObject]) -> Tuple[TableInfo, ...]:
        """Resolve listed relations, keeping listing order."""
        def resolve(obj: ListedObject) -> TableInfo:
            return self.resolver.resolve(obj.schema, obj.name, obj.comment, kind=kind.object_kind)

        if self.max_workers == 1 or len(listed) <= 1:
            return tuple(resolve(obj) for obj in listed)

        # Executor.map yields in submission order, not completion order.
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return tuple(pool.map(resolve, listed))


def create_schema_discovery(
    executor,
    logger: Optional[logging.Logger] = None,
    max_workers: int = 1,
) -> SchemaDiscovery:
    """Create a schema discovery service."""
    return SchemaDiscovery(executor, logger=logger, max_workers=max_workers)
