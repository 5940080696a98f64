"""
ObjectLister - lists relations of one kind from the catalog.

Tables and views come from information_schema.tables (with the optional
pg_description comment); materialized views come from pg_matviews, which
carries no comment. Every listing is ordered by (schema, name).
"""

import logging
from enum import Enum
from typing import List, NamedTuple, Optional

from ..logging_setup import get_logger
from ..protocol.schema import ObjectKind
from .filters import FilterClause


class ListingKind(str, Enum):
    """Catalog relation types the lister understands."""
    BASE_TABLE = "BASE TABLE"
    VIEW = "VIEW"
    MATERIALIZED_VIEW = "MATERIALIZED VIEW"

    @property
    def object_kind(self) -> ObjectKind:
        return _OBJECT_KINDS[self]


_OBJECT_KINDS = {
    ListingKind.BASE_TABLE: ObjectKind.TABLE,
    ListingKind.VIEW: ObjectKind.VIEW,
    ListingKind.MATERIALIZED_VIEW: ObjectKind.MATERIALIZED_VIEW,
}


class ListedObject(NamedTuple):
    """One relation returned by a listing."""
    schema: str
    name: str
    comment: Optional[str] = None


RELATIONS_QUERY = """
    SELECT
        t.table_schema,
        t.table_name,
        pgd.description AS table_comment
    FROM information_schema.tables t
    LEFT JOIN pg_catalog.pg_namespace n
        ON n.nspname = t.table_schema
    LEFT JOIN pg_catalog.pg_class c
        ON c.relname = t.table_name
        AND c.relnamespace = n.oid
    LEFT JOIN pg_catalog.pg_description pgd
        ON pgd.objoid = c.oid
        AND pgd.classoid = 'pg_catalog.pg_class'::regclass
        AND pgd.objsubid = 0
    WHERE t.table_type = %s
"""

MATVIEWS_QUERY = """
    SELECT
        schemaname AS table_schema,
        matviewname AS table_name,
        NULL AS table_comment
    FROM pg_catalog.pg_matviews
    WHERE 1=1
"""


class ObjectLister:
    """Runs one filtered catalog listing per object kind."""

    def __init__(self, executor, logger: Optional[logging.Logger] = None):
        self.executor = executor
        self.log = get_logger("discovery.lister", logger)

    def list_objects(self, kind: ListingKind, filter_clause: FilterClause) -> List[ListedObject]:
        """
        List relations of ``kind`` that pass ``filter_clause``.

        Raises:
            ValueError: Unsupported kind
            DatabaseError: The catalog query failed (nothing is returned)
        """
        kind = ListingKind(kind)

        if kind is ListingKind.MATERIALIZED_VIEW:
            where, params = filter_clause.render("schemaname", "matviewname")
            query = f"{MATVIEWS_QUERY} {where} ORDER BY schemaname, matviewname"
        else:
            where, filter_params = filter_clause.render("t.table_schema", "t.table_name")
            query = f"{RELATIONS_QUERY} {where} ORDER BY t.table_schema, t.table_name"
            params = [kind.value] + filter_params

        result = self.executor.execute(query, params)

        objects = [
            ListedObject(
                schema=row["table_schema"],
                name=row["table_name"],
                comment=row.get("table_comment") if kind is not ListingKind.MATERIALIZED_VIEW else None,
            )
            for row in result.rows
        ]

        self.log.debug(
            "Listed objects",
            extra={"meta": {"kind": kind.value, "count": len(objects)}},
        )
        return objects
