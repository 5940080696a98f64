"""
DetailResolver - builds one TableInfo from four catalog lookups.

Lookups (all scoped by exact schema and table name):
- columns, with primary-key / unique membership flags (materialized views
  are read from pg_attribute, since information_schema.columns omits them)
- primary key columns in key order
- foreign keys, one row per (constraint, column), from pg_constraint
- unique constraints with their columns in key order

The lookups are independent; with ``concurrent_lookups`` they run on a
small thread pool and are joined before the descriptor is built.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Optional, Tuple

from ..logging_setup import get_logger
from ..protocol.errors import QueryError
from ..protocol.schema import (
    ColumnInfo,
    ForeignKeyInfo,
    ObjectKind,
    TableInfo,
    UniqueConstraintInfo,
)


COLUMNS_QUERY = """
    SELECT
        c.column_name,
        c.data_type,
        c.is_nullable = 'YES' AS is_nullable,
        c.column_default AS default_value,
        c.ordinal_position,
        EXISTS (
            SELECT 1
            FROM information_schema.key_column_usage kcu
            JOIN information_schema.table_constraints tc
                ON tc.constraint_schema = kcu.constraint_schema
                AND tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
                AND tc.table_name = kcu.table_name
            WHERE kcu.table_schema = c.table_schema
              AND kcu.table_name = c.table_name
              AND kcu.column_name = c.column_name
              AND tc.constraint_type = 'PRIMARY KEY'
        ) AS is_primary_key,
        EXISTS (
            SELECT 1
            FROM information_schema.key_column_usage kcu
            JOIN information_schema.table_constraints tc
                ON tc.constraint_schema = kcu.constraint_schema
                AND tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
                AND tc.table_name = kcu.table_name
            WHERE kcu.table_schema = c.table_schema
              AND kcu.table_name = c.table_name
              AND kcu.column_name = c.column_name
              AND tc.constraint_type IN ('PRIMARY KEY', 'UNIQUE')
        ) AS is_unique
    FROM information_schema.columns c
    WHERE c.table_schema = %s
      AND c.table_name = %s
    ORDER BY c.ordinal_position
"""

MATVIEW_COLUMNS_QUERY = """
    SELECT
        a.attname AS column_name,
        pg_catalog.format_type(a.atttypid, a.atttypmod) AS data_type,
        NOT a.attnotnull AS is_nullable,
        pg_catalog.pg_get_expr(d.adbin, d.adrelid) AS default_value,
        a.attnum AS ordinal_position,
        false AS is_primary_key,
        false AS is_unique
    FROM pg_catalog.pg_attribute a
    JOIN pg_catalog.pg_class c
        ON c.oid = a.attrelid
    JOIN pg_catalog.pg_namespace n
        ON n.oid = c.relnamespace
    LEFT JOIN pg_catalog.pg_attrdef d
        ON d.adrelid = a.attrelid
        AND d.adnum = a.attnum
    WHERE n.nspname = %s
      AND c.relname = %s
      AND c.relkind = 'm'
      AND a.attnum > 0
      AND NOT a.attisdropped
    ORDER BY a.attnum
"""

PRIMARY_KEY_QUERY = """
    SELECT kcu.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
        ON tc.constraint_schema = kcu.constraint_schema
        AND tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
        AND tc.table_name = kcu.table_name
    WHERE tc.constraint_type = 'PRIMARY KEY'
      AND tc.table_schema = %s
      AND tc.table_name = %s
    ORDER BY kcu.ordinal_position
"""

# conkey and confkey are unnested in step, so a composite key yields one
# row per column pair. pg_constraint also covers keys that reference a
# unique index rather than a unique constraint.
FOREIGN_KEYS_QUERY = """
    SELECT
        con.conname AS constraint_name,
        att.attname AS column_name,
        rn.nspname AS referenced_schema,
        rc.relname AS referenced_table,
        ratt.attname AS referenced_column
    FROM pg_catalog.pg_constraint con
    JOIN pg_catalog.pg_class c
        ON c.oid = con.conrelid
    JOIN pg_catalog.pg_namespace n
        ON n.oid = c.relnamespace
    JOIN pg_catalog.pg_class rc
        ON rc.oid = con.confrelid
    JOIN pg_catalog.pg_namespace rn
        ON rn.oid = rc.relnamespace
    CROSS JOIN LATERAL unnest(con.conkey, con.confkey)
        WITH ORDINALITY AS k(attnum, ref_attnum, key_position)
    JOIN pg_catalog.pg_attribute att
        ON att.attrelid = con.conrelid
        AND att.attnum = k.attnum
    JOIN pg_catalog.pg_attribute ratt
        ON ratt.attrelid = con.confrelid
        AND ratt.attnum = k.ref_attnum
    WHERE con.contype = 'f'
      AND n.nspname = %s
      AND c.relname = %s
    ORDER BY con.conname, k.key_position
"""

UNIQUE_CONSTRAINTS_QUERY = """
    SELECT
        tc.constraint_name,
        ARRAY_AGG(kcu.column_name::text ORDER BY kcu.ordinal_position) AS column_names
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
        ON tc.constraint_schema = kcu.constraint_schema
        AND tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
        AND tc.table_name = kcu.table_name
    WHERE tc.constraint_type = 'UNIQUE'
      AND tc.table_schema = %s
      AND tc.table_name = %s
    GROUP BY tc.constraint_name
    ORDER BY tc.constraint_name
"""


class DetailResolver:
    """Resolves columns and keys for one relation."""

    def __init__(
        self,
        executor,
        logger: Optional[logging.Logger] = None,
        concurrent_lookups: bool = False,
    ):
        self.executor = executor
        self.log = get_logger("discovery.resolver", logger)
        self.concurrent_lookups = concurrent_lookups

    def resolve(
        self,
        schema: str,
        table_name: str,
        comment: Optional[str] = None,
        kind: ObjectKind = ObjectKind.TABLE,
    ) -> TableInfo:
        """
        Resolve one relation into a TableInfo of the given kind.

        Raises:
            DatabaseError: Any lookup failed
            QueryError: The lookups returned inconsistent key columns
        """
        lookups: Dict[str, Callable] = {
            "columns": self._matview_columns if kind is ObjectKind.MATERIALIZED_VIEW else self._columns,
            "primary_key": self._primary_key,
            "foreign_keys": self._foreign_keys,
            "unique_constraints": self._unique_constraints,
        }

        if self.concurrent_lookups:
            with ThreadPoolExecutor(max_workers=len(lookups)) as pool:
                futures = {
                    name: pool.submit(fn, schema, table_name)
                    for name, fn in lookups.items()
                }
                parts = {name: future.result() for name, future in futures.items()}
        else:
            parts = {name: fn(schema, table_name) for name, fn in lookups.items()}

        table = TableInfo(
            schema=schema,
            name=table_name,
            kind=kind,
            columns=parts["columns"],
            primary_key=parts["primary_key"],
            foreign_keys=parts["foreign_keys"],
            unique_constraints=parts["unique_constraints"],
            comment=comment,
        )

        violations = table.invariant_violations()
        if violations:
            raise QueryError(
                f"Inconsistent catalog data for {table.qualified_name}: {'; '.join(violations)}"
            )

        self.log.debug(
            "Resolved table details",
            extra={"meta": {
                "table": table.qualified_name,
                "columns": len(table.columns),
                "foreign_keys": len(table.foreign_keys),
            }},
        )
        return table

    def _columns(self, schema: str, table_name: str) -> Tuple[ColumnInfo, ...]:
        return self._column_rows(COLUMNS_QUERY, schema, table_name)

    def _matview_columns(self, schema: str, table_name: str) -> Tuple[ColumnInfo, ...]:
        return self._column_rows(MATVIEW_COLUMNS_QUERY, schema, table_name)

    def _column_rows(self, query: str, schema: str, table_name: str) -> Tuple[ColumnInfo, ...]:
        result = self.executor.execute(query, [schema, table_name])
        return tuple(
            ColumnInfo(
                name=row["column_name"],
                data_type=row["data_type"],
                is_nullable=bool(row["is_nullable"]),
                default_value=row["default_value"],
                is_primary_key=bool(row["is_primary_key"]),
                is_unique=bool(row["is_unique"]),
                ordinal_position=int(row["ordinal_position"]),
            )
            for row in result.rows
        )

    def _primary_key(self, schema: str, table_name: str) -> Tuple[str, ...]:
        result = self.executor.execute(PRIMARY_KEY_QUERY, [schema, table_name])
        return tuple(row["column_name"] for row in result.rows)

    def _foreign_keys(self, schema: str, table_name: str) -> Tuple[ForeignKeyInfo, ...]:
        result = self.executor.execute(FOREIGN_KEYS_QUERY, [schema, table_name])
        return tuple(
            ForeignKeyInfo(
                constraint_name=row["constraint_name"],
                column_name=row["column_name"],
                referenced_schema=row["referenced_schema"],
                referenced_table=row["referenced_table"],
                referenced_column=row["referenced_column"],
            )
            for row in result.rows
        )

    def _unique_constraints(self, schema: str, table_name: str) -> Tuple[UniqueConstraintInfo, ...]:
        result = self.executor.execute(UNIQUE_CONSTRAINTS_QUERY, [schema, table_name])
        return tuple(
            UniqueConstraintInfo(
                constraint_name=row["constraint_name"],
                column_names=tuple(row["column_names"] or ()),
            )
            for row in result.rows
        )
