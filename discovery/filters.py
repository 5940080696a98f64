"""
Schema filters for catalog queries.

A FilterClause is built once from discovery options and rendered against
whichever column names a catalog uses (``t.table_schema`` for
information_schema.tables, ``schemaname`` for pg_matviews). Names are always
bound parameters, never spliced into SQL text.

    clause = build_filter(schemas=["public"])
    sql, params = clause.render("t.table_schema", "t.table_name")
    query = BASE_QUERY + sql
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

SYSTEM_SCHEMAS: Tuple[str, ...] = ("information_schema", "pg_catalog", "pg_toast")

_COLUMN_REF = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


def _check_column(column: str) -> str:
    if not _COLUMN_REF.match(column or ""):
        raise ValueError(f"Invalid column reference: {column!r}")
    return column


@dataclass(frozen=True)
class FilterClause:
    """
    Conjunction of schema predicates plus an optional relation allow-list.

    Attributes:
        excluded_schemas: Schemas that never match
        included_schemas: When set, only these schemas match
        table_names: Relation names allowed in any schema
        qualified_tables: (schema, name) pairs allowed
    """
    excluded_schemas: Tuple[str, ...] = ()
    included_schemas: Tuple[str, ...] = ()
    table_names: Tuple[str, ...] = ()
    qualified_tables: Tuple[Tuple[str, str], ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (
            self.excluded_schemas or self.included_schemas
            or self.table_names or self.qualified_tables
        )

    @property
    def has_table_filter(self) -> bool:
        return bool(self.table_names or self.qualified_tables)

    def render(self, schema_column: str, name_column: Optional[str] = None) -> Tuple[str, List]:
        """
        Render as ``AND ...`` fragments for a WHERE clause.

        Args:
            schema_column: Column holding the schema name
            name_column: Column holding the relation name; the table
                allow-list is only applied when this is given

        Returns:
            (sql, params) with one %s placeholder per parameter
        """
        schema_col = _check_column(schema_column)
        fragments: List[str] = []
        params: List = []

        if self.excluded_schemas:
            fragments.append(f"AND {schema_col} NOT IN %s")
            params.append(tuple(self.excluded_schemas))

        if self.included_schemas:
            fragments.append(f"AND {schema_col} IN %s")
            params.append(tuple(self.included_schemas))

        if name_column and self.has_table_filter:
            name_col = _check_column(name_column)
            alternatives = []
            if self.table_names:
                alternatives.append(f"{name_col} IN %s")
                params.append(tuple(self.table_names))
            if self.qualified_tables:
                alternatives.append(f"({schema_col}, {name_col}) IN %s")
                params.append(tuple(self.qualified_tables))
            fragments.append(f"AND ({' OR '.join(alternatives)})")

        return " ".join(fragments), params

    def matches(self, schema: str, name: Optional[str] = None) -> bool:
        """Evaluate the clause in Python (same semantics as the SQL)."""
        if schema in self.excluded_schemas:
            return False
        if self.included_schemas and schema not in self.included_schemas:
            return False
        if name is not None and self.has_table_filter:
            return name in self.table_names or (schema, name) in self.qualified_tables
        return True


def _as_names(value) -> Sequence[str]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return value


def _split_tables(tables: Sequence[str]) -> Tuple[Tuple[str, ...], Tuple[Tuple[str, str], ...]]:
    names: List[str] = []
    pairs: List[Tuple[str, str]] = []
    for entry in tables:
        entry = entry.strip()
        if not entry:
            continue
        schema, dot, name = entry.partition(".")
        if not dot:
            names.append(entry)
        elif schema and name:
            pairs.append((schema, name))
        else:
            raise ValueError(f"Invalid table entry: {entry!r}")
    return tuple(dict.fromkeys(names)), tuple(dict.fromkeys(pairs))


def build_filter(
    schemas: Optional[Sequence[str]] = None,
    include_system_schemas: bool = False,
    tables: Optional[Sequence[str]] = None,
) -> FilterClause:
    """
    Build the schema-inclusion predicate for catalog queries.

    System schemas (information_schema, pg_catalog, pg_toast) are excluded
    unless ``include_system_schemas`` is true. A non-empty ``schemas``
    allow-list applies in addition to that exclusion, never instead of it.

    Args:
        schemas: Optional schema allow-list (a single name is accepted)
        include_system_schemas: Keep system schemas
        tables: Optional relation allow-list ("name" or "schema.name")

    Raises:
        ValueError: A table entry has an empty schema or name part
    """
    excluded = () if include_system_schemas else SYSTEM_SCHEMAS
    included = tuple(dict.fromkeys(s.strip() for s in _as_names(schemas) if s.strip()))
    table_names, qualified = _split_tables(_as_names(tables))

    return FilterClause(
        excluded_schemas=excluded,
        included_schemas=included,
        table_names=table_names,
        qualified_tables=qualified,
    )
