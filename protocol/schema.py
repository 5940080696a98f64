"""
Schema snapshot model - output of schema discovery.

SchemaInfo
└── TableInfo (tables / views / materialized_views)
    ├── ColumnInfo
    ├── ForeignKeyInfo
    └── UniqueConstraintInfo

All models are frozen; sequences are tuples. A snapshot is built once per
discovery run and never mutated afterwards.
"""

from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple
import json

from .errors import ValidationError


class ObjectKind(str, Enum):
    """Database object kinds. Discovery only produces the first three."""
    TABLE = "table"
    VIEW = "view"
    MATERIALIZED_VIEW = "materialized_view"
    SEQUENCE = "sequence"
    FUNCTION = "function"
    PROCEDURE = "procedure"


@dataclass(frozen=True)
class ColumnInfo:
    """A single column of a relation."""
    name: str
    data_type: str                      # raw catalog type name
    is_nullable: bool
    default_value: Optional[str]        # raw default expression
    is_primary_key: bool
    is_unique: bool
    ordinal_position: int               # 1-based


@dataclass(frozen=True)
class ForeignKeyInfo:
    """One (constraint, column) pair of a foreign key."""
    constraint_name: str
    column_name: str
    referenced_schema: str
    referenced_table: str
    referenced_column: str


@dataclass(frozen=True)
class UniqueConstraintInfo:
    """A UNIQUE constraint and its columns in key order."""
    constraint_name: str
    column_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TableInfo:
    """A table, view or materialized view with its columns and keys."""
    schema: str
    name: str
    kind: ObjectKind = ObjectKind.TABLE
    columns: Tuple[ColumnInfo, ...] = ()
    primary_key: Tuple[str, ...] = ()
    foreign_keys: Tuple[ForeignKeyInfo, ...] = ()
    unique_constraints: Tuple[UniqueConstraintInfo, ...] = ()
    comment: Optional[str] = None

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}"

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def with_kind(self, kind: ObjectKind) -> "TableInfo":
        """Return a copy tagged with another object kind."""
        return replace(self, kind=kind)

    def invariant_violations(self) -> List[str]:
        """
        Check that key columns exist in the column list.

        Returns:
            Human-readable violations (empty when consistent)
        """
        known = set(self.column_names)
        violations = []
        for col in self.primary_key:
            if col not in known:
                violations.append(
                    f"primary key column '{col}' not found in {self.qualified_name}"
                )
        for fk in self.foreign_keys:
            if fk.column_name not in known:
                violations.append(
                    f"foreign key {fk.constraint_name} column '{fk.column_name}' "
                    f"not found in {self.qualified_name}"
                )
        return violations

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "schema": self.schema,
            "name": self.name,
            "kind": self.kind.value,
            "columns": [asdict(c) for c in self.columns],
            "primary_key": list(self.primary_key),
            "foreign_keys": [asdict(fk) for fk in self.foreign_keys],
            "unique_constraints": [
                {"constraint_name": uc.constraint_name, "column_names": list(uc.column_names)}
                for uc in self.unique_constraints
            ],
            "comment": self.comment,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableInfo":
        """Create from dictionary."""
        return cls(
            schema=data["schema"],
            name=data["name"],
            kind=ObjectKind(data.get("kind", ObjectKind.TABLE.value)),
            columns=tuple(ColumnInfo(**c) for c in data.get("columns", [])),
            primary_key=tuple(data.get("primary_key", [])),
            foreign_keys=tuple(ForeignKeyInfo(**fk) for fk in data.get("foreign_keys", [])),
            unique_constraints=tuple(
                UniqueConstraintInfo(
                    constraint_name=uc["constraint_name"],
                    column_names=tuple(uc.get("column_names", [])),
                )
                for uc in data.get("unique_constraints", [])
            ),
            comment=data.get("comment"),
        )


@dataclass(frozen=True)
class SchemaInfo:
    """
    Complete discovery snapshot of one database.

    Buckets keep the catalog listing order (schema, name ascending).
    """
    database_name: str
    tables: Tuple[TableInfo, ...] = ()
    views: Tuple[TableInfo, ...] = ()
    materialized_views: Tuple[TableInfo, ...] = ()

    def counts(self) -> Dict[str, int]:
        """Object counts reported after a successful discovery."""
        return {
            "tables": len(self.tables),
            "views": len(self.views),
            "materialized_views": len(self.materialized_views),
        }

    def all_objects(self) -> Iterator[TableInfo]:
        """Iterate tables, then views, then materialized views."""
        for bucket in (self.tables, self.views, self.materialized_views):
            yield from bucket

    def find(self, schema: str, name: str) -> Optional[TableInfo]:
        for obj in self.all_objects():
            if obj.schema == schema and obj.name == name:
                return obj
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "database_name": self.database_name,
            "tables": [t.to_dict() for t in self.tables],
            "views": [v.to_dict() for v in self.views],
            "materialized_views": [m.to_dict() for m in self.materialized_views],
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaInfo":
        """Create from dictionary."""
        return cls(
            database_name=data["database_name"],
            tables=tuple(TableInfo.from_dict(t) for t in data.get("tables", [])),
            views=tuple(TableInfo.from_dict(v) for v in data.get("views", [])),
            materialized_views=tuple(
                TableInfo.from_dict(m) for m in data.get("materialized_views", [])
            ),
        )


def _split_csv(value: Optional[str]) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    items = tuple(part.strip() for part in value.split(",") if part.strip())
    return items or None


def _as_names(value) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class DiscoveryOptions:
    """Options for a discovery run."""
    include_system_schemas: bool = False
    schemas: Optional[Tuple[str, ...]] = None
    tables: Optional[Tuple[str, ...]] = None   # "name" or "schema.name"

    def __post_init__(self):
        # A single name or any sequence of names; stored as tuples.
        object.__setattr__(self, "schemas", _as_names(self.schemas))
        object.__setattr__(self, "tables", _as_names(self.tables))
        for entry in self.tables or ():
            schema, dot, name = entry.strip().partition(".")
            if dot and not (schema and name):
                raise ValidationError(f"Invalid table entry: {entry!r}", field="tables")

    @classmethod
    def from_csv(
        cls,
        schemas: Optional[str] = None,
        tables: Optional[str] = None,
        include_system_schemas: bool = False,
    ) -> "DiscoveryOptions":
        """Build options from comma-separated command-line values."""
        return cls(
            include_system_schemas=include_system_schemas,
            schemas=_split_csv(schemas),
            tables=_split_csv(tables),
        )
