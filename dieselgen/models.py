# File: dieselgen/models.py
"""
dieselgen - Core Data Models
=============================
Pydantic V2 models for the generator's inputs (table descriptors, per-table
options, generation config) and frozen dataclasses for the structured
intermediate the engine produces before any text is rendered.

Pipeline: Schema Parsing → Validation → Field Selection / Annotation /
Operation Synthesis → Rendering → Export.

Every input model is frozen: a descriptor is built once per run and only read
afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)

from dieselgen.utils import table_to_type_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Variant(str, Enum):
    """Record shapes generated for every table."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"


class Capability(str, Enum):
    """Capability annotations (Diesel / serde derives) a record may carry."""

    DEBUG = "Debug"
    SERIALIZE = "Serialize"
    DESERIALIZE = "Deserialize"
    CLONE = "Clone"
    QUERYABLE = "Queryable"
    INSERTABLE = "Insertable"
    AS_CHANGESET = "AsChangeset"
    IDENTIFIABLE = "Identifiable"
    ASSOCIATIONS = "Associations"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    frozen=True,
    extra="forbid",
)

_MUTABLE_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Table descriptor
# ---------------------------------------------------------------------------


class Column(BaseModel):
    """One column of a table, as declared in the schema."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    sql_type: str = Field(
        ...,
        min_length=1,
        alias="type",
        description="Diesel SQL type name, e.g. 'Int4', 'Text', 'Array<Int4>'.",
    )
    is_nullable: bool = Field(
        default=False, alias="nullable", description="Column allows NULL."
    )

    def __repr__(self) -> str:
        null_flag: str = " NULL" if self.is_nullable else ""
        return f"<Column {self.name} {self.sql_type}{null_flag}>"


class ForeignKey(BaseModel):
    """A ``joinable!`` edge: local column referencing another table."""

    model_config = _FROZEN_CONFIG

    referenced_table: str = Field(
        ..., min_length=1, alias="table", description="Referenced table name."
    )
    local_join_column: str = Field(
        ..., min_length=1, alias="column", description="Local join column."
    )

    @computed_field  # type: ignore[misc]
    @property
    def referenced_type_name(self) -> str:
        """Singular PascalCase name of the referenced table's record type."""
        return table_to_type_name(self.referenced_table)

    def __repr__(self) -> str:
        return f"<FK {self.local_join_column} → {self.referenced_table}>"


class TableDescriptor(BaseModel):
    """
    Structured facts about one table.

    ``primary_key_column_names`` keeps its declared order; that order drives
    key parameters and filters in the generated operations.  Whether each key
    name exists among the columns is checked at generation time, not here.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Table name.")
    record_base_name: Optional[str] = Field(
        default=None,
        description="Base record type name (defaults to singular PascalCase of name).",
    )
    columns: Tuple[Column, ...] = Field(
        ..., min_length=1, description="Columns in declaration order."
    )
    primary_key_column_names: Tuple[str, ...] = Field(
        default=("id",),
        min_length=1,
        alias="primary_key",
        description="Primary key column names in declared order.",
    )
    foreign_keys: Tuple[ForeignKey, ...] = Field(
        default=(), description="Foreign key edges to other tables."
    )

    @computed_field  # type: ignore[misc]
    @property
    def base_name(self) -> str:
        return self.record_base_name or table_to_type_name(self.name)

    @computed_field  # type: ignore[misc]
    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def get_column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def is_primary_key(self, column_name: str) -> bool:
        return column_name in self.primary_key_column_names

    @model_validator(mode="after")
    def _validate_unique_column_names(self) -> "TableDescriptor":
        seen: Set[str] = set()
        dupes: List[str] = []
        for column in self.columns:
            if column.name in seen:
                dupes.append(column.name)
            seen.add(column.name)
        if dupes:
            raise ValueError(
                f"Duplicate column names in table '{self.name}': {sorted(set(dupes))}"
            )
        return self

    def __repr__(self) -> str:
        return (
            f"<Table {self.name} "
            f"({len(self.columns)} cols, pk={list(self.primary_key_column_names)}, "
            f"{len(self.foreign_keys)} FKs)>"
        )


class TableOptions(BaseModel):
    """Per-table generation options."""

    model_config = _FROZEN_CONFIG

    autogenerated_column_names: FrozenSet[str] = Field(
        default_factory=frozenset,
        alias="autogenerated_columns",
        description="Columns filled in by the database; left out of Create records.",
    )
    secondary_annotation_enabled: bool = Field(
        default=False,
        alias="tsync",
        description="Emit #[tsync::tsync] on generated types.",
    )

    def is_autogenerated(self, column_name: str) -> bool:
        return column_name in self.autogenerated_column_names


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """
    Settings shared by every table in a run.

    Per-table options are looked up once per table with ``options_for`` and
    passed explicitly to the engine from there on.
    """

    model_config = _MUTABLE_CONFIG

    connection_type: str = Field(
        default="diesel::PgConnection",
        min_length=1,
        description="Rust type aliased as `Connection` in generated files.",
    )
    schema_path: str = Field(
        default="crate::schema::",
        min_length=1,
        description="Rust path of the Diesel schema module (with trailing ::).",
    )
    model_path: str = Field(
        default="crate::models::",
        min_length=1,
        description="Rust path of the generated models module (with trailing ::).",
    )
    default_table_options: TableOptions = Field(
        default_factory=TableOptions,
        description="Options applied to tables without an explicit entry.",
    )
    table_options: Dict[str, TableOptions] = Field(
        default_factory=dict,
        description="Per-table options keyed by table name.",
    )

    def options_for(self, table_name: str) -> TableOptions:
        """Per-table options with fallback to the defaults."""
        return self.table_options.get(table_name, self.default_table_options)

    @model_validator(mode="after")
    def _normalise_paths(self) -> "GenerationConfig":
        for attr in ("schema_path", "model_path"):
            value: str = getattr(self, attr)
            if not value.endswith("::"):
                object.__setattr__(self, attr, f"{value}::")
        return self


# ---------------------------------------------------------------------------
# Schema definition: top-level container
# ---------------------------------------------------------------------------


class SchemaDefinition(BaseModel):
    """All tables of one generation run."""

    model_config = _MUTABLE_CONFIG

    tables: List[TableDescriptor] = Field(
        ..., min_length=1, description="All tables in the schema."
    )
    source_file: Optional[str] = Field(
        default=None, description="Original schema file path."
    )
    parsed_at: Optional[datetime] = Field(
        default=None, description="Timestamp when the schema was parsed."
    )

    @model_validator(mode="after")
    def _validate_unique_table_names(self) -> "SchemaDefinition":
        names: List[str] = [t.name for t in self.tables]
        if len(names) != len(set(names)):
            dupes: List[str] = [n for n in names if names.count(n) > 1]
            raise ValueError(f"Duplicate table names: {sorted(set(dupes))}")
        return self

    def get_table(self, name: str) -> Optional[TableDescriptor]:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    @computed_field  # type: ignore[misc]
    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def __repr__(self) -> str:
        return f"<SchemaDefinition {len(self.tables)} tables>"


# ---------------------------------------------------------------------------
# Structured intermediate (engine output, pre-rendering)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GeneratedField:
    """
    One field of a generated record.

    ``base_type`` is already ``Option<T>`` when the column is nullable.
    Forced optionality adds a layer only when there isn't one yet.
    """

    name: str
    base_type: str
    is_nullable: bool = False
    is_forced_optional: bool = False

    @property
    def is_optional(self) -> bool:
        return self.is_nullable or self.is_forced_optional

    @property
    def rendered_type(self) -> str:
        if self.is_forced_optional and not self.is_nullable:
            return f"Option<{self.base_type}>"
        return self.base_type


@dataclass(frozen=True, slots=True)
class BelongsTo:
    """``belongs_to(<type_name>, foreign_key=<join_column>)``."""

    type_name: str
    join_column: str


@dataclass(frozen=True, slots=True)
class RelationalMetadata:
    """Primary-key and belongs-to clauses attached to the Read record."""

    primary_key: Tuple[str, ...]
    belongs_to: Tuple[BelongsTo, ...] = ()


@dataclass(frozen=True, slots=True)
class GeneratedRecordType:
    """A fully composed record: structure plus its rendered source."""

    identifier: str
    variant: Variant
    table_name: str
    fields: Tuple[GeneratedField, ...]
    annotations: Tuple[Capability, ...]
    relational_metadata: Optional[RelationalMetadata] = None
    secondary_annotation_enabled: bool = False
    source_text: str = ""

    @property
    def has_fields(self) -> bool:
        return bool(self.fields)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "Variant",
    "Capability",
    "Column",
    "ForeignKey",
    "TableDescriptor",
    "TableOptions",
    "GenerationConfig",
    "SchemaDefinition",
    "GeneratedField",
    "BelongsTo",
    "RelationalMetadata",
    "GeneratedRecordType",
]

logger.debug("dieselgen.models loaded — %d public symbols.", len(__all__))
