# File: dieselgen/validators.py
"""
dieselgen - Schema & Configuration Validators
===============================================
A pure-function validation pipeline over the models in ``dieselgen.models``.

Pydantic handles per-model structure (required fields, duplicate column
names, duplicate table names).  This module adds cross-entity checks: key
columns that do not exist, unmapped column types, foreign keys that point
nowhere, options for tables that are not in the input.

An error whose context names a table marks that table as not generatable:
``ModelGenerator`` skips it even when generation itself would not raise.
Errors without a table (config paths) fail the run but skip nothing.

Usage:
    from dieselgen.validators import validate_full
    result = validate_full(schema_def, generation_config)
    if not result.is_valid:
        print(result.format_report())
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Set

from dieselgen.models import GenerationConfig, SchemaDefinition, TableOptions, Variant
from dieselgen.typemap import is_supported_sql_type
from dieselgen.utils import is_rust_identifier
from dieselgen.variants import has_fields

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationError`` items produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def failed_tables(self) -> Set[str]:
        """Tables named in the context of at least one error."""
        return {e.context["table"] for e in self.errors if "table" in e.context}

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "✗",
                "warning": "⚠",
                "info": "ℹ",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Individual validation functions
# ---------------------------------------------------------------------------


def validate_identifiers(schema: SchemaDefinition) -> ValidationResult:
    """Table and column names must be usable as Rust identifiers."""
    result: ValidationResult = ValidationResult()

    for table in schema.tables:
        if not is_rust_identifier(table.name):
            result.add_error(
                "INVALID_TABLE_NAME",
                f"Table name '{table.name}' is not a valid Rust identifier.",
                {"table": table.name},
            )
        if table.record_base_name is not None and not is_rust_identifier(
            table.record_base_name
        ):
            result.add_error(
                "INVALID_RECORD_NAME",
                f"Record base name '{table.record_base_name}' of table "
                f"'{table.name}' is not a valid Rust identifier.",
                {"table": table.name},
            )
        for column in table.columns:
            # keywords are emitted as raw identifiers (r#type)
            if not column.name.isidentifier():
                result.add_error(
                    "INVALID_COLUMN_NAME",
                    f"Column name '{column.name}' in table '{table.name}' "
                    f"is not a valid identifier.",
                    {"table": table.name, "column": column.name},
                )

    return result


def validate_primary_keys(schema: SchemaDefinition) -> ValidationResult:
    """Every declared key column must exist."""
    result: ValidationResult = ValidationResult()

    for table in schema.tables:
        col_set: Set[str] = set(table.column_names)
        for pk in table.primary_key_column_names:
            if pk not in col_set:
                result.add_error(
                    "PK_COLUMN_NOT_FOUND",
                    f"Primary key column '{pk}' declared for table "
                    f"'{table.name}' does not exist in columns list.",
                    {"table": table.name, "pk_column": pk},
                )

        for pk in table.primary_key_column_names:
            column = table.get_column(pk)
            if column is not None and column.is_nullable:
                result.add_warning(
                    "NULLABLE_PRIMARY_KEY",
                    f"PK column '{pk}' in table '{table.name}' is nullable — "
                    f"this is usually a mistake.",
                    {"table": table.name, "column": pk},
                )

    return result


def validate_column_types(schema: SchemaDefinition) -> ValidationResult:
    """Every column type must map to a Rust type."""
    result: ValidationResult = ValidationResult()

    for table in schema.tables:
        for column in table.columns:
            if not is_supported_sql_type(column.sql_type):
                result.add_error(
                    "UNSUPPORTED_COLUMN_TYPE",
                    f"Column '{column.name}' in table '{table.name}' has "
                    f"unsupported type '{column.sql_type}'.",
                    {"table": table.name, "column": column.name, "type": column.sql_type},
                )

    return result


def validate_foreign_keys(schema: SchemaDefinition) -> ValidationResult:
    """Join columns must exist locally; referenced tables should be generated too."""
    result: ValidationResult = ValidationResult()
    table_names: Set[str] = set(schema.table_names)

    for table in schema.tables:
        col_set: Set[str] = set(table.column_names)
        for fk in table.foreign_keys:
            ctx: Dict[str, Any] = {
                "table": table.name,
                "column": fk.local_join_column,
                "referenced_table": fk.referenced_table,
            }
            if fk.local_join_column not in col_set:
                result.add_error(
                    "FK_COLUMN_NOT_FOUND",
                    f"Foreign key join column '{fk.local_join_column}' does not "
                    f"exist in table '{table.name}'.",
                    ctx,
                )
            if fk.referenced_table not in table_names:
                result.add_warning(
                    "FK_TARGET_NOT_GENERATED",
                    f"Table '{table.name}' references '{fk.referenced_table}', "
                    f"which is not part of this run; the generated import "
                    f"assumes its model exists.",
                    ctx,
                )

    return result


def validate_table_options(
    schema: SchemaDefinition,
    config: GenerationConfig,
) -> ValidationResult:
    """Cross-check per-table options against the tables they configure."""
    result: ValidationResult = ValidationResult()
    table_names: Set[str] = set(schema.table_names)

    for table_name in config.table_options:
        if table_name not in table_names:
            result.add_warning(
                "OPTIONS_UNKNOWN_TABLE",
                f"Options defined for table '{table_name}' which does not "
                f"exist in the schema.",
                {"table": table_name},
            )

    for table in schema.tables:
        options: TableOptions = config.options_for(table.name)
        missing: List[str] = sorted(
            options.autogenerated_column_names - set(table.column_names)
        )
        if missing and table.name in config.table_options:
            result.add_info(
                "AUTOGENERATED_COLUMN_ABSENT",
                f"Autogenerated column(s) {missing} are not columns of "
                f"'{table.name}' and have no effect.",
                {"table": table.name, "columns": missing},
            )
        if not has_fields(table, Variant.UPDATE, options):
            result.add_info(
                "NO_UPDATABLE_COLUMNS",
                f"Every column of '{table.name}' is part of the primary key; "
                f"no update function will be generated.",
                {"table": table.name},
            )
        if not has_fields(table, Variant.CREATE, options):
            result.add_info(
                "NO_INSERTABLE_COLUMNS",
                f"Every column of '{table.name}' is autogenerated; create() "
                f"will insert default values.",
                {"table": table.name},
            )

    return result


def validate_generation_config(config: GenerationConfig) -> ValidationResult:
    result: ValidationResult = ValidationResult()

    for attr in ("schema_path", "model_path"):
        value: str = getattr(config, attr)
        segments: List[str] = [s for s in value.split("::") if s]
        if not segments or not all(s.isidentifier() for s in segments):
            result.add_error(
                "INVALID_RUST_PATH",
                f"'{attr}' must be a Rust module path like 'crate::schema::', got '{value}'.",
                {attr: value},
            )

    return result


def validate_schema(schema: SchemaDefinition) -> ValidationResult:
    """Run all schema-level validators and merge their results."""
    result: ValidationResult = ValidationResult()

    validators: List[Callable[[SchemaDefinition], ValidationResult]] = [
        validate_identifiers,
        validate_primary_keys,
        validate_column_types,
        validate_foreign_keys,
    ]

    for validator_fn in validators:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(schema))

    logger.info("Schema validation complete: %s", result.summary())
    return result


def validate_full(
    schema: SchemaDefinition,
    config: GenerationConfig,
) -> ValidationResult:
    """
    **Master validation entry point.**

    Schema validators, config validators and the options cross-check.  This
    is what ``generator.py`` and ``cli.py`` call before generating.
    """
    logger.info("Starting full validation — %d tables.", len(schema.tables))

    result: ValidationResult = ValidationResult()
    result.merge(validate_schema(schema))
    result.merge(validate_generation_config(config))
    result.merge(validate_table_options(schema, config))

    if result.has_errors:
        logger.error("Validation FAILED. %s", result.summary())
    else:
        logger.info("Validation PASSED. %s", result.summary())

    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_identifiers",
    "validate_primary_keys",
    "validate_column_types",
    "validate_foreign_keys",
    "validate_table_options",
    "validate_generation_config",
    "validate_schema",
    "validate_full",
]

logger.debug("dieselgen.validators loaded — %d public symbols.", len(__all__))
