# File: dieselgen/errors.py
"""
dieselgen - Exceptions
=======================
Generation-time failures.  Each one aborts the output of a single table; the
batch orchestrator (``ModelGenerator``) records it and moves on to the next
table.
"""

from __future__ import annotations

from typing import List, Optional


class GenerationError(ValueError):
    """Base class for failures that make a table impossible to generate."""

    def __init__(self, message: str, table_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.table_name: Optional[str] = table_name


class MissingPrimaryKeyColumnError(GenerationError):
    """A declared primary-key column is not among the table's columns."""

    def __init__(self, table_name: str, column_name: str) -> None:
        super().__init__(
            f"Primary key column '{column_name}' does not exist in table "
            f"'{table_name}'.",
            table_name,
        )
        self.column_name: str = column_name


class UnsupportedColumnTypeError(GenerationError):
    """A column's SQL type has no Rust type mapping."""

    def __init__(
        self,
        sql_type: str,
        column_name: Optional[str] = None,
        table_name: Optional[str] = None,
    ) -> None:
        where: str = ""
        if column_name is not None:
            where = f" for column '{column_name}'"
            if table_name is not None:
                where += f" of table '{table_name}'"
        super().__init__(f"Unsupported column type '{sql_type}'{where}.", table_name)
        self.sql_type: str = sql_type
        self.column_name: Optional[str] = column_name


class SchemaParseError(ValueError):
    """Raised when a schema input (schema.rs, YAML, JSON) cannot be parsed."""


__all__: List[str] = [
    "GenerationError",
    "MissingPrimaryKeyColumnError",
    "UnsupportedColumnTypeError",
    "SchemaParseError",
]
