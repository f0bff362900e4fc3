# File: dieselgen/parser.py
"""
dieselgen - Diesel ``schema.rs`` Parser
========================================
Reads the ``table!`` / ``diesel::table!`` and ``joinable!`` macros that
``diesel print-schema`` writes and turns them into ``TableDescriptor``
objects.

Supported forms::

    diesel::table! {
        use diesel::sql_types::*;

        /// doc comment
        post_tags (post_id, tag_id) {
            post_id -> Int4,
            tag_id -> Int4,
            #[max_length = 255]
            label -> Nullable<Varchar>,
        }
    }

    diesel::joinable!(post_tags -> posts (post_id));

A table without an explicit key list gets Diesel's default key ``id``.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple

from dieselgen.errors import SchemaParseError
from dieselgen.models import Column, ForeignKey, TableDescriptor

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen.parser")

# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

_TABLE_MACRO_RE: re.Pattern[str] = re.compile(r"(?:diesel\s*::\s*)?table!\s*\{")
_JOINABLE_RE: re.Pattern[str] = re.compile(
    r"(?:diesel\s*::\s*)?joinable!\s*\(\s*(\w+)\s*->\s*(\w+)\s*\(\s*(?:r#)?(\w+)\s*\)\s*\)\s*;?"
)
_LINE_COMMENT_RE: re.Pattern[str] = re.compile(r"//[^\n]*")
_BLOCK_COMMENT_RE: re.Pattern[str] = re.compile(r"/\*.*?\*/", re.DOTALL)
_ATTRIBUTE_RE: re.Pattern[str] = re.compile(r"#\[[^\]]*\]")
_USE_RE: re.Pattern[str] = re.compile(r"\buse\s+[^;]+;")
_TABLE_HEADER_RE: re.Pattern[str] = re.compile(
    r"^\s*(?:\w+\s*\.\s*)?(\w+)\s*(?:\(([^)]*)\))?\s*\{(.*)\}\s*$", re.DOTALL
)
_COLUMN_RE: re.Pattern[str] = re.compile(r"^(?:r#)?(\w+)\s*->\s*(.+)$", re.DOTALL)
_NULLABLE_RE: re.Pattern[str] = re.compile(r"^Nullable\s*<\s*(.+)\s*>$", re.DOTALL)

DEFAULT_PRIMARY_KEY: Tuple[str, ...] = ("id",)


def _strip_noise(text: str) -> str:
    """Remove comments, attributes and ``use`` declarations."""
    text = _BLOCK_COMMENT_RE.sub("", text)
    text = _LINE_COMMENT_RE.sub("", text)
    text = _ATTRIBUTE_RE.sub("", text)
    return _USE_RE.sub("", text)


def _matching_brace(text: str, open_index: int) -> int:
    """Index of the ``}`` closing the ``{`` at *open_index*."""
    depth: int = 0
    for index in range(open_index, len(text)):
        char: str = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    raise SchemaParseError(f"Unbalanced braces in table! macro at offset {open_index}.")


def _split_columns(body: str) -> List[str]:
    """Split on top-level commas (commas inside ``<...>`` belong to the type)."""
    parts: List[str] = []
    depth: int = 0
    current: List[str] = []
    for char in body:
        if char == "<":
            depth += 1
        elif char == ">" and current and current[-1] != "-":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _parse_column(entry: str, table_name: str) -> Column:
    match: Optional[re.Match[str]] = _COLUMN_RE.match(entry)
    if match is None:
        raise SchemaParseError(
            f"Cannot parse column declaration '{entry}' in table '{table_name}'."
        )
    name, sql_type = match.group(1), " ".join(match.group(2).split())

    nullable: Optional[re.Match[str]] = _NULLABLE_RE.match(sql_type)
    if nullable is not None:
        return Column(name=name, sql_type=nullable.group(1).strip(), is_nullable=True)
    return Column(name=name, sql_type=sql_type)


def _parse_table_macro(content: str) -> Tuple[str, Tuple[str, ...], List[Column]]:
    match: Optional[re.Match[str]] = _TABLE_HEADER_RE.match(content)
    if match is None:
        raise SchemaParseError(f"Cannot parse table! macro body: {content.strip()[:80]!r}")

    table_name: str = match.group(1)
    key_list: Optional[str] = match.group(2)
    primary_key: Tuple[str, ...] = DEFAULT_PRIMARY_KEY
    if key_list is not None and key_list.strip():
        primary_key = tuple(
            k.strip().removeprefix("r#") for k in key_list.split(",") if k.strip()
        )

    columns: List[Column] = [
        _parse_column(entry, table_name) for entry in _split_columns(match.group(3))
    ]
    if not columns:
        raise SchemaParseError(f"Table '{table_name}' declares no columns.")
    return table_name, primary_key, columns


def parse_diesel_schema(text: str) -> List[TableDescriptor]:
    """
    Parse the contents of a Diesel ``schema.rs``.

    Tables are returned in declaration order; ``joinable!`` edges become
    foreign keys on the child table.

    Raises:
        SchemaParseError: malformed macro, or no ``table!`` macro at all.
    """
    cleaned: str = _strip_noise(text)

    parsed: Dict[str, Tuple[Tuple[str, ...], List[Column]]] = {}
    for macro in _TABLE_MACRO_RE.finditer(cleaned):
        open_index: int = macro.end() - 1
        close_index: int = _matching_brace(cleaned, open_index)
        name, primary_key, columns = _parse_table_macro(cleaned[open_index + 1:close_index])
        if name in parsed:
            raise SchemaParseError(f"Table '{name}' is declared more than once.")
        parsed[name] = (primary_key, columns)
        logger.debug("Parsed table '%s': %d column(s), pk=%s.", name, len(columns), primary_key)

    if not parsed:
        raise SchemaParseError("No table! macros found in schema input.")

    foreign_keys: Dict[str, List[ForeignKey]] = {name: [] for name in parsed}
    for child, parent, column in _JOINABLE_RE.findall(cleaned):
        if child not in parsed:
            logger.warning(
                "joinable!(%s -> %s (%s)) refers to an undeclared table; ignored.",
                child,
                parent,
                column,
            )
            continue
        foreign_keys[child].append(ForeignKey(referenced_table=parent, local_join_column=column))

    tables: List[TableDescriptor] = [
        TableDescriptor(
            name=name,
            columns=tuple(columns),
            primary_key_column_names=primary_key,
            foreign_keys=tuple(foreign_keys[name]),
        )
        for name, (primary_key, columns) in parsed.items()
    ]
    logger.info("Parsed %d table(s) from schema.rs input.", len(tables))
    return tables


__all__: List[str] = [
    "DEFAULT_PRIMARY_KEY",
    "parse_diesel_schema",
]
