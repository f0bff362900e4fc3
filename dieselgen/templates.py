# File: dieselgen/templates.py
"""
dieselgen - Rust Template Rendering
====================================
The only stage that produces text.  Everything upstream (field selection,
annotations, operation synthesis, imports) hands over structured objects;
this module turns them into Rust source for Diesel + serde.

**Rendering contract:**
    - All string assembly uses ``List[str]`` + ``"\\n".join()``.
    - Output is rustfmt-style: 4-space indents, one field per line.
    - A record without fields renders as the empty string.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence

from dieselgen.crud import KeyParam, Operation, OperationKind, OperationSet
from dieselgen.imports import ImportBlock
from dieselgen.models import (
    GeneratedField,
    GeneratedRecordType,
    GenerationConfig,
    RelationalMetadata,
)
from dieselgen.utils import RUST_KEYWORDS

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FILE_SIGNATURE: str = "/* This file is generated and managed by dieselgen */"
TSYNC_ATTRIBUTE: str = "#[tsync::tsync]"
PAGINATION_RESULT_TYPE: str = "PaginationResult"

_INDENT: str = "    "
_DOUBLE_INDENT: str = _INDENT * 2


def rust_ident(name: str) -> str:
    """Escape a column name that collides with a Rust keyword (``type`` → ``r#type``)."""
    if name in RUST_KEYWORDS:
        return f"r#{name}"
    return name


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def _diesel_attribute(table_name: str, metadata: Optional[RelationalMetadata]) -> str:
    clauses: List[str] = [f"table_name={table_name}"]
    if metadata is not None:
        clauses.append(f"primary_key({','.join(rust_ident(pk) for pk in metadata.primary_key)})")
        clauses.extend(
            f"belongs_to({bt.type_name}, foreign_key={rust_ident(bt.join_column)})"
            for bt in metadata.belongs_to
        )
    return f"#[diesel({', '.join(clauses)})]"


def _field_line(f: GeneratedField) -> str:
    return f"{_INDENT}pub {rust_ident(f.name)}: {f.rendered_type},"


def render_record(record: GeneratedRecordType) -> str:
    """Source of one record type, or ``""`` when it has no fields."""
    if not record.has_fields:
        return ""

    lines: List[str] = []
    if record.secondary_annotation_enabled:
        lines.append(TSYNC_ATTRIBUTE)
    lines.append(f"#[derive({', '.join(c.value for c in record.annotations)})]")
    lines.append(_diesel_attribute(record.table_name, record.relational_metadata))
    lines.append(f"pub struct {record.identifier} {{")
    lines.extend(_field_line(f) for f in record.fields)
    lines.append("}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


def render_imports(block: ImportBlock) -> str:
    lines: List[str] = [f"use {path};" for path in block.base_imports]
    lines.extend(
        f"use {block.model_path}{ref.module}::{ref.type_name};"
        for ref in block.model_references
    )
    lines.append("")
    lines.append(f"type Connection = {block.connection_type};")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def render_pagination_result(secondary_annotation_enabled: bool) -> str:
    lines: List[str] = []
    if secondary_annotation_enabled:
        lines.append(TSYNC_ATTRIBUTE)
    lines.extend([
        "#[derive(Debug, Serialize)]",
        f"pub struct {PAGINATION_RESULT_TYPE}<T> {{",
        f"{_INDENT}pub items: Vec<T>,",
        f"{_INDENT}pub total_items: i64,",
        f"{_INDENT}/// 0-based index",
        f"{_INDENT}pub page: i64,",
        f"{_INDENT}pub page_size: i64,",
        f"{_INDENT}pub num_pages: i64,",
        "}",
    ])
    return "\n".join(lines)


def _key_params(params: Sequence[KeyParam]) -> List[str]:
    return [f"{p.param_name}: {p.rust_type}" for p in params]


def _key_filters(table_name: str, params: Sequence[KeyParam]) -> str:
    """``posts.filter(a.eq(param_a)).filter(b.eq(param_b))``"""
    filters: List[str] = [
        f"filter({rust_ident(p.column)}.eq({p.param_name}))" for p in params
    ]
    return ".".join([table_name, *filters])


def _signature(name: str, params: Sequence[str], returns: str) -> str:
    args: str = ", ".join(["db: &mut Connection", *params])
    return f"{_INDENT}pub fn {name}({args}) -> {returns} {{"


class TemplateGenerator:
    """
    Renders a table's operation block and assembles whole files.

    Stateless apart from the config it was created with.
    """

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config
        self._renderers: Dict[OperationKind, Callable[[OperationSet, Operation], List[str]]] = {
            OperationKind.CREATE: self._render_create,
            OperationKind.READ: self._render_read,
            OperationKind.PAGINATE: self._render_paginate,
            OperationKind.UPDATE: self._render_update,
            OperationKind.DELETE: self._render_delete,
        }

    def _dsl_use(self, table_name: str) -> str:
        return f"{_DOUBLE_INDENT}use {self._config.schema_path}{table_name}::dsl::*;"

    def _render_create(self, ops: OperationSet, op: Operation) -> List[str]:
        table: str = ops.table_name
        if op.takes_payload:
            signature: str = _signature("create", [f"item: &{op.payload_type}"], "QueryResult<Self>")
            body: str = f"insert_into({table}).values(item).get_result::<Self>(db)"
        else:
            signature = _signature("create", [], "QueryResult<Self>")
            body = f"insert_into({table}).default_values().get_result::<Self>(db)"
        return [signature, self._dsl_use(table), "", f"{_DOUBLE_INDENT}{body}", f"{_INDENT}}}"]

    def _render_read(self, ops: OperationSet, op: Operation) -> List[str]:
        table: str = ops.table_name
        return [
            _signature("read", _key_params(op.key_params), "QueryResult<Self>"),
            self._dsl_use(table),
            "",
            f"{_DOUBLE_INDENT}{_key_filters(table, op.key_params)}.first::<Self>(db)",
            f"{_INDENT}}}",
        ]

    def _render_paginate(self, ops: OperationSet, op: Operation) -> List[str]:
        table: str = ops.table_name
        floor: int = ops.min_page_size
        return [
            f"{_INDENT}/// Paginates through the table where page is a 0-based index "
            f"(i.e. page 0 is the first page)",
            _signature(
                "paginate",
                ["page: i64", "page_size: i64"],
                f"QueryResult<{PAGINATION_RESULT_TYPE}<Self>>",
            ),
            self._dsl_use(table),
            "",
            f"{_DOUBLE_INDENT}let page_size = if page_size < {floor} {{ {floor} }} else {{ page_size }};",
            f"{_DOUBLE_INDENT}let total_items = {table}.count().get_result(db)?;",
            f"{_DOUBLE_INDENT}let items = {table}.limit(page_size).offset(page * page_size)"
            f".load::<Self>(db)?;",
            "",
            f"{_DOUBLE_INDENT}Ok({PAGINATION_RESULT_TYPE} {{",
            f"{_DOUBLE_INDENT}{_INDENT}items,",
            f"{_DOUBLE_INDENT}{_INDENT}total_items,",
            f"{_DOUBLE_INDENT}{_INDENT}page,",
            f"{_DOUBLE_INDENT}{_INDENT}page_size,",
            f"{_DOUBLE_INDENT}{_INDENT}/* ceiling division of integers */",
            f"{_DOUBLE_INDENT}{_INDENT}num_pages: total_items / page_size "
            f"+ i64::from(total_items % page_size != 0)",
            f"{_DOUBLE_INDENT}}})",
            f"{_INDENT}}}",
        ]

    def _render_update(self, ops: OperationSet, op: Operation) -> List[str]:
        table: str = ops.table_name
        params: List[str] = [*_key_params(op.key_params), f"item: &{op.payload_type}"]
        return [
            _signature("update", params, "QueryResult<Self>"),
            self._dsl_use(table),
            "",
            f"{_DOUBLE_INDENT}diesel::update({_key_filters(table, op.key_params)})"
            f".set(item).get_result(db)",
            f"{_INDENT}}}",
        ]

    def _render_delete(self, ops: OperationSet, op: Operation) -> List[str]:
        table: str = ops.table_name
        return [
            _signature("delete", _key_params(op.key_params), "QueryResult<usize>"),
            self._dsl_use(table),
            "",
            f"{_DOUBLE_INDENT}diesel::delete({_key_filters(table, op.key_params)}).execute(db)",
            f"{_INDENT}}}",
        ]

    def render_operations(self, ops: OperationSet) -> str:
        """``PaginationResult`` struct followed by the ``impl`` block."""
        lines: List[str] = [render_pagination_result(ops.secondary_annotation_enabled), ""]
        lines.append(f"impl {ops.record_identifier} {{")
        for index, operation in enumerate(ops):
            if index:
                lines.append("")
            lines.extend(self._renderers[operation.kind](ops, operation))
        lines.append("}")
        return "\n".join(lines)

    def render_file(
        self,
        imports: ImportBlock,
        records: Sequence[GeneratedRecordType],
        ops: OperationSet,
    ) -> str:
        """
        Assemble a complete ``generated.rs``: signature, imports, the
        non-empty records in the given order, then the operations.
        """
        sections: List[str] = [FILE_SIGNATURE, render_imports(imports)]
        sections.extend(r.source_text for r in records if r.source_text)
        sections.append(self.render_operations(ops))
        content: str = "\n\n".join(sections) + "\n"
        logger.debug(
            "Rendered file for '%s': %d lines.", ops.table_name, content.count("\n")
        )
        return content

    # -----------------------------------------------------------------
    # Module files
    # -----------------------------------------------------------------

    @staticmethod
    def render_table_mod() -> str:
        """``<table>/mod.rs``: re-export the generated items."""
        return "\n".join([FILE_SIGNATURE, "", "pub use generated::*;", "pub mod generated;", ""])

    @staticmethod
    def render_models_mod(module_names: Sequence[str]) -> str:
        """Top-level ``mod.rs`` declaring one module per table."""
        lines: List[str] = [FILE_SIGNATURE, ""]
        lines.extend(f"pub mod {name};" for name in sorted(module_names))
        lines.append("")
        return "\n".join(lines)


__all__: List[str] = [
    "FILE_SIGNATURE",
    "TSYNC_ATTRIBUTE",
    "PAGINATION_RESULT_TYPE",
    "rust_ident",
    "render_record",
    "render_imports",
    "render_pagination_result",
    "TemplateGenerator",
]

logger.debug("dieselgen.templates loaded.")
