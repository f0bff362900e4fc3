# File: dieselgen/imports.py
"""
dieselgen - Import Resolution
==============================
Computes the ``use`` lines and the ``Connection`` alias at the top of a
generated file.  Foreign keys add a reference to the referenced table's Read
record; only the referenced table's *name* is needed, never its output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from dieselgen.models import GenerationConfig, TableDescriptor
from dieselgen.utils import table_to_module_name, table_to_type_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen.imports")


@dataclass(frozen=True, slots=True)
class ModelReference:
    """``use <model_path><module>::<type_name>;``"""

    module: str
    type_name: str


@dataclass(frozen=True, slots=True)
class ImportBlock:
    base_imports: Tuple[str, ...]
    model_path: str
    model_references: Tuple[ModelReference, ...]
    connection_type: str


def base_imports(config: GenerationConfig) -> Tuple[str, ...]:
    """Imports every generated file needs, regardless of foreign keys."""
    return (
        "crate::diesel::*",
        f"{config.schema_path}*",
        "diesel::QueryResult",
        "serde::{Deserialize, Serialize}",
    )


def resolve_model_references(table: TableDescriptor) -> Tuple[ModelReference, ...]:
    """
    One reference per distinct referenced table, in foreign-key order.

    A self-referencing key needs no import: the type is defined in the same
    file.
    """
    references: List[ModelReference] = []
    for fk in table.foreign_keys:
        if fk.referenced_table == table.name:
            continue
        reference = ModelReference(
            module=table_to_module_name(fk.referenced_table),
            type_name=table_to_type_name(fk.referenced_table),
        )
        if reference not in references:
            references.append(reference)
    return tuple(references)


def resolve_imports(table: TableDescriptor, config: GenerationConfig) -> ImportBlock:
    references: Tuple[ModelReference, ...] = resolve_model_references(table)
    logger.debug(
        "Resolved %d model reference(s) for '%s'.", len(references), table.name
    )
    return ImportBlock(
        base_imports=base_imports(config),
        model_path=config.model_path,
        model_references=references,
        connection_type=config.connection_type,
    )


__all__: List[str] = [
    "ModelReference",
    "ImportBlock",
    "base_imports",
    "resolve_model_references",
    "resolve_imports",
]
