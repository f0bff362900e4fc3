# File: dieselgen/crud.py
"""
dieselgen - CRUD Operation Synthesis
=====================================
Decides which operations a table gets and with which parameters.  The result
is an ``OperationSet``; ``dieselgen.templates.render_operations`` turns it
into Rust.

Decision table::

    create    always      payload iff the Create record has fields
    read      always      one key parameter per primary-key column
    paginate  always      page, page_size
    update    iff the Update record has fields; key parameters + payload
    delete    always      key parameters

Key parameters and key filters follow the declared primary-key order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Mapping, Optional, Tuple

from dieselgen.errors import MissingPrimaryKeyColumnError, UnsupportedColumnTypeError
from dieselgen.models import Column, TableDescriptor, TableOptions, Variant
from dieselgen.typemap import map_sql_type

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen.crud")

# Smallest page size the generated paginate() will use
MIN_PAGE_SIZE: int = 1


class OperationKind(str, Enum):
    """Operations emitted in a table's ``impl`` block, in emission order."""

    CREATE = "create"
    READ = "read"
    PAGINATE = "paginate"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class VariantFacts:
    """What the synthesizer needs to know about one generated record."""

    identifier: str
    has_fields: bool


@dataclass(frozen=True, slots=True)
class KeyParam:
    """One primary-key parameter of a keyed operation."""

    column: str
    rust_type: str

    @property
    def param_name(self) -> str:
        return f"param_{self.column}"


@dataclass(frozen=True, slots=True)
class Operation:
    kind: OperationKind
    key_params: Tuple[KeyParam, ...] = ()
    payload_type: Optional[str] = None

    @property
    def is_keyed(self) -> bool:
        return bool(self.key_params)

    @property
    def takes_payload(self) -> bool:
        return self.payload_type is not None


@dataclass(frozen=True, slots=True)
class OperationSet:
    """Every operation legal for one table."""

    table_name: str
    record_identifier: str
    operations: Tuple[Operation, ...]
    secondary_annotation_enabled: bool = False
    min_page_size: int = MIN_PAGE_SIZE

    def get(self, kind: OperationKind) -> Optional[Operation]:
        for operation in self.operations:
            if operation.kind is kind:
                return operation
        return None

    def has(self, kind: OperationKind) -> bool:
        return self.get(kind) is not None

    @property
    def kinds(self) -> List[OperationKind]:
        return [o.kind for o in self.operations]

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)


def _key_param(table: TableDescriptor, column: Column) -> KeyParam:
    try:
        rust_type: str = map_sql_type(column.sql_type)
    except UnsupportedColumnTypeError as exc:
        raise UnsupportedColumnTypeError(
            exc.sql_type, column_name=column.name, table_name=table.name
        ) from exc
    # nullable key columns still filter on the bare value
    return KeyParam(column=column.name, rust_type=rust_type)


def resolve_key_params(table: TableDescriptor) -> Tuple[KeyParam, ...]:
    """
    Key parameters in declared primary-key order.

    Raises:
        MissingPrimaryKeyColumnError: a key name has no matching column.
    """
    params: List[KeyParam] = []
    for pk_name in table.primary_key_column_names:
        column: Optional[Column] = table.get_column(pk_name)
        if column is None:
            raise MissingPrimaryKeyColumnError(table.name, pk_name)
        params.append(_key_param(table, column))
    return tuple(params)


def synthesize_operations(
    table: TableDescriptor,
    options: TableOptions,
    facts: Mapping[Variant, VariantFacts],
) -> OperationSet:
    """
    Build the operation set of *table* from the three variants' facts.

    Raises:
        MissingPrimaryKeyColumnError: a declared key column does not exist.
        KeyError: *facts* lacks one of the variants.
    """
    read: VariantFacts = facts[Variant.READ]
    create: VariantFacts = facts[Variant.CREATE]
    update: VariantFacts = facts[Variant.UPDATE]

    keys: Tuple[KeyParam, ...] = resolve_key_params(table)

    operations: List[Operation] = [
        Operation(
            kind=OperationKind.CREATE,
            payload_type=create.identifier if create.has_fields else None,
        ),
        Operation(kind=OperationKind.READ, key_params=keys),
        Operation(kind=OperationKind.PAGINATE),
    ]

    # a join table with only key columns has nothing to update
    if update.has_fields:
        operations.append(
            Operation(
                kind=OperationKind.UPDATE,
                key_params=keys,
                payload_type=update.identifier,
            )
        )
    else:
        logger.debug("No updatable columns in '%s'; skipping update().", table.name)

    operations.append(Operation(kind=OperationKind.DELETE, key_params=keys))

    return OperationSet(
        table_name=table.name,
        record_identifier=read.identifier,
        operations=tuple(operations),
        secondary_annotation_enabled=options.secondary_annotation_enabled,
    )


__all__: List[str] = [
    "MIN_PAGE_SIZE",
    "OperationKind",
    "VariantFacts",
    "KeyParam",
    "Operation",
    "OperationSet",
    "resolve_key_params",
    "synthesize_operations",
]
