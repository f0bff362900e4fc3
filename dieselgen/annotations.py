# File: dieselgen/annotations.py
"""
dieselgen - Annotation Composition
===================================
Computes the capability set (``#[derive(...)]``) and the relational metadata
(``primary_key(...)``, ``belongs_to(...)``) of a generated record.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from dieselgen.models import (
    BelongsTo,
    Capability,
    GeneratedField,
    RelationalMetadata,
    TableDescriptor,
    Variant,
)
from dieselgen.variants import rule_for

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen.annotations")

BASE_CAPABILITIES: Tuple[Capability, ...] = (
    Capability.DEBUG,
    Capability.SERIALIZE,
    Capability.DESERIALIZE,
    Capability.CLONE,
    Capability.QUERYABLE,
    Capability.INSERTABLE,
)

# Order in which capabilities are emitted
_CANONICAL_ORDER: Tuple[Capability, ...] = tuple(Capability)


def has_updatable_field(table: TableDescriptor, fields: Sequence[GeneratedField]) -> bool:
    """True if at least one field is not a primary-key column."""
    return not all(table.is_primary_key(f.name) for f in fields)


def compose_annotations(
    table: TableDescriptor,
    variant: Variant,
    fields: Sequence[GeneratedField],
) -> Tuple[Capability, ...]:
    """
    Capability set of one record, in canonical order.

    ``AsChangeset`` is dropped when there is nothing updatable (an empty field
    list counts as nothing updatable).  ``Identifiable`` and ``Associations``
    are added to the Read record of tables with foreign keys.
    """
    capabilities: List[Capability] = list(BASE_CAPABILITIES)

    if has_updatable_field(table, fields):
        capabilities.append(Capability.AS_CHANGESET)

    if variant is Variant.READ and table.foreign_keys:
        capabilities.append(Capability.IDENTIFIABLE)
        capabilities.append(Capability.ASSOCIATIONS)

    ordered: Tuple[Capability, ...] = tuple(
        c for c in _CANONICAL_ORDER if c in capabilities
    )
    logger.debug(
        "Annotations for %s of '%s': %s",
        variant.name,
        table.name,
        ", ".join(c.value for c in ordered),
    )
    return ordered


def compose_relational_metadata(
    table: TableDescriptor,
    variant: Variant,
) -> Optional[RelationalMetadata]:
    """Primary-key and belongs-to clauses; only the Read variant carries them."""
    if not rule_for(variant).carries_relational_metadata:
        return None

    return RelationalMetadata(
        primary_key=tuple(table.primary_key_column_names),
        belongs_to=tuple(
            BelongsTo(
                type_name=fk.referenced_type_name,
                join_column=fk.local_join_column,
            )
            for fk in table.foreign_keys
        ),
    )


__all__: List[str] = [
    "BASE_CAPABILITIES",
    "has_updatable_field",
    "compose_annotations",
    "compose_relational_metadata",
]
