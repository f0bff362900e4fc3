# File: dieselgen/variants.py
"""
dieselgen - Variant Field Selection
====================================
Decides, per table and record variant, which columns become fields and
whether each field is forced optional.

Every variant's behaviour lives in one ``VariantRule`` in ``VARIANT_RULES``:

    ======== ============ ============================ ================
    Variant  Name prefix  Includes column when         Forced optional
    ======== ============ ============================ ================
    READ     (none)       always                       no
    CREATE   ``Create``   not autogenerated            no
    UPDATE   ``Update``   not a primary-key column     yes
    ======== ============ ============================ ================

All functions here are pure: same descriptor and options in, same fields out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from dieselgen.errors import UnsupportedColumnTypeError
from dieselgen.models import (
    Column,
    GeneratedField,
    TableDescriptor,
    TableOptions,
    Variant,
)
from dieselgen.typemap import map_sql_type

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen.variants")

IncludePredicate = Callable[[TableDescriptor, TableOptions, Column], bool]


@dataclass(frozen=True, slots=True)
class VariantRule:
    """Complete behaviour of one record variant."""

    prefix: str
    includes: IncludePredicate
    forced_optional: bool
    carries_relational_metadata: bool

    def identifier(self, base_name: str) -> str:
        return f"{self.prefix}{base_name}"


def _include_all(table: TableDescriptor, options: TableOptions, column: Column) -> bool:
    return True


def _include_not_autogenerated(
    table: TableDescriptor, options: TableOptions, column: Column
) -> bool:
    return not options.is_autogenerated(column.name)


def _include_not_primary_key(
    table: TableDescriptor, options: TableOptions, column: Column
) -> bool:
    return not table.is_primary_key(column.name)


VARIANT_RULES: Dict[Variant, VariantRule] = {
    Variant.READ: VariantRule(
        prefix="",
        includes=_include_all,
        forced_optional=False,
        carries_relational_metadata=True,
    ),
    Variant.CREATE: VariantRule(
        prefix="Create",
        includes=_include_not_autogenerated,
        forced_optional=False,
        carries_relational_metadata=False,
    ),
    # partial updates: every remaining column must be independently settable
    Variant.UPDATE: VariantRule(
        prefix="Update",
        includes=_include_not_primary_key,
        forced_optional=True,
        carries_relational_metadata=False,
    ),
}

_missing_rules = [v.name for v in Variant if v not in VARIANT_RULES]
if _missing_rules:
    raise RuntimeError(f"No VariantRule defined for: {_missing_rules}")


def rule_for(variant: Variant) -> VariantRule:
    return VARIANT_RULES[variant]


def variant_identifier(table: TableDescriptor, variant: Variant) -> str:
    """Record type name of *variant* for *table*, e.g. ``UpdatePost``."""
    return rule_for(variant).identifier(table.base_name)


def _build_field(table: TableDescriptor, column: Column, forced_optional: bool) -> GeneratedField:
    try:
        rust_type: str = map_sql_type(column.sql_type)
    except UnsupportedColumnTypeError as exc:
        raise UnsupportedColumnTypeError(
            exc.sql_type, column_name=column.name, table_name=table.name
        ) from exc

    base_type: str = f"Option<{rust_type}>" if column.is_nullable else rust_type
    return GeneratedField(
        name=column.name,
        base_type=base_type,
        is_nullable=column.is_nullable,
        is_forced_optional=forced_optional,
    )


def select_fields(
    table: TableDescriptor,
    variant: Variant,
    options: TableOptions,
) -> Tuple[GeneratedField, ...]:
    """
    Ordered fields of *variant* for *table*.

    Raises:
        UnsupportedColumnTypeError: an included column has an unmapped type.
    """
    rule: VariantRule = rule_for(variant)
    fields: Tuple[GeneratedField, ...] = tuple(
        _build_field(table, column, rule.forced_optional)
        for column in table.columns
        if rule.includes(table, options, column)
    )
    logger.debug(
        "Selected %d field(s) for %s of '%s'.",
        len(fields),
        variant.name,
        table.name,
    )
    return fields


def has_fields(
    table: TableDescriptor,
    variant: Variant,
    options: TableOptions,
) -> bool:
    """True iff *variant* of *table* has at least one field."""
    rule: VariantRule = rule_for(variant)
    return any(rule.includes(table, options, column) for column in table.columns)


__all__: List[str] = [
    "VariantRule",
    "VARIANT_RULES",
    "rule_for",
    "variant_identifier",
    "select_fields",
    "has_fields",
]
