# File: dieselgen/typemap.py
"""
dieselgen - SQL → Rust Type Mapping
====================================
Maps Diesel SQL type names (as they appear in ``schema.rs``) to the Rust
types used in generated record fields.

``Array<T>`` maps recursively to ``Vec<T>``; a ``Nullable<T>`` element inside
an array maps to ``Option<T>``.  Top-level nullability is *not* handled here:
it is carried by ``Column.is_nullable`` and applied by the field selector.
"""

from __future__ import annotations

import functools
import logging
from typing import Dict, List, Optional

from dieselgen.errors import UnsupportedColumnTypeError

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen.typemap")

_SQL_TYPES_PREFIX: str = "diesel::sql_types::"

RUST_TYPE_MAP: Dict[str, str] = {
    # Integers
    "Int2": "i16",
    "SmallInt": "i16",
    "Smallint": "i16",
    "Int4": "i32",
    "Integer": "i32",
    "Int8": "i64",
    "BigInt": "i64",
    "Bigint": "i64",
    # Floating point / exact numeric
    "Float4": "f32",
    "Float": "f32",
    "Float8": "f64",
    "Double": "f64",
    "Numeric": "bigdecimal::BigDecimal",
    "Decimal": "bigdecimal::BigDecimal",
    # Boolean
    "Bool": "bool",
    # Text
    "Text": "String",
    "Varchar": "String",
    "VarChar": "String",
    "Char": "String",
    "Bpchar": "String",
    "Citext": "String",
    "Tinytext": "String",
    "Mediumtext": "String",
    "Longtext": "String",
    # Binary
    "Bytea": "Vec<u8>",
    "Binary": "Vec<u8>",
    "Varbinary": "Vec<u8>",
    "Blob": "Vec<u8>",
    "Tinyblob": "Vec<u8>",
    "Mediumblob": "Vec<u8>",
    "Longblob": "Vec<u8>",
    # Date / time
    "Date": "chrono::NaiveDate",
    "Time": "chrono::NaiveTime",
    "Timestamp": "chrono::NaiveDateTime",
    "Datetime": "chrono::NaiveDateTime",
    "Timestamptz": "chrono::DateTime<chrono::Utc>",
    "Interval": "diesel::pg::data_types::PgInterval",
    # Special
    "Uuid": "uuid::Uuid",
    "Json": "serde_json::Value",
    "Jsonb": "serde_json::Value",
    "Money": "diesel::pg::data_types::PgMoney",
    "Inet": "ipnetwork::IpNetwork",
    "Cidr": "ipnetwork::IpNetwork",
}


def _unwrap(sql_type: str, wrapper: str) -> Optional[str]:
    """Return the inner type of ``wrapper<inner>`` or None if not wrapped."""
    prefix: str = f"{wrapper}<"
    if sql_type.startswith(prefix) and sql_type.endswith(">"):
        return sql_type[len(prefix):-1].strip()
    return None


@functools.lru_cache(maxsize=None)
def map_sql_type(sql_type: str) -> str:
    """
    Map a Diesel SQL type name to a Rust type.

    Raises:
        UnsupportedColumnTypeError: the type (or an array element type) has
            no mapping.
    """
    name: str = "".join(sql_type.split())
    if name.startswith(_SQL_TYPES_PREFIX):
        name = name[len(_SQL_TYPES_PREFIX):]

    element: Optional[str] = _unwrap(name, "Array")
    if element is not None:
        inner_nullable: Optional[str] = _unwrap(element, "Nullable")
        if inner_nullable is not None:
            return f"Vec<Option<{map_sql_type(inner_nullable)}>>"
        return f"Vec<{map_sql_type(element)}>"

    rust_type: Optional[str] = RUST_TYPE_MAP.get(name)
    if rust_type is None:
        logger.debug("No Rust mapping for SQL type '%s'.", sql_type)
        raise UnsupportedColumnTypeError(sql_type)
    return rust_type


def is_supported_sql_type(sql_type: str) -> bool:
    """True if ``map_sql_type`` would succeed for *sql_type*."""
    try:
        map_sql_type(sql_type)
    except UnsupportedColumnTypeError:
        return False
    return True


__all__: List[str] = [
    "RUST_TYPE_MAP",
    "map_sql_type",
    "is_supported_sql_type",
]
