"""
tests/test_typemap.py
Unit tests for dieselgen.typemap (Diesel SQL type → Rust type).
"""

from __future__ import annotations

import pytest

from dieselgen.errors import GenerationError, UnsupportedColumnTypeError
from dieselgen.typemap import is_supported_sql_type, map_sql_type


class TestMapSqlType:
    @pytest.mark.parametrize(
        "sql_type, rust_type",
        [
            ("Int4", "i32"),
            ("BigInt", "i64"),
            ("Text", "String"),
            ("Varchar", "String"),
            ("Bool", "bool"),
            ("Float8", "f64"),
            ("Timestamptz", "chrono::DateTime<chrono::Utc>"),
            ("Timestamp", "chrono::NaiveDateTime"),
            ("Uuid", "uuid::Uuid"),
            ("Jsonb", "serde_json::Value"),
            ("Bytea", "Vec<u8>"),
        ],
    )
    def test_scalar_types(self, sql_type: str, rust_type: str) -> None:
        assert map_sql_type(sql_type) == rust_type

    def test_sql_types_path_is_ignored(self) -> None:
        assert map_sql_type("diesel::sql_types::Int8") == "i64"

    def test_arrays(self) -> None:
        assert map_sql_type("Array<Int4>") == "Vec<i32>"
        assert map_sql_type("Array<Nullable<Text>>") == "Vec<Option<String>>"
        assert map_sql_type("Array< Text >") == "Vec<String>"

    def test_unknown_type_raises(self) -> None:
        with pytest.raises(UnsupportedColumnTypeError) as exc_info:
            map_sql_type("Geometry")
        assert exc_info.value.sql_type == "Geometry"
        assert isinstance(exc_info.value, GenerationError)
        assert isinstance(exc_info.value, ValueError)

    def test_unknown_array_element_raises(self) -> None:
        with pytest.raises(UnsupportedColumnTypeError):
            map_sql_type("Array<Geometry>")

    def test_is_supported_sql_type(self) -> None:
        assert is_supported_sql_type("Int4")
        assert not is_supported_sql_type("Geometry")
