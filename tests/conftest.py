"""
tests/conftest.py
Shared fixtures for the dieselgen test suite.

No external mocking libraries are used; real file I/O is performed inside
temporary directories managed by pytest's tmp_path fixture.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Dict

import pytest
import yaml

from dieselgen.models import GenerationConfig, TableDescriptor, TableOptions


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.yaml"
SCHEMA_RS_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.rs"


# ---------------------------------------------------------------------------
# Raw schema data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_schema_dict() -> Dict[str, Any]:
    """Load the reference schema_example.yaml once per session."""
    assert SCHEMA_EXAMPLE_PATH.exists(), (
        f"Reference schema not found at {SCHEMA_EXAMPLE_PATH}. "
        "Make sure schema_example.yaml is in the project root."
    )
    with open(SCHEMA_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def schema_example_path() -> pathlib.Path:
    """The reference schema_example.yaml shipped at the project root."""
    return SCHEMA_EXAMPLE_PATH


@pytest.fixture()
def schema_dict(raw_schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_schema_dict)


@pytest.fixture()
def schema_yaml_path(schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the schema dict to a temporary YAML file and return its path."""
    path = tmp_path / "schema.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(schema_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


@pytest.fixture(scope="session")
def diesel_schema_text() -> str:
    """Contents of the reference schema_example.rs."""
    return SCHEMA_RS_EXAMPLE_PATH.read_text(encoding="utf-8")


@pytest.fixture()
def schema_rs_path(diesel_schema_text: str, tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "schema.rs"
    path.write_text(diesel_schema_text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Table descriptor fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def posts_table() -> TableDescriptor:
    """``posts``: autogenerated integer key, text title, nullable text body."""
    return TableDescriptor.model_validate({
        "name": "posts",
        "columns": [
            {"name": "id", "type": "Int4"},
            {"name": "title", "type": "Text"},
            {"name": "body", "type": "Text", "nullable": True},
        ],
        "primary_key": ["id"],
    })


@pytest.fixture()
def posts_options() -> TableOptions:
    return TableOptions(autogenerated_column_names=frozenset({"id"}))


@pytest.fixture()
def post_tags_table() -> TableDescriptor:
    """Join table: composite key, no other columns, two foreign keys."""
    return TableDescriptor.model_validate({
        "name": "post_tags",
        "columns": [
            {"name": "post_id", "type": "Int4"},
            {"name": "tag_id", "type": "Int4"},
        ],
        "primary_key": ["post_id", "tag_id"],
        "foreign_keys": [
            {"table": "posts", "column": "post_id"},
            {"table": "tags", "column": "tag_id"},
        ],
    })


@pytest.fixture()
def post_tags_options() -> TableOptions:
    """Both key columns are filled in by the database."""
    return TableOptions(autogenerated_column_names=frozenset({"post_id", "tag_id"}))


@pytest.fixture()
def comments_table() -> TableDescriptor:
    """Table whose key order differs from column order, with a nullable FK."""
    return TableDescriptor.model_validate({
        "name": "comments",
        "columns": [
            {"name": "body", "type": "Text"},
            {"name": "post_id", "type": "Int4"},
            {"name": "seq", "type": "Int8"},
            {"name": "parent_id", "type": "Int8", "nullable": True},
        ],
        "primary_key": ["seq", "post_id"],
        "foreign_keys": [
            {"table": "posts", "column": "post_id"},
        ],
    })


@pytest.fixture()
def default_config() -> GenerationConfig:
    return GenerationConfig()


# ---------------------------------------------------------------------------
# Output directory fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def output_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """Provide a clean output directory inside tmp_path."""
    out = tmp_path / "generated_output"
    out.mkdir(parents=True, exist_ok=True)
    return out
