"""
tests/test_generator.py
Tests for dieselgen.generator: per-table generation, schema loading and the
ModelGenerator pipeline.

Run with:
    pytest tests/ -v
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, Dict

import pytest
import yaml

from dieselgen.errors import MissingPrimaryKeyColumnError, SchemaParseError, UnsupportedColumnTypeError
from dieselgen.generator import (
    ModelGenerator,
    apply_config_overrides,
    build_records,
    generate_for_table,
    load_schema_file,
    parse_raw_schema,
)
from dieselgen.models import (
    GenerationConfig,
    SchemaDefinition,
    TableDescriptor,
    TableOptions,
    Variant,
)
from dieselgen.templates import FILE_SIGNATURE


# ===========================================================================
# End-to-end scenarios
# ===========================================================================


class TestPostsScenario:
    """``posts(id autogenerated pk, title text, body nullable text)``."""

    def test_records(self, posts_table: TableDescriptor, posts_options: TableOptions) -> None:
        records = build_records(posts_table, posts_options)
        create, update = records[Variant.CREATE], records[Variant.UPDATE]

        assert [(f.name, f.rendered_type) for f in create.fields] == [
            ("title", "String"),
            ("body", "Option<String>"),
        ]
        assert [(f.name, f.rendered_type) for f in update.fields] == [
            ("title", "Option<String>"),
            ("body", "Option<String>"),
        ]

    def test_generated_file(
        self,
        posts_table: TableDescriptor,
        posts_options: TableOptions,
        default_config: GenerationConfig,
    ) -> None:
        source = generate_for_table(posts_table, default_config, posts_options)

        assert source.startswith(FILE_SIGNATURE + "\n\nuse crate::diesel::*;\n")
        assert source.endswith("}\n")
        assert "item: &CreatePost" in source
        assert "pub fn update(db: &mut Connection, param_id: i32, item: &UpdatePost)" in source
        assert "pub fn read(db: &mut Connection, param_id: i32)" in source
        assert "pub fn delete(db: &mut Connection, param_id: i32)" in source

    def test_section_order(
        self,
        posts_table: TableDescriptor,
        posts_options: TableOptions,
        default_config: GenerationConfig,
    ) -> None:
        source = generate_for_table(posts_table, default_config, posts_options)
        markers = [
            "type Connection",
            "pub struct Post {",
            "pub struct CreatePost {",
            "pub struct UpdatePost {",
            "pub struct PaginationResult<T>",
            "impl Post {",
        ]
        positions = [source.index(m) for m in markers]
        assert positions == sorted(positions)


class TestPostTagsScenario:
    """Join table with composite key and no other columns."""

    def test_generated_file(
        self,
        post_tags_table: TableDescriptor,
        post_tags_options: TableOptions,
        default_config: GenerationConfig,
    ) -> None:
        source = generate_for_table(post_tags_table, default_config, post_tags_options)

        assert "pub struct PostTag {" in source
        assert "CreatePostTag" not in source
        assert "UpdatePostTag" not in source
        assert "pub fn create(db: &mut Connection) -> QueryResult<Self>" in source
        assert ".default_values()" in source
        assert "pub fn update" not in source
        assert "pub fn read(db: &mut Connection, param_post_id: i32, param_tag_id: i32)" in source
        assert "pub fn delete(db: &mut Connection, param_post_id: i32, param_tag_id: i32)" in source
        assert "use crate::models::posts::Post;" in source
        assert "use crate::models::tags::Tag;" in source

    def test_options_default_from_config(self, post_tags_table: TableDescriptor) -> None:
        config = GenerationConfig.model_validate(
            {"table_options": {"post_tags": {"autogenerated_columns": ["post_id", "tag_id"]}}}
        )
        assert "CreatePostTag" not in generate_for_table(post_tags_table, config)
        assert "CreatePostTag" in generate_for_table(post_tags_table, GenerationConfig())


class TestGenerationErrors:
    def test_missing_primary_key(self, default_config: GenerationConfig) -> None:
        table = TableDescriptor.model_validate({
            "name": "users",
            "columns": [{"name": "uid", "type": "Int4"}],
        })
        with pytest.raises(MissingPrimaryKeyColumnError):
            generate_for_table(table, default_config)

    def test_unsupported_type(self, default_config: GenerationConfig) -> None:
        table = TableDescriptor.model_validate({
            "name": "places",
            "columns": [{"name": "id", "type": "Int4"}, {"name": "shape", "type": "Geometry"}],
        })
        with pytest.raises(UnsupportedColumnTypeError):
            generate_for_table(table, default_config)

    def test_deterministic(
        self, posts_table: TableDescriptor, default_config: GenerationConfig
    ) -> None:
        assert generate_for_table(posts_table, default_config) == generate_for_table(
            posts_table, default_config
        )


# ===========================================================================
# Schema loading
# ===========================================================================


class TestLoadSchemaFile:
    def test_shipped_reference_schema(self, schema_example_path: pathlib.Path) -> None:
        schema, config = parse_raw_schema(load_schema_file(schema_example_path))
        assert schema.table_names == ["users", "posts", "tags", "post_tags"]
        assert config.connection_type == "diesel::PgConnection"
        assert config.schema_path == "crate::schema::"
        assert config.model_path == "crate::models::"

    def test_shipped_reference_schema_generates(
        self, schema_example_path: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        report = ModelGenerator().generate_from_file(schema_example_path, output_dir)
        assert report.success, report.summary()
        assert (output_dir / "post_tags" / "generated.rs").exists()

    def test_yaml(self, schema_yaml_path: pathlib.Path) -> None:
        raw = load_schema_file(schema_yaml_path)
        assert [t["name"] for t in raw["tables"]] == ["users", "posts", "tags", "post_tags"]

    def test_json(self, schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(schema_dict), encoding="utf-8")
        assert load_schema_file(path)["config"]["connection_type"] == "diesel::PgConnection"

    def test_diesel_schema(self, schema_rs_path: pathlib.Path) -> None:
        raw = load_schema_file(schema_rs_path)
        schema, config = parse_raw_schema(raw)
        assert schema.table_names == ["users", "posts", "tags", "post_tags"]
        assert config == GenerationConfig()

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_schema_file(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("tables: [\n", encoding="utf-8")
        with pytest.raises(SchemaParseError, match="Invalid YAML"):
            load_schema_file(path)

    def test_top_level_must_be_mapping(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(SchemaParseError, match="JSON object"):
            load_schema_file(path)


class TestParseRawSchema:
    def test_reference_schema(self, schema_dict: Dict[str, Any]) -> None:
        schema, config = parse_raw_schema(schema_dict)
        assert len(schema.tables) == 4
        assert config.options_for("tags").secondary_annotation_enabled is True
        assert config.options_for("users").autogenerated_column_names == frozenset(
            {"id", "created_at", "updated_at"}
        )

    def test_missing_tables_key(self) -> None:
        with pytest.raises(SchemaParseError, match="tables"):
            parse_raw_schema({"config": {}})

    def test_invalid_table(self) -> None:
        with pytest.raises(SchemaParseError, match="Schema validation failed"):
            parse_raw_schema({"tables": [{"name": "users", "columns": []}]})

    def test_invalid_config(self, schema_dict: Dict[str, Any]) -> None:
        schema_dict["config"]["unknown_setting"] = 1
        with pytest.raises(SchemaParseError, match="Config validation failed"):
            parse_raw_schema(schema_dict)


class TestConfigOverrides:
    def test_deep_merge(self, schema_dict: Dict[str, Any]) -> None:
        merged = apply_config_overrides(
            schema_dict,
            {"connection_type": "diesel::SqliteConnection", "default_table_options": {"tsync": True}},
        )
        config = merged["config"]
        assert config["connection_type"] == "diesel::SqliteConnection"
        assert config["default_table_options"]["tsync"] is True
        assert config["default_table_options"]["autogenerated_columns"] == ["id", "created_at", "updated_at"]
        assert "tsync" not in schema_dict["config"]["default_table_options"]

    def test_no_overrides_returns_input(self, schema_dict: Dict[str, Any]) -> None:
        assert apply_config_overrides(schema_dict, None) is schema_dict

    def test_missing_config_section(self) -> None:
        merged = apply_config_overrides({"tables": []}, {"model_path": "crate::db"})
        assert merged["config"] == {"model_path": "crate::db"}


# ===========================================================================
# ModelGenerator
# ===========================================================================


class TestModelGenerator:
    def test_in_memory_generation(self, schema_dict: Dict[str, Any]) -> None:
        schema, config = parse_raw_schema(schema_dict)
        report = ModelGenerator().generate(schema, config)

        assert report.success, report.summary()
        assert sorted(report.files) == [
            "mod.rs",
            "post_tags/generated.rs",
            "post_tags/mod.rs",
            "posts/generated.rs",
            "posts/mod.rs",
            "tags/generated.rs",
            "tags/mod.rs",
            "users/generated.rs",
            "users/mod.rs",
        ]
        assert report.generated_tables == ["users", "posts", "tags", "post_tags"]
        assert report.manifest is None

    def test_table_options_applied(self, schema_dict: Dict[str, Any]) -> None:
        schema, config = parse_raw_schema(schema_dict)
        files = ModelGenerator().generate(schema, config).files

        assert "#[tsync::tsync]" in files["tags/generated.rs"]
        assert "#[tsync::tsync]" not in files["posts/generated.rs"]
        assert "use crate::models::users::User;" in files["posts/generated.rs"]
        assert "belongs_to(User, foreign_key=author_id)" in files["posts/generated.rs"]
        # post_tags overrides the default autogenerated columns with none
        assert "pub struct CreatePostTag {" in files["post_tags/generated.rs"]
        assert "pub fn update" not in files["post_tags/generated.rs"]
        assert (
            "pub struct CreateUser {\n    pub email: String,\n    pub display_name: Option<String>,\n}"
        ) in files["users/generated.rs"]

    def test_failing_table_is_skipped(self, posts_table: TableDescriptor) -> None:
        broken = TableDescriptor.model_validate({
            "name": "broken",
            "columns": [{"name": "uid", "type": "Int4"}],
        })
        schema = SchemaDefinition(tables=[broken, posts_table])
        report = ModelGenerator().generate(schema, GenerationConfig())

        assert not report.success
        assert report.skipped_tables == ["broken"]
        assert report.generated_tables == ["posts"]
        assert "posts/generated.rs" in report.files
        assert "broken/generated.rs" not in report.files
        assert "pub mod broken;" not in report.files["mod.rs"]
        assert any("PK_COLUMN_NOT_FOUND" in e for e in report.validation_errors)

    def test_invalid_table_is_skipped_even_if_it_would_render(
        self, posts_table: TableDescriptor
    ) -> None:
        comments = TableDescriptor.model_validate({
            "name": "comments",
            "columns": [{"name": "id", "type": "Int4"}, {"name": "body", "type": "Text"}],
            "foreign_keys": [{"table": "posts", "column": "missing"}],
        })
        schema = SchemaDefinition(tables=[posts_table, comments])
        report = ModelGenerator().generate(schema, GenerationConfig())

        assert not report.success
        assert any("FK_COLUMN_NOT_FOUND" in e for e in report.validation_errors)
        assert report.skipped_tables == ["comments"]
        assert report.generated_tables == ["posts"]
        assert report.generation_errors == []
        assert sorted(report.files) == ["mod.rs", "posts/generated.rs", "posts/mod.rs"]

    def test_invalid_column_name_skips_table(self, posts_table: TableDescriptor) -> None:
        events = TableDescriptor.model_validate({
            "name": "events",
            "columns": [{"name": "id", "type": "Int4"}, {"name": "due-date", "type": "Date"}],
        })
        report = ModelGenerator().generate(
            SchemaDefinition(tables=[posts_table, events]), GenerationConfig()
        )
        assert report.skipped_tables == ["events"]
        assert "pub mod events;" not in report.files["mod.rs"]

    def test_strict_validation_aborts(self, posts_table: TableDescriptor) -> None:
        broken = TableDescriptor.model_validate({
            "name": "broken",
            "columns": [{"name": "uid", "type": "Int4"}],
        })
        schema = SchemaDefinition(tables=[broken, posts_table])
        report = ModelGenerator(strict_validation=True).generate(schema, GenerationConfig())

        assert not report.success
        assert report.files == {}

    def test_generate_from_yaml_file(
        self, schema_yaml_path: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        report = ModelGenerator().generate_from_file(schema_yaml_path, output_dir)

        assert report.success, report.summary()
        assert (output_dir / "mod.rs").read_text(encoding="utf-8").endswith(
            "pub mod post_tags;\npub mod posts;\npub mod tags;\npub mod users;\n"
        )
        assert (output_dir / "posts" / "mod.rs").exists()
        generated = (output_dir / "posts" / "generated.rs").read_text(encoding="utf-8")
        assert generated == report.files["posts/generated.rs"]
        assert report.manifest is not None
        assert report.manifest.total_files == 9

    def test_generate_from_diesel_schema(
        self, schema_rs_path: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        report = ModelGenerator().generate_from_file(
            schema_rs_path,
            output_dir,
            config_overrides={"default_table_options": {"autogenerated_columns": ["id", "created_at"]}},
        )

        assert report.success, report.summary()
        users = (output_dir / "users" / "generated.rs").read_text(encoding="utf-8")
        assert "pub struct CreateUser {\n    pub email: String,\n    pub display_name: Option<String>,\n}" in users

    def test_dry_run_writes_nothing(
        self, schema_yaml_path: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        report = ModelGenerator(dry_run=True).generate_from_file(schema_yaml_path, output_dir)

        assert report.success
        assert list(output_dir.iterdir()) == []
        assert report.manifest is not None and report.manifest.dry_run

    def test_export_warnings_reported(
        self, schema_yaml_path: pathlib.Path, output_dir: pathlib.Path
    ) -> None:
        (output_dir / "dieselgen-manifest.json").mkdir()
        report = ModelGenerator(write_manifest=True).generate_from_file(schema_yaml_path, output_dir)

        assert report.success, report.summary()
        assert len(report.export_warnings) == 1
        assert "Export Warnings (1)" in report.summary()

    def test_missing_input_file(self, tmp_path: pathlib.Path, output_dir: pathlib.Path) -> None:
        report = ModelGenerator().generate_from_file(tmp_path / "missing.rs", output_dir)
        assert not report.success
        assert report.input_errors
        assert report.step_metrics[0].success is False

    def test_fail_on_warnings(self, tmp_path: pathlib.Path, output_dir: pathlib.Path) -> None:
        path = tmp_path / "schema.yaml"
        path.write_text(yaml.safe_dump({
            "tables": [{
                "name": "posts",
                "columns": [{"name": "id", "type": "Int4"}, {"name": "user_id", "type": "Int4"}],
                "foreign_keys": [{"table": "users", "column": "user_id"}],
            }],
        }), encoding="utf-8")

        assert ModelGenerator().generate_from_file(path, output_dir).success
        report = ModelGenerator(fail_on_warnings=True).generate_from_file(path, output_dir)
        assert not report.success
        assert report.validation_warnings

    def test_summary(self, schema_dict: Dict[str, Any]) -> None:
        schema, config = parse_raw_schema(schema_dict)
        summary = ModelGenerator().generate(schema, config).summary()
        assert "SUCCESS" in summary
        assert "Code Generation" in summary
