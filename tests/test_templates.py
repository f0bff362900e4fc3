"""
tests/test_templates.py
Unit tests for dieselgen.templates (Rust rendering).

Tests cover:
- Record rendering (derive line, diesel attribute, field lines, tsync)
- Import block rendering
- Operation block rendering (create/read/paginate/update/delete)
- Module files (mod.rs)
"""

from __future__ import annotations

from typing import Dict

from dieselgen.crud import OperationSet, VariantFacts, synthesize_operations
from dieselgen.generator import build_record
from dieselgen.imports import resolve_imports
from dieselgen.models import (
    GeneratedRecordType,
    GenerationConfig,
    TableDescriptor,
    TableOptions,
    Variant,
)
from dieselgen.templates import (
    FILE_SIGNATURE,
    TSYNC_ATTRIBUTE,
    TemplateGenerator,
    render_imports,
    render_pagination_result,
    render_record,
    rust_ident,
)


def _ops(table: TableDescriptor, options: TableOptions) -> OperationSet:
    records: Dict[Variant, GeneratedRecordType] = {
        v: build_record(table, v, options) for v in Variant
    }
    facts = {v: VariantFacts(r.identifier, r.has_fields) for v, r in records.items()}
    return synthesize_operations(table, options, facts)


# ===========================================================================
# Records
# ===========================================================================


class TestRenderRecord:
    def test_read_record(self, posts_table: TableDescriptor, posts_options: TableOptions) -> None:
        record = build_record(posts_table, Variant.READ, posts_options)
        assert record.source_text == "\n".join([
            "#[derive(Debug, Serialize, Deserialize, Clone, Queryable, Insertable, AsChangeset)]",
            "#[diesel(table_name=posts, primary_key(id))]",
            "pub struct Post {",
            "    pub id: i32,",
            "    pub title: String,",
            "    pub body: Option<String>,",
            "}",
        ])

    def test_update_record_single_option_layer(
        self, posts_table: TableDescriptor, posts_options: TableOptions
    ) -> None:
        record = build_record(posts_table, Variant.UPDATE, posts_options)
        assert "#[diesel(table_name=posts)]" in record.source_text
        assert "    pub title: Option<String>," in record.source_text
        assert "    pub body: Option<String>," in record.source_text
        assert "Option<Option<" not in record.source_text

    def test_empty_record_renders_nothing(
        self, post_tags_table: TableDescriptor, post_tags_options: TableOptions
    ) -> None:
        record = build_record(post_tags_table, Variant.CREATE, post_tags_options)
        assert not record.has_fields
        assert render_record(record) == ""
        assert record.source_text == ""

    def test_belongs_to_clauses(self, post_tags_table: TableDescriptor) -> None:
        record = build_record(post_tags_table, Variant.READ, TableOptions())
        assert (
            "#[diesel(table_name=post_tags, primary_key(post_id,tag_id), "
            "belongs_to(Post, foreign_key=post_id), belongs_to(Tag, foreign_key=tag_id))]"
        ) in record.source_text
        assert (
            "#[derive(Debug, Serialize, Deserialize, Clone, Queryable, Insertable, "
            "Identifiable, Associations)]"
        ) in record.source_text

    def test_tsync_line_comes_first(self, posts_table: TableDescriptor) -> None:
        options = TableOptions(secondary_annotation_enabled=True)
        record = build_record(posts_table, Variant.CREATE, options)
        assert record.source_text.splitlines()[0] == TSYNC_ATTRIBUTE

    def test_keyword_column_is_escaped(self) -> None:
        table = TableDescriptor.model_validate({
            "name": "events",
            "columns": [{"name": "id", "type": "Int4"}, {"name": "type", "type": "Text"}],
        })
        record = build_record(table, Variant.READ, TableOptions())
        assert "    pub r#type: String," in record.source_text
        assert rust_ident("title") == "title"


# ===========================================================================
# Imports
# ===========================================================================


class TestRenderImports:
    def test_import_block(self, post_tags_table: TableDescriptor) -> None:
        text = render_imports(resolve_imports(post_tags_table, GenerationConfig()))
        assert text == "\n".join([
            "use crate::diesel::*;",
            "use crate::schema::*;",
            "use diesel::QueryResult;",
            "use serde::{Deserialize, Serialize};",
            "use crate::models::posts::Post;",
            "use crate::models::tags::Tag;",
            "",
            "type Connection = diesel::PgConnection;",
        ])

    def test_custom_connection_type(self, posts_table: TableDescriptor) -> None:
        config = GenerationConfig(connection_type="diesel::SqliteConnection")
        text = render_imports(resolve_imports(posts_table, config))
        assert text.endswith("type Connection = diesel::SqliteConnection;")


# ===========================================================================
# Operations
# ===========================================================================


class TestRenderOperations:
    def test_posts_create_read_update_delete(
        self, posts_table: TableDescriptor, posts_options: TableOptions
    ) -> None:
        text = TemplateGenerator(GenerationConfig()).render_operations(
            _ops(posts_table, posts_options)
        )
        assert "impl Post {" in text
        assert "    pub fn create(db: &mut Connection, item: &CreatePost) -> QueryResult<Self> {" in text
        assert "        insert_into(posts).values(item).get_result::<Self>(db)" in text
        assert "    pub fn read(db: &mut Connection, param_id: i32) -> QueryResult<Self> {" in text
        assert "        posts.filter(id.eq(param_id)).first::<Self>(db)" in text
        assert (
            "    pub fn update(db: &mut Connection, param_id: i32, item: &UpdatePost) "
            "-> QueryResult<Self> {"
        ) in text
        assert "        diesel::update(posts.filter(id.eq(param_id))).set(item).get_result(db)" in text
        assert "    pub fn delete(db: &mut Connection, param_id: i32) -> QueryResult<usize> {" in text
        assert "        diesel::delete(posts.filter(id.eq(param_id))).execute(db)" in text
        assert "        use crate::schema::posts::dsl::*;" in text

    def test_join_table_operations(
        self, post_tags_table: TableDescriptor, post_tags_options: TableOptions
    ) -> None:
        text = TemplateGenerator(GenerationConfig()).render_operations(
            _ops(post_tags_table, post_tags_options)
        )
        assert "    pub fn create(db: &mut Connection) -> QueryResult<Self> {" in text
        assert "        insert_into(post_tags).default_values().get_result::<Self>(db)" in text
        assert "pub fn update" not in text
        assert (
            "    pub fn read(db: &mut Connection, param_post_id: i32, param_tag_id: i32) "
            "-> QueryResult<Self> {"
        ) in text
        assert (
            "post_tags.filter(post_id.eq(param_post_id)).filter(tag_id.eq(param_tag_id))"
            ".first::<Self>(db)"
        ) in text
        assert (
            "diesel::delete(post_tags.filter(post_id.eq(param_post_id))"
            ".filter(tag_id.eq(param_tag_id))).execute(db)"
        ) in text

    def test_filters_follow_declared_key_order(self, comments_table: TableDescriptor) -> None:
        text = TemplateGenerator(GenerationConfig()).render_operations(
            _ops(comments_table, TableOptions())
        )
        assert "param_seq: i64, param_post_id: i32" in text
        assert "comments.filter(seq.eq(param_seq)).filter(post_id.eq(param_post_id))" in text

    def test_paginate(self, posts_table: TableDescriptor, posts_options: TableOptions) -> None:
        text = TemplateGenerator(GenerationConfig()).render_operations(
            _ops(posts_table, posts_options)
        )
        assert (
            "    pub fn paginate(db: &mut Connection, page: i64, page_size: i64) "
            "-> QueryResult<PaginationResult<Self>> {"
        ) in text
        assert "        let page_size = if page_size < 1 { 1 } else { page_size };" in text
        assert "        let total_items = posts.count().get_result(db)?;" in text
        assert "posts.limit(page_size).offset(page * page_size).load::<Self>(db)?;" in text
        assert "num_pages: total_items / page_size + i64::from(total_items % page_size != 0)" in text

    def test_operation_order(self, posts_table: TableDescriptor, posts_options: TableOptions) -> None:
        text = TemplateGenerator(GenerationConfig()).render_operations(
            _ops(posts_table, posts_options)
        )
        positions = [
            text.index(f"pub fn {name}(")
            for name in ("create", "read", "paginate", "update", "delete")
        ]
        assert positions == sorted(positions)


class TestPaginationResult:
    def test_struct_shape(self) -> None:
        text = render_pagination_result(False)
        assert "pub struct PaginationResult<T> {" in text
        for line in (
            "pub items: Vec<T>,",
            "pub total_items: i64,",
            "pub page: i64,",
            "pub page_size: i64,",
            "pub num_pages: i64,",
        ):
            assert line in text
        assert TSYNC_ATTRIBUTE not in text

    def test_tsync(self) -> None:
        assert render_pagination_result(True).startswith(TSYNC_ATTRIBUTE)


class TestModuleFiles:
    def test_table_mod(self) -> None:
        text = TemplateGenerator.render_table_mod()
        assert text.startswith(FILE_SIGNATURE)
        assert "pub use generated::*;\npub mod generated;" in text

    def test_models_mod_sorted(self) -> None:
        text = TemplateGenerator.render_models_mod(["users", "post_tags", "posts"])
        assert text.splitlines()[2:] == ["pub mod post_tags;", "pub mod posts;", "pub mod users;"]
