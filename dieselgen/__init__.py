# File: dieselgen/__init__.py
"""
dieselgen — Diesel Model & CRUD Generator
==========================================

Turns table descriptors (a Diesel ``schema.rs``, or YAML/JSON) into one Rust
module per table: the Read, Create and Update record types with their
Diesel/serde derives, and a ``create / read / paginate / update / delete``
function set whose parameters follow the table's primary key.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ ModelGenerator │────▶│ TemplateGenerator│
    │   (cli.py)   │     │ (generator.py) │     │  (templates.py)  │
    └──────────────┘     └───────┬────────┘     └──────────────────┘
                                 │
          ┌──────────┬───────────┼───────────┬──────────┬──────────┐
          ▼          ▼           ▼           ▼          ▼          ▼
     ┌────────┐ ┌─────────┐ ┌──────────┐ ┌───────┐ ┌─────────┐ ┌─────────┐
     │ parser │ │variants │ │annotation│ │ crud  │ │ imports │ │exporters│
     └────────┘ └─────────┘ └──────────┘ └───────┘ └─────────┘ └─────────┘

Usage::

    # As a library
    from dieselgen import TableDescriptor, GenerationConfig, generate_for_table
    print(generate_for_table(table, GenerationConfig()))

    # From the command line
    dieselgen -i src/schema.rs -o src/models -g id,created_at

Public API:
    - ModelGenerator      — Batch orchestrator
    - generate_for_table  — One table → generated.rs source
    - TableDescriptor     — Table facts (columns, primary key, foreign keys)
    - TableOptions        — Per-table options
    - GenerationConfig    — Run-wide settings
    - parse_diesel_schema — schema.rs → TableDescriptor list
    - validate_full       — Schema validation entry point
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from dieselgen.errors import (
    GenerationError,
    MissingPrimaryKeyColumnError,
    SchemaParseError,
    UnsupportedColumnTypeError,
)
from dieselgen.models import (
    Capability,
    Column,
    ForeignKey,
    GeneratedField,
    GeneratedRecordType,
    GenerationConfig,
    RelationalMetadata,
    SchemaDefinition,
    TableDescriptor,
    TableOptions,
    Variant,
)
from dieselgen.variants import select_fields
from dieselgen.annotations import compose_annotations, compose_relational_metadata
from dieselgen.crud import OperationKind, OperationSet, synthesize_operations
from dieselgen.parser import parse_diesel_schema
from dieselgen.validators import ValidationResult, validate_full
from dieselgen.templates import TemplateGenerator
from dieselgen.exporters import ExportManifest, ExportResult, ProjectExporter
from dieselgen.generator import (
    GenerationReport,
    ModelGenerator,
    build_record,
    generate_for_table,
)

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Orchestration
    "ModelGenerator",
    "GenerationReport",
    "generate_for_table",
    "build_record",
    # Errors
    "GenerationError",
    "MissingPrimaryKeyColumnError",
    "UnsupportedColumnTypeError",
    "SchemaParseError",
    # Models
    "Variant",
    "Capability",
    "Column",
    "ForeignKey",
    "TableDescriptor",
    "TableOptions",
    "GenerationConfig",
    "SchemaDefinition",
    "GeneratedField",
    "GeneratedRecordType",
    "RelationalMetadata",
    # Engine
    "select_fields",
    "compose_annotations",
    "compose_relational_metadata",
    "OperationKind",
    "OperationSet",
    "synthesize_operations",
    # Input
    "parse_diesel_schema",
    "validate_full",
    "ValidationResult",
    # Rendering & export
    "TemplateGenerator",
    "ProjectExporter",
    "ExportManifest",
    "ExportResult",
]
