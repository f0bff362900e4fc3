# File: dieselgen/generator.py
"""
dieselgen - Master Generation Pipeline (Orchestrator)
======================================================

Connects every phase together:

    Schema Input → Validation → Per-table Generation → File Export

Per table, generation runs the three variant passes (READ, CREATE, UPDATE),
composes each record's annotations, synthesises the operation set from the
variants' facts, resolves imports, and hands the whole structure to
``TemplateGenerator`` for rendering.

Workflow::

    1. Load schema from a YAML/JSON file or a Diesel ``schema.rs``.
    2. Parse into ``SchemaDefinition`` + ``GenerationConfig`` (models.py).
    3. Run the validation pipeline (validators.py).
    4. Generate ``<table>/generated.rs`` and ``<table>/mod.rs`` per table,
       plus the top-level ``mod.rs``.
    5. Hand off to ``ProjectExporter`` (exporters.py).
    6. Return a ``GenerationReport`` with metrics and status.

Error handling strategy:
    - Validation errors are collected and surfaced, not swallowed.  A table
      named by a validation error is not generated.
    - A ``GenerationError`` aborts only the table that raised it; the table
      is listed in ``skipped_tables`` and left out of the top-level mod.rs.
    - Export errors are recorded in the manifest.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from dieselgen.annotations import compose_annotations, compose_relational_metadata
from dieselgen.crud import OperationSet, VariantFacts, synthesize_operations
from dieselgen.errors import GenerationError, SchemaParseError
from dieselgen.exporters import ExportManifest, ExportResult, ProjectExporter
from dieselgen.imports import ImportBlock, resolve_imports
from dieselgen.models import (
    GeneratedField,
    GeneratedRecordType,
    GenerationConfig,
    SchemaDefinition,
    TableDescriptor,
    TableOptions,
    Variant,
)
from dieselgen.parser import parse_diesel_schema
from dieselgen.templates import TemplateGenerator, render_record
from dieselgen.utils import Timer, count_lines, read_file, table_to_module_name
from dieselgen.validators import ValidationResult, validate_full
from dieselgen.variants import rule_for, select_fields

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen.generator")

# Emission order of records within a generated file
RECORD_ORDER: Tuple[Variant, ...] = (Variant.READ, Variant.CREATE, Variant.UPDATE)

GENERATED_FILENAME: str = "generated.rs"
MOD_FILENAME: str = "mod.rs"


# ---------------------------------------------------------------------------
# Per-table generation
# ---------------------------------------------------------------------------


def build_record(
    table: TableDescriptor,
    variant: Variant,
    options: TableOptions,
) -> GeneratedRecordType:
    """
    Compose one record type: fields, capability set, relational metadata
    and its rendered source.

    Raises:
        UnsupportedColumnTypeError: an included column has no type mapping.
    """
    fields: Tuple[GeneratedField, ...] = select_fields(table, variant, options)
    record: GeneratedRecordType = GeneratedRecordType(
        identifier=rule_for(variant).identifier(table.base_name),
        variant=variant,
        table_name=table.name,
        fields=fields,
        annotations=compose_annotations(table, variant, fields),
        relational_metadata=compose_relational_metadata(table, variant),
        secondary_annotation_enabled=options.secondary_annotation_enabled,
    )
    return replace(record, source_text=render_record(record))


def build_records(
    table: TableDescriptor,
    options: TableOptions,
) -> Dict[Variant, GeneratedRecordType]:
    """All three records of *table*, keyed by variant, in emission order."""
    return {variant: build_record(table, variant, options) for variant in RECORD_ORDER}


def variant_facts(
    records: Mapping[Variant, GeneratedRecordType],
) -> Dict[Variant, VariantFacts]:
    return {
        variant: VariantFacts(identifier=record.identifier, has_fields=record.has_fields)
        for variant, record in records.items()
    }


def generate_for_table(
    table: TableDescriptor,
    config: GenerationConfig,
    options: Optional[TableOptions] = None,
) -> str:
    """
    Complete ``generated.rs`` source for one table.

    *options* defaults to ``config.options_for(table.name)``.

    Raises:
        MissingPrimaryKeyColumnError: a declared key column does not exist.
        UnsupportedColumnTypeError: a column type has no Rust mapping.
    """
    if options is None:
        options = config.options_for(table.name)

    records: Dict[Variant, GeneratedRecordType] = build_records(table, options)
    ops: OperationSet = synthesize_operations(table, options, variant_facts(records))
    imports: ImportBlock = resolve_imports(table, config)

    return TemplateGenerator(config).render_file(
        imports, [records[v] for v in RECORD_ORDER], ops
    )


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by every ``ModelGenerator`` entry point.

    ``files`` maps output-relative paths to generated contents, whether or
    not they were written to disk.
    """

    success: bool = False
    schema_source: str = ""
    output_directory: str = ""

    # Metrics
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_tables_processed: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)
    export_warnings: List[str] = field(default_factory=list)
    skipped_tables: List[str] = field(default_factory=list)
    generated_tables: List[str] = field(default_factory=list)

    files: Dict[str, str] = field(default_factory=dict)
    manifest: Optional[ExportManifest] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  dieselgen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        if self.schema_source:
            lines.append(f"  Schema:           {self.schema_source}")
        if self.output_directory:
            lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Tables processed: {self.total_tables_processed}")
        lines.append(f"  Files generated:  {self.total_files}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        sections: Tuple[Tuple[str, List[str], str], ...] = (
            ("Input Errors", self.input_errors, "✗"),
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "⚠"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("Export Errors", self.export_errors, "✗"),
            ("Export Warnings", self.export_warnings, "⚠"),
            ("Skipped Tables", self.skipped_tables, "⊘"),
        )
        for title, items, icon in sections:
            if not items:
                continue
            lines.append(f"{'─'*60}")
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Schema loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = json.loads(read_file(path))
    except json.JSONDecodeError as exc:
        raise SchemaParseError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise SchemaParseError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        data: Any = yaml.safe_load(read_file(path))
    except yaml.YAMLError as exc:
        raise SchemaParseError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise SchemaParseError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def _load_diesel_schema_file(path: Path) -> Dict[str, Any]:
    return {"tables": parse_diesel_schema(read_file(path))}


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Load a schema input file into a raw dictionary.

    Dispatches on the extension: ``.yaml``/``.yml`` (PyYAML), ``.json``, or
    ``.rs`` (Diesel ``schema.rs``; tables come back already parsed).

    Raises:
        FileNotFoundError: If the file doesn't exist.
        SchemaParseError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")
    if not path.is_file():
        raise SchemaParseError(f"Schema path is not a file: {path}")

    suffix: str = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)
    if suffix == ".rs":
        return _load_diesel_schema_file(path)

    logger.info("Unknown extension '%s' — trying JSON then YAML.", suffix)
    try:
        return _load_json_file(path)
    except SchemaParseError:
        return _load_yaml_file(path)


def _deep_merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


def apply_config_overrides(
    raw: Dict[str, Any],
    overrides: Optional[Mapping[str, Any]],
) -> Dict[str, Any]:
    """Return a copy of *raw* whose ``config`` section has *overrides* merged in."""
    if not overrides:
        return raw
    merged: Dict[str, Any] = dict(raw)
    merged["config"] = _deep_merge(dict(raw.get("config") or {}), overrides)
    return merged


def parse_raw_schema(raw: Dict[str, Any]) -> Tuple[SchemaDefinition, GenerationConfig]:
    """
    Parse a raw dictionary into validated Pydantic models.

    Expected top-level keys:
        - ``tables``: list of table descriptors
        - ``config`` (optional): the generation settings

    Raises:
        SchemaParseError: missing keys or Pydantic validation failure.
    """
    if "tables" not in raw:
        raise SchemaParseError(
            "Cannot find schema definition in input. Expected top-level key: 'tables'."
        )

    config_data: Any = raw.get("config")
    if config_data is None:
        logger.info("No generation config found in input — using defaults.")
        config_data = {}

    try:
        schema: SchemaDefinition = SchemaDefinition.model_validate(
            {"tables": raw["tables"], "source_file": raw.get("source_file")}
        )
    except PydanticValidationError as exc:
        raise SchemaParseError(f"Schema validation failed: {exc}") from exc

    try:
        config: GenerationConfig = GenerationConfig.model_validate(config_data)
    except PydanticValidationError as exc:
        raise SchemaParseError(f"Config validation failed: {exc}") from exc

    return schema, config


# ---------------------------------------------------------------------------
# ModelGenerator: master orchestrator
# ---------------------------------------------------------------------------


class ModelGenerator:
    """
    Master pipeline orchestrator.

    Usage::

        generator = ModelGenerator()

        # From a file, written to disk
        report = generator.generate_from_file(
            schema_path=Path("src/schema.rs"),
            output_dir=Path("src/models"),
        )

        # From in-memory objects, nothing written
        report = generator.generate(schema_def, gen_config)
        print(report.files["posts/generated.rs"])

    The generator is reusable: create once, call generate() many times.
    """

    def __init__(
        self,
        *,
        strict_validation: bool = False,
        fail_on_warnings: bool = False,
        clean_output: bool = False,
        dry_run: bool = False,
        write_manifest: bool = False,
    ) -> None:
        """
        Args:
            strict_validation: Abort before generating if validation reports
                any error.  Otherwise only the offending tables are skipped.
            fail_on_warnings: Treat validation warnings as errors.
            clean_output: Wipe the output directory before writing.
            dry_run: Generate and report, but write nothing.
            write_manifest: Also write a JSON manifest next to the files.
        """
        self._strict_validation: bool = strict_validation
        self._fail_on_warnings: bool = fail_on_warnings
        self._clean_output: bool = clean_output
        self._dry_run: bool = dry_run
        self._write_manifest: bool = write_manifest

        logger.debug(
            "ModelGenerator initialised: strict=%s, fail_on_warnings=%s, "
            "clean=%s, dry_run=%s.",
            strict_validation,
            fail_on_warnings,
            clean_output,
            dry_run,
        )

    # -----------------------------------------------------------------
    # Public: generate from file
    # -----------------------------------------------------------------

    def generate_from_file(
        self,
        schema_path: Path,
        output_dir: Path,
        *,
        config_overrides: Optional[Mapping[str, Any]] = None,
    ) -> GenerationReport:
        """Full pipeline: load file → validate → generate → export."""
        report: GenerationReport = GenerationReport()
        report.schema_source = str(schema_path)
        report.output_directory = str(output_dir.resolve())
        pipeline_start: float = time.perf_counter()

        with Timer("load_schema") as t_load:
            try:
                raw_data: Dict[str, Any] = load_schema_file(schema_path)
                raw_data = apply_config_overrides(raw_data, config_overrides)
                raw_data.setdefault("source_file", str(schema_path))
                schema, config = parse_raw_schema(raw_data)
            except (FileNotFoundError, SchemaParseError) as exc:
                load_error: Optional[str] = str(exc)
            else:
                load_error = None

        if load_error is not None:
            report.input_errors.append(load_error)
            report.step_metrics.append(GenerationStepMetric(
                step_name="Load Schema",
                success=False,
                elapsed_seconds=t_load.elapsed,
                detail=load_error,
            ))
            logger.error("Could not load %s: %s", schema_path, load_error)
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        schema.parsed_at = datetime.now(timezone.utc)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Load Schema",
            success=True,
            elapsed_seconds=t_load.elapsed,
            detail=f"{len(schema.tables)} tables from {schema_path.name}",
        ))
        logger.info("Loaded %d table(s) from %s.", len(schema.tables), schema_path)

        return self._run_pipeline(schema, config, output_dir, report, pipeline_start)

    # -----------------------------------------------------------------
    # Public: generate from in-memory objects
    # -----------------------------------------------------------------

    def generate(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        output_dir: Optional[Path] = None,
    ) -> GenerationReport:
        """
        Pipeline from pre-parsed objects.  Without *output_dir* nothing is
        exported; the contents are available in ``report.files``.
        """
        report: GenerationReport = GenerationReport()
        report.schema_source = schema.source_file or ""
        if output_dir is not None:
            report.output_directory = str(output_dir.resolve())
        return self._run_pipeline(schema, config, output_dir, report, time.perf_counter())

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        output_dir: Optional[Path],
        report: GenerationReport,
        pipeline_start: float,
    ) -> GenerationReport:
        validation_ok, invalid_tables = self._step_validate(schema, config, report)
        if not validation_ok and self._strict_validation:
            logger.error("Strict validation enabled — nothing generated.")
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        report.files = self._step_generate(schema, config, report, invalid_tables)

        if output_dir is not None:
            if report.generated_tables:
                self._step_export(report.files, output_dir, report)
            else:
                report.generation_errors.append("No tables were generated — aborting export.")

        return self._finalise_report(report, time.perf_counter() - pipeline_start)

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        report: GenerationReport,
    ) -> Tuple[bool, Set[str]]:
        """
        Whether validation passed (warnings only count with ``fail_on_warnings``),
        and the tables named by validation errors.
        """
        with Timer("validation") as t:
            result: ValidationResult = validate_full(schema, config)

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)

        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.has_warnings:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate Schema",
            success=result.is_valid,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))

        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)

        if result.has_errors:
            for err in result.errors:
                logger.error("  ✗ %s", err)
            return False, result.failed_tables

        return not (self._fail_on_warnings and result.has_warnings), set()

    # -----------------------------------------------------------------
    # Pipeline step: Code generation
    # -----------------------------------------------------------------

    def _step_generate(
        self,
        schema: SchemaDefinition,
        config: GenerationConfig,
        report: GenerationReport,
        invalid_tables: Set[str],
    ) -> Dict[str, str]:
        """
        Generate every table in declaration order.

        Tables in *invalid_tables* and tables raising ``GenerationError`` are
        skipped; the rest are still generated.
        """
        generated_files: Dict[str, str] = {}
        modules: List[str] = []

        with Timer("code_generation") as t:
            templates: TemplateGenerator = TemplateGenerator(config)

            for table in schema.tables:
                if table.name in invalid_tables:
                    report.skipped_tables.append(table.name)
                    logger.error("Skipping table '%s': failed validation.", table.name)
                    continue
                try:
                    content: str = generate_for_table(table, config)
                except GenerationError as exc:
                    report.generation_errors.append(f"{table.name}: {exc}")
                    report.skipped_tables.append(table.name)
                    logger.error("Skipping table '%s': %s", table.name, exc)
                    continue

                module: str = table_to_module_name(table.name)
                generated_files[f"{module}/{GENERATED_FILENAME}"] = content
                generated_files[f"{module}/{MOD_FILENAME}"] = templates.render_table_mod()
                modules.append(module)
                report.generated_tables.append(table.name)
                logger.debug("Generated table '%s' → %s/.", table.name, module)

            if modules:
                generated_files[MOD_FILENAME] = templates.render_models_mod(modules)

        report.total_tables_processed = len(report.generated_tables)
        report.total_files = len(generated_files)
        report.total_lines = sum(count_lines(c) for c in generated_files.values())
        report.total_bytes = sum(len(c.encode("utf-8")) for c in generated_files.values())

        detail_str: str = (
            f"{len(generated_files)} files, "
            f"~{report.total_lines:,} lines, "
            f"{len(report.generated_tables)}/{len(schema.tables)} tables"
        )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Code Generation",
            success=not report.skipped_tables,
            elapsed_seconds=t.elapsed,
            detail=detail_str,
        ))
        logger.info("Code generation complete: %s in %.3fs.", detail_str, t.elapsed)

        return generated_files

    # -----------------------------------------------------------------
    # Pipeline step: Export
    # -----------------------------------------------------------------

    def _step_export(
        self,
        generated_files: Dict[str, str],
        output_dir: Path,
        report: GenerationReport,
    ) -> None:
        with Timer("export") as t:
            exporter: ProjectExporter = ProjectExporter(
                output_dir,
                clean_before_export=self._clean_output,
                atomic_writes=True,
                generate_manifest=self._write_manifest,
                dry_run=self._dry_run,
            )
            export_result: ExportResult = exporter.export(generated_files)

        report.total_files = export_result.manifest.total_files
        report.total_bytes = export_result.manifest.total_bytes
        report.total_lines = export_result.manifest.total_lines
        report.export_errors.extend(export_result.errors)
        report.export_warnings.extend(export_result.warnings)
        report.manifest = export_result.manifest

        report.step_metrics.append(GenerationStepMetric(
            step_name="Dry Run Export" if self._dry_run else "Export to Filesystem",
            success=export_result.success,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{export_result.manifest.total_files} files, "
                f"{export_result.manifest.total_bytes:,} bytes"
            ),
        ))

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    def _finalise_report(
        self,
        report: GenerationReport,
        total_elapsed: float,
    ) -> GenerationReport:
        report.total_elapsed_seconds = total_elapsed
        report.success = not (
            report.input_errors
            or report.validation_errors
            or report.generation_errors
            or report.export_errors
            or (self._fail_on_warnings and report.validation_warnings)
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RECORD_ORDER",
    "GENERATED_FILENAME",
    "MOD_FILENAME",
    "build_record",
    "build_records",
    "variant_facts",
    "generate_for_table",
    "GenerationStepMetric",
    "GenerationReport",
    "load_schema_file",
    "apply_config_overrides",
    "parse_raw_schema",
    "ModelGenerator",
]

logger.debug("dieselgen.generator loaded.")
