# File: dieselgen/cli.py
"""
dieselgen - Command-Line Interface
===================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Generate models from a Diesel schema.rs
    dieselgen -i src/schema.rs -o src/models

    # Custom connection type, columns filled in by the database, tsync
    dieselgen -i src/schema.rs -o src/models \\
        -c "diesel::r2d2::PooledConnection<diesel::r2d2::ConnectionManager<diesel::PgConnection>>" \\
        -g id,created_at,updated_at --tsync

    # Validate only (no file output)
    python -m dieselgen -i schema.yaml --validate-only

Exit codes:
    0 — success
    1 — validation error
    2 — generation error
    3 — export error
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``dieselgen`` logger hierarchy.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG, negative = ERROR.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    formatter: logging.Formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")
    handler.setFormatter(formatter)

    root_logger: logging.Logger = logging.getLogger("dieselgen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from dieselgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="dieselgen",
        description=(
            "dieselgen — Diesel model & CRUD generator.\n\n"
            "Reads table descriptors (a Diesel schema.rs, or YAML/JSON) and "
            "writes one Rust module per table with Read/Create/Update records "
            "and create/read/paginate/update/delete functions."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -i src/schema.rs -o src/models\n"
            "  %(prog)s -i src/schema.rs -o src/models -g id,created_at --tsync\n"
            "  %(prog)s -i schema.yaml --validate-only\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"dieselgen v{__version__}",
    )

    # --- Input / output ---
    parser.add_argument(
        "-i", "--input",
        type=str,
        required=True,
        metavar="PATH",
        help="Schema input: a Diesel schema.rs, or a YAML/JSON descriptor file.",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Output directory for the generated modules. "
        "Required unless --validate-only is set.",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the schema without generating code.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run the full pipeline but don't write files to disk.",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "-c", "--connection-type",
        type=str,
        default=None,
        metavar="TYPE",
        help="Rust type aliased as `Connection` (default: diesel::PgConnection).",
    )
    config_group.add_argument(
        "-g", "--autogenerated-columns",
        action="append",
        default=None,
        metavar="COLS",
        help="Comma-separated columns filled in by the database; left out of "
        "Create records.  May be repeated.",
    )
    config_group.add_argument(
        "--tsync",
        action="store_true",
        default=None,
        help="Add #[tsync::tsync] to generated types.",
    )
    config_group.add_argument(
        "--schema-path",
        type=str,
        default=None,
        metavar="PATH",
        help="Rust path of the Diesel schema module (default: crate::schema::).",
    )
    config_group.add_argument(
        "--model-path",
        type=str,
        default=None,
        metavar="PATH",
        help="Rust path of the generated models module (default: crate::models::).",
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--clean",
        action="store_true",
        default=False,
        help="Clean output directory before generation.",
    )
    behaviour_group.add_argument(
        "--strict",
        action="store_true",
        default=False,
        help="Abort on any validation error instead of skipping bad tables.",
    )
    behaviour_group.add_argument(
        "--fail-on-warnings",
        action="store_true",
        default=False,
        help="Treat validation warnings as errors.",
    )
    behaviour_group.add_argument(
        "--manifest",
        action="store_true",
        default=False,
        help="Also write dieselgen-manifest.json with per-file checksums.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config override builder
# ---------------------------------------------------------------------------


def _split_columns(values: Optional[List[str]]) -> List[str]:
    columns: List[str] = []
    for value in values or []:
        columns.extend(c.strip() for c in value.split(",") if c.strip())
    return columns


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, Any] = {}

    if args.connection_type is not None:
        overrides["connection_type"] = args.connection_type
    if args.schema_path is not None:
        overrides["schema_path"] = args.schema_path
    if args.model_path is not None:
        overrides["model_path"] = args.model_path

    table_defaults: Dict[str, Any] = {}
    if args.autogenerated_columns is not None:
        table_defaults["autogenerated_columns"] = _split_columns(args.autogenerated_columns)
    if args.tsync:
        table_defaults["tsync"] = True
    if table_defaults:
        overrides["default_table_options"] = table_defaults

    return overrides


# ---------------------------------------------------------------------------
# Validate-only mode
# ---------------------------------------------------------------------------


def _run_validate_only(schema_path: Path, args: argparse.Namespace) -> int:
    """Run validation only (no code generation)."""
    from dieselgen.errors import SchemaParseError
    from dieselgen.generator import apply_config_overrides, load_schema_file, parse_raw_schema
    from dieselgen.utils import Timer
    from dieselgen.validators import validate_full

    logger.info("Running validation-only mode for: %s", schema_path)

    try:
        raw_data = apply_config_overrides(
            load_schema_file(schema_path), _build_config_overrides(args)
        )
        schema, config = parse_raw_schema(raw_data)
    except (FileNotFoundError, SchemaParseError) as exc:
        logger.error("Failed to load schema: %s", exc)
        return EXIT_INPUT_ERROR

    with Timer("validation") as t:
        result = validate_full(schema, config)

    print(f"\n{'='*50}")
    print("  Schema Validation Report")
    print(f"{'='*50}")
    print(f"  File:     {schema_path.name}")
    print(f"  Tables:   {len(schema.tables)}")
    print(f"  Time:     {t.elapsed:.3f}s")
    print(f"  Valid:    {'Yes' if result.is_valid else 'No'}")

    if result.errors:
        print(f"\n  Errors ({len(result.errors)}):")
        for err in result.errors:
            print(f"    ✗ {err}")

    if result.warnings:
        print(f"\n  Warnings ({len(result.warnings)}):")
        for warn in result.warnings:
            print(f"    ⚠ {warn}")

    if result.is_valid and not result.warnings:
        print("\n  ✅ All validations passed!")

    print(f"{'='*50}\n")

    if not result.is_valid or (args.fail_on_warnings and result.has_warnings):
        return EXIT_VALIDATION_ERROR
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Full generation mode
# ---------------------------------------------------------------------------


def _run_generation(
    schema_path: Path,
    output_dir: Path,
    args: argparse.Namespace,
) -> int:
    """Run the full generation pipeline and map the report to an exit code."""
    from dieselgen.generator import GenerationReport, ModelGenerator

    config_overrides: Dict[str, Any] = _build_config_overrides(args)

    generator: ModelGenerator = ModelGenerator(
        strict_validation=args.strict,
        fail_on_warnings=args.fail_on_warnings,
        clean_output=args.clean,
        dry_run=args.dry_run,
        write_manifest=args.manifest,
    )

    if args.dry_run:
        logger.info("Dry-run mode: files will not be written to disk.")

    report: GenerationReport = generator.generate_from_file(
        schema_path=schema_path,
        output_dir=output_dir,
        config_overrides=config_overrides or None,
    )

    if not args.quiet:
        print(report.summary())

    if not report.success:
        if report.input_errors:
            return EXIT_INPUT_ERROR
        if report.validation_errors or (
            args.fail_on_warnings and report.validation_warnings
        ):
            return EXIT_VALIDATION_ERROR
        if report.generation_errors:
            return EXIT_GENERATION_ERROR
        if report.export_errors:
            return EXIT_EXPORT_ERROR
        return EXIT_GENERATION_ERROR

    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    schema_path: Path = Path(args.input).resolve()

    if not schema_path.exists():
        logger.error("Schema file not found: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    if not schema_path.is_file():
        logger.error("Schema path is not a file: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    if args.validate_only:
        sys.exit(_run_validate_only(schema_path, args))

    if args.output is None:
        logger.error(
            "Output directory is required for generation. "
            "Use -o/--output or --validate-only."
        )
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    output_dir: Path = Path(args.output).resolve()

    logger.info("Schema:  %s", schema_path)
    logger.info("Output:  %s", output_dir)
    logger.info("Clean:   %s", args.clean)
    logger.info("Strict:  %s", args.strict)

    exit_code: int = _run_generation(schema_path, output_dir, args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("dieselgen.cli loaded.")
