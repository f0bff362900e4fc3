# File: dieselgen/exporters.py
"""
dieselgen - Output Exporter (File-System Manager)
==================================================

Responsible for:
    1. Optionally cleaning the output directory.
    2. Writing generated Rust files atomically (write-to-temp then rename).
    3. Producing an export manifest with checksums.

Each file is written atomically on its own; a failure part-way through a
batch leaves the already-written files in place and is reported in the
``ExportResult``.

In dry-run mode nothing touches the disk, but the manifest is still built
from the would-be contents.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

from dieselgen.utils import Timer, clean_directory, count_lines, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dieselgen.exporters")

MANIFEST_FILENAME: str = "dieselgen-manifest.json"


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    relative_path: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Every exported file with size, line count and checksum."""

    generator_version: str = ""
    export_timestamp: str = ""
    output_directory: str = ""
    dry_run: bool = False
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert manifest to a JSON-serialisable dictionary."""
        return {
            "generator_version": self.generator_version,
            "export_timestamp": self.export_timestamp,
            "output_directory": self.output_directory,
            "dry_run": self.dry_run,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [
                {
                    "relative_path": f.relative_path,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                }
                for f in self.files
            ],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Returned by ``ProjectExporter.export()``."""

    success: bool
    manifest: ExportManifest
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    elapsed_seconds: float


# ---------------------------------------------------------------------------
# ProjectExporter class
# ---------------------------------------------------------------------------


class ProjectExporter:
    """
    Writes generated files under an output directory.

    Usage::

        exporter = ProjectExporter(Path("src/models"))
        result = exporter.export({"posts/generated.rs": "...", "mod.rs": "..."})
        print(result.manifest.to_json())

    Not thread-safe.  Use one exporter per output directory.
    """

    def __init__(
        self,
        output_dir: Path,
        *,
        clean_before_export: bool = False,
        atomic_writes: bool = True,
        generate_manifest: bool = False,
        dry_run: bool = False,
    ) -> None:
        """
        Args:
            output_dir: Root directory for output files.
            clean_before_export: Wipe the output directory first.
            atomic_writes: Use the write-to-temp + rename pattern.
            generate_manifest: Also write ``dieselgen-manifest.json``.
            dry_run: Compute everything, write nothing.
        """
        self._output_dir: Path = output_dir.resolve()
        self._clean_before_export: bool = clean_before_export
        self._atomic_writes: bool = atomic_writes
        self._generate_manifest: bool = generate_manifest
        self._dry_run: bool = dry_run

        self._errors: List[str] = []
        self._warnings: List[str] = []
        self._file_records: List[FileRecord] = []

        logger.debug(
            "ProjectExporter initialised: output_dir=%s, atomic=%s, dry_run=%s.",
            self._output_dir,
            self._atomic_writes,
            self._dry_run,
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, generated_files: Dict[str, str]) -> ExportResult:
        """
        Export *generated_files* (relative path → content).

        Files are written in sorted path order so repeated runs produce the
        same manifest.
        """
        with Timer("export") as timer:
            try:
                self._pre_export_cleanup()
                self._write_generated_files(generated_files)
                if self._generate_manifest:
                    self._write_manifest_file()
            except OSError as exc:
                error_msg: str = f"Fatal export error: {type(exc).__name__}: {exc}"
                self._errors.append(error_msg)
                logger.error(error_msg, exc_info=True)

        manifest: ExportManifest = self._build_manifest()
        success: bool = not self._errors

        if success:
            logger.info(
                "Export completed%s: %d files, %d bytes, %.3fs.",
                " (dry run)" if self._dry_run else "",
                manifest.total_files,
                manifest.total_bytes,
                timer.elapsed,
            )
        else:
            logger.error(
                "Export completed with %d error(s) in %.3fs.",
                len(self._errors),
                timer.elapsed,
            )

        return ExportResult(
            success=success,
            manifest=manifest,
            errors=tuple(self._errors),
            warnings=tuple(self._warnings),
            elapsed_seconds=timer.elapsed,
        )

    # -----------------------------------------------------------------
    # Internal: directory management
    # -----------------------------------------------------------------

    def _pre_export_cleanup(self) -> None:
        if not self._clean_before_export or not self._output_dir.exists():
            return
        if self._dry_run:
            logger.info("Dry run: would clean %s.", self._output_dir)
            return
        logger.info("Cleaning output directory: %s", self._output_dir)
        clean_directory(self._output_dir)

    # -----------------------------------------------------------------
    # Internal: file writing
    # -----------------------------------------------------------------

    def _write_generated_files(self, generated_files: Dict[str, str]) -> None:
        for rel_path in sorted(generated_files):
            try:
                record: FileRecord = self._write_single_file(
                    rel_path, generated_files[rel_path]
                )
                self._file_records.append(record)
            except OSError as exc:
                error_msg: str = f"Failed to write {rel_path}: {type(exc).__name__}: {exc}"
                self._errors.append(error_msg)
                logger.error(error_msg)

        logger.info(
            "%s %d generated files under %s.",
            "Would write" if self._dry_run else "Wrote",
            len(self._file_records),
            self._output_dir,
        )

    def _write_single_file(self, rel_path: str, content: str) -> FileRecord:
        full_path: Path = self._output_dir / rel_path

        if self._dry_run:
            size_bytes: int = len(content.encode("utf-8"))
        else:
            size_bytes = write_file(full_path, content, atomic=self._atomic_writes)

        logger.debug("Exported %s (%d bytes).", rel_path, size_bytes)
        return FileRecord(
            relative_path=rel_path,
            absolute_path=str(full_path),
            size_bytes=size_bytes,
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )

    # -----------------------------------------------------------------
    # Internal: manifest
    # -----------------------------------------------------------------

    def _build_manifest(self) -> ExportManifest:
        import dieselgen

        return ExportManifest(
            generator_version=dieselgen.__version__,
            export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            output_directory=str(self._output_dir),
            dry_run=self._dry_run,
            total_files=len(self._file_records),
            total_bytes=sum(r.size_bytes for r in self._file_records),
            total_lines=sum(r.line_count for r in self._file_records),
            files=list(self._file_records),
        )

    def _write_manifest_file(self) -> None:
        manifest: ExportManifest = self._build_manifest()
        try:
            record: FileRecord = self._write_single_file(
                MANIFEST_FILENAME, manifest.to_json() + "\n"
            )
        except OSError as exc:
            self._warnings.append(f"Could not write manifest: {exc}")
            logger.warning("Failed to write manifest: %s", exc)
            return
        self._file_records.append(record)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MANIFEST_FILENAME",
    "ProjectExporter",
    "ExportManifest",
    "ExportResult",
    "FileRecord",
]

logger.debug("dieselgen.exporters loaded.")
