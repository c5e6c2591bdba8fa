"""Output Materializer - writes workflow files and resolves conflicts.

Manifesto:
    Generated files land in a directory users already care about, so
    every write must be explainable afterwards:
    - **Never silently clobber:** existing files are backed up, skipped,
      merged or (explicitly) overwritten
    - **Best effort per file:** one failing file does not stop the others,
      but it does fail the result
    - **Dry run touches nothing:** the same decisions are made and
      reported, no byte is written

Architecture:
    ::

        write(files, output_dir, config)
          │
          ├─ prepare directory  (path check, mkdir, permission check)
          │
          └─ for each WorkflowFile
               absent  → create
               present → strategy
                          overwrite → clear read-only bit? → write
                          backup    → copy to <path>.backup.<ts> → write
                          skip      → nothing
                          merge     → can_merge? existing + sep + new
                                                 : backup
                          prompt    → backup (no interactive prompt)

    Backup names use the JavaScript-style ISO timestamp with every ``:``
    and ``.`` replaced by ``-``::

        ci.yml.backup.2026-10-18T12-34-56-789Z

Guardrails:
    - Relative output directories must resolve inside the working
      directory; absolute paths are accepted as given
    - Filenames must be bare names (no separators, no ``..``)

Tags:
    output, filesystem, conflicts, backup, cicdgen

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from cicdgen.core.errors import CicdError, FileSystemError, OutputDirectoryError, ReadonlyFileError
from cicdgen.core.logging import get_logger
from cicdgen.core.models import WorkflowFile
from cicdgen.output.filesystem import FileSystem, LocalFileSystem

logger = get_logger(__name__)

DEFAULT_OUTPUT_DIR = Path(".github") / "workflows"
MERGE_SEPARATOR = "\n\n# --- Merged workflow content ---\n\n"

_NAME_LINE = re.compile(r"^name:\s*(.+)$", re.MULTILINE)
_LEADING_WS = re.compile(r"^(\s*)(.*)$")


class ConflictStrategy(str, Enum):
    """What to do when a target file already exists."""

    OVERWRITE = "overwrite"
    BACKUP = "backup"
    SKIP = "skip"
    MERGE = "merge"
    PROMPT = "prompt"


class FileAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    BACKED_UP = "backed-up"
    FAILED = "failed"


@dataclass(frozen=True)
class OutputConfig:
    """Formatting applied to written content."""

    include_metadata: bool = False
    indentation: int = 2

    def __post_init__(self) -> None:
        if not 1 <= self.indentation <= 8:
            raise ValueError(f"indentation must be between 1 and 8, got {self.indentation}")


@dataclass(frozen=True)
class MaterializerOptions:
    strategy: ConflictStrategy = ConflictStrategy.BACKUP
    create_backups: bool = True
    validate_permissions: bool = True
    dry_run: bool = False
    overwrite_readonly: bool = False


@dataclass(frozen=True)
class FileConflict:
    """An existing file colliding with a generated one."""

    path: Path
    existing_content: str
    new_content: str
    modified_at: datetime
    size: int
    can_merge: bool


@dataclass(frozen=True)
class FileOperation:
    """Outcome for a single file."""

    path: Path
    action: FileAction
    backup_path: Path | None = None
    error: CicdError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class OutputResult:
    """Aggregate outcome of one ``write`` call."""

    success: bool
    output_dir: str | None = None
    files_processed: int = 0
    files_created: int = 0
    files_updated: int = 0
    files_skipped: int = 0
    backups_created: int = 0
    generated_files: tuple[str, ...] = ()
    backup_files: tuple[str, ...] = ()
    errors: tuple[CicdError, ...] = ()
    warnings: tuple[str, ...] = ()
    operations: tuple[FileOperation, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "output_dir": self.output_dir,
            "files_processed": self.files_processed,
            "files_created": self.files_created,
            "files_updated": self.files_updated,
            "files_skipped": self.files_skipped,
            "backups_created": self.backups_created,
            "generated_files": list(self.generated_files),
            "backup_files": list(self.backup_files),
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class DirectoryCheck:
    """Read-only verdict on an output directory."""

    path: str
    valid: bool
    exists: bool
    writable: bool
    errors: tuple[str, ...] = ()


@dataclass
class _Tally:
    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    backups: int = 0
    generated: list[str] = field(default_factory=list)
    backup_files: list[str] = field(default_factory=list)
    errors: list[CicdError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    operations: list[FileOperation] = field(default_factory=list)

    def record(self, op: FileOperation) -> None:
        self.processed += 1
        self.operations.append(op)
        if op.backup_path is not None:
            self.backups += 1
            self.backup_files.append(str(op.backup_path))
        if op.error is not None:
            self.errors.append(op.error)
            self.skipped += 1
            return
        if op.action == FileAction.SKIPPED:
            self.skipped += 1
            return
        self.generated.append(str(op.path))
        if op.action == FileAction.CREATED:
            self.created += 1
        else:
            self.updated += 1

    def freeze(self, output_dir: Path | None) -> OutputResult:
        return OutputResult(
            success=not self.errors,
            output_dir=str(output_dir) if output_dir is not None else None,
            files_processed=self.processed,
            files_created=self.created,
            files_updated=self.updated,
            files_skipped=self.skipped,
            backups_created=self.backups,
            generated_files=tuple(self.generated),
            backup_files=tuple(self.backup_files),
            errors=tuple(self.errors),
            warnings=tuple(self.warnings),
            operations=tuple(self.operations),
        )


def _failed(path: Path, exc: CicdError | OSError, backup: Path | None = None) -> FileOperation:
    """Failed operation for ``path``; a backup already taken stays on the record."""
    if isinstance(exc, CicdError):
        error = exc
    else:
        error = FileSystemError(
            f"Failed to write workflow file: {exc}",
            context={"file_path": str(path)},
            cause=exc,
        )
    if backup is not None:
        error.context.setdefault("backup_path", str(backup))
    logger.warning("output.file_failed", path=str(path), code=error.code, error=error.message)
    return FileOperation(path=path, action=FileAction.FAILED, backup_path=backup, error=error)


def iso_timestamp(moment: datetime) -> str:
    """``2026-10-18T12:34:56.789Z`` (millisecond precision, UTC)."""
    utc = moment.astimezone(UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S") + f".{utc.microsecond // 1000:03d}Z"


def backup_path_for(path: Path, moment: datetime) -> Path:
    stamp = iso_timestamp(moment).replace(":", "-").replace(".", "-")
    return path.with_name(f"{path.name}.backup.{stamp}")


def workflow_name(content: str) -> str | None:
    match = _NAME_LINE.search(content)
    return match.group(1).strip() if match else None


def can_merge(existing: str, new: str) -> bool:
    """Both declare a top-level ``name:`` and the names differ."""
    existing_name = workflow_name(existing)
    new_name = workflow_name(new)
    if existing_name is None or new_name is None:
        return False
    return existing_name != new_name


def reindent(content: str, indentation: int) -> str:
    """Convert two-space indentation to ``indentation`` spaces per level."""
    if indentation == 2:
        return content
    lines = []
    for line in content.split("\n"):
        indent, rest = _LEADING_WS.match(line).groups()
        lines.append(" " * ((len(indent) // 2) * indentation) + rest)
    return "\n".join(lines)


class OutputMaterializer:
    """Writes workflow files under an output directory.

    Example:
        >>> materializer = OutputMaterializer(working_dir=project_root)
        >>> result = materializer.write(files, ".github/workflows")
        >>> result.files_created
        2
    """

    def __init__(
        self,
        working_dir: str | Path | None = None,
        options: MaterializerOptions | None = None,
        *,
        fs: FileSystem | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.working_dir = Path(working_dir or Path.cwd()).resolve()
        self.options = options or MaterializerOptions()
        self.fs = fs or LocalFileSystem()
        self._clock = clock or (lambda: datetime.now(UTC))

    # ── Directory handling ───────────────────────────────────────

    def resolve_output_dir(self, output_dir: str | Path | None) -> Path:
        """Absolute output directory.

        Raises:
            OutputDirectoryError: If a relative path escapes the working directory
        """
        if output_dir is None:
            return self.working_dir / DEFAULT_OUTPUT_DIR
        candidate = Path(output_dir)
        if candidate.is_absolute():
            return candidate.resolve()
        resolved = (self.working_dir / candidate).resolve()
        if not resolved.is_relative_to(self.working_dir):
            raise OutputDirectoryError(
                f"Unsafe output directory path: {output_dir}",
                context={"output_dir": str(output_dir), "working_dir": str(self.working_dir)},
            )
        return resolved

    def validate_output_directory(self, output_dir: str | Path | None = None) -> DirectoryCheck:
        """Report whether ``output_dir`` is usable without creating anything."""
        try:
            path = self.resolve_output_dir(output_dir)
        except OutputDirectoryError as e:
            return DirectoryCheck(
                path=str(output_dir), valid=False, exists=False, writable=False, errors=(e.message,)
            )

        if self.fs.exists(path):
            if not self.fs.is_dir(path):
                return DirectoryCheck(
                    path=str(path),
                    valid=False,
                    exists=True,
                    writable=False,
                    errors=(f"Output path is not a directory: {path}",),
                )
            writable = self.fs.is_writable(path)
            errors = () if writable else (f"No write permission for directory: {path}",)
            return DirectoryCheck(path=str(path), valid=True, exists=True, writable=writable, errors=errors)

        # Nearest existing ancestor decides whether mkdir could succeed.
        parent = path.parent
        while not self.fs.exists(parent) and parent != parent.parent:
            parent = parent.parent
        writable = self.fs.is_writable(parent)
        errors = () if writable else (f"No write permission for parent directory: {parent}",)
        return DirectoryCheck(path=str(path), valid=True, exists=False, writable=writable, errors=errors)

    def _prepare_directory(self, output_dir: str | Path | None, tally: _Tally) -> Path:
        path = self.resolve_output_dir(output_dir)
        if self.fs.exists(path):
            if not self.fs.is_dir(path):
                raise OutputDirectoryError(
                    f"Output path is not a directory: {path}",
                    context={"output_dir": str(path)},
                )
        elif self.options.dry_run:
            tally.warnings.append(f"DRY RUN: Would create output directory {path}")
            logger.info("output.directory_planned", path=str(path))
        else:
            try:
                self.fs.mkdir(path)
            except OSError as e:
                raise OutputDirectoryError(
                    f"Failed to create output directory: {e}",
                    context={"output_dir": str(path)},
                    cause=e,
                ) from e
            logger.info("output.directory_created", path=str(path))

        if self.options.validate_permissions and not self.options.dry_run and not self.fs.is_writable(path):
            raise OutputDirectoryError(
                f"Insufficient write permissions for directory: {path}",
                context={"output_dir": str(path)},
            )
        return path

    # ── Public API ───────────────────────────────────────────────

    def write(
        self,
        files: Sequence[WorkflowFile],
        output_dir: str | Path | None = None,
        config: OutputConfig | None = None,
    ) -> OutputResult:
        """Materialize ``files`` under ``output_dir``.

        Never raises for per-file or directory problems; they are reported
        as ``file-system`` errors on the returned result.
        """
        config = config or OutputConfig()
        tally = _Tally()
        logger.info(
            "output.start",
            files=len(files),
            output_dir=str(output_dir) if output_dir is not None else None,
            strategy=self.options.strategy.value,
            dry_run=self.options.dry_run,
        )

        try:
            directory = self._prepare_directory(output_dir, tally)
        except OutputDirectoryError as e:
            logger.error("output.directory_failed", error=e.message)
            tally.errors.append(e)
            return tally.freeze(None)

        for workflow in files:
            op = self._write_one(workflow, directory, config, tally)
            tally.record(op)

        result = tally.freeze(directory)
        logger.info(
            "output.complete",
            success=result.success,
            created=result.files_created,
            updated=result.files_updated,
            skipped=result.files_skipped,
            backups=result.backups_created,
            errors=len(result.errors),
        )
        return result

    # ── Per-file handling ────────────────────────────────────────

    def _write_one(
        self, workflow: WorkflowFile, directory: Path, config: OutputConfig, tally: _Tally
    ) -> FileOperation:
        path = directory / workflow.filename
        try:
            self._check_filename(workflow.filename, path)
            if not self.fs.exists(path):
                return self._create(workflow, path, config)
            return self._resolve_conflict(workflow, path, config, tally)
        except (CicdError, OSError) as e:
            return _failed(path, e)

    @staticmethod
    def _check_filename(filename: str, path: Path) -> None:
        if not filename or "/" in filename or "\\" in filename or filename in (".", ".."):
            raise FileSystemError(
                f"Invalid workflow filename: {filename!r}",
                code="INVALID_FILENAME",
                context={"file_path": str(path)},
            )

    def _resolve_conflict(
        self, workflow: WorkflowFile, path: Path, config: OutputConfig, tally: _Tally
    ) -> FileOperation:
        strategy = self.options.strategy
        logger.debug("output.conflict", path=str(path), strategy=strategy.value)

        if strategy == ConflictStrategy.OVERWRITE:
            return self._overwrite(workflow, path, config, tally)
        if strategy == ConflictStrategy.SKIP:
            tally.warnings.append(f"Skipped existing file: {path}")
            logger.info("output.file_skipped", path=str(path))
            return FileOperation(path=path, action=FileAction.SKIPPED)
        if strategy == ConflictStrategy.MERGE:
            conflict = self.analyze_conflict(workflow, path)
            if conflict.can_merge:
                return self._merge(conflict, config, tally)
            tally.warnings.append(f"Cannot merge {path}; backed up and replaced instead")
            logger.warning("output.merge_refused", path=str(path))
        # BACKUP, PROMPT and unmergeable MERGE
        return self._backup_and_overwrite(workflow, path, config, tally)

    def analyze_conflict(self, workflow: WorkflowFile, path: Path) -> FileConflict:
        existing = self.fs.read_text(path)
        stat = self.fs.stat(path)
        return FileConflict(
            path=path,
            existing_content=existing,
            new_content=workflow.content,
            modified_at=datetime.fromtimestamp(stat.mtime, UTC),
            size=stat.size,
            can_merge=can_merge(existing, workflow.content),
        )

    def _create(self, workflow: WorkflowFile, path: Path, config: OutputConfig) -> FileOperation:
        if self.options.dry_run:
            logger.info("output.file_planned", path=str(path), action=FileAction.CREATED.value)
            return FileOperation(path=path, action=FileAction.CREATED)
        if self.options.validate_permissions and not self.fs.is_writable(path.parent):
            raise FileSystemError(
                f"Insufficient write permissions for directory: {path.parent}",
                context={"file_path": str(path)},
            )
        self.fs.write_text(path, self._format(workflow.content, config))
        logger.info("output.file_written", path=str(path), action=FileAction.CREATED.value, type=workflow.type)
        return FileOperation(path=path, action=FileAction.CREATED)

    def _overwrite(self, workflow: WorkflowFile, path: Path, config: OutputConfig, tally: _Tally) -> FileOperation:
        if self.options.dry_run:
            logger.info("output.file_planned", path=str(path), action=FileAction.UPDATED.value)
            return FileOperation(path=path, action=FileAction.UPDATED)
        self._ensure_writable(path, tally)
        self.fs.write_text(path, self._format(workflow.content, config))
        logger.info("output.file_written", path=str(path), action=FileAction.UPDATED.value, type=workflow.type)
        return FileOperation(path=path, action=FileAction.UPDATED)

    def _backup_and_overwrite(
        self, workflow: WorkflowFile, path: Path, config: OutputConfig, tally: _Tally
    ) -> FileOperation:
        if self.options.dry_run:
            logger.info("output.file_planned", path=str(path), action=FileAction.BACKED_UP.value)
            return FileOperation(path=path, action=FileAction.UPDATED)

        self._ensure_writable(path, tally)
        backup: Path | None = None
        if self.options.create_backups:
            backup = self._create_backup(path)
        try:
            op = self._overwrite(workflow, path, config, tally)
        except (CicdError, OSError) as e:
            if backup is not None:
                tally.warnings.append(f"Backup kept at {backup} after failed write to {path}")
            return _failed(path, e, backup)
        return FileOperation(path=op.path, action=FileAction.BACKED_UP if backup else op.action, backup_path=backup)

    def _create_backup(self, path: Path) -> Path:
        backup = backup_path_for(path, self._clock())
        try:
            self.fs.copy(path, backup)
        except OSError as e:
            raise FileSystemError(
                f"Failed to back up {path}: {e}",
                code="BACKUP_FAILED",
                context={"file_path": str(path), "backup_path": str(backup)},
                cause=e,
            ) from e
        logger.info("output.backup_created", path=str(path), backup_path=str(backup))
        return backup

    def _merge(self, conflict: FileConflict, config: OutputConfig, tally: _Tally) -> FileOperation:
        if self.options.dry_run:
            logger.info("output.file_planned", path=str(conflict.path), action="merged")
            return FileOperation(path=conflict.path, action=FileAction.UPDATED)
        self._ensure_writable(conflict.path, tally)
        merged = conflict.existing_content + MERGE_SEPARATOR + self._format(conflict.new_content, config)
        self.fs.write_text(conflict.path, merged)
        logger.info(
            "output.file_merged",
            path=str(conflict.path),
            original_size=conflict.size,
            new_size=len(merged),
        )
        return FileOperation(path=conflict.path, action=FileAction.UPDATED)

    def _ensure_writable(self, path: Path, tally: _Tally) -> None:
        stat = self.fs.stat(path)
        if stat.owner_writable:
            return
        if not self.options.overwrite_readonly:
            raise ReadonlyFileError(
                f"File is read-only and overwriting read-only files is disabled: {path}",
                context={"file_path": str(path)},
            )
        self.fs.chmod(path, stat.mode | 0o200)
        tally.warnings.append(f"Made read-only file writable: {path}")
        logger.warning("output.readonly_cleared", path=str(path))

    def _format(self, content: str, config: OutputConfig) -> str:
        formatted = reindent(content, config.indentation)
        if config.include_metadata:
            header = (
                f"# Generated by cicdgen on {iso_timestamp(self._clock())}\n"
                "# Do not edit this file manually\n\n"
            )
            formatted = header + formatted
        return formatted


__all__ = [
    "DEFAULT_OUTPUT_DIR",
    "MERGE_SEPARATOR",
    "ConflictStrategy",
    "FileAction",
    "OutputConfig",
    "MaterializerOptions",
    "FileConflict",
    "FileOperation",
    "OutputResult",
    "DirectoryCheck",
    "iso_timestamp",
    "backup_path_for",
    "can_merge",
    "reindent",
    "OutputMaterializer",
]
