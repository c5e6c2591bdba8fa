"""Execution context - the single mutable record of one pipeline run.

Manifesto:
    Stages communicate only through the context, and the context only
    moves forward:
    - **Write-once stage outputs:** parse result, detection result,
      workflows and written paths are each set by exactly one stage
    - **Forward-only state:** ``parsing → detection → generation →
      output → complete``; ``error`` is terminal and reachable from the
      first four
    - **Frozen after failure:** once in ``error`` nothing else is written

    Violations raise :class:`~cicdgen.core.errors.StageStateError`; they
    indicate a bug in the orchestrator, not a user problem.

Architecture:
    ::

        RunOptions (frozen)        per-run CLI/API options, validated
             │
             ▼
        ExecutionContext
          identity   execution_id, started_at, working_dir, options
          outputs    parse_result, detection, workflows, written_files
          state      stage, errors, warnings, stage_times, fallbacks

Tags:
    orchestration, context, state-machine, cicdgen

Doc-Types:
    api-reference
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from cicdgen.core.errors import CicdError, ConfigurationError, StageStateError
from cicdgen.core.models import DetectionResult, ParseResult, WorkflowFile
from cicdgen.execution.timeout import FallbackNotice
from cicdgen.output.materializer import ConflictStrategy, OutputResult

WORKFLOW_TYPES: tuple[str, ...] = ("ci", "cd")


class PipelineStage(str, Enum):
    """Pipeline state machine states."""

    PARSING = "parsing"
    DETECTION = "detection"
    GENERATION = "generation"
    OUTPUT = "output"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self in (PipelineStage.COMPLETE, PipelineStage.ERROR)


_ORDER: dict[PipelineStage, int] = {
    PipelineStage.PARSING: 0,
    PipelineStage.DETECTION: 1,
    PipelineStage.GENERATION: 2,
    PipelineStage.OUTPUT: 3,
    PipelineStage.COMPLETE: 4,
}


@dataclass(frozen=True)
class RunOptions:
    """Options for one run.

    Attributes:
        readme_path: README to parse (default ``README.md`` in the working dir)
        output_dir: Where workflows go (default ``.github/workflows``)
        dry_run: Parse, detect and simulate generation; write nothing
        use_fallback: Skip the detection collaborator entirely
        timeout_seconds: Detection timeout (default from settings)
        workflow_types: Workflows to request from the generator
        conflict_strategy: overwrite | backup | skip | merge | prompt
        overwrite_readonly: Allow clearing the read-only bit
        create_backups: Copy existing files before replacing them
        include_metadata: Prepend a "generated by" header
        indentation: Spaces per YAML indent level in written files
    """

    readme_path: str | None = None
    output_dir: str | None = None
    dry_run: bool = False
    use_fallback: bool = False
    timeout_seconds: float | None = None
    workflow_types: tuple[str, ...] = ("ci",)
    conflict_strategy: str = ConflictStrategy.BACKUP.value
    overwrite_readonly: bool = False
    create_backups: bool = True
    include_metadata: bool = False
    indentation: int = 2

    @property
    def strategy(self) -> ConflictStrategy:
        return ConflictStrategy(self.conflict_strategy)

    def problems(self) -> list[str]:
        found = []
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            found.append(f"timeout must be positive, got {self.timeout_seconds}")
        valid_strategies = [s.value for s in ConflictStrategy]
        if self.conflict_strategy not in valid_strategies:
            found.append(
                f"unknown conflict strategy {self.conflict_strategy!r} "
                f"(expected one of {', '.join(valid_strategies)})"
            )
        if not 1 <= self.indentation <= 8:
            found.append(f"indentation must be between 1 and 8, got {self.indentation}")
        if not self.workflow_types:
            found.append("at least one workflow type is required")
        unknown = [t for t in self.workflow_types if t not in WORKFLOW_TYPES]
        if unknown:
            found.append(f"unknown workflow type(s): {', '.join(unknown)}")
        return found

    def validate(self) -> None:
        """Raise ConfigurationError listing every invalid option."""
        problems = self.problems()
        if problems:
            raise ConfigurationError(
                "Invalid options: " + "; ".join(problems),
                context={"problems": problems},
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "readme_path": self.readme_path,
            "output_dir": self.output_dir,
            "dry_run": self.dry_run,
            "use_fallback": self.use_fallback,
            "timeout_seconds": self.timeout_seconds,
            "workflow_types": list(self.workflow_types),
            "conflict_strategy": self.conflict_strategy,
        }


def new_execution_id() -> str:
    return f"exec_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@dataclass
class ExecutionContext:
    """State of one run; owned and mutated only by the orchestrator.

    Example:
        >>> ctx = ExecutionContext.create(RunOptions(), working_dir="/repo")
        >>> ctx.set_parse_result(parse_result)
        >>> ctx.advance(PipelineStage.DETECTION)
        >>> ctx.stage
        <PipelineStage.DETECTION: 'detection'>
    """

    execution_id: str
    working_dir: Path
    options: RunOptions
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    stage: PipelineStage = PipelineStage.PARSING
    errors: list[CicdError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    stage_times: dict[str, float] = field(default_factory=dict)
    fallbacks: list[FallbackNotice] = field(default_factory=list)
    output_result: OutputResult | None = None
    _parse_result: ParseResult | None = field(default=None, repr=False)
    _detection: DetectionResult | None = field(default=None, repr=False)
    _workflows: tuple[WorkflowFile, ...] | None = field(default=None, repr=False)
    _written_files: tuple[str, ...] | None = field(default=None, repr=False)
    _clock_start: float = field(default_factory=time.monotonic, repr=False)

    @classmethod
    def create(
        cls,
        options: RunOptions,
        working_dir: str | Path | None = None,
        execution_id: str | None = None,
    ) -> ExecutionContext:
        return cls(
            execution_id=execution_id or new_execution_id(),
            working_dir=Path(working_dir or Path.cwd()).resolve(),
            options=options,
        )

    # ── Guards ───────────────────────────────────────────────────

    def _ensure_open(self, what: str) -> None:
        if self.stage == PipelineStage.ERROR:
            raise StageStateError(
                f"Cannot {what}: run {self.execution_id} is in the error state",
                context={"stage": self.stage.value},
            )

    def _ensure_unset(self, name: str, value: Any) -> None:
        if value is not None:
            raise StageStateError(f"{name} is write-once and has already been set", context={"field": name})

    # ── State transitions ────────────────────────────────────────

    def advance(self, stage: PipelineStage) -> None:
        """Move forward to ``stage``.

        Raises:
            StageStateError: From a terminal state, or when not moving forward
        """
        if stage == PipelineStage.ERROR:
            raise StageStateError("Use fail() to enter the error state")
        self._ensure_open(f"advance to {stage.value}")
        if self.stage == PipelineStage.COMPLETE or _ORDER[stage] <= _ORDER[self.stage]:
            raise StageStateError(
                f"Invalid transition {self.stage.value} -> {stage.value}",
                context={"from": self.stage.value, "to": stage.value},
            )
        self.stage = stage

    def fail(self, error: CicdError) -> None:
        """Record ``error`` and enter the terminal error state."""
        if self.stage.terminal:
            raise StageStateError(
                f"Cannot fail run {self.execution_id} from terminal state {self.stage.value}",
                context={"stage": self.stage.value},
            ) from error
        error.context.setdefault("stage", self.stage.value)
        self.errors.append(error)
        self.stage = PipelineStage.ERROR

    # ── Write-once stage outputs ─────────────────────────────────

    @property
    def parse_result(self) -> ParseResult | None:
        return self._parse_result

    def set_parse_result(self, value: ParseResult) -> None:
        self._ensure_open("store parse result")
        self._ensure_unset("parse_result", self._parse_result)
        self._parse_result = value

    @property
    def detection(self) -> DetectionResult | None:
        return self._detection

    def set_detection(self, value: DetectionResult) -> None:
        self._ensure_open("store detection result")
        self._ensure_unset("detection", self._detection)
        self._detection = value

    @property
    def workflows(self) -> tuple[WorkflowFile, ...]:
        return self._workflows or ()

    def set_workflows(self, value: Sequence[WorkflowFile]) -> None:
        self._ensure_open("store workflows")
        self._ensure_unset("workflows", self._workflows)
        self._workflows = tuple(value)

    @property
    def written_files(self) -> tuple[str, ...]:
        return self._written_files or ()

    def set_written_files(self, value: Sequence[str]) -> None:
        self._ensure_open("store written files")
        self._ensure_unset("written_files", self._written_files)
        self._written_files = tuple(value)

    # ── Accumulators ─────────────────────────────────────────────

    def add_warning(self, message: str) -> None:
        self._ensure_open("add warning")
        self.warnings.append(message)

    def add_error(self, error: CicdError) -> None:
        """Record a non-fatal error without changing state."""
        self._ensure_open("add error")
        self.errors.append(error)

    def record_fallback(self, notice: FallbackNotice) -> None:
        self.fallbacks.append(notice)
        self.add_warning(notice.message)

    def record_stage_time(self, stage: PipelineStage, seconds: float) -> None:
        self.stage_times[stage.value] = seconds

    @property
    def fallback_used(self) -> bool:
        return bool(self.fallbacks)

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self._clock_start

    @property
    def failed(self) -> bool:
        return self.stage == PipelineStage.ERROR


__all__ = [
    "WORKFLOW_TYPES",
    "PipelineStage",
    "RunOptions",
    "ExecutionContext",
    "new_execution_id",
]
