"""Result types returned by :class:`PipelineOrchestrator`."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from cicdgen.core.errors import CicdError
from cicdgen.core.models import DetectionResult
from cicdgen.output.materializer import OutputResult


@dataclass(frozen=True)
class ExecutionSummary:
    total_seconds: float
    stage_seconds: dict[str, float] = field(default_factory=dict)
    files_generated: int = 0
    workflows_created: int = 0
    workflows_generated: int = 0
    frameworks_detected: tuple[str, ...] = ()
    fallback_used: bool = False
    final_stage: str = "complete"

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_seconds": round(self.total_seconds, 4),
            "stage_seconds": {k: round(v, 4) for k, v in self.stage_seconds.items()},
            "files_generated": self.files_generated,
            "workflows_created": self.workflows_created,
            "workflows_generated": self.workflows_generated,
            "frameworks_detected": list(self.frameworks_detected),
            "fallback_used": self.fallback_used,
            "final_stage": self.final_stage,
        }


@dataclass(frozen=True)
class PlannedFile:
    """A file a dry run would have written."""

    path: str
    type: str
    exists: bool

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "type": self.type, "exists": self.exists}


@dataclass(frozen=True)
class DryRunReport:
    output_dir: str
    files: tuple[PlannedFile, ...] = ()
    workflows: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "output_dir": self.output_dir,
            "files": [f.to_dict() for f in self.files],
            "workflows": list(self.workflows),
        }


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of one run.

    A failed run always reports zero generated files, whatever the
    materializer managed to write before failing; ``output`` keeps the
    per-file details.
    """

    success: bool
    execution_id: str
    generated_files: tuple[str, ...] = ()
    errors: tuple[CicdError, ...] = ()
    warnings: tuple[str, ...] = ()
    summary: ExecutionSummary = field(default_factory=lambda: ExecutionSummary(total_seconds=0.0))
    detection: DetectionResult | None = None
    dry_run: DryRunReport | None = None
    output: OutputResult | None = None

    @property
    def error_codes(self) -> list[str]:
        return [e.code for e in self.errors]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "execution_id": self.execution_id,
            "generated_files": list(self.generated_files),
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
            "summary": self.summary.to_dict(),
        }
        if self.detection is not None:
            result["detection"] = self.detection.to_dict()
        if self.dry_run is not None:
            result["dry_run"] = self.dry_run.to_dict()
        if self.output is not None:
            result["output"] = self.output.to_dict()
        return result


__all__ = ["ExecutionSummary", "PlannedFile", "DryRunReport", "PipelineResult"]
