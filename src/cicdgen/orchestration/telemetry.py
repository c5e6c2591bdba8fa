"""Progress events and run telemetry.

Observational side channel: the orchestrator emits a :class:`ProgressEvent`
at every stage transition and hands a :class:`TelemetryRecord` to the
recorder when a run ends. Nothing here is read back by the pipeline.

Example:
    >>> recorder = TelemetryRecorder()
    >>> orchestrator = PipelineOrchestrator(recorder=recorder)
    >>> await orchestrator.execute(RunOptions())
    >>> recorder.summary()["runs"]
    1
"""

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from cicdgen.core.logging import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted when a run enters a stage."""

    execution_id: str
    stage: str
    elapsed_seconds: float
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "stage": self.stage,
            "elapsed_seconds": round(self.elapsed_seconds, 4),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class TelemetryRecord:
    """Summary of one finished run."""

    execution_id: str
    success: bool
    final_stage: str
    total_seconds: float
    stage_seconds: dict[str, float]
    fallback_used: bool
    files_generated: int
    dry_run: bool = False
    error_codes: tuple[str, ...] = ()
    recorded_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "success": self.success,
            "final_stage": self.final_stage,
            "total_seconds": round(self.total_seconds, 4),
            "stage_seconds": {k: round(v, 4) for k, v in self.stage_seconds.items()},
            "fallback_used": self.fallback_used,
            "files_generated": self.files_generated,
            "dry_run": self.dry_run,
            "error_codes": list(self.error_codes),
            "recorded_at": self.recorded_at.isoformat(),
        }


class TelemetryRecorder:
    """In-memory sink for telemetry records, safe to share between runs."""

    def __init__(self) -> None:
        self._records: list[TelemetryRecord] = []
        self._lock = threading.Lock()

    def record(self, record: TelemetryRecord) -> None:
        with self._lock:
            self._records.append(record)
        logger.info("pipeline.telemetry", **record.to_dict())

    @property
    def records(self) -> list[TelemetryRecord]:
        with self._lock:
            return list(self._records)

    def summary(self) -> dict[str, Any]:
        """Aggregate counts and rates over every recorded run."""
        records = self.records
        runs = len(records)
        if runs == 0:
            return {"runs": 0, "success_rate": 0.0, "fallback_rate": 0.0, "avg_seconds": 0.0}
        return {
            "runs": runs,
            "success_rate": sum(r.success for r in records) / runs,
            "fallback_rate": sum(r.fallback_used for r in records) / runs,
            "avg_seconds": sum(r.total_seconds for r in records) / runs,
            "files_generated": sum(r.files_generated for r in records),
        }

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


__all__ = ["ProgressEvent", "TelemetryRecord", "TelemetryRecorder"]
