"""Pipeline orchestration: execution context, stages, results and telemetry."""

from cicdgen.orchestration.context import (
    WORKFLOW_TYPES,
    ExecutionContext,
    PipelineStage,
    RunOptions,
    new_execution_id,
)
from cicdgen.orchestration.orchestrator import DEFAULT_README, PipelineOrchestrator
from cicdgen.orchestration.protocols import FrameworkDetector, ReadmeParser, WorkflowGenerator
from cicdgen.orchestration.result import DryRunReport, ExecutionSummary, PipelineResult, PlannedFile
from cicdgen.orchestration.telemetry import ProgressEvent, TelemetryRecord, TelemetryRecorder

__all__ = [
    # Context
    "WORKFLOW_TYPES",
    "PipelineStage",
    "RunOptions",
    "ExecutionContext",
    "new_execution_id",
    # Orchestrator
    "DEFAULT_README",
    "PipelineOrchestrator",
    # Collaborator protocols
    "ReadmeParser",
    "FrameworkDetector",
    "WorkflowGenerator",
    # Results
    "ExecutionSummary",
    "PlannedFile",
    "DryRunReport",
    "PipelineResult",
    # Telemetry
    "ProgressEvent",
    "TelemetryRecord",
    "TelemetryRecorder",
]
