"""Pipeline Orchestrator - drives parse → detect → generate → output.

Manifesto:
    A README should become a usable workflow even when parts of the
    pipeline misbehave:
    - **Retry the transient:** parsing is retried with exponential back-off
    - **Degrade the systemic:** slow or broken detection and invalid
      generation fall back to cheaper, lower-fidelity results
    - **Surface the irreversible:** output failures always fail the run,
      because partially written files must be visible to the user

Architecture:
    ::

        execute(options)
          │ validate options ──────────────── ConfigurationError → error
          ▼
        parsing     with_retry(parser.parse, parse_max_attempts, parse_timeout)
          │           success=False / exhausted ─────────────── → error
          ▼
        detection   use_fallback → fallback_detection(facts)
          │         else with_timeout_fallback(detector.detect, timeout,
          │                                    fallback_detection)
          │              raised anyway → fallback_detection(facts)
          ▼
        generation  with_retry(generator.generate, generation_max_attempts, ...)
          │         invalid batch / exhausted → fallback_workflows(detection)
          ▼
        output      OutputMaterializer.write (not wrapped)   ─ failed → error
          ▼         (dry run: report planned files, no writes)
        complete

    Every transition emits a :class:`ProgressEvent`; every finished run
    produces one :class:`TelemetryRecord`.

Examples:
    >>> orchestrator = PipelineOrchestrator()
    >>> result = await orchestrator.execute(RunOptions(dry_run=True))
    >>> result.warnings[-1]
    'DRY RUN: Would generate 2 files'

Guardrails:
    - The orchestrator never raises for pipeline failures; inspect
      ``PipelineResult.success`` and ``errors``
    - A failed run reports zero generated files

Tags:
    orchestration, pipeline, state-machine, retry, fallback, cicdgen

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from cicdgen.core.errors import (
    CicdError,
    ConfigurationError,
    DetectionError,
    FileSystemError,
    GenerationError,
    OutputDirectoryError,
    ParsingError,
    RetryExhaustedError,
    wrap_error,
)
from cicdgen.core.logging import LogContext, get_logger
from cicdgen.core.models import DetectionResult, GenerationOptions, WorkflowFile
from cicdgen.core.settings import PipelineSettings, load_settings
from cicdgen.detection.criteria import load_criteria
from cicdgen.detection.detector import EvidenceDetector, fallback_detection
from cicdgen.execution.retry import ExponentialBackoff, with_retry
from cicdgen.execution.timeout import (
    FallbackNotice,
    FallbackTrigger,
    TimeoutExpired,
    with_timeout_fallback,
)
from cicdgen.generation.templates import TemplateGenerator, fallback_workflows
from cicdgen.generation.validity import batch_is_valid, invalid_workflows
from cicdgen.orchestration.context import ExecutionContext, PipelineStage, RunOptions
from cicdgen.orchestration.protocols import FrameworkDetector, ReadmeParser, WorkflowGenerator
from cicdgen.orchestration.result import DryRunReport, ExecutionSummary, PipelineResult, PlannedFile
from cicdgen.orchestration.telemetry import ProgressEvent, TelemetryRecord, TelemetryRecorder
from cicdgen.output.filesystem import FileSystem, LocalFileSystem
from cicdgen.output.materializer import MaterializerOptions, OutputConfig, OutputMaterializer
from cicdgen.parsing.readme import BasicReadmeParser

logger = get_logger(__name__)

DEFAULT_README = "README.md"

_STAGE_ERRORS: dict[PipelineStage, tuple[type[CicdError], str]] = {
    PipelineStage.PARSING: (ParsingError, "README parsing failed"),
    PipelineStage.DETECTION: (DetectionError, "Framework detection failed"),
    PipelineStage.GENERATION: (GenerationError, "YAML generation failed"),
    PipelineStage.OUTPUT: (FileSystemError, "Output failed"),
}

StageStep = Callable[[ExecutionContext], Awaitable[None]]


def _as_workflow_batch(raw: Any) -> list[WorkflowFile] | None:
    """The generator's result as a list, or None when it is not a batch of workflow files."""
    if not isinstance(raw, (list, tuple)):
        return None
    if not all(isinstance(f, WorkflowFile) and isinstance(f.content, str) for f in raw):
        return None
    return list(raw)


class PipelineOrchestrator:
    """Runs the README → workflow pipeline.

    Collaborators default to the built-in implementations; pass any object
    satisfying the protocols in :mod:`cicdgen.orchestration.protocols` to
    swap one out.

    Args:
        parser: README collaborator
        detector: Detection collaborator
        generator: Generation collaborator
        settings: Retry limits, timeouts and thresholds
        working_dir: Project root (default: current directory at run time)
        fs: Filesystem used for README checks and output
        recorder: Receives one TelemetryRecord per run
        progress_callback: Receives a ProgressEvent at each stage transition
        sleep: Back-off sleep (injectable for tests)
        clock: Timestamp source for backups and metadata headers
    """

    def __init__(
        self,
        parser: ReadmeParser | None = None,
        detector: FrameworkDetector | None = None,
        generator: WorkflowGenerator | None = None,
        *,
        settings: PipelineSettings | None = None,
        working_dir: str | Path | None = None,
        fs: FileSystem | None = None,
        recorder: TelemetryRecorder | None = None,
        progress_callback: Callable[[ProgressEvent], None] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] | None = None,
    ):
        self.settings = settings or load_settings()
        self.parser = parser or BasicReadmeParser()
        self.detector = detector or EvidenceDetector(
            load_criteria(minimum_confidence=self.settings.minimum_confidence)
        )
        self.generator = generator or TemplateGenerator()
        self.working_dir = working_dir
        self.fs = fs or LocalFileSystem()
        self.recorder = recorder or TelemetryRecorder()
        self.progress_callback = progress_callback
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(UTC))
        self._backoff = ExponentialBackoff(
            base_delay=self.settings.backoff_base_seconds,
            max_delay=self.settings.backoff_max_seconds,
        )

    # =========================================================================
    # Entry point
    # =========================================================================

    async def execute(self, options: RunOptions | None = None) -> PipelineResult:
        """Run the pipeline once. Never raises for pipeline failures."""
        options = options or RunOptions()
        context = ExecutionContext.create(options, working_dir=self.working_dir)

        async with LogContext(execution_id=context.execution_id):
            logger.info(
                "pipeline.start",
                working_dir=str(context.working_dir),
                dry_run=options.dry_run,
                use_fallback=options.use_fallback,
            )

            try:
                options.validate()
            except ConfigurationError as e:
                logger.error("pipeline.invalid_options", error=e.message)
                context.fail(e)
                return self._finish(context)

            stages: list[tuple[PipelineStage, StageStep]] = [
                (PipelineStage.PARSING, self._parse),
                (PipelineStage.DETECTION, self._detect),
                (PipelineStage.GENERATION, self._generate),
            ]
            if not options.dry_run:
                stages.append((PipelineStage.OUTPUT, self._output))

            for stage, step in stages:
                if not await self._run_stage(context, stage, step):
                    return self._finish(context)

            report = self._plan_dry_run(context) if options.dry_run else None
            context.advance(PipelineStage.COMPLETE)
            self._emit_progress(context, PipelineStage.COMPLETE)
            return self._finish(context, report)

    async def _run_stage(self, context: ExecutionContext, stage: PipelineStage, step: StageStep) -> bool:
        if context.stage != stage:
            context.advance(stage)
        self._emit_progress(context, stage)
        logger.debug("stage.start", stage=stage.value)

        started = time.monotonic()
        try:
            await step(context)
        except Exception as e:
            context.record_stage_time(stage, time.monotonic() - started)
            error_type, message = _STAGE_ERRORS[stage]
            error = wrap_error(e, error_type, message)
            logger.error("stage.failed", stage=stage.value, code=error.code, error=error.message)
            context.fail(error)
            return False

        elapsed = time.monotonic() - started
        context.record_stage_time(stage, elapsed)
        logger.info("stage.complete", stage=stage.value, elapsed_seconds=round(elapsed, 4))
        return True

    # =========================================================================
    # Stages
    # =========================================================================

    def _resolve_readme(self, context: ExecutionContext) -> Path:
        readme = Path(context.options.readme_path or DEFAULT_README)
        if not readme.is_absolute():
            readme = context.working_dir / readme
        if not self.fs.exists(readme):
            raise ParsingError(
                f"README file not found: {readme}",
                code="README_NOT_FOUND",
                context={"readme_path": str(readme)},
            )
        if self.fs.is_dir(readme):
            raise ParsingError(
                f"README path is not a file: {readme}",
                code="README_NOT_FOUND",
                context={"readme_path": str(readme)},
            )
        return readme

    async def _parse(self, context: ExecutionContext) -> None:
        readme = self._resolve_readme(context)
        try:
            result = await with_retry(
                lambda: self.parser.parse(readme),
                self.settings.parse_max_attempts,
                self.settings.parse_timeout_seconds,
                strategy=self._backoff,
                operation="readme.parse",
                sleep=self._sleep,
            )
        except RetryExhaustedError as e:
            raise ParsingError(
                f"README parsing failed: {e.last_error}",
                context={"readme_path": str(readme), "attempts": e.attempts},
                cause=e,
            ) from e

        context.set_parse_result(result)
        if not result.success or result.data is None:
            reasons = ", ".join(result.errors) or "Unknown parsing error"
            raise ParsingError(f"README parsing failed: {reasons}", context={"readme_path": str(readme)})

        logger.info(
            "readme.parsed",
            project=result.data.name,
            languages=list(result.data.languages),
            dependencies=len(result.data.dependencies),
        )

    async def _detect(self, context: ExecutionContext) -> None:
        facts = context.parse_result.data

        def fallback() -> DetectionResult:
            return fallback_detection(facts, self.settings.fallback_confidence)

        if context.options.use_fallback:
            context.record_fallback(
                FallbackNotice("framework.detect", FallbackTrigger.FORCED, "basic detection requested")
            )
            detection = fallback()
        else:
            timeout = context.options.timeout_seconds or self.settings.detection_timeout_seconds
            try:
                detection = await with_timeout_fallback(
                    lambda: self.detector.detect(facts, context.working_dir),
                    timeout,
                    fallback,
                    operation="framework.detect",
                    on_fallback=context.record_fallback,
                )
            except Exception as e:
                logger.warning("detection.failed", error=str(e), error_type=type(e).__name__)
                context.record_fallback(FallbackNotice("framework.detect", FallbackTrigger.ERROR, str(e)))
                detection = fallback()

        context.set_detection(detection)
        for warning in detection.warnings:
            context.add_warning(warning)

    async def _generate(self, context: ExecutionContext) -> None:
        detection = context.detection
        gen_options = GenerationOptions(workflow_types=context.options.workflow_types)

        files: list[WorkflowFile] | None = None
        notice: FallbackNotice | None = None
        try:
            raw = await with_retry(
                lambda: self.generator.generate(detection, gen_options),
                self.settings.generation_max_attempts,
                self.settings.generation_timeout_seconds,
                strategy=self._backoff,
                operation="workflow.generate",
                sleep=self._sleep,
            )
        except RetryExhaustedError as e:
            timed_out = isinstance(e.last_error, TimeoutExpired)
            trigger = FallbackTrigger.TIMEOUT if timed_out else FallbackTrigger.ERROR
            notice = FallbackNotice("workflow.generate", trigger, str(e.last_error))
        else:
            files = _as_workflow_batch(raw)
            if files is None:
                logger.warning("generation.malformed", result_type=type(raw).__name__)
                notice = FallbackNotice(
                    "workflow.generate",
                    FallbackTrigger.ERROR,
                    f"invalid output (expected a list of workflow files, got {type(raw).__name__})",
                )

        if files is not None and not batch_is_valid(files):
            problems = invalid_workflows(files)
            reason = (
                "; ".join(f"{name}: {', '.join(issues)}" for name, issues in problems.items())
                if problems
                else "no workflows generated"
            )
            logger.warning("generation.invalid", problems=problems, files=len(files))
            notice = FallbackNotice("workflow.generate", FallbackTrigger.ERROR, f"invalid output ({reason})")
            files = None

        if files is None:
            context.record_fallback(notice)
            files = fallback_workflows(detection)

        context.set_workflows(files)
        logger.info("generation.complete", workflows=[f.filename for f in files], fallback=notice is not None)

    async def _output(self, context: ExecutionContext) -> None:
        options = context.options
        materializer = self._materializer(context)
        result = materializer.write(
            context.workflows,
            options.output_dir,
            OutputConfig(include_metadata=options.include_metadata, indentation=options.indentation),
        )
        context.output_result = result
        for warning in result.warnings:
            context.add_warning(warning)

        if not result.success:
            for error in result.errors[:-1]:
                context.add_error(error)
            raise result.errors[-1]

        context.set_written_files(result.generated_files)

    def _materializer(self, context: ExecutionContext) -> OutputMaterializer:
        options = context.options
        return OutputMaterializer(
            context.working_dir,
            MaterializerOptions(
                strategy=options.strategy,
                create_backups=options.create_backups,
                dry_run=options.dry_run,
                overwrite_readonly=options.overwrite_readonly,
            ),
            fs=self.fs,
            clock=self._clock,
        )

    def _plan_dry_run(self, context: ExecutionContext) -> DryRunReport:
        """Describe what the output stage would write, touching nothing."""
        materializer = self._materializer(context)
        try:
            directory: Path | None = materializer.resolve_output_dir(context.options.output_dir)
        except OutputDirectoryError as e:
            context.add_warning(f"DRY RUN: {e.message}")
            directory = None

        planned = []
        for workflow in context.workflows:
            if directory is None:
                planned.append(PlannedFile(path=workflow.filename, type=workflow.type, exists=False))
                continue
            path = directory / workflow.filename
            planned.append(PlannedFile(path=str(path), type=workflow.type, exists=self.fs.exists(path)))

        context.add_warning(f"DRY RUN: Would generate {len(planned)} files")
        logger.info("pipeline.dry_run", files=[p.path for p in planned])
        return DryRunReport(
            output_dir=str(directory) if directory is not None else str(context.options.output_dir),
            files=tuple(planned),
            workflows=tuple(w.type for w in context.workflows),
        )

    # =========================================================================
    # Side channels and results
    # =========================================================================

    def _emit_progress(self, context: ExecutionContext, stage: PipelineStage) -> None:
        event = ProgressEvent(
            execution_id=context.execution_id,
            stage=stage.value,
            elapsed_seconds=context.elapsed_seconds,
        )
        logger.debug("pipeline.progress", stage=stage.value, elapsed_seconds=round(event.elapsed_seconds, 4))
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(event)
        except Exception as e:
            logger.warning("pipeline.progress_callback_failed", stage=stage.value, error=str(e))

    def _finish(self, context: ExecutionContext, report: DryRunReport | None = None) -> PipelineResult:
        success = not context.failed
        options = context.options
        generated = context.written_files if success and not options.dry_run else ()
        detection = context.detection

        summary = ExecutionSummary(
            total_seconds=context.elapsed_seconds,
            stage_seconds=dict(context.stage_times),
            files_generated=len(generated),
            workflows_created=len(context.workflows) if success and not options.dry_run else 0,
            workflows_generated=len(context.workflows),
            frameworks_detected=tuple(detection.framework_names) if detection else (),
            fallback_used=context.fallback_used,
            final_stage=context.stage.value,
        )

        self.recorder.record(
            TelemetryRecord(
                execution_id=context.execution_id,
                success=success,
                final_stage=context.stage.value,
                total_seconds=summary.total_seconds,
                stage_seconds=summary.stage_seconds,
                fallback_used=context.fallback_used,
                files_generated=len(generated),
                dry_run=options.dry_run,
                error_codes=tuple(e.code for e in context.errors),
            )
        )

        if success:
            logger.info(
                "pipeline.complete",
                files=len(generated),
                fallback_used=context.fallback_used,
                warnings=len(context.warnings),
                total_seconds=round(summary.total_seconds, 4),
            )
        else:
            logger.error(
                "pipeline.failed",
                codes=[e.code for e in context.errors],
                total_seconds=round(summary.total_seconds, 4),
            )

        return PipelineResult(
            success=success,
            execution_id=context.execution_id,
            generated_files=tuple(generated),
            errors=tuple(context.errors),
            warnings=tuple(context.warnings),
            summary=summary,
            detection=detection,
            dry_run=report,
            output=context.output_result,
        )


__all__ = ["DEFAULT_README", "PipelineOrchestrator"]
