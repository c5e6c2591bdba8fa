"""
CLI: ``cicdgen generate`` and ``cicdgen detect`` - run the pipeline.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from cicdgen.cli.utils import output_detection, output_pipeline_result, print_errors, setup_logging
from cicdgen.core.errors import CicdError
from cicdgen.core.settings import PipelineSettings, load_settings
from cicdgen.detection.criteria import load_criteria
from cicdgen.detection.detector import EvidenceDetector
from cicdgen.orchestration.context import WORKFLOW_TYPES, RunOptions
from cicdgen.orchestration.orchestrator import PipelineOrchestrator


def workflow_types_for(value: str) -> tuple[str, ...]:
    """Map ``--workflow-type`` to the workflow types to generate."""
    if value == "both":
        return WORKFLOW_TYPES
    return (value,)


def _settings() -> PipelineSettings:
    try:
        return load_settings()
    except CicdError as e:
        print_errors([e])
        raise typer.Exit(code=1) from e


def _orchestrator(
    settings: PipelineSettings,
    working_dir: Path | None,
    criteria: Path | None,
) -> PipelineOrchestrator:
    detector = None
    if criteria is not None:
        try:
            entries = load_criteria(criteria, minimum_confidence=settings.minimum_confidence)
        except CicdError as e:
            print_errors([e])
            raise typer.Exit(code=1) from e
        detector = EvidenceDetector(entries)
    return PipelineOrchestrator(detector=detector, settings=settings, working_dir=working_dir)


def generate(
    readme: str | None = typer.Option(None, "--readme", "-r", help="README to parse (default: README.md)"),
    output_dir: str | None = typer.Option(
        None, "--output-dir", "-o", help="Output directory (default: .github/workflows)"
    ),
    working_dir: Path | None = typer.Option(None, "--working-dir", "-C", help="Project root"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be written"),
    use_fallback: bool = typer.Option(False, "--use-fallback", help="Skip detection, use basic detection"),
    timeout: float | None = typer.Option(None, "--timeout", help="Detection timeout in seconds"),
    workflow_type: str = typer.Option("ci", "--workflow-type", "-w", help="ci, cd or both"),
    conflict: str = typer.Option(
        "backup", "--conflict", help="overwrite, backup, skip, merge or prompt"
    ),
    overwrite_readonly: bool = typer.Option(False, "--overwrite-readonly"),
    no_backup: bool = typer.Option(False, "--no-backup", help="Replace files without backups"),
    metadata: bool = typer.Option(False, "--metadata", help="Add a generated-by header"),
    criteria: Path | None = typer.Option(None, "--criteria", help="Extra detection criteria (YAML)"),
    json_out: bool = typer.Option(False, "--json"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Generate GitHub Actions workflows from a README."""
    settings = _settings()
    setup_logging(settings, verbose=verbose, quiet=json_out)

    options = RunOptions(
        readme_path=readme,
        output_dir=output_dir,
        dry_run=dry_run,
        use_fallback=use_fallback,
        timeout_seconds=timeout,
        workflow_types=workflow_types_for(workflow_type),
        conflict_strategy=conflict,
        overwrite_readonly=overwrite_readonly,
        create_backups=not no_backup,
        include_metadata=metadata,
    )
    orchestrator = _orchestrator(settings, working_dir, criteria)
    result = asyncio.run(orchestrator.execute(options))
    output_pipeline_result(result, as_json=json_out)


def detect(
    readme: str | None = typer.Option(None, "--readme", "-r", help="README to parse (default: README.md)"),
    working_dir: Path | None = typer.Option(None, "--working-dir", "-C", help="Project root"),
    use_fallback: bool = typer.Option(False, "--use-fallback"),
    timeout: float | None = typer.Option(None, "--timeout", help="Detection timeout in seconds"),
    criteria: Path | None = typer.Option(None, "--criteria", help="Extra detection criteria (YAML)"),
    json_out: bool = typer.Option(False, "--json"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Show detected languages, frameworks and build tools with evidence."""
    settings = _settings()
    setup_logging(settings, verbose=verbose, quiet=json_out)

    options = RunOptions(
        readme_path=readme,
        dry_run=True,
        use_fallback=use_fallback,
        timeout_seconds=timeout,
    )
    orchestrator = _orchestrator(settings, working_dir, criteria)
    result = asyncio.run(orchestrator.execute(options))

    if result.detection is None:
        print_errors(result.errors)
        raise typer.Exit(code=1)
    output_detection(result.detection, as_json=json_out)
