"""
CLI utility helpers - logging setup and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cicdgen.core.errors import CicdError
from cicdgen.core.logging import configure_logging
from cicdgen.core.models import DetectionResult
from cicdgen.core.settings import PipelineSettings
from cicdgen.orchestration.result import PipelineResult

console = Console()
err_console = Console(stderr=True)


# ── Logging ──────────────────────────────────────────────────────────────


def setup_logging(settings: PipelineSettings, *, verbose: bool = False, quiet: bool = False) -> None:
    """Configure structlog for a CLI invocation.

    ``quiet`` keeps only warnings and errors (used with ``--json``).
    """
    level = "DEBUG" if verbose else "WARNING" if quiet else settings.log_level
    configure_logging(level=level, json_format=settings.log_format == "json", force=True)


# ── Output helpers ───────────────────────────────────────────────────────


def print_errors(errors: Sequence[CicdError]) -> None:
    """Print errors and their suggestions to stderr."""
    for err in errors:
        err_console.print(f"[bold red]Error[/bold red] ({err.code}): {escape(err.message)}")
        for suggestion in err.suggestions:
            err_console.print(f"  [dim]•[/dim] {escape(suggestion)}")


def print_warnings(warnings: Sequence[str]) -> None:
    for warning in warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")


def output_pipeline_result(result: PipelineResult, *, as_json: bool = False) -> None:
    """Render a ``PipelineResult``; exits with code 1 when the run failed."""
    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
        if not result.success:
            raise typer.Exit(code=1)
        return

    print_warnings(result.warnings)

    if not result.success:
        print_errors(result.errors)
        raise typer.Exit(code=1)

    if result.dry_run is not None:
        print_table(
            [f.to_dict() for f in result.dry_run.files],
            title=f"Planned workflows ({result.dry_run.output_dir})",
        )
    elif result.generated_files:
        print_table([{"file": path} for path in result.generated_files], title="Generated workflows")
    else:
        console.print("[dim]No files written.[/dim]")

    summary = result.summary
    console.print(
        f"[green]✓[/green] {summary.files_generated} file(s) in {summary.total_seconds:.2f}s"
        + (" [yellow](fallback used)[/yellow]" if summary.fallback_used else "")
    )


def output_detection(detection: DetectionResult, *, as_json: bool = False) -> None:
    """Render detected languages, frameworks and build tools with evidence."""
    if as_json:
        console.print_json(json.dumps(detection.to_dict(), default=str))
        return

    rows = [
        {
            "category": category,
            "name": item.name,
            "confidence": f"{item.confidence:.2f}",
            "evidence": ", ".join(item.evidence),
        }
        for category, items in (
            ("language", detection.languages),
            ("framework", detection.frameworks),
            ("build-tool", detection.build_tools),
        )
        for item in items
    ]
    if not rows:
        console.print("[dim]Nothing detected.[/dim]")
    else:
        print_table(rows, title="Detection")

    _print_dict(
        {
            "score": f"{detection.confidence.score:.2f}",
            "matches": detection.confidence.matches,
            "fallback": detection.fallback,
        },
        title="Confidence",
    )


# ── Private helpers ──────────────────────────────────────────────────────


def print_table(items: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not items:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in items[0]:
        table.add_column(col, overflow="fold")
    for item in items:
        table.add_row(*(escape(str(v)) for v in item.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
