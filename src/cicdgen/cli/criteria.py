"""
CLI: ``cicdgen criteria`` - inspect and validate detection criteria.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from cicdgen.cli.utils import console, print_errors, print_table
from cicdgen.core.errors import CicdError
from cicdgen.detection.criteria import CriteriaCatalogue, builtin_catalogue

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_criteria(
    path: Path | None = typer.Option(None, "--file", "-f", help="Merge criteria from a YAML file"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List the detection criteria catalogue."""
    catalogue = builtin_catalogue()
    if path is not None:
        try:
            catalogue = catalogue.merge(CriteriaCatalogue.from_yaml_file(path))
        except CicdError as e:
            print_errors([e])
            raise typer.Exit(code=1) from e

    rows = [
        {
            "name": entry.name,
            "category": entry.category,
            "ecosystem": entry.ecosystem or "",
            "minimum": entry.criteria.minimum_confidence,
            "rules": sum(len(rules) for _, rules in entry.criteria.categories()),
        }
        for entry in catalogue.entries()
    ]
    if json_out:
        console.print_json(json.dumps(rows, default=str))
        return
    print_table(rows, title="Detection criteria")


@app.command("check")
def check_criteria(
    path: Path = typer.Argument(..., help="Criteria YAML file"),
) -> None:
    """Validate a criteria YAML file."""
    try:
        catalogue = CriteriaCatalogue.from_yaml_file(path)
    except CicdError as e:
        print_errors([e])
        raise typer.Exit(code=1) from e
    console.print(f"[green]✓[/green] {len(catalogue.criteria)} criteria valid")
