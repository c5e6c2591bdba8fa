"""
Root Typer application for the cicdgen CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="cicdgen",
    help="cicdgen - generate GitHub Actions workflows from a README.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("cicdgen")
        except PackageNotFoundError:
            from cicdgen import __version__ as v
        typer.echo(f"cicdgen {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """cicdgen CLI - detect a project's stack and write CI/CD workflows."""


# ── Command registration ─────────────────────────────────────────────────

from cicdgen.cli.criteria import app as criteria_app  # noqa: E402
from cicdgen.cli.pipeline import detect, generate  # noqa: E402

app.command("generate")(generate)
app.command("detect")(detect)
app.add_typer(criteria_app, name="criteria", help="Detection criteria catalogue.")
