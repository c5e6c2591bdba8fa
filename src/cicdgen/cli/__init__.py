"""
CLI layer for cicdgen.

Provides a Typer application whose commands delegate to the pipeline
(``cicdgen.orchestration``). This package handles only terminal
transport: argument parsing, coloured output, and table formatting.

Entry point::

    cicdgen --help
"""

from cicdgen.cli.app import app

__all__ = ["app"]
