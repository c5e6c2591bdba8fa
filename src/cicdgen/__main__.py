"""Allow ``python -m cicdgen``."""

from cicdgen.cli import app

app()
