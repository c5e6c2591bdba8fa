"""
cicdgen - README to CI/CD workflow generation.

Reads a project's README, detects its languages, frameworks and build
tools, renders GitHub Actions workflows and writes them safely to
``.github/workflows``. Slow or failing stages degrade to simpler
fallbacks instead of failing the run.

Quick start::

    import asyncio
    from cicdgen import PipelineOrchestrator, RunOptions

    result = asyncio.run(PipelineOrchestrator().execute(RunOptions(dry_run=True)))
    print(result.warnings)
"""

__version__ = "0.1.0"

from cicdgen.core.errors import CicdError
from cicdgen.core.settings import PipelineSettings, load_settings
from cicdgen.orchestration import (
    PipelineOrchestrator,
    PipelineResult,
    PipelineStage,
    RunOptions,
    TelemetryRecorder,
)

__all__ = [
    "__version__",
    "CicdError",
    "PipelineSettings",
    "load_settings",
    "PipelineOrchestrator",
    "PipelineResult",
    "PipelineStage",
    "RunOptions",
    "TelemetryRecorder",
]
