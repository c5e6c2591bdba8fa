"""
Shared pytest fixtures for cicdgen tests.

This module provides:
- Logging configured once per session (JSON to the captured stderr)
- Fast PipelineSettings (no back-off sleeps, short timeouts)
- Stub collaborators implementing the orchestration protocols
- Sample README / project directories

Usage:
    Fixtures are auto-discovered by pytest; request them by name.

    def test_something(project_dir, fast_settings):
        ...
"""

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import pytest

from cicdgen.core.logging import configure_logging
from cicdgen.core.models import (
    DetectedItem,
    DetectionConfidence,
    DetectionResult,
    GenerationOptions,
    ParseResult,
    ProjectFacts,
    WorkflowFile,
)
from cicdgen.core.settings import PipelineSettings
from cicdgen.generation.templates import render_ci


# =============================================================================
# Session configuration
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_logging():
    """Route structlog output to the (captured) stderr for the whole session."""
    configure_logging(level="DEBUG", json_format=True, force=True)


# =============================================================================
# Sample data
# =============================================================================


NODE_README = """# my-app

A Node.js web service built with Express.

## Install

```bash
npm install express cors
npm run build
```

## Test

```bash
npm test
```
"""

STUB_README = "# tiny\n\nNothing to see.\n"

FIXED_NOW = datetime(2026, 10, 18, 12, 34, 56, 789000, tzinfo=UTC)


def node_facts() -> ProjectFacts:
    return ProjectFacts(
        name="my-app",
        languages=("nodejs",),
        dependencies=("express", "cors"),
        build_commands=("npm install express cors", "npm run build"),
        test_commands=("npm test",),
        raw_text=NODE_README,
    )


def node_detection(confidence: float = 0.85) -> DetectionResult:
    return DetectionResult(
        languages=(DetectedItem(name="nodejs", confidence=confidence, category="language"),),
        frameworks=(DetectedItem(name="express", confidence=0.7, category="framework"),),
        confidence=DetectionConfidence(score=confidence, matches=True, breakdown={"languages": confidence}),
    )


def workflow(filename: str = "ci.yml", content: str | None = None, type: str = "ci") -> WorkflowFile:
    return WorkflowFile(filename=filename, content=content if content is not None else render_ci("nodejs"), type=type)


# =============================================================================
# Stub collaborators
# =============================================================================


class StubParser:
    """ReadmeParser that fails ``failures`` times, then returns ``result``."""

    def __init__(self, result: ParseResult | None = None, *, failures: int = 0, error: Exception | None = None):
        self.result = result or ParseResult.ok(node_facts())
        self.failures = failures
        self.error = error or OSError("transient read failure")
        self.calls = 0
        self.paths: list[Path] = []

    async def parse(self, path):
        self.calls += 1
        self.paths.append(Path(path))
        if self.calls <= self.failures:
            raise self.error
        return self.result


class StubDetector:
    """FrameworkDetector with optional delay or error."""

    def __init__(
        self,
        result: DetectionResult | None = None,
        *,
        delay: float = 0.0,
        error: Exception | None = None,
    ):
        self.result = result or node_detection()
        self.delay = delay
        self.error = error
        self.calls = 0
        self.cancelled = False

    async def detect(self, facts, working_dir):
        self.calls += 1
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return self.result


class StubGenerator:
    """WorkflowGenerator returning fixed files, or raising ``error``."""

    def __init__(self, files: list[WorkflowFile] | None = None, *, error: Exception | None = None):
        self.files = files if files is not None else [workflow()]
        self.error = error
        self.calls = 0
        self.options: list[GenerationOptions] = []

    async def generate(self, detection, options):
        self.calls += 1
        self.options.append(options)
        if self.error is not None:
            raise self.error
        return list(self.files)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fast_settings() -> PipelineSettings:
    """Settings with no back-off delay and short timeouts."""
    return PipelineSettings(
        backoff_base_seconds=0.0,
        backoff_max_seconds=0.0,
        detection_timeout_seconds=0.5,
        parse_timeout_seconds=2.0,
        generation_timeout_seconds=2.0,
    )


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project root containing the Node.js sample README."""
    (tmp_path / "README.md").write_text(NODE_README, encoding="utf-8")
    return tmp_path


@pytest.fixture
def workflows_dir(project_dir: Path) -> Path:
    path = project_dir / ".github" / "workflows"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW
