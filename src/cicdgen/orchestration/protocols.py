"""Collaborator protocols consumed by the pipeline orchestrator.

ARCHITECTURE
────────────
::

    ReadmeParser (Protocol)
      └── async .parse(path) → ParseResult{success, data, errors}

    FrameworkDetector (Protocol)
      └── async .detect(facts, working_dir) → DetectionResult

    WorkflowGenerator (Protocol)
      └── async .generate(detection, options) → list[WorkflowFile]

Default implementations:
    cicdgen.parsing.BasicReadmeParser
    cicdgen.detection.EvidenceDetector
    cicdgen.generation.TemplateGenerator

Example::

    class LlmGenerator:
        async def generate(self, detection, options):
            text = await client.complete(prompt_for(detection))
            return [WorkflowFile(filename="ci.yml", content=text)]

    orchestrator = PipelineOrchestrator(generator=LlmGenerator())

Tags:
    orchestration, protocol, collaborators, cicdgen

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from cicdgen.core.models import DetectionResult, GenerationOptions, ParseResult, ProjectFacts, WorkflowFile


@runtime_checkable
class ReadmeParser(Protocol):
    """Turns a README file into project facts."""

    async def parse(self, path: str | Path) -> ParseResult: ...


@runtime_checkable
class FrameworkDetector(Protocol):
    """Finds languages, frameworks and build tools."""

    async def detect(self, facts: ProjectFacts, working_dir: str | Path | None = None) -> DetectionResult: ...


@runtime_checkable
class WorkflowGenerator(Protocol):
    """Renders workflow files for a detection result."""

    async def generate(self, detection: DetectionResult, options: GenerationOptions) -> list[WorkflowFile]: ...


__all__ = ["ReadmeParser", "FrameworkDetector", "WorkflowGenerator"]
