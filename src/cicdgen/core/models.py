"""Value types exchanged between the pipeline and its collaborators.

All models are frozen dataclasses: a stage produces them once and later
stages only read them.

    ProjectFacts     ── what the README parser extracted
    ParseResult      ── ProjectFacts + success flag + parser errors
    DetectedItem     ── one language / framework / build tool with confidence
    DetectionResult  ── everything detection found, plus overall confidence
    WorkflowFile     ── one generated workflow (filename + YAML text)
    GenerationOptions── what the generator should produce
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ProjectFacts:
    """Structured project information extracted from a README."""

    name: str = "Unknown Project"
    languages: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    config_files: tuple[str, ...] = ()
    build_commands: tuple[str, ...] = ()
    test_commands: tuple[str, ...] = ()
    raw_text: str = ""

    @property
    def commands(self) -> tuple[str, ...]:
        """Build and test commands together."""
        return self.build_commands + self.test_commands

    def with_config_files(self, extra: tuple[str, ...] | list[str]) -> ProjectFacts:
        """Return a copy with additional config files (duplicates dropped)."""
        merged = list(self.config_files)
        for name in extra:
            if name not in merged:
                merged.append(name)
        return ProjectFacts(
            name=self.name,
            languages=self.languages,
            dependencies=self.dependencies,
            config_files=tuple(merged),
            build_commands=self.build_commands,
            test_commands=self.test_commands,
            raw_text=self.raw_text,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "languages": list(self.languages),
            "dependencies": list(self.dependencies),
            "config_files": list(self.config_files),
            "build_commands": list(self.build_commands),
            "test_commands": list(self.test_commands),
        }


@dataclass(frozen=True)
class ParseResult:
    """Outcome of a README parse call."""

    success: bool
    data: ProjectFacts | None = None
    errors: tuple[str, ...] = ()

    @classmethod
    def ok(cls, data: ProjectFacts) -> ParseResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, *errors: str) -> ParseResult:
        return cls(success=False, errors=tuple(errors) or ("Unknown parsing error",))


@dataclass(frozen=True)
class DetectedItem:
    """A detected language, framework or build tool."""

    name: str
    confidence: float
    version: str | None = None
    category: str | None = None
    ecosystem: str | None = None
    evidence: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name, "confidence": round(self.confidence, 3)}
        if self.version:
            result["version"] = self.version
        if self.category:
            result["category"] = self.category
        if self.ecosystem:
            result["ecosystem"] = self.ecosystem
        if self.evidence:
            result["evidence"] = list(self.evidence)
        return result


@dataclass(frozen=True)
class DetectionConfidence:
    """Overall detection confidence with a per-category breakdown.

    Same shape as a scorer ``ConfidenceResult`` (``score`` / ``matches`` /
    ``evidence``) extended with ``breakdown`` keyed by category name.
    """

    score: float
    matches: bool
    evidence: tuple[Any, ...] = ()
    breakdown: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": round(self.score, 3),
            "matches": self.matches,
            "evidence_count": len(self.evidence),
            "breakdown": {k: round(v, 3) for k, v in self.breakdown.items()},
        }


@dataclass(frozen=True)
class DetectionResult:
    """Everything the detection stage found."""

    frameworks: tuple[DetectedItem, ...] = ()
    languages: tuple[DetectedItem, ...] = ()
    build_tools: tuple[DetectedItem, ...] = ()
    confidence: DetectionConfidence = field(
        default_factory=lambda: DetectionConfidence(score=0.0, matches=False)
    )
    fallback: bool = False
    warnings: tuple[str, ...] = ()

    @property
    def primary_language(self) -> str | None:
        """Highest-confidence language name, or None if nothing was detected."""
        if not self.languages:
            return None
        return max(self.languages, key=lambda item: item.confidence).name

    @property
    def framework_names(self) -> list[str]:
        return [f.name for f in self.frameworks]

    def to_dict(self) -> dict[str, Any]:
        return {
            "frameworks": [f.to_dict() for f in self.frameworks],
            "languages": [lang.to_dict() for lang in self.languages],
            "build_tools": [b.to_dict() for b in self.build_tools],
            "confidence": self.confidence.to_dict(),
            "fallback": self.fallback,
        }


@dataclass(frozen=True)
class WorkflowFile:
    """A generated workflow file."""

    filename: str
    content: str
    type: str = "ci"
    description: str | None = None
    version: str | None = None
    generated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "type": self.type,
            "description": self.description,
            "version": self.version,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
            "size": len(self.content),
        }


@dataclass(frozen=True)
class GenerationOptions:
    """Options handed to the workflow generator."""

    workflow_types: tuple[str, ...] = ("ci",)
    include_comments: bool = True
    optimization_level: str = "standard"
    security_level: str = "standard"
