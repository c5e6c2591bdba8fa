"""Detection criteria catalogue - pydantic models for YAML-defined criteria.

Criteria are configuration: they are loaded once, validated, converted to
the frozen :class:`~cicdgen.detection.evidence.DetectionCriteria` the
scorer consumes, and never mutated afterwards.

Usage::

    from cicdgen.detection.criteria import CriteriaCatalogue, builtin_catalogue

    catalogue = builtin_catalogue()
    custom = CriteriaCatalogue.from_yaml_file("criteria/internal.yaml")
    entries = catalogue.merge(custom).entries()

Example YAML::

    criteria:
      - name: deno
        category: language
        ecosystem: javascript
        minimum_confidence: 0.4
        package_files:
          - deno.json
        commands:
          - pattern: '^deno\\b'
            weight: 1.0
        text_patterns:
          - pattern: '\\bDeno\\b'
            weight: 0.5
            case_sensitive: true

A rule may be written as a bare string (weight 1.0) or as a mapping.

Tags:
    detection, criteria, yaml, pydantic, cicdgen

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from cicdgen.core.errors import ConfigurationError
from cicdgen.detection.evidence import DetectionCriteria, EvidenceKind, PatternRule, pattern_problem

ItemCategory = Literal["language", "framework", "build-tool"]


class RuleSpec(BaseModel):
    """One weighted pattern."""

    model_config = ConfigDict(extra="forbid")

    pattern: str = Field(..., min_length=1)
    weight: float = Field(default=1.0, gt=0)
    source: str | None = None
    context: str | None = None
    case_sensitive: bool = False

    def to_rule(self) -> PatternRule:
        return PatternRule(
            pattern=self.pattern,
            weight=self.weight,
            source=self.source,
            context=self.context,
            case_sensitive=self.case_sensitive,
        )


def _coerce_rules(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, list):
        return [{"pattern": item} if isinstance(item, str) else item for item in value]
    return value


_FIELD_KINDS: dict[str, EvidenceKind] = {
    "package_files": EvidenceKind.PACKAGE_FILE,
    "dependencies": EvidenceKind.DEPENDENCY,
    "file_patterns": EvidenceKind.FILE_PATTERN,
    "commands": EvidenceKind.COMMAND_PATTERN,
    "text_patterns": EvidenceKind.TEXT_PATTERN,
}


class CriteriaSpec(BaseModel):
    """Criteria for one detectable language, framework or build tool."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    category: ItemCategory = "language"
    ecosystem: str | None = None
    minimum_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    package_files: list[RuleSpec] = Field(default_factory=list)
    dependencies: list[RuleSpec] = Field(default_factory=list)
    file_patterns: list[RuleSpec] = Field(default_factory=list)
    commands: list[RuleSpec] = Field(default_factory=list)
    text_patterns: list[RuleSpec] = Field(default_factory=list)

    @field_validator(
        "package_files", "dependencies", "file_patterns", "commands", "text_patterns", mode="before"
    )
    @classmethod
    def _allow_bare_strings(cls, v: Any) -> Any:
        return _coerce_rules(v)

    @field_validator("dependencies", "file_patterns", "commands", "text_patterns")
    @classmethod
    def _patterns_compile(cls, v: list[RuleSpec], info: ValidationInfo) -> list[RuleSpec]:
        kind = _FIELD_KINDS[info.field_name]
        for rule in v:
            problem = pattern_problem(kind, rule.pattern)
            if problem:
                raise ValueError(f"invalid {info.field_name} pattern {rule.pattern!r}: {problem}")
        return v

    def to_criteria(self, default_minimum: float = 0.5) -> DetectionCriteria:
        """Build evaluable criteria; ``default_minimum`` applies when no threshold is set."""
        return DetectionCriteria(
            package_files=tuple(r.to_rule() for r in self.package_files),
            dependencies=tuple(r.to_rule() for r in self.dependencies),
            file_patterns=tuple(r.to_rule() for r in self.file_patterns),
            commands=tuple(r.to_rule() for r in self.commands),
            text_patterns=tuple(r.to_rule() for r in self.text_patterns),
            minimum_confidence=(
                self.minimum_confidence if self.minimum_confidence is not None else default_minimum
            ),
        )


@dataclass(frozen=True)
class CatalogueEntry:
    """A named criteria set ready for evaluation."""

    name: str
    category: str
    ecosystem: str | None
    criteria: DetectionCriteria


class CriteriaCatalogue(BaseModel):
    """Root model of a criteria YAML document."""

    model_config = ConfigDict(extra="forbid")

    criteria: list[CriteriaSpec] = Field(default_factory=list)

    @field_validator("criteria")
    @classmethod
    def _unique_names(cls, v: list[CriteriaSpec]) -> list[CriteriaSpec]:
        names = [spec.name for spec in v]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate criteria names: {sorted(duplicates)}")
        return v

    @classmethod
    def from_yaml(cls, yaml_content: str) -> CriteriaCatalogue:
        """Parse and validate YAML content.

        Raises:
            ConfigurationError: If the YAML is malformed or fails validation
        """
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid criteria YAML: {e}", code="INVALID_CRITERIA", cause=e
            ) from e
        try:
            return cls.model_validate(data or {})
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid criteria definition: {e}", code="INVALID_CRITERIA", cause=e
            ) from e

    @classmethod
    def from_yaml_file(cls, path: str | Path) -> CriteriaCatalogue:
        try:
            content = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read criteria file {path}: {e}", code="INVALID_CRITERIA", cause=e
            ) from e
        return cls.from_yaml(content)

    def merge(self, other: CriteriaCatalogue) -> CriteriaCatalogue:
        """Return a catalogue where ``other``'s entries replace same-named ones."""
        by_name = {spec.name: spec for spec in self.criteria}
        for spec in other.criteria:
            by_name[spec.name] = spec
        return CriteriaCatalogue(criteria=list(by_name.values()))

    def entries(self, default_minimum: float = 0.5) -> tuple[CatalogueEntry, ...]:
        return tuple(
            CatalogueEntry(
                name=spec.name,
                category=spec.category,
                ecosystem=spec.ecosystem,
                criteria=spec.to_criteria(default_minimum),
            )
            for spec in self.criteria
        )


# =============================================================================
# Built-in catalogue
# =============================================================================

BUILTIN_CRITERIA_YAML = r"""
criteria:
  # ── Languages ───────────────────────────────────────────────
  - name: nodejs
    category: language
    ecosystem: javascript
    minimum_confidence: 0.3
    package_files:
      - {pattern: package.json, weight: 1.0}
      - {pattern: package-lock.json, weight: 0.3}
      - {pattern: yarn.lock, weight: 0.3}
    commands:
      - {pattern: '^(npm|npx|yarn|pnpm)\b', weight: 1.0, source: node package manager}
    text_patterns:
      - {pattern: '\bnode(\.js|js)?\b', weight: 0.5, source: Node.js mention}
      - {pattern: '```(js|javascript|ts|typescript)\b', weight: 0.4, source: JavaScript code block}

  - name: python
    category: language
    ecosystem: python
    minimum_confidence: 0.3
    package_files:
      - {pattern: requirements.txt, weight: 0.8}
      - {pattern: pyproject.toml, weight: 0.8}
      - {pattern: setup.py, weight: 0.6}
    commands:
      - {pattern: '^(pip3?|python3?|pytest|poetry|uv|tox)\b', weight: 1.0, source: python tooling}
    text_patterns:
      - {pattern: '\bpython\b', weight: 0.5, source: Python mention}
      - {pattern: '```(python|py)\b', weight: 0.4, source: Python code block}

  - name: rust
    category: language
    ecosystem: rust
    minimum_confidence: 0.3
    package_files:
      - {pattern: Cargo.toml, weight: 1.0}
    commands:
      - {pattern: '^cargo\b', weight: 1.0, source: cargo}
    text_patterns:
      - {pattern: '\brust\b', weight: 0.5, source: Rust mention}

  - name: go
    category: language
    ecosystem: go
    minimum_confidence: 0.3
    package_files:
      - {pattern: go.mod, weight: 1.0}
    commands:
      - {pattern: '^go\s+(build|test|run|mod|get|install|vet)\b', weight: 1.0, source: go toolchain}
    text_patterns:
      - {pattern: '\bgolang\b|\bgo\s+module', weight: 0.5, source: Go mention}

  - name: java
    category: language
    ecosystem: jvm
    minimum_confidence: 0.3
    package_files:
      - {pattern: pom.xml, weight: 1.0}
      - {pattern: build.gradle, weight: 0.8}
    file_patterns:
      - {pattern: '**/*.java', weight: 0.5}
    commands:
      - {pattern: '^(mvn|gradle|\./gradlew|\./mvnw)\b', weight: 1.0, source: jvm build tool}
    text_patterns:
      - {pattern: '\bjava\b', weight: 0.5, source: Java mention}

  # ── Frameworks ──────────────────────────────────────────────
  - name: react
    category: framework
    ecosystem: javascript
    minimum_confidence: 0.4
    dependencies:
      - {pattern: '^react(-dom)?$', weight: 1.0, source: react}
    text_patterns:
      - {pattern: '\breact\b', weight: 0.5, source: React mention}

  - name: express
    category: framework
    ecosystem: javascript
    minimum_confidence: 0.4
    dependencies:
      - {pattern: '^express$', weight: 1.0, source: express}
    text_patterns:
      - {pattern: '\bexpress(\.js)?\b', weight: 0.5, source: Express mention}

  - name: django
    category: framework
    ecosystem: python
    minimum_confidence: 0.4
    dependencies:
      - {pattern: '^django$', weight: 1.0, source: django}
    commands:
      - {pattern: 'manage\.py', weight: 0.6, source: django manage.py}
    text_patterns:
      - {pattern: '\bdjango\b', weight: 0.5, source: Django mention}

  - name: flask
    category: framework
    ecosystem: python
    minimum_confidence: 0.4
    dependencies:
      - {pattern: '^flask$', weight: 1.0, source: flask}
    text_patterns:
      - {pattern: '\bflask\b', weight: 0.5, source: Flask mention}

  - name: fastapi
    category: framework
    ecosystem: python
    minimum_confidence: 0.4
    dependencies:
      - {pattern: '^fastapi$', weight: 1.0, source: fastapi}
      - {pattern: '^uvicorn$', weight: 0.3, source: uvicorn}
    text_patterns:
      - {pattern: '\bfastapi\b', weight: 0.5, source: FastAPI mention}

  # ── Build tools ─────────────────────────────────────────────
  - name: docker
    category: build-tool
    ecosystem: container
    minimum_confidence: 0.3
    package_files:
      - {pattern: Dockerfile, weight: 1.0}
      - {pattern: docker-compose, weight: 0.5}
    commands:
      - {pattern: '^docker(-compose)?\b', weight: 0.8, source: docker cli}
    text_patterns:
      - {pattern: '\bdocker\b', weight: 0.3, source: Docker mention}
"""


@lru_cache(maxsize=1)
def builtin_catalogue() -> CriteriaCatalogue:
    """The criteria shipped with cicdgen (parsed once)."""
    return CriteriaCatalogue.from_yaml(BUILTIN_CRITERIA_YAML)


def load_criteria(
    path: str | Path | None = None,
    minimum_confidence: float = 0.5,
) -> tuple[CatalogueEntry, ...]:
    """Built-in entries, optionally extended/overridden by a YAML file.

    ``minimum_confidence`` is the threshold for entries that do not set one.
    """
    catalogue = builtin_catalogue()
    if path is not None:
        catalogue = catalogue.merge(CriteriaCatalogue.from_yaml_file(path))
    return catalogue.entries(minimum_confidence)


__all__ = [
    "RuleSpec",
    "CriteriaSpec",
    "CatalogueEntry",
    "CriteriaCatalogue",
    "BUILTIN_CRITERIA_YAML",
    "builtin_catalogue",
    "load_criteria",
]
