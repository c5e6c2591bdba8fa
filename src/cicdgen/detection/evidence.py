"""Evidence Scorer - weighted detection criteria evaluated against project facts.

``evaluate(criteria, facts)`` is a pure function: same inputs, same
``ConfidenceResult``, no I/O, no logging.

Scoring
───────
::

    for each category (package-file, dependency, file-pattern,
                       command-pattern, text-pattern):
        matched  = Σ weight of rules whose condition holds
        maximum  = Σ weight of all rules in the category
    confidence = Σ matched / Σ maximum        (0 when Σ maximum == 0)
    matches    = confidence >= criteria.minimum_confidence

Conditions
──────────
=============== ============================================================
package-file    case-insensitive substring of any config file name
dependency      case-insensitive regex search over dependency names
file-pattern    glob (``*.csproj``, ``**/pom.xml``) matched against paths
command-pattern case-insensitive regex over build + test commands
text-pattern    regex over the raw README (case-sensitive only if flagged)
=============== ============================================================

Example::

    criteria = DetectionCriteria(
        package_files=(PatternRule("package.json", 0.9),),
        dependencies=(PatternRule(r"^react$", 0.7, source="react"),),
    )
    result = evaluate(criteria, facts)
    if result.matches:
        ...

Tags:
    detection, confidence, evidence, scoring, cicdgen

Doc-Types:
    api-reference
"""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any

from cicdgen.core.models import ProjectFacts


class EvidenceKind(str, Enum):
    """The five evidence categories."""

    PACKAGE_FILE = "package-file"
    DEPENDENCY = "dependency"
    FILE_PATTERN = "file-pattern"
    COMMAND_PATTERN = "command-pattern"
    TEXT_PATTERN = "text-pattern"


@dataclass(frozen=True)
class Evidence:
    """A single matched signal justifying a confidence score."""

    kind: EvidenceKind
    source: str
    value: str
    weight: float
    context: str | None = None

    def __post_init__(self) -> None:
        if self.weight <= 0:
            raise ValueError(f"Evidence weight must be > 0, got {self.weight}")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "kind": self.kind.value,
            "source": self.source,
            "value": self.value,
            "weight": self.weight,
        }
        if self.context:
            result["context"] = self.context
        return result


@dataclass(frozen=True)
class PatternRule:
    """One weighted pattern in a criteria category.

    Attributes:
        pattern: Substring, regex or glob depending on the category
        weight: Contribution to the score when matched (> 0)
        source: Label recorded on the evidence (defaults to the pattern)
        context: Optional note carried onto the evidence
        case_sensitive: Only honoured for text patterns
    """

    pattern: str
    weight: float = 1.0
    source: str | None = None
    context: str | None = None
    case_sensitive: bool = False

    def __post_init__(self) -> None:
        if self.weight <= 0:
            raise ValueError(f"Pattern weight must be > 0, got {self.weight} for {self.pattern!r}")

    @property
    def label(self) -> str:
        return self.source or self.pattern


@dataclass(frozen=True)
class DetectionCriteria:
    """Weighted pattern lists, one per evidence kind, plus a threshold."""

    package_files: tuple[PatternRule, ...] = ()
    dependencies: tuple[PatternRule, ...] = ()
    file_patterns: tuple[PatternRule, ...] = ()
    commands: tuple[PatternRule, ...] = ()
    text_patterns: tuple[PatternRule, ...] = ()
    minimum_confidence: float = 0.5

    def __post_init__(self) -> None:
        if not 0.0 <= self.minimum_confidence <= 1.0:
            raise ValueError(f"minimum_confidence must be within [0, 1], got {self.minimum_confidence}")

    def categories(self) -> Iterable[tuple[EvidenceKind, tuple[PatternRule, ...]]]:
        yield EvidenceKind.PACKAGE_FILE, self.package_files
        yield EvidenceKind.DEPENDENCY, self.dependencies
        yield EvidenceKind.FILE_PATTERN, self.file_patterns
        yield EvidenceKind.COMMAND_PATTERN, self.commands
        yield EvidenceKind.TEXT_PATTERN, self.text_patterns

    @property
    def total_weight(self) -> float:
        return sum(rule.weight for _, rules in self.categories() for rule in rules)


@dataclass(frozen=True)
class ConfidenceResult:
    """Outcome of evaluating one criteria set."""

    matches: bool
    confidence: float
    evidence: tuple[Evidence, ...] = ()
    breakdown: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "matches": self.matches,
            "confidence": round(self.confidence, 4),
            "evidence": [e.to_dict() for e in self.evidence],
            "breakdown": dict(self.breakdown),
        }


# =============================================================================
# Condition checks
# =============================================================================


@lru_cache(maxsize=512)
def _compile(pattern: str, flags: int) -> re.Pattern[str]:
    return re.compile(pattern, flags)


@lru_cache(maxsize=256)
def _glob_regex(pattern: str) -> re.Pattern[str]:
    # "**/" may match zero directories; fnmatch's "*" already crosses "/".
    normalized = pattern.replace("**/", "*")
    return re.compile(fnmatch.translate(normalized), re.IGNORECASE)


def _search_any(regex: re.Pattern[str], values: Iterable[str]) -> str | None:
    for value in values:
        if regex.search(value):
            return value
    return None


def _match_package_file(rule: PatternRule, facts: ProjectFacts) -> str | None:
    needle = rule.pattern.lower()
    for name in facts.config_files:
        if needle in name.lower():
            return name
    return None


def _match_dependency(rule: PatternRule, facts: ProjectFacts) -> str | None:
    return _search_any(_compile(rule.pattern, re.IGNORECASE), facts.dependencies)


def _match_file_pattern(rule: PatternRule, facts: ProjectFacts) -> str | None:
    regex = _glob_regex(rule.pattern)
    for path in facts.config_files:
        normalized = path.replace("\\", "/")
        basename = normalized.rsplit("/", 1)[-1]
        if regex.match(normalized) or regex.match(basename):
            return path
    return None


def _match_command(rule: PatternRule, facts: ProjectFacts) -> str | None:
    return _search_any(_compile(rule.pattern, re.IGNORECASE), facts.commands)


def _match_text(rule: PatternRule, facts: ProjectFacts) -> str | None:
    flags = 0 if rule.case_sensitive else re.IGNORECASE
    match = _compile(rule.pattern, flags | re.MULTILINE).search(facts.raw_text)
    return match.group(0) if match else None


def pattern_problem(kind: EvidenceKind, pattern: str) -> str | None:
    """Why ``pattern`` cannot be used as a ``kind`` rule, or None if it compiles."""
    try:
        if kind == EvidenceKind.FILE_PATTERN:
            _glob_regex(pattern)
        elif kind != EvidenceKind.PACKAGE_FILE:
            _compile(pattern, re.IGNORECASE)
    except re.error as e:
        return str(e)
    return None


_MATCHERS: dict[EvidenceKind, Callable[[PatternRule, ProjectFacts], str | None]] = {
    EvidenceKind.PACKAGE_FILE: _match_package_file,
    EvidenceKind.DEPENDENCY: _match_dependency,
    EvidenceKind.FILE_PATTERN: _match_file_pattern,
    EvidenceKind.COMMAND_PATTERN: _match_command,
    EvidenceKind.TEXT_PATTERN: _match_text,
}


# =============================================================================
# Evaluation
# =============================================================================


def evaluate(criteria: DetectionCriteria, facts: ProjectFacts) -> ConfidenceResult:
    """Score ``facts`` against ``criteria``.

    Returns:
        ConfidenceResult with ``confidence`` in [0, 1], one Evidence per
        satisfied rule, and a ``matched/max`` ratio per non-empty category
    """
    total_matched = 0.0
    total_max = 0.0
    evidence: list[Evidence] = []
    breakdown: dict[str, float] = {}

    for kind, rules in criteria.categories():
        if not rules:
            continue
        matcher = _MATCHERS[kind]
        matched_weight = 0.0
        category_max = 0.0
        for rule in rules:
            category_max += rule.weight
            value = matcher(rule, facts)
            if value is None:
                continue
            matched_weight += rule.weight
            evidence.append(
                Evidence(
                    kind=kind,
                    source=rule.label,
                    value=value,
                    weight=rule.weight,
                    context=rule.context,
                )
            )
        total_matched += matched_weight
        total_max += category_max
        breakdown[kind.value] = matched_weight / category_max

    confidence = total_matched / total_max if total_max > 0 else 0.0
    # Guard against float drift pushing the ratio past 1.0.
    confidence = min(max(confidence, 0.0), 1.0)

    return ConfidenceResult(
        matches=confidence >= criteria.minimum_confidence,
        confidence=confidence,
        evidence=tuple(evidence),
        breakdown=breakdown,
    )


__all__ = [
    "EvidenceKind",
    "Evidence",
    "PatternRule",
    "DetectionCriteria",
    "ConfidenceResult",
    "evaluate",
    "pattern_problem",
]
