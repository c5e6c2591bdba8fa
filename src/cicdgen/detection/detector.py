"""Framework detection built on the Evidence Scorer.

``EvidenceDetector`` is the default detection collaborator: it scores the
project facts against every catalogue entry and reports the entries that
clear their threshold. ``fallback_detection`` is the cheap substitute the
orchestrator uses when detection is slow, broken or bypassed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path

from cicdgen.core.logging import get_logger
from cicdgen.core.models import DetectedItem, DetectionConfidence, DetectionResult, ProjectFacts
from cicdgen.detection.criteria import CatalogueEntry, load_criteria
from cicdgen.detection.evidence import Evidence, evaluate

logger = get_logger(__name__)

FALLBACK_CONFIDENCE = 0.6


def _scan_working_dir(working_dir: str | Path | None) -> list[str]:
    """Names of the regular, non-hidden files at the top of ``working_dir``."""
    if working_dir is None:
        return []
    root = Path(working_dir)
    if not root.is_dir():
        return []
    return sorted(p.name for p in root.iterdir() if p.is_file() and not p.name.startswith("."))


class EvidenceDetector:
    """Detects languages, frameworks and build tools from project facts.

    Example:
        >>> detector = EvidenceDetector()
        >>> result = await detector.detect(facts, "/path/to/project")
        >>> result.primary_language
        'nodejs'
    """

    def __init__(
        self,
        entries: Iterable[CatalogueEntry] | None = None,
        *,
        scan_working_dir: bool = True,
    ):
        self.entries = tuple(entries) if entries is not None else load_criteria()
        self.scan_working_dir = scan_working_dir

    async def detect(self, facts: ProjectFacts, working_dir: str | Path | None = None) -> DetectionResult:
        if self.scan_working_dir:
            facts = facts.with_config_files(await asyncio.to_thread(_scan_working_dir, working_dir))

        found: dict[str, list[DetectedItem]] = {"language": [], "framework": [], "build-tool": []}
        evidence: list[Evidence] = []

        for entry in self.entries:
            result = evaluate(entry.criteria, facts)
            if not result.matches:
                continue
            found.setdefault(entry.category, []).append(
                DetectedItem(
                    name=entry.name,
                    confidence=result.confidence,
                    category=entry.category,
                    ecosystem=entry.ecosystem,
                    evidence=tuple(f"{e.kind.value}:{e.source}" for e in result.evidence),
                )
            )
            evidence.extend(result.evidence)

        languages = _ranked(found["language"])
        frameworks = _ranked(found["framework"])
        build_tools = _ranked(found["build-tool"])

        breakdown = {
            "languages": _best(languages),
            "frameworks": _best(frameworks),
            "build_tools": _best(build_tools),
        }
        score = max(breakdown.values())
        warnings: tuple[str, ...] = ()
        if not languages:
            warnings = ("No programming language detected with sufficient confidence",)

        logger.info(
            "detection.complete",
            languages=[item.name for item in languages],
            frameworks=[item.name for item in frameworks],
            build_tools=[item.name for item in build_tools],
            score=round(score, 3),
        )

        return DetectionResult(
            frameworks=frameworks,
            languages=languages,
            build_tools=build_tools,
            confidence=DetectionConfidence(
                score=score,
                matches=bool(languages or frameworks or build_tools),
                evidence=tuple(evidence),
                breakdown=breakdown,
            ),
            warnings=warnings,
        )


def _ranked(items: list[DetectedItem]) -> tuple[DetectedItem, ...]:
    return tuple(sorted(items, key=lambda item: item.confidence, reverse=True))


def _best(items: tuple[DetectedItem, ...]) -> float:
    return items[0].confidence if items else 0.0


def fallback_detection(facts: ProjectFacts, confidence: float = FALLBACK_CONFIDENCE) -> DetectionResult:
    """Minimal detection result built only from the languages the parser saw.

    Pure and fast; never raises for well-formed facts.
    """
    languages = tuple(
        DetectedItem(name=lang, confidence=confidence, category="language", evidence=("readme:language",))
        for lang in facts.languages
    )
    return DetectionResult(
        languages=languages,
        confidence=DetectionConfidence(
            score=confidence,
            matches=True,
            breakdown={"languages": confidence if languages else 0.0},
        ),
        fallback=True,
    )


__all__ = ["EvidenceDetector", "FALLBACK_CONFIDENCE", "fallback_detection"]
