"""Detection: evidence scoring, criteria catalogue and the default detector."""

from cicdgen.detection.criteria import CatalogueEntry, CriteriaCatalogue, builtin_catalogue, load_criteria
from cicdgen.detection.detector import EvidenceDetector, fallback_detection
from cicdgen.detection.evidence import (
    ConfidenceResult,
    DetectionCriteria,
    Evidence,
    EvidenceKind,
    PatternRule,
    evaluate,
)

__all__ = [
    "EvidenceKind",
    "Evidence",
    "PatternRule",
    "DetectionCriteria",
    "ConfidenceResult",
    "evaluate",
    "CatalogueEntry",
    "CriteriaCatalogue",
    "builtin_catalogue",
    "load_criteria",
    "EvidenceDetector",
    "fallback_detection",
]
