"""Tests for EvidenceDetector and fallback_detection."""

import threading

import pytest

from cicdgen.core.models import ProjectFacts
from cicdgen.detection import detector as detector_module
from cicdgen.detection.criteria import CriteriaCatalogue
from cicdgen.detection.detector import FALLBACK_CONFIDENCE, EvidenceDetector, fallback_detection

from conftest import node_facts


class TestEvidenceDetector:
    """Detection with the built-in catalogue."""

    @pytest.mark.asyncio
    async def test_detects_node_and_express(self):
        result = await EvidenceDetector(scan_working_dir=False).detect(node_facts())
        assert result.primary_language == "nodejs"
        assert result.framework_names == ["express"]
        assert result.fallback is False
        assert result.confidence.matches is True
        assert result.confidence.breakdown["frameworks"] == pytest.approx(1.0)
        assert result.warnings == ()

    @pytest.mark.asyncio
    async def test_evidence_labels(self):
        result = await EvidenceDetector(scan_working_dir=False).detect(node_facts())
        (node,) = result.languages
        assert "command-pattern:node package manager" in node.evidence
        assert node.category == "language"
        assert node.ecosystem == "javascript"

    @pytest.mark.asyncio
    async def test_scans_working_dir_files(self, tmp_path):
        (tmp_path / "Cargo.toml").write_text("[package]\n", encoding="utf-8")
        (tmp_path / ".hidden").write_text("", encoding="utf-8")
        facts = ProjectFacts(name="crate", raw_text="A tool written in Rust.")
        result = await EvidenceDetector().detect(facts, tmp_path)
        assert result.primary_language == "rust"
        assert "package-file:Cargo.toml" in result.languages[0].evidence

    @pytest.mark.asyncio
    async def test_scan_runs_off_the_event_loop(self, tmp_path, monkeypatch):
        scan_threads = []

        def recording_scan(working_dir):
            scan_threads.append(threading.get_ident())
            return ["Cargo.toml"]

        monkeypatch.setattr(detector_module, "_scan_working_dir", recording_scan)
        facts = ProjectFacts(name="crate", raw_text="A tool written in Rust.")
        result = await EvidenceDetector().detect(facts, tmp_path)
        assert scan_threads and scan_threads[0] != threading.get_ident()
        assert result.primary_language == "rust"

    @pytest.mark.asyncio
    async def test_nothing_detected_warns(self):
        result = await EvidenceDetector(scan_working_dir=False).detect(ProjectFacts(raw_text="Hello."))
        assert result.languages == ()
        assert result.confidence.matches is False
        assert result.confidence.score == 0.0
        assert result.warnings == ("No programming language detected with sufficient confidence",)

    @pytest.mark.asyncio
    async def test_custom_entries(self):
        catalogue = CriteriaCatalogue.from_yaml(
            "criteria:\n  - name: deno\n    minimum_confidence: 0.1\n    commands: ['^deno\\b']\n"
        )
        detector = EvidenceDetector(catalogue.entries(), scan_working_dir=False)
        result = await detector.detect(ProjectFacts(build_commands=("deno task build",)))
        assert result.primary_language == "deno"

    @pytest.mark.asyncio
    async def test_languages_ranked_by_confidence(self):
        facts = ProjectFacts(
            config_files=("requirements.txt", "pyproject.toml"),
            build_commands=("pip install -r requirements.txt",),
            test_commands=("pytest",),
            raw_text="A Python project with a small Node.js helper.",
        )
        result = await EvidenceDetector(scan_working_dir=False).detect(facts)
        assert [item.name for item in result.languages][0] == "python"


class TestFallbackDetection:
    def test_languages_from_facts(self):
        result = fallback_detection(ProjectFacts(languages=("python", "go")))
        assert [item.name for item in result.languages] == ["python", "go"]
        assert all(item.confidence == FALLBACK_CONFIDENCE for item in result.languages)
        assert result.fallback is True
        assert result.confidence.score == 0.6
        assert result.confidence.matches is True

    def test_custom_confidence(self):
        result = fallback_detection(ProjectFacts(languages=("rust",)), confidence=0.4)
        assert result.confidence.score == 0.4

    def test_no_languages(self):
        result = fallback_detection(ProjectFacts())
        assert result.primary_language is None
        assert result.confidence.breakdown == {"languages": 0.0}
