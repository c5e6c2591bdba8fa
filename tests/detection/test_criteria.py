"""Tests for YAML-defined detection criteria."""

import pytest

from cicdgen.core.errors import ConfigurationError
from cicdgen.detection.criteria import CriteriaCatalogue, CriteriaSpec, builtin_catalogue, load_criteria
from cicdgen.detection.evidence import PatternRule

DENO_YAML = r"""
criteria:
  - name: deno
    category: language
    ecosystem: javascript
    minimum_confidence: 0.4
    package_files:
      - deno.json
    commands:
      - pattern: '^deno\b'
        weight: 1.0
    text_patterns:
      - pattern: '\bDeno\b'
        weight: 0.5
        case_sensitive: true
"""


class TestCriteriaSpec:
    def test_bare_strings_become_rules(self):
        spec = CriteriaSpec(name="x", package_files=["a.json", {"pattern": "b.json", "weight": 0.5}])
        criteria = spec.to_criteria()
        assert criteria.package_files == (PatternRule("a.json"), PatternRule("b.json", weight=0.5))

    def test_default_threshold_applies_when_unset(self):
        spec = CriteriaSpec(name="x", dependencies=["x"])
        assert spec.to_criteria().minimum_confidence == 0.5
        assert spec.to_criteria(0.8).minimum_confidence == 0.8

    def test_explicit_threshold_wins(self):
        spec = CriteriaSpec(name="x", minimum_confidence=0.3)
        assert spec.to_criteria(0.8).minimum_confidence == 0.3

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValueError):
            CriteriaSpec(name="x", pattrens=["typo"])

    def test_rejects_unknown_category(self):
        with pytest.raises(ValueError):
            CriteriaSpec(name="x", category="database")

    @pytest.mark.parametrize("field", ["dependencies", "commands", "text_patterns"])
    def test_rejects_uncompilable_regex(self, field):
        with pytest.raises(ValueError, match="unterminated subpattern"):
            CriteriaSpec(name="x", **{field: ["(unclosed"]})

    def test_package_files_are_not_regexes(self):
        spec = CriteriaSpec(name="x", package_files=["weird(name"], file_patterns=["*.[ch]"])
        assert spec.to_criteria().package_files == (PatternRule("weird(name"),)


class TestCatalogue:
    def test_from_yaml(self):
        catalogue = CriteriaCatalogue.from_yaml(DENO_YAML)
        (entry,) = catalogue.entries()
        assert entry.name == "deno"
        assert entry.ecosystem == "javascript"
        assert entry.criteria.minimum_confidence == 0.4
        assert entry.criteria.text_patterns[0].case_sensitive is True

    def test_empty_document(self):
        assert CriteriaCatalogue.from_yaml("").criteria == []

    def test_malformed_yaml(self):
        with pytest.raises(ConfigurationError) as exc_info:
            CriteriaCatalogue.from_yaml("criteria: [unclosed")
        assert exc_info.value.code == "INVALID_CRITERIA"

    def test_invalid_definition(self):
        with pytest.raises(ConfigurationError) as exc_info:
            CriteriaCatalogue.from_yaml("criteria:\n  - name: x\n    package_files:\n      - {pattern: a, weight: 0}\n")
        assert exc_info.value.code == "INVALID_CRITERIA"

    def test_uncompilable_pattern_is_invalid_criteria(self):
        with pytest.raises(ConfigurationError, match="invalid commands pattern") as exc_info:
            CriteriaCatalogue.from_yaml("criteria:\n  - name: deno\n    commands: ['(unclosed']\n")
        assert exc_info.value.code == "INVALID_CRITERIA"

    def test_duplicate_names_rejected(self):
        with pytest.raises(ConfigurationError):
            CriteriaCatalogue.from_yaml("criteria:\n  - name: a\n  - name: a\n")

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            CriteriaCatalogue.from_yaml_file(tmp_path / "missing.yaml")
        assert exc_info.value.code == "INVALID_CRITERIA"

    def test_merge_replaces_same_name(self):
        base = CriteriaCatalogue.from_yaml("criteria:\n  - name: a\n    dependencies: [x]\n  - name: b\n")
        override = CriteriaCatalogue.from_yaml("criteria:\n  - name: a\n    dependencies: [y]\n")
        merged = {entry.name: entry for entry in base.merge(override).entries()}
        assert set(merged) == {"a", "b"}
        assert merged["a"].criteria.dependencies[0].pattern == "y"


class TestBuiltinCatalogue:
    def test_covers_core_ecosystems(self):
        names = {entry.name for entry in builtin_catalogue().entries()}
        assert {"nodejs", "python", "rust", "go", "java", "docker"} <= names
        assert {"react", "express", "django", "flask", "fastapi"} <= names

    def test_cached(self):
        assert builtin_catalogue() is builtin_catalogue()

    def test_load_criteria_with_extra_file(self, tmp_path):
        path = tmp_path / "criteria.yaml"
        path.write_text(DENO_YAML, encoding="utf-8")
        names = [entry.name for entry in load_criteria(path)]
        assert "deno" in names
        assert "nodejs" in names
