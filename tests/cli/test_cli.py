"""
Tests for the cicdgen CLI.
"""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from cicdgen.cli.app import app
from cicdgen.cli.pipeline import workflow_types_for

runner = CliRunner()


@pytest.fixture(autouse=True)
def _keep_session_logging(monkeypatch):
    """Keep structlog on the session stream instead of the runner's stderr."""
    monkeypatch.setattr("cicdgen.cli.pipeline.setup_logging", lambda *args, **kwargs: None)
    for name in ("CICDGEN_LOG_LEVEL", "CICDGEN_LOG_FORMAT", "CICDGEN_DETECTION_TIMEOUT_SECONDS"):
        monkeypatch.delenv(name, raising=False)


class TestRootApp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "generate" in result.output
        assert "detect" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("cicdgen ")

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)


class TestWorkflowTypes:
    def test_both(self):
        assert workflow_types_for("both") == ("ci", "cd")

    def test_single(self):
        assert workflow_types_for("cd") == ("cd",)


class TestGenerate:
    def test_writes_workflows(self, project_dir):
        result = runner.invoke(app, ["generate", "-C", str(project_dir), "--workflow-type", "both"])
        assert result.exit_code == 0, result.output
        workflows = project_dir / ".github" / "workflows"
        assert (workflows / "ci.yml").is_file()
        assert (workflows / "cd.yml").is_file()

    def test_dry_run(self, project_dir):
        result = runner.invoke(app, ["generate", "-C", str(project_dir), "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "DRY RUN" in result.output
        assert not (project_dir / ".github").exists()

    def test_json_output(self, project_dir):
        result = runner.invoke(app, ["generate", "-C", str(project_dir), "--dry-run", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["success"] is True
        assert data["detection"]["languages"][0]["name"] == "nodejs"

    def test_invalid_conflict_strategy(self, project_dir):
        result = runner.invoke(app, ["generate", "-C", str(project_dir), "--conflict", "clobber"])
        assert result.exit_code == 1
        assert "INVALID_OPTIONS" in result.output

    def test_missing_readme(self, tmp_path):
        result = runner.invoke(app, ["generate", "-C", str(tmp_path)])
        assert result.exit_code == 1
        assert "README_NOT_FOUND" in result.output

    def test_skip_existing(self, project_dir, workflows_dir):
        (workflows_dir / "ci.yml").write_text("name: Mine\n", encoding="utf-8")
        result = runner.invoke(app, ["generate", "-C", str(project_dir), "--conflict", "skip"])
        assert result.exit_code == 0, result.output
        assert (workflows_dir / "ci.yml").read_text(encoding="utf-8") == "name: Mine\n"

    def test_bad_criteria_file(self, project_dir, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("criteria: [unclosed", encoding="utf-8")
        result = runner.invoke(app, ["generate", "-C", str(project_dir), "--criteria", str(bad)])
        assert result.exit_code == 1
        assert "INVALID_CRITERIA" in result.output


class TestDetect:
    def test_table(self, project_dir):
        result = runner.invoke(app, ["detect", "-C", str(project_dir)])
        assert result.exit_code == 0, result.output
        assert "nodejs" in result.output
        assert "express" in result.output
        assert not (project_dir / ".github").exists()

    def test_json(self, project_dir):
        result = runner.invoke(app, ["detect", "-C", str(project_dir), "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [item["name"] for item in data["frameworks"]] == ["express"]
        assert data["fallback"] is False

    def test_use_fallback(self, project_dir):
        result = runner.invoke(app, ["detect", "-C", str(project_dir), "--use-fallback", "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["fallback"] is True


class TestCriteria:
    def test_list(self):
        result = runner.invoke(app, ["criteria", "list", "--json"])
        assert result.exit_code == 0, result.output
        names = [row["name"] for row in json.loads(result.stdout)]
        assert "python" in names

    def test_check_valid(self, tmp_path):
        path = tmp_path / "ok.yaml"
        path.write_text("criteria:\n  - name: deno\n    commands: ['^deno']\n", encoding="utf-8")
        result = runner.invoke(app, ["criteria", "check", str(path)])
        assert result.exit_code == 0, result.output
        assert "1 criteria valid" in result.output

    def test_check_invalid(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("criteria:\n  - category: language\n", encoding="utf-8")
        result = runner.invoke(app, ["criteria", "check", str(path)])
        assert result.exit_code == 1
        assert "INVALID_CRITERIA" in result.output

    def test_check_uncompilable_pattern(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("criteria:\n  - name: deno\n    commands: ['(unclosed']\n", encoding="utf-8")
        result = runner.invoke(app, ["criteria", "check", str(path)])
        assert result.exit_code == 1
        assert "INVALID_CRITERIA" in result.output
