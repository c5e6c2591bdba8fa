"""Tests for the built-in workflow templates."""

import pytest

from cicdgen.core.errors import GenerationError
from cicdgen.core.models import DetectionResult, GenerationOptions
from cicdgen.generation.templates import (
    LANGUAGE_STEPS,
    TemplateGenerator,
    fallback_workflows,
    render_cd,
    render_ci,
    template_key,
)
from cicdgen.generation.validity import is_valid_workflow

from conftest import node_detection


class TestTemplateKey:
    @pytest.mark.parametrize(
        "language,key",
        [
            ("nodejs", "nodejs"),
            ("TypeScript", "nodejs"),
            ("golang", "go"),
            ("Python", "python"),
            ("cobol", "generic"),
            (None, "generic"),
        ],
    )
    def test_normalization(self, language, key):
        assert template_key(language) == key


class TestRender:
    @pytest.mark.parametrize("language", sorted(LANGUAGE_STEPS))
    def test_every_template_passes_the_gate(self, language):
        assert is_valid_workflow(render_ci(language))
        assert is_valid_workflow(render_cd(language))

    def test_ci_uses_language_steps(self):
        content = render_ci("nodejs")
        assert content.startswith("name: CI\n")
        assert "actions/setup-node@v4" in content
        assert "npm test" in content

    def test_cd_is_release_job(self):
        content = render_cd("rust")
        assert content.startswith("name: CD\n")
        assert "environment: production" in content
        assert "cargo build --release" in content


class TestFallbackWorkflows:
    def test_ci_and_cd_for_primary_language(self):
        files = fallback_workflows(node_detection())
        assert [f.filename for f in files] == ["ci.yml", "cd.yml"]
        assert [f.type for f in files] == ["ci", "cd"]
        assert all(f.version == "1.0-fallback" for f in files)
        assert "npm ci" in files[0].content

    def test_without_detection(self):
        files = fallback_workflows(None)
        assert "Add build steps" in files[0].content
        assert all(is_valid_workflow(f.content) for f in files)


class TestTemplateGenerator:
    @pytest.mark.asyncio
    async def test_generates_requested_types(self):
        files = await TemplateGenerator().generate(
            node_detection(), GenerationOptions(workflow_types=("ci", "cd"), include_comments=False)
        )
        assert [f.filename for f in files] == ["ci.yml", "cd.yml"]
        assert files[0].content == render_ci("nodejs")

    @pytest.mark.asyncio
    async def test_comment_header(self):
        (ci,) = await TemplateGenerator().generate(node_detection(), GenerationOptions())
        assert ci.content.startswith("# CI workflow (nodejs)\n# Frameworks: express\n")
        assert is_valid_workflow(ci.content)

    @pytest.mark.asyncio
    async def test_empty_detection_uses_generic(self):
        (ci,) = await TemplateGenerator().generate(DetectionResult(), GenerationOptions(include_comments=False))
        assert "Add test steps" in ci.content

    @pytest.mark.asyncio
    async def test_unknown_type(self):
        with pytest.raises(GenerationError):
            await TemplateGenerator().generate(node_detection(), GenerationOptions(workflow_types=("nightly",)))
