"""Language-keyed GitHub Actions templates.

Two consumers:

- :class:`TemplateGenerator` - the default generation collaborator.
- :func:`fallback_workflows` - the orchestrator's generation fallback,
  always producing a CI and a CD workflow for the primary language.

Templates are fixed text; the only variable parts are the workflow name,
the trigger block and which language's step snippets are spliced in. Step
snippets are written already indented for ``jobs.<id>.steps``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime

from cicdgen.core.errors import GenerationError
from cicdgen.core.logging import get_logger
from cicdgen.core.models import DetectionResult, GenerationOptions, WorkflowFile

logger = get_logger(__name__)

TEMPLATE_VERSION = "1.0"
GENERIC = "generic"


@dataclass(frozen=True)
class LanguageSteps:
    """Step snippets for one language."""

    key: str
    setup: str
    build: str
    test: str
    release: str


_CHECKOUT = "      - uses: actions/checkout@v4\n"

LANGUAGE_STEPS: dict[str, LanguageSteps] = {
    "nodejs": LanguageSteps(
        key="nodejs",
        setup=(
            "      - uses: actions/setup-node@v4\n"
            "        with:\n"
            "          node-version: 20\n"
            "          cache: npm\n"
        ),
        build="      - run: npm ci\n      - run: npm run build --if-present\n",
        test="      - run: npm test\n",
        release=(
            "      - run: npm publish\n"
            "        env:\n"
            "          NODE_AUTH_TOKEN: ${{ secrets.NPM_TOKEN }}\n"
        ),
    ),
    "python": LanguageSteps(
        key="python",
        setup=(
            "      - uses: actions/setup-python@v5\n"
            "        with:\n"
            "          python-version: '3.12'\n"
        ),
        build=(
            "      - run: python -m pip install --upgrade pip\n"
            "      - run: pip install -r requirements.txt || pip install -e .\n"
        ),
        test="      - run: python -m pytest\n",
        release="      - run: pip install build && python -m build\n",
    ),
    "rust": LanguageSteps(
        key="rust",
        setup="      - uses: dtolnay/rust-toolchain@stable\n",
        build="      - run: cargo build --verbose\n",
        test="      - run: cargo test --verbose\n",
        release="      - run: cargo build --release\n",
    ),
    "go": LanguageSteps(
        key="go",
        setup=(
            "      - uses: actions/setup-go@v5\n"
            "        with:\n"
            "          go-version: stable\n"
        ),
        build="      - run: go build ./...\n",
        test="      - run: go test ./...\n",
        release="      - run: go build -o dist/ ./...\n",
    ),
    "java": LanguageSteps(
        key="java",
        setup=(
            "      - uses: actions/setup-java@v4\n"
            "        with:\n"
            "          distribution: temurin\n"
            "          java-version: '21'\n"
        ),
        build="      - run: mvn -B package -DskipTests --file pom.xml\n",
        test="      - run: mvn -B test --file pom.xml\n",
        release="      - run: mvn -B deploy -DskipTests --file pom.xml\n",
    ),
    GENERIC: LanguageSteps(
        key=GENERIC,
        setup="",
        build="      - name: Build\n        run: echo \"Add build steps for this project\"\n",
        test="      - name: Test\n        run: echo \"Add test steps for this project\"\n",
        release="      - name: Release\n        run: echo \"Add release steps for this project\"\n",
    ),
}

# Language names collaborators may report -> template key.
LANGUAGE_ALIASES: dict[str, str] = {
    "node": "nodejs",
    "node.js": "nodejs",
    "javascript": "nodejs",
    "typescript": "nodejs",
    "py": "python",
    "golang": "go",
    "kotlin": "java",
}

CI_TRIGGER = "on:\n  push:\n    branches: [main]\n  pull_request:\n    branches: [main]\n"
CD_TRIGGER = "on:\n  push:\n    tags: ['v*']\n  workflow_dispatch:\n"


def template_key(language: str | None) -> str:
    """Normalize a detected language name to a template key."""
    if not language:
        return GENERIC
    name = language.strip().lower()
    name = LANGUAGE_ALIASES.get(name, name)
    return name if name in LANGUAGE_STEPS else GENERIC


def render_ci(language: str | None) -> str:
    steps = LANGUAGE_STEPS[template_key(language)]
    return (
        "name: CI\n\n"
        + CI_TRIGGER
        + "\njobs:\n"
        + "  build-and-test:\n"
        + "    runs-on: ubuntu-latest\n"
        + "    steps:\n"
        + _CHECKOUT
        + steps.setup
        + steps.build
        + steps.test
    )


def render_cd(language: str | None) -> str:
    steps = LANGUAGE_STEPS[template_key(language)]
    return (
        "name: CD\n\n"
        + CD_TRIGGER
        + "\njobs:\n"
        + "  release:\n"
        + "    runs-on: ubuntu-latest\n"
        + "    environment: production\n"
        + "    steps:\n"
        + _CHECKOUT
        + steps.setup
        + steps.build
        + steps.release
    )


_RENDERERS = {"ci": render_ci, "cd": render_cd}


def _workflow(kind: str, language: str | None, description: str, version: str) -> WorkflowFile:
    return WorkflowFile(
        filename=f"{kind}.yml",
        content=_RENDERERS[kind](language),
        type=kind,
        description=description,
        version=version,
        generated_at=datetime.now(UTC),
    )


def fallback_workflows(detection: DetectionResult | None) -> list[WorkflowFile]:
    """CI + CD templates for the primary detected language."""
    language = detection.primary_language if detection is not None else None
    key = template_key(language)
    return [
        _workflow("ci", language, f"Fallback CI workflow ({key})", f"{TEMPLATE_VERSION}-fallback"),
        _workflow("cd", language, f"Fallback CD workflow ({key})", f"{TEMPLATE_VERSION}-fallback"),
    ]


class TemplateGenerator:
    """Default generation collaborator rendering the built-in templates."""

    async def generate(self, detection: DetectionResult, options: GenerationOptions) -> list[WorkflowFile]:
        language = detection.primary_language
        files = []
        for kind in options.workflow_types:
            if kind not in _RENDERERS:
                raise GenerationError(
                    f"Unsupported workflow type: {kind}",
                    context={"supported": sorted(_RENDERERS)},
                )
            description = f"{kind.upper()} workflow ({template_key(language)})"
            workflow = _workflow(kind, language, description, TEMPLATE_VERSION)
            if options.include_comments:
                frameworks = ", ".join(detection.framework_names) or "none detected"
                header = (
                    f"# {workflow.description}\n"
                    f"# Frameworks: {frameworks}\n"
                )
                workflow = replace(workflow, content=header + workflow.content)
            files.append(workflow)

        logger.debug("generation.rendered", language=template_key(language), files=[f.filename for f in files])
        return files


__all__ = [
    "TEMPLATE_VERSION",
    "LANGUAGE_STEPS",
    "template_key",
    "render_ci",
    "render_cd",
    "fallback_workflows",
    "TemplateGenerator",
]
