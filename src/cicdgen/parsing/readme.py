"""Basic README scanner.

Not a Markdown parser: a line scanner that pulls out what CI generation
needs (project name, languages, install/build/test commands, dependency
names, mentioned config files) from headings, fenced code blocks and
keywords.

    # My Project            -> name
    ```bash                 -> shell block: commands
    npm install express     -> build command, dependency "express"
    npm test                -> test command
    ```
    ```python               -> language "python"
    see requirements.txt    -> config file
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

from cicdgen.core.errors import ParsingError
from cicdgen.core.logging import get_logger
from cicdgen.core.models import ParseResult, ProjectFacts

logger = get_logger(__name__)

# Fence info string -> language id used throughout detection/templates.
FENCE_LANGUAGES: dict[str, str] = {
    "js": "nodejs",
    "javascript": "nodejs",
    "jsx": "nodejs",
    "ts": "nodejs",
    "typescript": "nodejs",
    "tsx": "nodejs",
    "python": "python",
    "py": "python",
    "rust": "rust",
    "rs": "rust",
    "go": "go",
    "golang": "go",
    "java": "java",
    "kotlin": "java",
    "ruby": "ruby",
    "rb": "ruby",
    "csharp": "csharp",
    "cs": "csharp",
}

# Keyword in prose -> language id.
KEYWORD_LANGUAGES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(node\.?js|javascript|typescript)\b", re.IGNORECASE), "nodejs"),
    (re.compile(r"\bpython\b", re.IGNORECASE), "python"),
    (re.compile(r"\brust\b", re.IGNORECASE), "rust"),
    (re.compile(r"\bgolang\b", re.IGNORECASE), "go"),
    (re.compile(r"\bjava\b", re.IGNORECASE), "java"),
)

# Command prefix -> language id, for commands found in shell blocks.
COMMAND_LANGUAGES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^(npm|npx|yarn|pnpm)\b"), "nodejs"),
    (re.compile(r"^(pip3?|python3?|pytest|poetry|uv)\b"), "python"),
    (re.compile(r"^cargo\b"), "rust"),
    (re.compile(r"^go\s"), "go"),
    (re.compile(r"^(mvn|gradle|\./gradlew|\./mvnw)\b"), "java"),
)

SHELL_FENCES = frozenset({"", "bash", "sh", "shell", "console", "zsh", "terminal"})

CONFIG_FILES: tuple[str, ...] = (
    "package.json",
    "package-lock.json",
    "yarn.lock",
    "requirements.txt",
    "pyproject.toml",
    "setup.py",
    "Pipfile",
    "Cargo.toml",
    "go.mod",
    "pom.xml",
    "build.gradle",
    "Dockerfile",
    "docker-compose.yml",
    "Makefile",
)

TEST_COMMAND = re.compile(r"\b(test|tests|pytest|jest|mocha|vitest|tox|check)\b")
BUILD_COMMAND = re.compile(r"\b(install|build|compile|ci|package|sync|setup\.py|make)\b")
INSTALL_COMMAND = re.compile(r"^(npm|yarn|pnpm|pip3?)\s+(install|add|i)\s+(?P<args>.+)$")

_HEADING = re.compile(r"^#\s+(?P<title>.+?)\s*#*\s*$")
_FENCE = re.compile(r"^\s*(```|~~~)\s*(?P<info>[\w+#.-]*)")
_PROMPT = re.compile(r"^\s*(\$|>)\s+")


def _package_names(args: str) -> list[str]:
    names = []
    for token in args.split():
        if token.startswith("-") or token == ".":
            continue
        if token.endswith(".txt"):
            continue
        # strip version pins: express@4, flask==2.0, requests>=2
        name = re.split(r"(?<=.)[@=<>~!\[]", token, maxsplit=1)[0]
        if name:
            names.append(name.lower())
    return names


def scan_readme(text: str, default_name: str = "Unknown Project") -> ProjectFacts:
    """Extract :class:`ProjectFacts` from README text (pure)."""
    name: str | None = None
    languages: list[str] = []
    dependencies: list[str] = []
    build_commands: list[str] = []
    test_commands: list[str] = []

    def add(target: list[str], value: str) -> None:
        if value not in target:
            target.append(value)

    fence_info: str | None = None
    for raw_line in text.splitlines():
        fence = _FENCE.match(raw_line)
        if fence:
            if fence_info is None:
                fence_info = fence.group("info").lower()
                if fence_info in FENCE_LANGUAGES:
                    add(languages, FENCE_LANGUAGES[fence_info])
            else:
                fence_info = None
            continue

        if fence_info is None:
            heading = _HEADING.match(raw_line)
            if heading and name is None:
                name = heading.group("title").strip()
            continue

        if fence_info not in SHELL_FENCES:
            continue

        command = _PROMPT.sub("", raw_line).strip()
        if not command or command.startswith("#"):
            continue
        for pattern, language in COMMAND_LANGUAGES:
            if pattern.search(command):
                add(languages, language)
        install = INSTALL_COMMAND.match(command)
        if install:
            for dep in _package_names(install.group("args")):
                add(dependencies, dep)
        if TEST_COMMAND.search(command):
            add(test_commands, command)
        elif BUILD_COMMAND.search(command):
            add(build_commands, command)

    for pattern, language in KEYWORD_LANGUAGES:
        if pattern.search(text):
            add(languages, language)

    config_files = [f for f in CONFIG_FILES if f in text]

    return ProjectFacts(
        name=name or default_name,
        languages=tuple(languages),
        dependencies=tuple(dependencies),
        config_files=tuple(config_files),
        build_commands=tuple(build_commands),
        test_commands=tuple(test_commands),
        raw_text=text,
    )


class BasicReadmeParser:
    """Default README collaborator: reads the file and scans it.

    Read failures raise :class:`ParsingError` so the orchestrator can retry
    them; undecodable or empty files are reported as a failed ParseResult.
    """

    async def parse(self, path: str | Path) -> ParseResult:
        readme = Path(path)
        try:
            text = await asyncio.to_thread(readme.read_text, encoding="utf-8")
        except UnicodeDecodeError as e:
            logger.warning("readme.decode_failed", path=str(readme), error=str(e))
            return ParseResult.fail(f"Could not decode {readme} as UTF-8: {e}")
        except OSError as e:
            logger.warning("readme.read_failed", path=str(readme), error=str(e))
            raise ParsingError(
                f"Could not read {readme}: {e}",
                context={"readme_path": str(readme)},
                cause=e,
            ) from e

        if not text.strip():
            return ParseResult.fail(f"{readme} is empty")

        facts = scan_readme(text, default_name=readme.resolve().parent.name or "Unknown Project")
        logger.debug(
            "readme.parsed",
            path=str(readme),
            name=facts.name,
            languages=list(facts.languages),
            commands=len(facts.commands),
        )
        return ParseResult.ok(facts)


__all__ = ["BasicReadmeParser", "scan_readme"]
