"""Content-validity gate for generated workflows.

A workflow is accepted only if it has at least five meaningful lines
(non-blank, not a ``#`` comment) and mentions ``name:``, ``on:`` and
``jobs:``. This is a cheap proxy for "the generator produced a real
GitHub Actions workflow", not a YAML schema check.

The gate is all-or-nothing at batch level: one invalid file (or an empty
batch) rejects the whole generation result.
"""

from __future__ import annotations

from collections.abc import Sequence

from cicdgen.core.models import WorkflowFile

MIN_CONTENT_LINES = 5
REQUIRED_KEYS: tuple[str, ...] = ("name:", "on:", "jobs:")


def content_line_count(content: str) -> int:
    count = 0
    for line in content.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            count += 1
    return count


def workflow_problems(content: str) -> list[str]:
    """Reasons ``content`` fails the gate (empty list when valid)."""
    problems = []
    lines = content_line_count(content)
    if lines < MIN_CONTENT_LINES:
        problems.append(f"only {lines} non-comment line(s), need {MIN_CONTENT_LINES}")
    missing = [key for key in REQUIRED_KEYS if key not in content]
    if missing:
        problems.append(f"missing {', '.join(missing)}")
    return problems


def is_valid_workflow(content: str) -> bool:
    return not workflow_problems(content)


def invalid_workflows(files: Sequence[WorkflowFile]) -> dict[str, list[str]]:
    """Map of filename -> problems for every file that fails the gate."""
    return {f.filename: problems for f in files if (problems := workflow_problems(f.content))}


def batch_is_valid(files: Sequence[WorkflowFile]) -> bool:
    return bool(files) and not invalid_workflows(files)


__all__ = [
    "MIN_CONTENT_LINES",
    "REQUIRED_KEYS",
    "content_line_count",
    "workflow_problems",
    "is_valid_workflow",
    "invalid_workflows",
    "batch_is_valid",
]
