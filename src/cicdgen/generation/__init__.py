"""Workflow generation: default templates and the content-validity gate."""

from cicdgen.generation.templates import TemplateGenerator, fallback_workflows, template_key
from cicdgen.generation.validity import batch_is_valid, invalid_workflows, is_valid_workflow

__all__ = [
    "TemplateGenerator",
    "fallback_workflows",
    "template_key",
    "is_valid_workflow",
    "invalid_workflows",
    "batch_is_valid",
]
