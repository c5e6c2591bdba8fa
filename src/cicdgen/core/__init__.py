"""Core primitives shared by every cicdgen component.

- errors: CicdError hierarchy with codes, categories and suggestions
- logging: structlog configuration and per-run log context
- models: frozen value types passed between pipeline stages
- settings: PipelineSettings (pydantic-settings, ``CICDGEN_*`` env vars)
"""

from cicdgen.core.errors import (
    CicdError,
    ConfigurationError,
    DetectionError,
    ErrorCategory,
    FileSystemError,
    GenerationError,
    OutputDirectoryError,
    ParsingError,
    ProcessingError,
    ReadonlyFileError,
    RetryExhaustedError,
    Severity,
    StageStateError,
    UserInputError,
    wrap_error,
)
from cicdgen.core.logging import LogContext, configure_logging, get_logger
from cicdgen.core.models import (
    DetectedItem,
    DetectionConfidence,
    DetectionResult,
    GenerationOptions,
    ParseResult,
    ProjectFacts,
    WorkflowFile,
)
from cicdgen.core.settings import PipelineSettings, load_settings

__all__ = [
    "ErrorCategory",
    "Severity",
    "CicdError",
    "ProcessingError",
    "ParsingError",
    "DetectionError",
    "GenerationError",
    "RetryExhaustedError",
    "StageStateError",
    "FileSystemError",
    "OutputDirectoryError",
    "ReadonlyFileError",
    "ConfigurationError",
    "UserInputError",
    "wrap_error",
    "configure_logging",
    "get_logger",
    "LogContext",
    "ProjectFacts",
    "ParseResult",
    "DetectedItem",
    "DetectionConfidence",
    "DetectionResult",
    "WorkflowFile",
    "GenerationOptions",
    "PipelineSettings",
    "load_settings",
]
