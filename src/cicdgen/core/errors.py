"""
Structured error types for cicdgen.

Provides a small hierarchy of typed errors carrying the metadata the
pipeline needs to report a failure to a user: a stable code, a category,
a severity and a list of actionable suggestions.

Instead of generic exceptions that lose context, CicdError and its
subclasses carry:
- **Code:** Stable identifier (``PARSING_FAILED``, ``BACKUP_FAILED``, ...)
- **Category:** What kind of failure (processing, file-system, ...)
- **Severity:** error / warning / info
- **Suggestions:** What the user can do about it
- **Context:** Free-form metadata (file path, stage, execution id)
- **Cause:** Chained underlying exception for root cause analysis

Manifesto:
    - **Typed Error Hierarchy:** Different error types for different stages
    - **Stable Codes:** Codes never change meaning between releases
    - **Actionable:** Every surfaced error tells the user what to try next
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        CicdError                                 │
        │     (code, category, severity, suggestions, context, cause)     │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ProcessingError     FileSystemError      ConfigurationError     │
        │  (processing)        (file-system)        (configuration)        │
        │       │                   │                                      │
        │  ParsingError        OutputDirectoryError  UserInputError        │
        │  DetectionError      ReadonlyFileError     (user-input)          │
        │  GenerationError                                                 │
        │  RetryExhaustedError  StageStateError                            │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = FileSystemError("Disk full", code="FILE_WRITE_ERROR")
    >>> error.category
    <ErrorCategory.FILE_SYSTEM: 'file-system'>
    >>> error.suggestions[0]
    'Check if you have write permissions to the target directory'

Tags:
    error-handling, exception-hierarchy, cicdgen, suggestions

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories for classification and user-facing messaging.

    Attributes:
        PROCESSING: Parse/detect/generate logic failure
        FILE_SYSTEM: Path, permission or conflict failure
        CONFIGURATION: Bad run options or settings
        USER_INPUT: Bad CLI arguments
    """

    PROCESSING = "processing"
    FILE_SYSTEM = "file-system"
    CONFIGURATION = "configuration"
    USER_INPUT = "user-input"


class Severity(str, Enum):
    """How loudly an error should be reported."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# Suggestions keyed by error code. Codes without an entry fall back to the
# category default below.
DEFAULT_SUGGESTIONS: dict[str, list[str]] = {
    "README_NOT_FOUND": [
        "Check that the README path is correct",
        "Run the command from the project root or pass --readme",
    ],
    "PARSING_FAILED": [
        "Check that the README is valid Markdown",
        "Make sure the README describes how to install, build and test the project",
    ],
    "DETECTION_FAILED": [
        "Re-run with --use-fallback to use basic language detection",
        "Mention the project's language and package manager in the README",
    ],
    "GENERATION_FAILED": [
        "Re-run with --workflow-type ci to generate a single workflow",
    ],
    "OUTPUT_DIRECTORY_ERROR": [
        "Check if the output directory path is valid",
        "Ensure you have write permissions to the parent directory",
        "Try using an absolute path for the output directory",
    ],
    "FILE_WRITE_ERROR": [
        "Check if you have write permissions to the target directory",
        "Ensure the file is not currently open in another application",
        "Verify there is sufficient disk space available",
    ],
    "BACKUP_FAILED": [
        "Check if you have write permissions to create backup files",
        "Ensure there is sufficient disk space for backups",
        "Use --conflict overwrite if backups are not needed",
    ],
    "READONLY_FILE": [
        "Pass --overwrite-readonly to allow replacing read-only files",
        "Use --conflict skip to leave existing files untouched",
    ],
    "INVALID_OPTIONS": [
        "Run with --help to see the accepted option values",
    ],
}

_CATEGORY_SUGGESTIONS: dict[ErrorCategory, list[str]] = {
    ErrorCategory.FILE_SYSTEM: [
        "Check file and directory permissions",
        "Ensure sufficient disk space is available",
    ],
    ErrorCategory.CONFIGURATION: [
        "Check CICDGEN_* environment variables and the .env file",
    ],
}


def suggestions_for(code: str, category: ErrorCategory) -> list[str]:
    """Default suggestions for an error code, falling back to the category."""
    if code in DEFAULT_SUGGESTIONS:
        return list(DEFAULT_SUGGESTIONS[code])
    return list(_CATEGORY_SUGGESTIONS.get(category, []))


class CicdError(Exception):
    """
    Base exception for all cicdgen errors.

    Subclasses set ``default_category`` and ``default_code`` so most call
    sites only pass a message.

    Attributes:
        message: Human-readable message
        code: Stable error code
        category: ErrorCategory
        severity: Severity
        suggestions: Actionable hints for the user
        context: Extra metadata (file path, stage, ...)
        cause: Underlying exception, also set as ``__cause__``
    """

    default_category: ErrorCategory = ErrorCategory.PROCESSING
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        category: ErrorCategory | None = None,
        severity: Severity = Severity.ERROR,
        suggestions: list[str] | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.category = category or self.default_category
        self.severity = severity
        self.suggestions = (
            list(suggestions) if suggestions is not None else suggestions_for(self.code, self.category)
        )
        self.context = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CicdError:
        """
        Add context to this error (fluent API).

        Usage:
            raise FileSystemError("Failed").with_context(file_path=str(path))
        """
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "suggestions": list(self.suggestions),
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, code={self.code}, category={self.category.value})"


# =============================================================================
# PROCESSING ERRORS
# =============================================================================


class ProcessingError(CicdError):
    """A parse, detect or generate step produced no usable result."""

    default_category = ErrorCategory.PROCESSING
    default_code = "PROCESSING_FAILED"


class ParsingError(ProcessingError):
    """README could not be read or parsed."""

    default_code = "PARSING_FAILED"


class DetectionError(ProcessingError):
    """Framework detection failed, including its fallback."""

    default_code = "DETECTION_FAILED"


class GenerationError(ProcessingError):
    """Workflow generation failed, including template synthesis."""

    default_code = "GENERATION_FAILED"


class RetryExhaustedError(ProcessingError):
    """
    All retry attempts failed.

    The last underlying error is chained as ``cause``; ``attempts`` is the
    number of attempts that were made.
    """

    default_code = "RETRY_EXHAUSTED"

    def __init__(self, message: str, *, attempts: int, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.attempts = attempts
        self.context.setdefault("attempts", attempts)

    @property
    def last_error(self) -> BaseException | None:
        """The error raised by the final attempt."""
        return self.cause


class StageStateError(ProcessingError):
    """An illegal execution-context transition or a second write to a stage result."""

    default_code = "INVALID_STAGE_TRANSITION"


# =============================================================================
# FILE SYSTEM ERRORS
# =============================================================================


class FileSystemError(CicdError):
    """Path, permission or conflict failure while touching the filesystem."""

    default_category = ErrorCategory.FILE_SYSTEM
    default_code = "FILE_WRITE_ERROR"


class OutputDirectoryError(FileSystemError):
    """Output directory is unsafe, not a directory, or not writable."""

    default_code = "OUTPUT_DIRECTORY_ERROR"


class ReadonlyFileError(FileSystemError):
    """Existing file is read-only and overwriting read-only files is disabled."""

    default_code = "READONLY_FILE"


# =============================================================================
# CONFIGURATION / INPUT ERRORS
# =============================================================================


class ConfigurationError(CicdError):
    """Run options or settings are invalid."""

    default_category = ErrorCategory.CONFIGURATION
    default_code = "INVALID_OPTIONS"


class UserInputError(CicdError):
    """Invalid command-line input."""

    default_category = ErrorCategory.USER_INPUT
    default_code = "INVALID_ARGUMENT"


def wrap_error(
    error: BaseException,
    error_type: type[CicdError],
    message: str,
    **kwargs: Any,
) -> CicdError:
    """Wrap an arbitrary exception, passing CicdError instances through untouched."""
    if isinstance(error, CicdError):
        return error
    return error_type(f"{message}: {error}", cause=error, **kwargs)


__all__ = [
    "ErrorCategory",
    "Severity",
    "DEFAULT_SUGGESTIONS",
    "suggestions_for",
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
]
