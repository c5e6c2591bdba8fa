"""Tests for cicdgen.core.errors module."""

import pytest

from cicdgen.core.errors import (
    CicdError,
    ConfigurationError,
    DetectionError,
    ErrorCategory,
    FileSystemError,
    OutputDirectoryError,
    ParsingError,
    ReadonlyFileError,
    RetryExhaustedError,
    Severity,
    StageStateError,
    UserInputError,
    suggestions_for,
    wrap_error,
)


class TestCategories:
    """Each error family maps to one category."""

    @pytest.mark.parametrize(
        "error_type,category",
        [
            (ParsingError, ErrorCategory.PROCESSING),
            (DetectionError, ErrorCategory.PROCESSING),
            (RetryExhaustedError, ErrorCategory.PROCESSING),
            (StageStateError, ErrorCategory.PROCESSING),
            (FileSystemError, ErrorCategory.FILE_SYSTEM),
            (OutputDirectoryError, ErrorCategory.FILE_SYSTEM),
            (ReadonlyFileError, ErrorCategory.FILE_SYSTEM),
            (ConfigurationError, ErrorCategory.CONFIGURATION),
            (UserInputError, ErrorCategory.USER_INPUT),
        ],
    )
    def test_default_category(self, error_type, category):
        kwargs = {"attempts": 1} if error_type is RetryExhaustedError else {}
        assert error_type("boom", **kwargs).category == category

    def test_default_codes(self):
        assert ParsingError("x").code == "PARSING_FAILED"
        assert OutputDirectoryError("x").code == "OUTPUT_DIRECTORY_ERROR"
        assert ReadonlyFileError("x").code == "READONLY_FILE"
        assert ConfigurationError("x").code == "INVALID_OPTIONS"

    def test_explicit_code_overrides_default(self):
        error = ParsingError("missing", code="README_NOT_FOUND")
        assert error.code == "README_NOT_FOUND"
        assert error.category == ErrorCategory.PROCESSING


class TestCicdError:
    """Test the base error behaviour."""

    def test_defaults(self):
        error = CicdError("Something broke")
        assert error.message == "Something broke"
        assert str(error) == "Something broke"
        assert error.severity == Severity.ERROR
        assert error.context == {}
        assert error.cause is None

    def test_cause_is_chained(self):
        cause = OSError("disk full")
        error = FileSystemError("write failed", cause=cause)
        assert error.__cause__ is cause

    def test_code_suggestions(self):
        error = FileSystemError("x", code="BACKUP_FAILED")
        assert error.suggestions == suggestions_for("BACKUP_FAILED", ErrorCategory.FILE_SYSTEM)
        assert any("backup" in s.lower() for s in error.suggestions)

    def test_category_suggestions_when_code_unknown(self):
        error = FileSystemError("x", code="SOMETHING_ELSE")
        assert error.suggestions == ["Check file and directory permissions", "Ensure sufficient disk space is available"]

    def test_explicit_suggestions(self):
        error = ParsingError("x", suggestions=["try again"])
        assert error.suggestions == ["try again"]

    def test_with_context(self):
        error = FileSystemError("x").with_context(file_path="/tmp/ci.yml")
        assert error.context["file_path"] == "/tmp/ci.yml"

    def test_to_dict(self):
        error = FileSystemError("write failed", context={"file_path": "ci.yml"}, cause=OSError("denied"))
        data = error.to_dict()
        assert data["error_type"] == "FileSystemError"
        assert data["code"] == "FILE_WRITE_ERROR"
        assert data["category"] == "file-system"
        assert data["severity"] == "error"
        assert data["context"] == {"file_path": "ci.yml"}
        assert data["cause"] == "denied"

    def test_to_dict_omits_empty_context(self):
        assert "context" not in ParsingError("x").to_dict()


class TestRetryExhaustedError:
    def test_attempts_and_last_error(self):
        cause = ValueError("bad")
        error = RetryExhaustedError("gave up", attempts=3, cause=cause)
        assert error.attempts == 3
        assert error.last_error is cause
        assert error.context["attempts"] == 3


class TestWrapError:
    def test_wraps_foreign_exception(self):
        cause = KeyError("k")
        error = wrap_error(cause, DetectionError, "Framework detection failed")
        assert isinstance(error, DetectionError)
        assert error.message.startswith("Framework detection failed: ")
        assert error.cause is cause

    def test_passes_cicd_errors_through(self):
        original = ReadonlyFileError("read-only")
        assert wrap_error(original, FileSystemError, "Output failed") is original
