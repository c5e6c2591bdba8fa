"""Pipeline settings.

One validated, immutable settings object holds every tunable the pipeline
uses: per-stage retry limits and timeouts, back-off limits, detection
thresholds and logging. Components receive it at construction; nothing
reads module-level defaults at run time.

Fields can be set through ``CICDGEN_*`` environment variables (e.g.
``CICDGEN_DETECTION_TIMEOUT_SECONDS=5``) or a ``.env`` file.

Examples:
    >>> from cicdgen.core.settings import PipelineSettings
    >>> settings = PipelineSettings(parse_max_attempts=3)
    >>> settings.parse_max_attempts
    3

Tags:
    settings, configuration, pydantic, environment, cicdgen

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cicdgen.core.errors import ConfigurationError


class PipelineSettings(BaseSettings):
    """cicdgen pipeline configuration.

    Fields
    ──────
    parse_max_attempts          : Attempts for the README parse call
    parse_timeout_seconds       : Per-attempt timeout for parsing
    detection_timeout_seconds   : Default detection timeout (``--timeout`` overrides)
    generation_max_attempts     : Attempts for the generate call
    generation_timeout_seconds  : Per-attempt timeout for generation
    backoff_base_seconds        : First retry delay
    backoff_max_seconds         : Retry delay cap
    minimum_confidence          : Default threshold for detection criteria
    fallback_confidence         : Confidence reported by fallback detection
    log_level / log_format      : structlog configuration
    """

    model_config = SettingsConfigDict(
        env_prefix="CICDGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ── Parsing ──────────────────────────────────────────────────
    parse_max_attempts: int = Field(default=2, ge=1)
    parse_timeout_seconds: float = Field(default=30.0, gt=0)

    # ── Detection ────────────────────────────────────────────────
    detection_timeout_seconds: float = Field(default=15.0, gt=0)
    minimum_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    fallback_confidence: float = Field(default=0.6, ge=0.0, le=1.0)

    # ── Generation ───────────────────────────────────────────────
    generation_max_attempts: int = Field(default=1, ge=1)
    generation_timeout_seconds: float = Field(default=30.0, gt=0)

    # ── Retry back-off ───────────────────────────────────────────
    backoff_base_seconds: float = Field(default=1.0, ge=0.0)
    backoff_max_seconds: float = Field(default=5.0, ge=0.0)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", description="console | json")

    @model_validator(mode="after")
    def _check_backoff(self) -> PipelineSettings:
        if self.backoff_max_seconds < self.backoff_base_seconds:
            raise ValueError("backoff_max_seconds must be >= backoff_base_seconds")
        if self.log_format not in ("console", "json"):
            raise ValueError(f"log_format must be 'console' or 'json', got {self.log_format!r}")
        return self


def load_settings(**overrides: Any) -> PipelineSettings:
    """Build settings from the environment plus explicit overrides.

    Raises:
        ConfigurationError: If a value fails validation
    """
    try:
        return PipelineSettings(**overrides)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}", code="INVALID_SETTINGS", cause=exc) from exc
