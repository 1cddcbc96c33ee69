"""
Centralized pipeline settings using Pydantic.

Every policy threshold used by the parser, matcher, fallback handler and
validator is read once from the environment (prefix ``OXOCR_``) and falls
back to the named defaults in ``core.config``. Settings are built by the
composition root and passed into components; nothing reads them globally.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from oxidizer_ocr.core import config


class PipelineSettings(BaseSettings):
    """Overridable pipeline policy."""

    model_config = SettingsConfigDict(
        env_prefix="OXOCR_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    # Acceptance
    REQUIRED_MIN_FIELDS: int = Field(default=config.REQUIRED_MIN_FIELDS, ge=0)
    ACCEPTABLE_CONFIDENCE: float = Field(default=config.ACCEPTABLE_CONFIDENCE, ge=0.0, le=1.0)

    # Matching
    MIN_LABEL_SIMILARITY: float = Field(default=config.MIN_LABEL_SIMILARITY, ge=0.0, le=1.0)
    LOOSE_LABEL_SIMILARITY: float = Field(default=config.LOOSE_LABEL_SIMILARITY, ge=0.0, le=1.0)
    REPAIRED_COERCION_FACTOR: float = Field(default=config.REPAIRED_COERCION_FACTOR, ge=0.0, le=1.0)

    # Fallback
    ADJACENT_HOUR_PENALTY: float = Field(default=config.ADJACENT_HOUR_PENALTY, ge=0.0, le=1.0)
    REGEX_ONLY_CONFIDENCE: float = Field(default=config.REGEX_ONLY_CONFIDENCE, ge=0.0, le=1.0)

    # Validation
    REVIEW_CONFIDENCE_THRESHOLD: float = Field(
        default=config.REVIEW_CONFIDENCE_THRESHOLD, ge=0.0, le=1.0
    )
    PRECISION_BASE_DIGITS: float = Field(default=config.PRECISION_BASE_DIGITS, ge=0.0)
    PRECISION_DIGITS_PER_CONFIDENCE: float = Field(
        default=config.PRECISION_DIGITS_PER_CONFIDENCE, ge=0.0
    )

    # Batch
    BATCH_MAX_WORKERS: int = Field(default=config.BATCH_MAX_WORKERS, ge=1)

    # External OCR service
    OCR_BASE_URL: str | None = None
    OCR_TIMEOUT_SECONDS: float = config.OCR_TIMEOUT_SECONDS
    OCR_CLIENT_TIMEOUT_SECONDS: float = config.OCR_CLIENT_TIMEOUT_SECONDS
    OCR_VERIFY_SSL: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True


@lru_cache(maxsize=1)
def get_settings() -> PipelineSettings:
    return PipelineSettings()
