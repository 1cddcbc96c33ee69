"""
Lightweight DTO models used as typed contracts across the pipeline.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from oxidizer_ocr.core.config import QUALITY_HIGH_SCORE, QUALITY_NEEDS_IMPROVEMENT_SCORE
from oxidizer_ocr.errors.codes import make_error
from oxidizer_ocr.models.reading import FallbackLevel, FallbackStrategy, HourlyReading


class FallbackAttempt(BaseModel):
    """One escalation step actually run by the fallback handler."""

    model_config = ConfigDict(frozen=True)

    strategy: FallbackStrategy
    confidence: float
    valid_field_count: int
    accepted: bool
    note: str | None = None


class FallbackInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    strategy: FallbackStrategy
    reason: str | None = None
    confidence: float


class FallbackOutcome(BaseModel):
    """
    Result of the fallback handler: the emitted reading and how it was produced.
    """

    model_config = ConfigDict(frozen=True)

    reading: HourlyReading
    fallback_strategy: FallbackStrategy
    fallback_reason: str | None = None
    confidence: float
    attempts: tuple[FallbackAttempt, ...] = ()

    @property
    def info(self) -> FallbackInfo:
        return FallbackInfo(
            strategy=self.fallback_strategy,
            reason=self.fallback_reason,
            confidence=self.confidence,
        )


class ValidationCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


class HallucinationFlag(BaseModel):
    """
    Evidence that a value may have been invented by the recognition engine.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    description: str
    field_key: str | None = None
    confidence: float | None = None


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    checks: tuple[ValidationCheck, ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    hallucination_flags: tuple[HallucinationFlag, ...] = ()
    requires_manual_review: bool = False
    overall_confidence: float = 0.0

    def check(self, name: str) -> ValidationCheck | None:
        for item in self.checks:
            if item.name == name:
                return item
        return None


class ImageRef(BaseModel):
    """Reference to an image file handed to the external recognition engine."""

    model_config = ConfigDict(frozen=True)

    path: str


class AcquisitionError(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class AcquisitionResult(BaseModel):
    """
    Outcome of a text source call. Exactly one of ``text`` / ``error`` is set.
    """

    model_config = ConfigDict(frozen=True)

    text: str | None = None
    token_confidences: tuple[float, ...] = ()
    error: AcquisitionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None

    @classmethod
    def failed(cls, code: str, message: str) -> "AcquisitionResult":
        return cls(error=AcquisitionError(code=code, message=message))


class OcrIntegrationSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    reading: HourlyReading
    fallback_info: FallbackInfo
    validation: ValidationResult
    source_image_ref: ImageRef | None = None
    attempts: tuple[FallbackAttempt, ...] = ()

    @property
    def is_success(self) -> bool:
        return True

    @property
    def summary(self) -> str:
        return (
            f"OCR success: {self.reading.valid_field_count} fields extracted "
            f"with {self.reading.overall_confidence * 100:.1f}% confidence "
            f"using {self.fallback_info.strategy.value}"
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "is_success": True,
            "hour": self.reading.hour,
            "fields": [
                {
                    "key": f.field_key,
                    "value": f.value,
                    "unit": f.unit,
                    "confidence": f.confidence,
                }
                for f in self.reading.field_matches
            ],
            "overall_confidence": self.reading.overall_confidence,
            "valid_field_count": self.reading.valid_field_count,
            "fallback_strategy": self.fallback_info.strategy.value,
            "fallback_reason": self.fallback_info.reason,
            "validation_errors": list(self.validation.errors),
            "validation_warnings": list(self.validation.warnings),
            "requires_manual_review": self.validation.requires_manual_review,
            "error_message": None,
        }


class OcrIntegrationFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    error_code: str

    @property
    def is_success(self) -> bool:
        return False

    @property
    def summary(self) -> str:
        return f"OCR failure: {self.message}"

    def to_record(self) -> dict[str, Any]:
        return {
            "is_success": False,
            "hour": None,
            "fields": [],
            "overall_confidence": 0.0,
            "valid_field_count": 0,
            "fallback_strategy": None,
            "fallback_reason": None,
            "validation_errors": [],
            "validation_warnings": [],
            "requires_manual_review": False,
            "error_message": self.message,
            "error": make_error(self.error_code, details=self.message),
        }


OcrIntegrationResult = Union[OcrIntegrationSuccess, OcrIntegrationFailure]


class BatchRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str | ImageRef
    target_hour: int | str
    fallback_level: FallbackLevel = FallbackLevel.AGGRESSIVE
    previous_reading: HourlyReading | None = None


class QualityAssessment(BaseModel):
    """
    Operator-facing quality score with the issues that lowered it.
    """

    model_config = ConfigDict(frozen=True)

    overall_score: float
    issues: tuple[str, ...] = Field(default_factory=tuple)
    recommendations: tuple[str, ...] = Field(default_factory=tuple)
    confidence: float

    @property
    def is_high_quality(self) -> bool:
        return self.overall_score >= QUALITY_HIGH_SCORE

    @property
    def needs_improvement(self) -> bool:
        return self.overall_score < QUALITY_NEEDS_IMPROVEMENT_SCORE
