"""
Operator-facing quality score for an integration result.

Starts from 1.0 and deducts for each problem the capture showed, so the
operator knows whether retaking the photo is worthwhile.
"""

from __future__ import annotations

from oxidizer_ocr.core.config import QUALITY_LOW_CONFIDENCE, QUALITY_MIN_FIELDS
from oxidizer_ocr.models.dto import OcrIntegrationFailure, OcrIntegrationResult, QualityAssessment
from oxidizer_ocr.models.reading import FallbackStrategy

FEW_FIELDS_PENALTY = 0.2
LOW_CONFIDENCE_PENALTY = 0.3
FALLBACK_PENALTY = 0.1
WARNINGS_PENALTY = 0.1


def assess_quality(result: OcrIntegrationResult) -> QualityAssessment:
    if isinstance(result, OcrIntegrationFailure):
        return QualityAssessment(
            overall_score=0.0,
            issues=(result.message,),
            recommendations=("Retake the photo of the log sheet",),
            confidence=0.0,
        )

    reading = result.reading
    score = 1.0
    issues: list[str] = []
    recommendations: list[str] = []

    if reading.valid_field_count < QUALITY_MIN_FIELDS:
        score -= FEW_FIELDS_PENALTY
        issues.append(
            f"Only {reading.valid_field_count} fields detected (expected at least {QUALITY_MIN_FIELDS})"
        )
        recommendations.append("Make sure the whole hour column and its row labels are in frame")

    if reading.overall_confidence < QUALITY_LOW_CONFIDENCE:
        score -= LOW_CONFIDENCE_PENALTY
        issues.append(f"Low recognition confidence ({reading.overall_confidence * 100:.1f}%)")
        recommendations.append("Improve lighting and hold the camera steady")

    if result.fallback_info.strategy is not FallbackStrategy.NONE:
        score -= FALLBACK_PENALTY
        issues.append(f"Fallback strategy used: {result.fallback_info.strategy.value}")
        recommendations.append("Align the sheet so the header row of hours is readable")

    if result.validation.warnings or result.validation.hallucination_flags:
        score -= WARNINGS_PENALTY
        issues.append(
            f"{len(result.validation.warnings) + len(result.validation.hallucination_flags)} "
            "validation warnings"
        )
        recommendations.append("Review the flagged values against the paper log")

    return QualityAssessment(
        overall_score=min(1.0, max(0.0, round(score, 4))),
        issues=tuple(issues),
        recommendations=tuple(recommendations),
        confidence=reading.overall_confidence,
    )
