"""
Anti-hallucination validation of an extracted hourly reading.

Runs a fixed sequence of checks (table structure, completeness, physical
plausibility, rate of change against the previous reading, fabricated
precision, cross-field consistency) and returns the checks and verdict.
Pure: no I/O, no clock, same input -> same result.
"""

from __future__ import annotations

from typing import Optional

from oxidizer_ocr.core.config import OUTLET_TO_INLET_MAX_RATIO
from oxidizer_ocr.core.settings import PipelineSettings
from oxidizer_ocr.errors.codes import ErrorCode
from oxidizer_ocr.models.dto import HallucinationFlag, ValidationCheck, ValidationResult
from oxidizer_ocr.models.fields import FieldType
from oxidizer_ocr.models.reading import ExtractedField, FallbackStrategy, HourlyReading
from oxidizer_ocr.processors.field_dictionary import FieldDictionary
from oxidizer_ocr.utils.hours import display_hour


def significant_digits(value: float | int) -> int:
    """Significant digits of a value; trailing zeros of integers do not count."""
    number = abs(value)
    if isinstance(number, float) and number.is_integer():
        number = int(number)
    if isinstance(number, int):
        digits = str(number).rstrip("0")
        return len(digits) if digits else 1
    text = repr(number)
    if "e" in text:
        text = f"{number:.15f}".rstrip("0")
    digits = text.replace(".", "").lstrip("0")
    return len(digits) if digits else 1


def _numeric(field: ExtractedField | None) -> float | None:
    if field is None or not field.coerced or isinstance(field.value, str):
        return None
    return float(field.value) if field.value is not None else None


def _fmt(value: float) -> str:
    return f"{value:.15g}"


class AntiHallucinationValidator:
    """Deterministic validator; safe to share between threads."""

    def __init__(self, dictionary: FieldDictionary, settings: Optional[PipelineSettings] = None):
        self.dictionary = dictionary
        self.settings = settings or PipelineSettings()

    # ========================================
    # Individual checks
    # ========================================

    def check_table_structure(self, reading: HourlyReading) -> ValidationCheck:
        return ValidationCheck(name="table_structure", is_valid=True, warnings=reading.warnings)

    def check_completeness(self, reading: HourlyReading) -> ValidationCheck:
        warnings: list[str] = []
        if not reading.field_matches:
            warnings.append("No fields were extracted")
        present = reading.values
        for key in self.dictionary.required_keys():
            if key not in present:
                warnings.append(f"Missing required field: {key}")
        for field in reading.field_matches:
            if not field.coerced:
                warnings.append(
                    f"{ErrorCode.COERCION_FAILED.value.code}: {field.field_key}: "
                    f"cell {field.raw_value_text!r} could not be read"
                )
        return ValidationCheck(name="completeness", is_valid=True, warnings=tuple(warnings))

    def check_plausibility(self, reading: HourlyReading) -> ValidationCheck:
        errors: list[str] = []
        warnings: list[str] = []
        for field in reading.field_matches:
            value = _numeric(field)
            spec = self.dictionary.get(field.field_key)
            if value is None or spec is None or not spec.data_type.is_numeric:
                continue
            if not spec.in_absolute_range(value):
                low, high = spec.absolute_range
                errors.append(
                    f"{ErrorCode.VALUE_OUT_OF_BOUNDS.value.code}: "
                    f"{field.field_key} = {_fmt(value)} {spec.unit} is outside physical bounds "
                    f"[{_fmt(low)}, {_fmt(high)}]"
                )
            elif not spec.in_plausible_range(value):
                low, high = spec.plausible_range
                warnings.append(
                    f"{field.field_key} = {_fmt(value)} {spec.unit} is outside typical range "
                    f"[{_fmt(low)}, {_fmt(high)}]"
                )
        return ValidationCheck(
            name="plausibility",
            is_valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
        )

    def check_rate_of_change(
        self, reading: HourlyReading, previous: Optional[HourlyReading]
    ) -> tuple[ValidationCheck, list[HallucinationFlag]]:
        flags: list[HallucinationFlag] = []
        if previous is not None:
            for field in reading.field_matches:
                spec = self.dictionary.get(field.field_key)
                current = _numeric(field)
                before = _numeric(previous.get(field.field_key))
                if spec is None or current is None or before is None:
                    continue
                delta = current - before
                if spec.jump_threshold is not None and abs(delta) > spec.jump_threshold:
                    flags.append(
                        HallucinationFlag(
                            type="suspicious_jump",
                            description=(
                                f"{field.field_key} changed by {_fmt(delta)} {spec.unit} since "
                                f"{previous.hour} (limit {_fmt(spec.jump_threshold)})"
                            ),
                            field_key=field.field_key,
                            confidence=field.confidence,
                        )
                    )
                if spec.data_type is FieldType.TOTALIZER and delta < 0:
                    flags.append(
                        HallucinationFlag(
                            type="totalizer_regression",
                            description=(
                                f"{field.field_key} decreased from {_fmt(before)} to {_fmt(current)}"
                            ),
                            field_key=field.field_key,
                            confidence=field.confidence,
                        )
                    )
        return ValidationCheck(name="rate_of_change", is_valid=not flags), flags

    def check_fabrication(
        self, reading: HourlyReading
    ) -> tuple[ValidationCheck, list[HallucinationFlag]]:
        """Flag values carrying more precision than their confidence supports."""
        s = self.settings
        flags: list[HallucinationFlag] = []
        for field in reading.field_matches:
            value = _numeric(field)
            if value is None:
                continue
            allowed = s.PRECISION_BASE_DIGITS + field.confidence * s.PRECISION_DIGITS_PER_CONFIDENCE
            digits = significant_digits(field.value)
            if digits > allowed:
                flags.append(
                    HallucinationFlag(
                        type="low_confidence_high_precision",
                        description=(
                            f"{field.field_key} has {digits} significant digits at "
                            f"confidence {field.confidence:.2f}"
                        ),
                        field_key=field.field_key,
                        confidence=field.confidence,
                    )
                )
        return ValidationCheck(name="fabrication", is_valid=not flags), flags

    def check_cross_field(self, reading: HourlyReading) -> ValidationCheck:
        warnings: list[str] = []
        vapor = _numeric(reading.get("vaporInletFPM"))
        dilution = _numeric(reading.get("dilutionAirFPM"))
        if vapor is not None and dilution is not None and vapor < dilution:
            warnings.append(
                f"Vapor inlet flow ({_fmt(vapor)} FPM) is below dilution air flow ({_fmt(dilution)} FPM)"
            )
        inlet = _numeric(reading.get("inletPpm"))
        outlet = _numeric(reading.get("outletPpm"))
        if inlet is not None and outlet is not None and outlet > inlet * OUTLET_TO_INLET_MAX_RATIO:
            warnings.append(
                f"Outlet PPM ({_fmt(outlet)}) exceeds {OUTLET_TO_INLET_MAX_RATIO:.0%} of "
                f"inlet PPM ({_fmt(inlet)}); check destruction efficiency"
            )
        return ValidationCheck(name="cross_field", is_valid=True, warnings=tuple(warnings))

    # ========================================
    # Verdict
    # ========================================

    def validate(
        self,
        reading: HourlyReading,
        previous_reading: Optional[HourlyReading] = None,
    ) -> ValidationResult:
        rate_check, rate_flags = self.check_rate_of_change(reading, previous_reading)
        fabrication_check, fabrication_flags = self.check_fabrication(reading)
        checks = (
            self.check_table_structure(reading),
            self.check_completeness(reading),
            self.check_plausibility(reading),
            rate_check,
            fabrication_check,
            self.check_cross_field(reading),
        )
        errors = tuple(e for check in checks for e in check.errors)
        warnings = tuple(w for check in checks for w in check.warnings)
        flags = tuple(rate_flags + fabrication_flags)

        is_valid = not errors
        requires_review = is_valid and (
            bool(warnings)
            or bool(flags)
            or reading.overall_confidence < self.settings.REVIEW_CONFIDENCE_THRESHOLD
        )
        return ValidationResult(
            is_valid=is_valid,
            checks=checks,
            errors=errors,
            warnings=warnings,
            hallucination_flags=flags,
            requires_manual_review=requires_review,
            overall_confidence=reading.overall_confidence,
        )


def generate_validation_report(result: ValidationResult, reading: Optional[HourlyReading] = None) -> str:
    """Plain-text summary of a validation result for logs and operators."""
    lines = ["OCR VALIDATION REPORT", "=" * 21]
    if reading is not None:
        lines.append(f"Hour: {display_hour(reading.hour)}")
        lines.append(f"Fields extracted: {reading.valid_field_count}")
    lines.append(f"Overall confidence: {result.overall_confidence * 100:.1f}%")
    lines.append(f"Valid: {'YES' if result.is_valid else 'NO'}")
    lines.append(f"Requires manual review: {'YES' if result.requires_manual_review else 'NO'}")

    if reading is not None:
        fallback_fields = [f for f in reading.field_matches if f.strategy is not FallbackStrategy.NONE]
        if fallback_fields:
            lines.append("")
            lines.append("RECOVERED BY FALLBACK:")
            lines.extend(f"  - {f.field_key} ({f.strategy.value})" for f in fallback_fields)

    for title, items in (
        ("ERRORS", result.errors),
        ("WARNINGS", result.warnings),
        ("HALLUCINATION FLAGS", [f"[{f.type}] {f.description}" for f in result.hallucination_flags]),
    ):
        if items:
            lines.append("")
            lines.append(f"{title}:")
            lines.extend(f"  - {item}" for item in items)
    return "\n".join(lines)
