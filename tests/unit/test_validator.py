"""Unit tests for the anti-hallucination validator."""

import pytest

from oxidizer_ocr.models.reading import HourlyReading
from oxidizer_ocr.processors.validator import generate_validation_report, significant_digits

CLEAN_VALUES = {
    "vaporInletFPM": 2300.0,
    "dilutionAirFPM": 130.0,
    "combustionAirFPM": 65.0,
    "exhaustTempF": 1480.0,
    "inletPpm": 451.0,
    "outletPpm": 1.7,
    "spherePressurePSI": 7.3,
    "totalizerSCF": 5148640,
}


class TestVerdict:
    """Tests for the overall verdict."""

    def test_clean_reading_passes(self, validator, make_reading):
        """Test an in-range, confident reading needs no review."""
        result = validator.validate(make_reading(CLEAN_VALUES))

        assert result.is_valid
        assert not result.requires_manual_review
        assert result.errors == ()
        assert result.warnings == ()
        assert result.hallucination_flags == ()
        assert [c.name for c in result.checks] == [
            "table_structure",
            "completeness",
            "plausibility",
            "rate_of_change",
            "fabrication",
            "cross_field",
        ]

    def test_low_confidence_requires_review(self, validator, make_reading):
        """Test a valid reading below the review threshold is queued for review."""
        result = validator.validate(make_reading(CLEAN_VALUES, confidence=0.65))

        assert result.is_valid
        assert result.requires_manual_review

    def test_parser_warnings_require_review(self, validator, make_reading):
        """Test table-structure warnings are carried into the result."""
        reading = make_reading(CLEAN_VALUES, warnings=("Duplicate hour 0100 in header row",))
        result = validator.validate(reading)

        assert result.check("table_structure").warnings == reading.warnings
        assert result.requires_manual_review

    def test_deterministic(self, validator, make_reading):
        """Test validating the same reading twice gives equal results."""
        reading = make_reading(CLEAN_VALUES)
        assert validator.validate(reading) == validator.validate(reading)


class TestPlausibility:
    """Tests for range checks."""

    def test_just_above_typical_max_warns(self, validator, make_reading):
        """Test a value just past the typical max is a warning only."""
        result = validator.validate(make_reading({**CLEAN_VALUES, "exhaustTempF": 2001.0}))

        assert result.is_valid
        assert result.requires_manual_review
        assert any("exhaustTempF" in w for w in result.check("plausibility").warnings)

    @pytest.mark.parametrize("value", [500.0, 2000.0])
    def test_typical_range_bounds_inclusive(self, validator, make_reading, value):
        """Test values exactly at the typical min and max raise no warning."""
        result = validator.validate(make_reading({**CLEAN_VALUES, "exhaustTempF": value}))

        assert result.check("plausibility").warnings == ()
        assert result.check("plausibility").errors == ()
        assert not result.requires_manual_review

    def test_ten_times_max_is_error(self, validator, make_reading):
        """Test a value far outside physical bounds invalidates the reading."""
        result = validator.validate(make_reading({**CLEAN_VALUES, "exhaustTempF": 20000.0}))

        assert not result.is_valid
        assert not result.requires_manual_review
        assert any("physical bounds" in e for e in result.errors)
        assert result.errors[0].startswith("VALUE_OUT_OF_BOUNDS: exhaustTempF")

    def test_below_absolute_zero_is_error(self, validator, make_reading):
        """Test temperatures below absolute zero are rejected."""
        result = validator.validate(make_reading({**CLEAN_VALUES, "exhaustTempF": -500.0}))
        assert not result.is_valid


class TestCompleteness:
    """Tests for required fields."""

    def test_missing_required_field_warns(self, validator, make_reading):
        """Test absent required fields are warned about."""
        values = {k: v for k, v in CLEAN_VALUES.items() if k != "inletPpm"}
        result = validator.validate(make_reading(values))

        assert "Missing required field: inletPpm" in result.warnings

    def test_empty_reading(self, validator, make_reading):
        """Test an empty reading is valid but requires review."""
        result = validator.validate(make_reading({}))

        assert result.is_valid
        assert result.requires_manual_review
        assert "No fields were extracted" in result.warnings

    def test_unreadable_cell_warns_with_code(self, validator, make_reading):
        """Test a cell that failed coercion is reported under COERCION_FAILED."""
        reading = make_reading(CLEAN_VALUES)
        unreadable = reading.get("dilutionAirFPM").model_copy(
            update={"raw_value_text": "lOO", "value": None, "confidence": 0.0, "coerced": False}
        )
        fields = [unreadable if f.field_key == "dilutionAirFPM" else f for f in reading.field_matches]
        result = validator.validate(HourlyReading.build("0300", fields))

        assert result.is_valid
        assert result.requires_manual_review
        assert result.check("completeness").warnings == (
            "COERCION_FAILED: dilutionAirFPM: cell 'lOO' could not be read",
        )


class TestRateOfChange:
    """Tests for comparisons with the previous hour."""

    def test_suspicious_jump_flagged(self, validator, make_reading):
        """Test a change above the field's jump threshold raises a flag."""
        previous = make_reading(CLEAN_VALUES, hour="0200")
        current = make_reading({**CLEAN_VALUES, "vaporInletFPM": 4000.0})
        result = validator.validate(current, previous)

        flags = [f for f in result.hallucination_flags if f.type == "suspicious_jump"]
        assert [f.field_key for f in flags] == ["vaporInletFPM"]
        assert result.requires_manual_review

    def test_small_change_not_flagged(self, validator, make_reading):
        """Test ordinary hour-to-hour drift passes."""
        previous = make_reading({**CLEAN_VALUES, "vaporInletFPM": 2200.0}, hour="0200")
        result = validator.validate(make_reading(CLEAN_VALUES), previous)

        assert result.hallucination_flags == ()

    def test_totalizer_regression_flagged(self, validator, make_reading):
        """Test a decreasing totalizer is flagged."""
        previous = make_reading({**CLEAN_VALUES, "totalizerSCF": 5148700}, hour="0200")
        result = validator.validate(make_reading(CLEAN_VALUES), previous)

        assert [f.type for f in result.hallucination_flags] == ["totalizer_regression"]


class TestFabrication:
    """Tests for precision versus confidence."""

    def test_precise_value_at_low_confidence_flagged(self, validator, make_reading):
        """Test many significant digits at low confidence are flagged."""
        result = validator.validate(make_reading({"totalizerSCF": 5148583}, confidence=0.4))

        flag = result.hallucination_flags[0]
        assert flag.type == "low_confidence_high_precision"
        assert flag.field_key == "totalizerSCF"

    def test_precise_value_at_full_confidence_passes(self, validator, make_reading):
        """Test the same value at full confidence is not flagged."""
        result = validator.validate(make_reading({"totalizerSCF": 5148583}))
        assert result.hallucination_flags == ()

    @pytest.mark.parametrize(
        "value,digits", [(2000, 1), (2000.0, 1), (1463, 4), (1.4, 2), (0.05, 1), (5148583, 7)]
    )
    def test_significant_digits(self, value, digits):
        """Test significant digit counting."""
        assert significant_digits(value) == digits


class TestCrossField:
    """Tests for consistency between fields."""

    def test_vapor_below_dilution(self, validator, make_reading):
        """Test vapor inlet flow below dilution air flow is warned about."""
        values = {**CLEAN_VALUES, "vaporInletFPM": 100.0, "dilutionAirFPM": 200.0}
        result = validator.validate(make_reading(values))

        assert len(result.check("cross_field").warnings) == 1

    def test_outlet_above_inlet_share(self, validator, make_reading):
        """Test outlet PPM above a tenth of inlet PPM is warned about."""
        values = {**CLEAN_VALUES, "inletPpm": 100.0, "outletPpm": 50.0}
        result = validator.validate(make_reading(values))

        assert any("destruction efficiency" in w for w in result.warnings)


class TestReport:
    """Tests for the plain-text report."""

    def test_report_lists_errors_and_flags(self, validator, make_reading):
        """Test the report includes verdict, errors and flags."""
        reading = make_reading({**CLEAN_VALUES, "exhaustTempF": 20000.0}, confidence=0.4)
        report = generate_validation_report(validator.validate(reading), reading)

        assert report.startswith("OCR VALIDATION REPORT")
        assert "Hour: 03:00" in report
        assert "Valid: NO" in report
        assert "ERRORS:" in report
        assert "HALLUCINATION FLAGS:" in report
