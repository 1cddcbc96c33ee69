"""Unit tests for quality assessment."""

from oxidizer_ocr.models.dto import OcrIntegrationFailure


class TestAssessQuality:
    """Tests for the operator-facing quality score."""

    def test_clean_capture_scores_full(self, orchestrator, clean_table):
        """Test a clean primary extraction gets a perfect score."""
        result = orchestrator.process(clean_table, "0300")
        quality = orchestrator.assess_quality(result)

        assert quality.overall_score == 1.0
        assert quality.is_high_quality
        assert not quality.needs_improvement
        assert quality.issues == ()

    def test_headerless_capture_penalised(self, orchestrator, headerless_table):
        """Test low confidence, fallback use and flags each deduct from the score."""
        result = orchestrator.process(headerless_table, "0300")
        quality = orchestrator.assess_quality(result)

        assert quality.overall_score == 0.5
        assert quality.needs_improvement
        assert any("Fallback strategy used: regexOnly" in issue for issue in quality.issues)
        assert len(quality.recommendations) == len(quality.issues)

    def test_failure_scores_zero(self, orchestrator):
        """Test failures always score zero."""
        quality = orchestrator.assess_quality(
            OcrIntegrationFailure(message="No OCR text was supplied", error_code="NO_TEXT")
        )

        assert quality.overall_score == 0.0
        assert quality.confidence == 0.0
        assert quality.issues == ("No OCR text was supplied",)
