"""Unit tests for label similarity and field matching."""

import pytest

from oxidizer_ocr.models.reading import TableRow
from oxidizer_ocr.processors.field_matcher import (
    label_similarity,
    match_fields,
    match_rows,
    token_similarity,
)
from oxidizer_ocr.processors.table_parser import parse_table


class TestTokenSimilarity:
    """Tests for label/synonym similarity."""

    def test_exact_label(self):
        """Test identical wording scores 1.0 regardless of case."""
        assert token_similarity("VAPOR INLET FLOW RATE", "vapor inlet flow rate") == 1.0

    def test_phrase_floor(self):
        """Test a synonym embedded in a longer label scores at least the phrase floor."""
        score = token_similarity("OXIDIZER EXHAUST TEMPERATURE AT STACK", "exhaust temperature")
        assert score == pytest.approx(0.8)

    def test_misspelt_word(self):
        """Test a misread word still contributes through fuzzy equality."""
        score = token_similarity("EXHAUSI TEMPERATURE", "exhaust temperature")
        assert 0.9 < score < 1.0

    def test_digit_inside_label_word(self):
        """Test digits misread inside label words are repaired."""
        assert token_similarity("VAP0R INLET FLOW RATE", "vapor inlet flow rate") == 1.0

    def test_short_words_need_exact_match(self):
        """Test short words are not fuzzily equated."""
        assert token_similarity("AIR", "ppm") == 0.0

    def test_unrelated(self):
        """Test unrelated labels score zero."""
        assert token_similarity("OPERATOR INITIALS", "sphere pressure") == 0.0

    def test_best_synonym_wins(self, dictionary):
        """Test label similarity takes the best synonym of a spec."""
        assert label_similarity("TOTALIZER READING", dictionary.get("totalizerSCF")) == 1.0


class TestMatchFields:
    """Tests for binding table rows to dictionary fields."""

    def test_clean_column(self, clean_table, dictionary):
        """Test every row of the clean table binds to its field in row order."""
        fields = match_fields(parse_table(clean_table, "0300"), dictionary)

        assert [f.field_key for f in fields] == [
            "vaporInletFPM",
            "dilutionAirFPM",
            "combustionAirFPM",
            "exhaustTempF",
            "inletPpm",
            "outletPpm",
            "spherePressurePSI",
            "totalizerSCF",
        ]
        values = {f.field_key: f.value for f in fields}
        assert values["vaporInletFPM"] == 2300.0
        assert values["exhaustTempF"] == 1480.0
        assert values["outletPpm"] == pytest.approx(1.7)
        assert values["totalizerSCF"] == 5148640
        assert all(f.confidence == 1.0 for f in fields)
        assert all(f.source_hour == "0300" for f in fields)

    def test_units_attached(self, clean_table, dictionary):
        """Test fields carry their dictionary unit."""
        fields = match_fields(parse_table(clean_table, "0000"), dictionary)
        units = {f.field_key: f.unit for f in fields}

        assert units["exhaustTempF"] == "°F"
        assert units["spherePressurePSI"] == "PSI"

    def test_repaired_value_lowers_confidence(self, dictionary):
        """Test confidence is similarity times the repair factor."""
        table_slice = parse_table("0000 0100\nEXHAUST TEMPERATURE 1463 14B0", "0100")
        field = match_fields(table_slice, dictionary)[0]

        assert field.value == 1480.0
        assert field.repaired
        assert field.confidence == pytest.approx(0.5)

    def test_blank_cell_not_coerced(self, dictionary):
        """Test a missing cell yields an uncoerced zero-confidence field."""
        table_slice = parse_table("0000 0100\nEXHAUST TEMPERATURE 1463 -", "0100")
        field = match_fields(table_slice, dictionary)[0]

        assert not field.coerced
        assert field.value is None
        assert field.confidence == 0.0

    def test_one_field_per_key(self, dictionary):
        """Test duplicate labels keep the first equally similar row."""
        rows = [
            TableRow(row_index=0, label_text="EXHAUST TEMP", value_text="1463"),
            TableRow(row_index=1, label_text="EXHAUST TEMPERATURE", value_text="1470"),
        ]
        outcome = match_rows(rows, dictionary, "0000")

        assert len(outcome.fields) == 1
        assert outcome.fields[0].value == 1463.0
        assert [r.row_index for r in outcome.unmatched_rows] == [1]

    def test_unknown_row_unmatched(self, dictionary):
        """Test rows below the similarity threshold are returned unmatched."""
        rows = [
            TableRow(row_index=0, label_text="OPERATOR INITIALS", value_text=None),
            TableRow(row_index=1, label_text="DILUTION AIR", value_text="120"),
        ]
        outcome = match_rows(rows, dictionary, "0200")

        assert [f.field_key for f in outcome.fields] == ["dilutionAirFPM"]
        assert outcome.unmatched_rows[0].label_text == "OPERATOR INITIALS"

    def test_loose_threshold_binds_garbled_label(self, dictionary):
        """Test a garbled label only binds at the loose threshold."""
        rows = [TableRow(row_index=0, label_text="EXHAUST STACK GAS", value_text="1480")]

        assert match_rows(rows, dictionary, "0300").fields == []
        loose = match_rows(rows, dictionary, "0300", min_similarity=0.3)
        assert loose.fields[0].field_key == "exhaustTempF"
        assert loose.fields[0].similarity == pytest.approx(0.4)

    def test_excluded_keys_skipped(self, dictionary):
        """Test excluded keys are never produced."""
        rows = [TableRow(row_index=0, label_text="DILUTION AIR", value_text="120")]
        outcome = match_rows(rows, dictionary, "0200", exclude_keys=["dilutionAirFPM"])

        assert all(f.field_key != "dilutionAirFPM" for f in outcome.fields)
