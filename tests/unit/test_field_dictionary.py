"""Unit tests for the field catalog."""

import pytest

from oxidizer_ocr.models.fields import FieldSpec, FieldType
from oxidizer_ocr.processors.field_dictionary import FieldDictionary


class TestFieldDictionary:
    def test_default_catalog(self, dictionary):
        """Test the default catalog lists every log row in print order."""
        assert dictionary.keys() == [
            "inspectionTime",
            "vaporInletFPM",
            "dilutionAirFPM",
            "combustionAirFPM",
            "exhaustTempF",
            "spherePressurePSI",
            "inletPpm",
            "outletPpm",
            "lelPercent",
            "totalizerSCF",
        ]
        assert len(dictionary) == 10
        assert "inletPpm" in dictionary
        assert dictionary.get("unknown") is None

    def test_required_keys(self, dictionary):
        """Test the fields a reading cannot do without."""
        assert dictionary.required_keys() == ["vaporInletFPM", "exhaustTempF", "inletPpm"]

    def test_duplicate_key_rejected(self):
        """Test two specs with one key cannot coexist."""
        spec = FieldSpec(key="a", label_synonyms=frozenset({"a"}), unit="", data_type=FieldType.TEXT)
        with pytest.raises(ValueError):
            FieldDictionary([spec, spec])

    def test_fields_with_marker(self, dictionary):
        """Test unit markers are looked up case-insensitively."""
        keys = [spec.key for spec in dictionary.fields_with_marker("fpm")]
        assert keys == ["vaporInletFPM", "dilutionAirFPM", "combustionAirFPM"]

    def test_all_markers_longest_first(self, dictionary):
        """Test longer markers are tried before their substrings."""
        markers = dictionary.all_markers()
        assert markers[0] == "temperature"
        assert markers.index("%lel") < markers.index("lel")
        assert len(markers) == len(set(markers))


class TestFieldSpec:
    def test_ranges(self, dictionary):
        """Test plausible and absolute ranges are inclusive."""
        exhaust = dictionary.get("exhaustTempF")
        low, high = exhaust.plausible_range

        assert exhaust.in_plausible_range(low)
        assert exhaust.in_plausible_range(high)
        assert not exhaust.in_plausible_range(high + 1)
        assert exhaust.in_absolute_range(high + 1)

    def test_no_range_accepts_anything(self, dictionary):
        spec = dictionary.get("inspectionTime")
        assert spec.in_plausible_range(-1e9)
        assert spec.in_absolute_range(1e9)

    def test_numeric_types(self):
        assert FieldType.TOTALIZER.is_numeric
        assert not FieldType.TIME.is_numeric
        assert not FieldType.TEXT.is_numeric
