"""Shared fixtures: log-sheet OCR texts and pipeline components."""

import pytest

from oxidizer_ocr.core.settings import PipelineSettings
from oxidizer_ocr.models.reading import ExtractedField, HourlyReading
from oxidizer_ocr.orchestrator import build_orchestrator
from oxidizer_ocr.processors.fallback_handler import FallbackHandler
from oxidizer_ocr.processors.field_dictionary import build_default_dictionary
from oxidizer_ocr.processors.validator import AntiHallucinationValidator

HEADER = "0000 0100 0200 0300 0400 0500 0600 0700 0800 0900 1000 1100"

ROWS = [
    "VAPOR INLET FLOW RATE 2000 2100 2200 2300 2400 2500 2600 2700 2800 2900 3000 3100",
    "DILUTION AIR 100 110 120 130 140 150 160 170 180 190 200 210",
    "COMBUSTION AIR 50 55 60 65 70 75 80 85 90 95 100 105",
    "EXHAUST TEMPERATURE 1463 1470 1475 1480 1485 1490 1495 1500 1505 1510 1515 1520",
    "INLET PPM 442.0 445.0 448.0 451.0 454.0 457.0 460.0 463.0 466.0 469.0 472.0 475.0",
    "OUTLET PPM 1.4 1.5 1.6 1.7 1.8 1.9 2.0 2.1 2.2 2.3 2.4 2.5",
    "SPHERE PRESSURE 7.0 7.1 7.2 7.3 7.4 7.5 7.6 7.7 7.8 7.9 8.0 8.1",
    "TOTALIZER READING 5148583 5148600 5148620 5148640 5148660 5148680 5148700 "
    "5148720 5148740 5148760 5148780 5148800",
]

TITLE = "THERMAL OXIDIZER HOURLY LOG"

CLEAN_TABLE = "\n".join([TITLE, HEADER] + ROWS)
HEADERLESS_TABLE = "\n".join([TITLE] + ROWS)

# 0300 column blank for five rows; neighbours intact
BLANK_0300_TABLE = "\n".join(
    [
        HEADER,
        "VAPOR INLET FLOW RATE 2000 2100 2200 - 2400 2500 2600 2700 2800 2900 3000 3100",
        "DILUTION AIR 100 110 120 - 140 150 160 170 180 190 200 210",
        "COMBUSTION AIR 50 55 60 - 70 75 80 85 90 95 100 105",
        "EXHAUST TEMPERATURE 1463 1470 1475 - 1485 1490 1495 1500 1505 1510 1515 1520",
        "INLET PPM 442.0 445.0 448.0 - 454.0 457.0 460.0 463.0 466.0 469.0 472.0 475.0",
        ROWS[5],
        ROWS[6],
        ROWS[7],
    ]
)

# Exhaust row label too garbled for the normal label threshold
LOOSE_LABEL_TABLE = "\n".join(
    [
        "0100 0200 0300 0400",
        "VAPOR INLET FLOW RATE 2100 2200 2300 2400",
        "DILUTION AIR 110 120 130 140",
        "EXHAUST STACK GAS 1470 1475 1480 1485",
        "INLET PPM 445.0 448.0 451.0 454.0",
    ]
)


@pytest.fixture
def clean_table():
    return CLEAN_TABLE


@pytest.fixture
def headerless_table():
    return HEADERLESS_TABLE


@pytest.fixture
def blank_0300_table():
    return BLANK_0300_TABLE


@pytest.fixture
def loose_label_table():
    return LOOSE_LABEL_TABLE


@pytest.fixture
def settings():
    return PipelineSettings(OCR_BASE_URL=None, BATCH_MAX_WORKERS=4)


@pytest.fixture
def dictionary():
    return build_default_dictionary()


@pytest.fixture
def handler(dictionary, settings):
    return FallbackHandler(dictionary, settings)


@pytest.fixture
def validator(dictionary, settings):
    return AntiHallucinationValidator(dictionary, settings)


@pytest.fixture
def orchestrator(settings):
    return build_orchestrator(settings)


@pytest.fixture
def make_reading(dictionary):
    """Build an HourlyReading from {key: value} with one confidence for all fields."""

    def _make(values, confidence=1.0, hour="0300", warnings=()):
        fields = [
            ExtractedField(
                field_key=key,
                raw_label_text=key,
                raw_value_text=str(value),
                value=value,
                unit=dictionary.get(key).unit,
                confidence=confidence,
                similarity=1.0,
                coerced=True,
                source_hour=hour,
                row_index=index,
            )
            for index, (key, value) in enumerate(values.items())
        ]
        return HourlyReading.build(hour, fields, warnings)

    return _make
