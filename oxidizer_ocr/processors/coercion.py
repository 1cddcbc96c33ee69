"""
Per-FieldType coercion of cell text into typed values.

Each coercer returns a ``Coercion`` whose ``factor`` feeds the field
confidence: 1.0 for a clean parse, the repair factor when OCR letter/digit
confusions had to be fixed, 0.0 when the text could not be read at all.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from oxidizer_ocr.core.config import (
    CLEAN_COERCION_FACTOR,
    FAILED_COERCION_FACTOR,
    MISSING_CELL_MARKERS,
    REPAIRED_COERCION_FACTOR,
)
from oxidizer_ocr.models.fields import FieldType
from oxidizer_ocr.utils.hours import parse_hour_token

# Letters an OCR engine commonly returns in place of digits
CONFUSABLE_DIGITS = {
    "O": "0",
    "o": "0",
    "l": "1",
    "I": "1",
    "|": "1",
    "S": "5",
    "s": "5",
    "B": "8",
    "Z": "2",
    "z": "2",
    "G": "6",
}
_CONFUSABLE_TABLE = str.maketrans(CONFUSABLE_DIGITS)

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")
_THOUSANDS_RE = re.compile(r"^[+-]?\d{1,3}(?:,\d{3})+(?:\.\d+)?$")
_DECIMAL_COMMA_RE = re.compile(r"^[+-]?\d+,\d+$")
_EDGE_RE = re.compile(r"^(?P<lead>[^\d.+\-]*)(?P<body>.*?)(?P<trail>[^\d]*)$", re.DOTALL)


@dataclass(frozen=True)
class Coercion:
    value: float | int | str | None
    factor: float
    repaired: bool = False

    @property
    def ok(self) -> bool:
        return self.value is not None and self.factor > 0


FAILED = Coercion(value=None, factor=FAILED_COERCION_FACTOR)


def is_missing(text: str | None) -> bool:
    return text is None or not text.strip() or text.strip().casefold() in MISSING_CELL_MARKERS


def _all_confusable(chars: str) -> bool:
    # "7.S" keeps ".S"; "1463°F" drops "°F"
    return any(c in CONFUSABLE_DIGITS for c in chars) and all(
        c in CONFUSABLE_DIGITS or c == "." for c in chars
    )


def _strip_edges(text: str) -> str:
    """Drop unit suffixes and stray symbols; keep edges that look like misread digits."""
    match = _EDGE_RE.match(text)
    if match is None:
        return text
    lead, body, trail = match.group("lead"), match.group("body"), match.group("trail")
    if _all_confusable(lead):
        body = lead + body
    if _all_confusable(trail):
        body = body + trail
    return body


def coerce_number(
    text: str | None, repaired_factor: float = REPAIRED_COERCION_FACTOR
) -> Coercion:
    if is_missing(text):
        return FAILED
    body = _strip_edges(text.strip())
    if not any(c.isdigit() for c in body):
        return FAILED
    repaired = False

    if _THOUSANDS_RE.match(body):
        body = body.replace(",", "")
    elif _DECIMAL_COMMA_RE.match(body):
        body = body.replace(",", ".")
        repaired = True

    candidate = body.translate(_CONFUSABLE_TABLE)
    if candidate != body:
        repaired = True
        if _THOUSANDS_RE.match(candidate):
            candidate = candidate.replace(",", "")

    if not _NUMBER_RE.match(candidate):
        return FAILED
    value = float(candidate)
    return Coercion(
        value=value,
        factor=repaired_factor if repaired else CLEAN_COERCION_FACTOR,
        repaired=repaired,
    )


def coerce_totalizer(
    text: str | None, repaired_factor: float = REPAIRED_COERCION_FACTOR
) -> Coercion:
    result = coerce_number(text, repaired_factor)
    if not result.ok or not float(result.value).is_integer() or result.value < 0:
        return FAILED
    return Coercion(value=int(result.value), factor=result.factor, repaired=result.repaired)


def coerce_time(
    text: str | None, repaired_factor: float = REPAIRED_COERCION_FACTOR
) -> Coercion:
    if is_missing(text):
        return FAILED
    clean = parse_hour_token(text)
    if clean is not None:
        return Coercion(value=f"{clean[:2]}:{clean[2:]}", factor=CLEAN_COERCION_FACTOR)
    fixed = parse_hour_token(text.translate(_CONFUSABLE_TABLE))
    if fixed is not None:
        return Coercion(value=f"{fixed[:2]}:{fixed[2:]}", factor=repaired_factor, repaired=True)
    return FAILED


def coerce_text(
    text: str | None, repaired_factor: float = REPAIRED_COERCION_FACTOR
) -> Coercion:
    if is_missing(text):
        return FAILED
    return Coercion(value=text.strip(), factor=CLEAN_COERCION_FACTOR)


_COERCERS: dict[FieldType, Callable[[str | None, float], Coercion]] = {
    FieldType.TEMPERATURE: coerce_number,
    FieldType.PRESSURE: coerce_number,
    FieldType.FLOW_RATE: coerce_number,
    FieldType.CONCENTRATION: coerce_number,
    FieldType.NUMERIC: coerce_number,
    FieldType.TOTALIZER: coerce_totalizer,
    FieldType.TIME: coerce_time,
    FieldType.TEXT: coerce_text,
}


def coerce(
    text: str | None,
    data_type: FieldType,
    repaired_factor: float = REPAIRED_COERCION_FACTOR,
) -> Coercion:
    """Coerce cell text for ``data_type``; never raises."""
    return _COERCERS[data_type](text, repaired_factor)


def looks_like_value(token: str) -> bool:
    """True for a token that fills a table cell rather than part of a row label."""
    if token.strip().casefold() in MISSING_CELL_MARKERS:
        return True
    if not any(c.isdigit() for c in token):
        return False
    alnum = [c for c in token if c.isalnum()]
    numeric_like = sum(1 for c in alnum if c.isdigit() or c in CONFUSABLE_DIGITS)
    if numeric_like * 2 <= len(alnum):
        # label words with a misread letter, e.g. "1NLET"
        return False
    return coerce_number(token).ok or parse_hour_token(token, repair=True) is not None
