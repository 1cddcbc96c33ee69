"""
Recover the label x hour grid from column-aligned OCR text.

The printed log has a header row of hour labels ("0000" ... "2300") and one
data row per measured quantity. OCR output keeps the row order but loses
exact column positions, so columns are recovered by token position: the
n-th value token of a data row belongs to the n-th hour of the header.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from oxidizer_ocr.core.config import MIN_LABEL_SIMILARITY, MISSING_CELL_MARKERS
from oxidizer_ocr.models.reading import GridRow, ParseError, ParseErrorKind, TableGrid, TableSlice
from oxidizer_ocr.processors.coercion import CONFUSABLE_DIGITS, looks_like_value
from oxidizer_ocr.processors.field_dictionary import FieldDictionary, build_default_dictionary
from oxidizer_ocr.processors.field_matcher import best_field
from oxidizer_ocr.utils.hours import normalize_hour, parse_hour_token

logger = logging.getLogger(__name__)

HEADER_MIN_HOURS = 2
HEADER_MIN_SHARE = 0.75

# Drawn table rules that OCR returns as standalone tokens
_RULE_TOKENS = frozenset({"|", "||", "¦", ":", "/"})


def _tokens(line: str) -> list[str]:
    return [t for t in line.split() if t not in _RULE_TOKENS]


def _header_hours(
    tokens: list[str], dictionary: FieldDictionary, min_similarity: float
) -> list[str] | None:
    """Hour labels of a header line, or None when the line is not a header.

    Flow values such as 2000-2359 also read as hours, so a header must be
    mostly on-the-hour labels and must not open with a measurement label.
    """
    parsed = [parse_hour_token(t, repair=True) for t in tokens]
    hours = [h for h in parsed if h is not None]
    if len(hours) < HEADER_MIN_HOURS or len(hours) < HEADER_MIN_SHARE * len(tokens):
        return None
    on_the_hour = sum(1 for h in hours if h.endswith("00"))
    if on_the_hour < HEADER_MIN_SHARE * len(hours):
        return None

    first = next(i for i, h in enumerate(parsed) if h is not None)
    lead = " ".join(tokens[:first])
    if lead:
        measured = [spec for spec in dictionary if spec.data_type.is_numeric]
        if best_field(lead, measured, min_similarity) is not None:
            return None
    return hours


def _split_row(tokens: list[str], width: int) -> tuple[str, list[str | None]]:
    """Leading non-value tokens form the label; the rest are cells.

    When the row is short of cells, trailing label words made only of
    digit look-alikes ("lOO") are cells OCR read as letters; they go back
    to the cells so later columns do not shift left.
    """
    cut = 0
    while cut < len(tokens) and not looks_like_value(tokens[cut]):
        cut += 1
    missing = width - (len(tokens) - cut)
    while missing > 0 and cut > 1 and all(c in CONFUSABLE_DIGITS for c in tokens[cut - 1]):
        cut -= 1
        missing -= 1
    label = " ".join(tokens[:cut])
    cells: list[str | None] = [
        None if t.casefold() in MISSING_CELL_MARKERS else t for t in tokens[cut:]
    ]
    return label, cells


def parse_grid(
    raw_text: str,
    dictionary: Optional[FieldDictionary] = None,
    min_similarity: float = MIN_LABEL_SIMILARITY,
) -> TableGrid | ParseError:
    """
    Locate the header row and split every following line into label + cells.

    Args:
        raw_text: OCR text of one log sheet
        dictionary: field catalog used to tell data rows from the header
        min_similarity: label score at which a line counts as a data row

    Returns:
        TableGrid, or ParseError(NO_HEADER_ROW) when no line qualifies as header
    """
    if dictionary is None:
        dictionary = build_default_dictionary()
    lines = raw_text.splitlines()
    header: list[str] | None = None
    header_line = -1
    for index, line in enumerate(lines):
        header = _header_hours(_tokens(line), dictionary, min_similarity)
        if header is not None:
            header_line = index
            break

    if header is None:
        return ParseError(
            kind=ParseErrorKind.NO_HEADER_ROW,
            message="No line with hour labels (HHMM or HH:MM) was found",
        )

    warnings: list[str] = []
    seen: set[str] = set()
    for hour in header:
        if hour in seen:
            warnings.append(f"Duplicate hour {hour} in header row; using first occurrence")
        seen.add(hour)

    width = len(header)
    rows: list[GridRow] = []
    for index in range(header_line + 1, len(lines)):
        tokens = _tokens(lines[index])
        if not tokens:
            continue
        label, cells = _split_row(tokens, width)
        if not label:
            continue
        if len(cells) > width:
            warnings.append(
                f"Row '{label}' has {len(cells)} values for {width} hour columns"
            )
            cells = cells[:width]
        cells.extend([None] * (width - len(cells)))
        rows.append(GridRow(row_index=len(rows), label_text=label, cells=tuple(cells)))

    logger.debug(
        "Parsed table grid",
        extra={"stage": "parse", "field_count": len(rows)},
    )
    return TableGrid(header_hours=tuple(header), rows=tuple(rows), warnings=tuple(warnings))


def parse_table(
    raw_text: str, target_hour: Any, dictionary: Optional[FieldDictionary] = None
) -> TableSlice | ParseError:
    """
    Slice ``raw_text`` at the column of ``target_hour``.

    Args:
        raw_text: OCR text of one log sheet
        target_hour: int 0-23, "HHMM" or "HH:MM"
        dictionary: field catalog, defaults to the standard log fields

    Returns:
        TableSlice, or ParseError when the header row or the hour is missing

    Raises:
        InvalidTargetHourError: ``target_hour`` is not an hour label
    """
    hour = normalize_hour(target_hour)
    grid = parse_grid(raw_text, dictionary)
    if isinstance(grid, ParseError):
        return grid
    return grid.slice(hour)
