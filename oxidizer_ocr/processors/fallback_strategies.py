"""Fallback strategies - one function per escalation step.

Each strategy receives the reading produced so far and returns a NEW reading
that contains every field of the input plus whatever it could recover, or
None when it recovered nothing. Strategies never remove or downgrade a field
that already coerced, so escalating never loses valid fields.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from oxidizer_ocr.core.config import REGEX_CONTEXT_TOKENS
from oxidizer_ocr.models.fields import FieldSpec
from oxidizer_ocr.models.reading import (
    ExtractedField,
    FallbackStrategy,
    HourlyReading,
    TableGrid,
    TableRow,
    TableSlice,
)
from oxidizer_ocr.processors.coercion import coerce, coerce_number, looks_like_value
from oxidizer_ocr.processors.field_dictionary import FieldDictionary
from oxidizer_ocr.processors.field_matcher import (
    extract_field,
    label_similarity,
    match_rows,
)
from oxidizer_ocr.utils.hours import neighbours

logger = logging.getLogger(__name__)

_EDGE_PUNCTUATION = "()[]{}:;,="


def _penalised(field: ExtractedField, penalty: float) -> ExtractedField:
    return field.model_copy(update={"confidence": field.confidence * penalty})


def _better(a: ExtractedField | None, b: ExtractedField) -> ExtractedField:
    if a is None or b.confidence > a.confidence:
        return b
    return a


def try_adjacent_hour(
    reading: HourlyReading,
    grid: Optional[TableGrid],
    dictionary: FieldDictionary,
    penalty: float,
    repaired_factor: float,
) -> Optional[HourlyReading]:
    """Strategy 1: borrow blank or unreadable cells from the neighbouring hours.

    For every field whose target-hour cell failed, the same row is read at
    target-1 and target+1 (wrapping at midnight; only columns present in the
    header). The higher-confidence coerced candidate replaces the field with
    its confidence multiplied by ``penalty`` and ``source_hour`` set to the
    neighbour. When the target hour is not a header column at all, whole
    neighbour columns are matched instead.

    Returns:
        New reading, or None if no cell could be borrowed
    """
    if grid is None:
        return None

    hours = [h for h in neighbours(reading.hour) if grid.column_of(h) is not None]
    if not hours:
        return None

    if grid.column_of(reading.hour) is None:
        return _adjacent_columns(reading, grid, dictionary, hours, penalty, repaired_factor)

    replaced = 0
    fields: list[ExtractedField] = []
    for field in reading.field_matches:
        spec = dictionary.get(field.field_key)
        if field.coerced or field.row_index is None or spec is None:
            fields.append(field)
            continue
        best: ExtractedField | None = None
        for hour in hours:
            row = TableRow(
                row_index=field.row_index,
                label_text=field.raw_label_text,
                value_text=grid.cell(field.row_index, hour),
            )
            candidate = extract_field(
                spec,
                row,
                field.similarity,
                hour,
                repaired_factor=repaired_factor,
                strategy=FallbackStrategy.ADJACENT_HOUR_SUBSTITUTION,
            )
            if candidate.coerced:
                best = _better(best, _penalised(candidate, penalty))
        if best is None:
            fields.append(field)
        else:
            replaced += 1
            fields.append(best)

    if not replaced:
        return None
    logger.debug("Adjacent-hour substitution filled %d cells", replaced)
    return HourlyReading.build(reading.hour, fields, reading.warnings)


def _adjacent_columns(
    reading: HourlyReading,
    grid: TableGrid,
    dictionary: FieldDictionary,
    hours: list[str],
    penalty: float,
    repaired_factor: float,
) -> Optional[HourlyReading]:
    present = {f.field_key for f in reading.field_matches if f.coerced}
    best: dict[str, ExtractedField] = {}
    for hour in hours:
        table_slice = grid.slice(hour)
        if not isinstance(table_slice, TableSlice):
            continue
        outcome = match_rows(
            table_slice.rows,
            dictionary,
            hour,
            repaired_factor=repaired_factor,
            strategy=FallbackStrategy.ADJACENT_HOUR_SUBSTITUTION,
            exclude_keys=present,
        )
        for field in outcome.fields:
            if field.coerced:
                best[field.field_key] = _better(best.get(field.field_key), _penalised(field, penalty))

    if not best:
        return None
    kept = [f for f in reading.field_matches if f.field_key not in best]
    fields = sorted(
        kept + list(best.values()),
        key=lambda f: f.row_index if f.row_index is not None else len(grid.rows),
    )
    return HourlyReading.build(reading.hour, fields, reading.warnings)


def try_loose_label_match(
    reading: HourlyReading,
    unmatched_rows: Iterable[TableRow],
    dictionary: FieldDictionary,
    min_similarity: float,
    repaired_factor: float,
) -> Optional[HourlyReading]:
    """Strategy 2: re-match rows nobody claimed, at a lower label threshold.

    Only keys absent from ``reading`` may be added.

    Returns:
        New reading, or None if no additional field was bound
    """
    rows = list(unmatched_rows)
    if not rows:
        return None
    outcome = match_rows(
        rows,
        dictionary,
        reading.hour,
        min_similarity=min_similarity,
        repaired_factor=repaired_factor,
        strategy=FallbackStrategy.LOOSE_LABEL_MATCH,
        exclude_keys=reading.keys(),
    )
    if not outcome.fields:
        return None
    logger.debug("Loose label match bound %d rows", len(outcome.fields))
    return HourlyReading.build(
        reading.hour, list(reading.field_matches) + outcome.fields, reading.warnings
    )


def _clean(token: str) -> str:
    return token.casefold().strip(_EDGE_PUNCTUATION)


def _find_marker(words: list[str], start: int, markers: list[str]) -> tuple[str, int, str | None] | None:
    """Marker beginning at ``start``: (marker, tokens consumed, attached number text)."""
    for marker in markers:
        parts = marker.split()
        if words[start : start + len(parts)] == parts:
            return marker, len(parts), None
        if len(parts) == 1 and words[start].endswith(marker) and words[start] != marker:
            prefix = words[start][: -len(marker)]
            if coerce_number(prefix).ok:
                return marker, 1, prefix
    return None


def _choose_spec(
    context: str,
    owners: list[FieldSpec],
    dictionary: FieldDictionary,
    min_similarity: float,
) -> tuple[FieldSpec, float] | None:
    """Field a marker hit belongs to, judged by the words around it.

    A shared marker needs a context score of ``min_similarity``; a marker
    owned by one field needs none. Either way the hit is dropped when the
    context names some other field better than the owner.
    """
    if not owners:
        return None
    best: tuple[FieldSpec, float] | None = None
    for spec in owners:
        score = label_similarity(context, spec)
        if best is None or score > best[1]:
            best = (spec, score)
    if len(owners) > 1 and best[1] < min_similarity:
        return None

    owner_keys = {spec.key for spec in owners}
    for spec in dictionary:
        if spec.key in owner_keys:
            continue
        rival = label_similarity(context, spec)
        if rival > best[1] and rival >= min_similarity:
            return None
    return best


def try_regex_only(
    reading: HourlyReading,
    raw_text: str,
    dictionary: FieldDictionary,
    base_confidence: float,
    min_similarity: float,
    repaired_factor: float,
) -> Optional[HourlyReading]:
    """Strategy 3: scan the whole text for numbers next to unit markers.

    Rows and columns are ignored: on every line a unit marker ("°F", "PSI",
    "PPM", "FLOW RATE", ...) is paired with the number attached to it, the
    first number after it on the same line, or the number just before it.
    The words around the marker decide which field it belongs to when the
    marker is shared (e.g. PPM for inlet and outlet). Each field is taken
    from its first occurrence; keys already in ``reading`` are never touched.

    Returns:
        New reading, or None if nothing new was found
    """
    markers = dictionary.all_markers()
    taken = set(reading.keys())
    found: list[ExtractedField] = []

    for line in raw_text.splitlines():
        raw_words = line.split()
        words = [_clean(w) for w in raw_words]
        index = 0
        while index < len(words):
            hit = _find_marker(words, index, markers)
            if hit is None:
                index += 1
                continue
            marker, consumed, attached = hit
            end = index + consumed

            value_text = attached
            trailing: list[str] = []
            if value_text is None:
                for j in range(end, len(words)):
                    if looks_like_value(raw_words[j]):
                        value_text = raw_words[j]
                        break
                    trailing.append(words[j])
            if value_text is None and index > 0 and looks_like_value(raw_words[index - 1]):
                value_text = raw_words[index - 1]
                trailing = []

            leading: list[str] = []
            j = index - 1
            while j >= 0 and len(leading) < REGEX_CONTEXT_TOKENS and not looks_like_value(raw_words[j]):
                leading.insert(0, words[j])
                j -= 1
            context = " ".join(leading + words[index:end] + trailing)

            index = end
            if value_text is None:
                continue
            choice = _choose_spec(
                context, dictionary.fields_with_marker(marker), dictionary, min_similarity
            )
            if choice is None:
                continue
            spec, similarity = choice
            if spec.key in taken:
                continue
            result = coerce(value_text, spec.data_type, repaired_factor)
            if not result.ok:
                continue
            taken.add(spec.key)
            found.append(
                ExtractedField(
                    field_key=spec.key,
                    raw_label_text=context,
                    raw_value_text=value_text,
                    value=result.value,
                    unit=spec.unit,
                    confidence=base_confidence * result.factor,
                    similarity=similarity,
                    coerced=True,
                    repaired=result.repaired,
                    source_hour=None,
                    strategy=FallbackStrategy.REGEX_ONLY,
                )
            )

    if not found:
        return None
    logger.debug("Unit-marker scan recovered %d fields", len(found))
    return HourlyReading.build(reading.hour, list(reading.field_matches) + found, reading.warnings)
