"""
Bind table rows to dictionary fields by label similarity.

Similarity is a Dice coefficient over label words, where two words count as
equal when identical or when rapidfuzz rates them close enough (OCR-misspelt
words such as "EXHAUSI" for "EXHAUST"). A synonym that appears as a contiguous
phrase inside the label lifts the score to at least ``LABEL_PHRASE_FLOOR``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from rapidfuzz import fuzz

from oxidizer_ocr.core.config import (
    LABEL_PHRASE_FLOOR,
    LABEL_TOKEN_FUZZ_MIN_LENGTH,
    LABEL_TOKEN_FUZZ_RATIO,
    MIN_LABEL_SIMILARITY,
    REPAIRED_COERCION_FACTOR,
)
from oxidizer_ocr.models.fields import FieldSpec
from oxidizer_ocr.models.reading import ExtractedField, FallbackStrategy, TableRow, TableSlice
from oxidizer_ocr.processors.coercion import coerce
from oxidizer_ocr.processors.field_dictionary import FieldDictionary

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[a-z0-9°%#]+")
# Digits OCR puts inside label words ("VAP0R", "1NLET")
_LABEL_REPAIRS = str.maketrans({"0": "o", "1": "i", "5": "s"})


def label_tokens(text: str) -> list[str]:
    tokens = []
    for word in _WORD_RE.findall(text.casefold()):
        if any(c.isalpha() for c in word) and any(c.isdigit() for c in word):
            word = word.translate(_LABEL_REPAIRS)
        tokens.append(word)
    return tokens


def _token_score(a: str, b: str) -> float:
    if a == b:
        return 1.0
    if min(len(a), len(b)) < LABEL_TOKEN_FUZZ_MIN_LENGTH:
        return 0.0
    ratio = fuzz.ratio(a, b)
    return ratio / 100.0 if ratio >= LABEL_TOKEN_FUZZ_RATIO else 0.0


def token_similarity(label: str, synonym: str) -> float:
    """Similarity in [0, 1] between an OCR row label and one synonym."""
    label_words = label_tokens(label)
    synonym_words = label_tokens(synonym)
    if not label_words or not synonym_words:
        return 0.0

    total = sum(
        max(_token_score(word, candidate) for candidate in label_words)
        for word in synonym_words
    )
    score = 2.0 * total / (len(label_words) + len(synonym_words))

    if f" {' '.join(synonym_words)} " in f" {' '.join(label_words)} ":
        score = max(score, LABEL_PHRASE_FLOOR)
    return min(score, 1.0)


def label_similarity(label: str, spec: FieldSpec) -> float:
    return max((token_similarity(label, synonym) for synonym in spec.label_synonyms), default=0.0)


def best_field(
    label: str, specs: Iterable[FieldSpec], min_similarity: float
) -> tuple[FieldSpec, float] | None:
    """Highest-scoring spec at or above ``min_similarity``; first wins on ties."""
    best: tuple[FieldSpec, float] | None = None
    for spec in specs:
        score = label_similarity(label, spec)
        if score < min_similarity:
            continue
        if best is None or score > best[1]:
            best = (spec, score)
    return best


def extract_field(
    spec: FieldSpec,
    row: TableRow,
    similarity: float,
    hour: str | None,
    repaired_factor: float = REPAIRED_COERCION_FACTOR,
    strategy: FallbackStrategy = FallbackStrategy.NONE,
) -> ExtractedField:
    """Coerce a row's cell for ``spec``; confidence = similarity x coercion factor."""
    result = coerce(row.value_text, spec.data_type, repaired_factor)
    return ExtractedField(
        field_key=spec.key,
        raw_label_text=row.label_text,
        raw_value_text=row.value_text,
        value=result.value if result.ok else None,
        unit=spec.unit,
        confidence=similarity * result.factor if result.ok else 0.0,
        similarity=similarity,
        coerced=result.ok,
        repaired=result.repaired,
        source_hour=hour,
        strategy=strategy,
        row_index=row.row_index,
    )


@dataclass(frozen=True)
class MatchOutcome:
    fields: list[ExtractedField]
    unmatched_rows: list[TableRow]


def match_rows(
    rows: Iterable[TableRow],
    dictionary: FieldDictionary,
    hour: str | None,
    min_similarity: float = MIN_LABEL_SIMILARITY,
    repaired_factor: float = REPAIRED_COERCION_FACTOR,
    strategy: FallbackStrategy = FallbackStrategy.NONE,
    exclude_keys: Iterable[str] = (),
) -> MatchOutcome:
    """
    Match every row, keeping one field per key (highest similarity wins).

    Rows below ``min_similarity`` for every spec, or whose only candidate key is
    excluded, are returned as unmatched. Output keeps table row order.
    """
    excluded = set(exclude_keys)
    specs = [spec for spec in dictionary if spec.key not in excluded]

    chosen: dict[str, ExtractedField] = {}
    chosen_rows: dict[str, TableRow] = {}
    unmatched: list[TableRow] = []
    for row in rows:
        found = best_field(row.label_text, specs, min_similarity)
        if found is None:
            unmatched.append(row)
            continue
        spec, similarity = found
        current = chosen.get(spec.key)
        if current is not None and current.similarity >= similarity:
            logger.debug(
                "Row '%s' loses %s to '%s'", row.label_text, spec.key, current.raw_label_text
            )
            unmatched.append(row)
            continue
        if current is not None:
            unmatched.append(chosen_rows[spec.key])
        chosen_rows[spec.key] = row
        chosen[spec.key] = extract_field(
            spec, row, similarity, hour, repaired_factor=repaired_factor, strategy=strategy
        )

    fields = sorted(chosen.values(), key=lambda f: f.row_index if f.row_index is not None else -1)
    unmatched.sort(key=lambda r: r.row_index)
    return MatchOutcome(fields=fields, unmatched_rows=unmatched)


def match_fields(
    table_slice: TableSlice,
    dictionary: FieldDictionary,
    min_similarity: float = MIN_LABEL_SIMILARITY,
    repaired_factor: float = REPAIRED_COERCION_FACTOR,
) -> list[ExtractedField]:
    """Fields of one hour column, in table row order."""
    return match_rows(
        table_slice.rows,
        dictionary,
        table_slice.hour,
        min_similarity=min_similarity,
        repaired_factor=repaired_factor,
    ).fields
