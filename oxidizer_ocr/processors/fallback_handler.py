"""
Fallback escalation for one hour column.

The primary path (parse + match) runs first. When its reading is not
acceptable the handler escalates through the strategies permitted by the
requested ``FallbackLevel``, stopping at the first acceptable reading:

    strict      primary only
    moderate    + adjacent-hour substitution
    aggressive  + loose label match + unit-marker scan

Every step is bounded; the handler never loops.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from oxidizer_ocr.core.exceptions import InvalidFallbackLevelError
from oxidizer_ocr.core.settings import PipelineSettings
from oxidizer_ocr.models.dto import FallbackAttempt, FallbackOutcome
from oxidizer_ocr.models.reading import (
    FallbackLevel,
    FallbackStrategy,
    HourlyReading,
    ParseError,
    TableGrid,
    TableRow,
)
from oxidizer_ocr.processors.fallback_strategies import (
    try_adjacent_hour,
    try_loose_label_match,
    try_regex_only,
)
from oxidizer_ocr.processors.field_dictionary import FieldDictionary
from oxidizer_ocr.processors.field_matcher import match_rows
from oxidizer_ocr.processors.table_parser import parse_grid
from oxidizer_ocr.utils.hours import normalize_hour

logger = logging.getLogger(__name__)

ESCALATION: dict[FallbackLevel, tuple[FallbackStrategy, ...]] = {
    FallbackLevel.STRICT: (),
    FallbackLevel.MODERATE: (FallbackStrategy.ADJACENT_HOUR_SUBSTITUTION,),
    FallbackLevel.AGGRESSIVE: (
        FallbackStrategy.ADJACENT_HOUR_SUBSTITUTION,
        FallbackStrategy.LOOSE_LABEL_MATCH,
        FallbackStrategy.REGEX_ONLY,
    ),
}


def normalize_fallback_level(value: Any) -> FallbackLevel:
    """Accept a FallbackLevel or its string value."""
    try:
        return FallbackLevel(value)
    except ValueError as e:
        raise InvalidFallbackLevelError(value) from e


class FallbackHandler:
    """Primary extraction plus bounded escalation. Stateless between calls."""

    def __init__(self, dictionary: FieldDictionary, settings: Optional[PipelineSettings] = None):
        self.dictionary = dictionary
        self.settings = settings or PipelineSettings()

    def is_acceptable(self, reading: HourlyReading) -> bool:
        return (
            reading.valid_field_count >= self.settings.REQUIRED_MIN_FIELDS
            and reading.overall_confidence >= self.settings.ACCEPTABLE_CONFIDENCE
        )

    def _primary(
        self, raw_text: str, hour: str
    ) -> tuple[HourlyReading, Optional[TableGrid], list[TableRow], Optional[ParseError]]:
        grid = parse_grid(raw_text, self.dictionary, self.settings.MIN_LABEL_SIMILARITY)
        if isinstance(grid, ParseError):
            return HourlyReading.build(hour, [], [grid.message]), None, [], grid

        table_slice = grid.slice(hour)
        if isinstance(table_slice, ParseError):
            warnings = list(grid.warnings) + [table_slice.message]
            return HourlyReading.build(hour, [], warnings), grid, [], table_slice

        outcome = match_rows(
            table_slice.rows,
            self.dictionary,
            hour,
            min_similarity=self.settings.MIN_LABEL_SIMILARITY,
            repaired_factor=self.settings.REPAIRED_COERCION_FACTOR,
        )
        reading = HourlyReading.build(hour, outcome.fields, table_slice.warnings)
        return reading, grid, outcome.unmatched_rows, None

    def _run_strategy(
        self,
        strategy: FallbackStrategy,
        reading: HourlyReading,
        raw_text: str,
        grid: Optional[TableGrid],
        unmatched_rows: list[TableRow],
    ) -> Optional[HourlyReading]:
        s = self.settings
        if strategy is FallbackStrategy.ADJACENT_HOUR_SUBSTITUTION:
            return try_adjacent_hour(
                reading, grid, self.dictionary, s.ADJACENT_HOUR_PENALTY, s.REPAIRED_COERCION_FACTOR
            )
        if strategy is FallbackStrategy.LOOSE_LABEL_MATCH:
            return try_loose_label_match(
                reading,
                unmatched_rows,
                self.dictionary,
                s.LOOSE_LABEL_SIMILARITY,
                s.REPAIRED_COERCION_FACTOR,
            )
        if strategy is FallbackStrategy.REGEX_ONLY:
            return try_regex_only(
                reading,
                raw_text,
                self.dictionary,
                s.REGEX_ONLY_CONFIDENCE,
                s.LOOSE_LABEL_SIMILARITY,
                s.REPAIRED_COERCION_FACTOR,
            )
        return None

    def handle_with_fallback(
        self,
        raw_text: str,
        target_hour: Any,
        fallback_level: FallbackLevel = FallbackLevel.AGGRESSIVE,
    ) -> FallbackOutcome:
        """
        Extract the reading for ``target_hour``, escalating as ``fallback_level`` allows.

        The emitted reading is the highest-confidence acceptable attempt; failing
        that, the highest-confidence attempt with at least one valid field;
        failing that, the primary reading with a reason naming what was tried.

        Raises:
            InvalidTargetHourError: ``target_hour`` is not an hour label
            InvalidFallbackLevelError: ``fallback_level`` is not a known level
        """
        hour = normalize_hour(target_hour)
        fallback_level = normalize_fallback_level(fallback_level)
        primary, grid, unmatched_rows, parse_error = self._primary(raw_text, hour)

        primary_ok = self.is_acceptable(primary)
        attempts = [
            FallbackAttempt(
                strategy=FallbackStrategy.NONE,
                confidence=primary.overall_confidence,
                valid_field_count=primary.valid_field_count,
                accepted=primary_ok,
                note=parse_error.kind.value if parse_error else None,
            )
        ]
        if primary_ok:
            return FallbackOutcome(
                reading=primary,
                fallback_strategy=FallbackStrategy.NONE,
                confidence=primary.overall_confidence,
                attempts=tuple(attempts),
            )

        produced: list[tuple[FallbackStrategy, HourlyReading]] = []
        current = primary
        for strategy in ESCALATION[fallback_level]:
            candidate = self._run_strategy(strategy, current, raw_text, grid, unmatched_rows)
            if candidate is None:
                attempts.append(
                    FallbackAttempt(
                        strategy=strategy,
                        confidence=current.overall_confidence,
                        valid_field_count=current.valid_field_count,
                        accepted=False,
                        note="nothing recovered",
                    )
                )
                continue
            current = candidate
            accepted = self.is_acceptable(candidate)
            attempts.append(
                FallbackAttempt(
                    strategy=strategy,
                    confidence=candidate.overall_confidence,
                    valid_field_count=candidate.valid_field_count,
                    accepted=accepted,
                )
            )
            produced.append((strategy, candidate))
            if accepted:
                break

        strategy, reading, reason = self._select(
            primary, produced, fallback_level, parse_error
        )
        logger.info(
            "Fallback resolved",
            extra={
                "target_hour": hour,
                "fallback_level": fallback_level.value,
                "strategy": strategy.value,
                "valid_field_count": reading.valid_field_count,
                "confidence": round(reading.overall_confidence, 4),
            },
        )
        return FallbackOutcome(
            reading=reading,
            fallback_strategy=strategy,
            fallback_reason=reason,
            confidence=reading.overall_confidence,
            attempts=tuple(attempts),
        )

    def _select(
        self,
        primary: HourlyReading,
        produced: list[tuple[FallbackStrategy, HourlyReading]],
        fallback_level: FallbackLevel,
        parse_error: Optional[ParseError],
    ) -> tuple[FallbackStrategy, HourlyReading, str]:
        insufficient = (
            f"primary extraction insufficient ({primary.valid_field_count} valid fields, "
            f"confidence {primary.overall_confidence:.2f})"
        )
        if parse_error is not None:
            insufficient = f"{insufficient}; {parse_error.kind.value}: {parse_error.message}"

        acceptable = [(s, r) for s, r in produced if self.is_acceptable(r)]
        if acceptable:
            strategy, reading = max(acceptable, key=lambda item: item[1].overall_confidence)
            return strategy, reading, f"{insufficient}; recovered by {strategy.value}"

        with_values = [
            (s, r)
            for s, r in [(FallbackStrategy.NONE, primary)] + produced
            if r.valid_field_count >= 1
        ]
        if with_values:
            strategy, reading = max(with_values, key=lambda item: item[1].overall_confidence)
            return (
                strategy,
                reading,
                f"{insufficient}; no strategy reached an acceptable reading, "
                f"best partial result from {strategy.value}",
            )

        tried = [s.value for s in ESCALATION[fallback_level]]
        if tried:
            exhausted = f"all fallback strategies exhausted ({', '.join(tried)})"
        else:
            exhausted = f"fallback level {fallback_level.value} permits no further strategies"
        return FallbackStrategy.NONE, primary, f"{insufficient}; {exhausted}"
