"""
Table and reading models shared by the parser, matcher and fallback handler.

All models are frozen: every parse or fallback step builds new values.
"""

from __future__ import annotations

from enum import Enum
from statistics import fmean
from typing import Iterable

from pydantic import BaseModel, ConfigDict


class FallbackStrategy(str, Enum):
    """How a reading (or a single field) was produced."""

    NONE = "none"
    ADJACENT_HOUR_SUBSTITUTION = "adjacentHourSubstitution"
    LOOSE_LABEL_MATCH = "looseLabelMatch"
    REGEX_ONLY = "regexOnly"


class FallbackLevel(str, Enum):
    """How many escalation steps a caller permits."""

    STRICT = "strict"
    MODERATE = "moderate"
    AGGRESSIVE = "aggressive"


class ParseErrorKind(str, Enum):
    NO_HEADER_ROW = "NO_HEADER_ROW"
    HOUR_NOT_IN_HEADER = "HOUR_NOT_IN_HEADER"


class ParseError(BaseModel):
    """Table structure was not recognized; drives fallback, never raised."""

    model_config = ConfigDict(frozen=True)

    kind: ParseErrorKind
    message: str


class GridRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    row_index: int
    label_text: str
    cells: tuple[str | None, ...]


class TableRow(BaseModel):
    """One data row sliced at a single hour column; ``None`` = missing cell."""

    model_config = ConfigDict(frozen=True)

    row_index: int
    label_text: str
    value_text: str | None


class TableSlice(BaseModel):
    model_config = ConfigDict(frozen=True)

    hour: str
    column_index: int
    rows: tuple[TableRow, ...]
    warnings: tuple[str, ...] = ()


class TableGrid(BaseModel):
    """Label column x hour columns, as recovered from the OCR text."""

    model_config = ConfigDict(frozen=True)

    header_hours: tuple[str, ...]
    rows: tuple[GridRow, ...]
    warnings: tuple[str, ...] = ()

    def column_of(self, hour: str) -> int | None:
        # first occurrence wins for duplicated header hours
        try:
            return self.header_hours.index(hour)
        except ValueError:
            return None

    def cell(self, row_index: int, hour: str) -> str | None:
        column = self.column_of(hour)
        if column is None:
            return None
        for row in self.rows:
            if row.row_index == row_index:
                return row.cells[column] if column < len(row.cells) else None
        return None

    def slice(self, hour: str) -> TableSlice | ParseError:
        column = self.column_of(hour)
        if column is None:
            return ParseError(
                kind=ParseErrorKind.HOUR_NOT_IN_HEADER,
                message=f"Hour {hour} is not among header hours {', '.join(self.header_hours)}",
            )
        rows = tuple(
            TableRow(
                row_index=row.row_index,
                label_text=row.label_text,
                value_text=row.cells[column] if column < len(row.cells) else None,
            )
            for row in self.rows
        )
        return TableSlice(hour=hour, column_index=column, rows=rows, warnings=self.warnings)


class ExtractedField(BaseModel):
    """A single typed value bound to a FieldSpec, with its provenance."""

    model_config = ConfigDict(frozen=True)

    field_key: str
    raw_label_text: str
    raw_value_text: str | None
    value: float | int | str | None
    unit: str
    confidence: float
    similarity: float
    coerced: bool
    repaired: bool = False
    source_hour: str | None = None
    strategy: FallbackStrategy = FallbackStrategy.NONE
    row_index: int | None = None


class HourlyReading(BaseModel):
    """Fields extracted for one hour column.

    Build through :meth:`build` so that ``overall_confidence`` and
    ``valid_field_count`` always agree with ``field_matches``.
    """

    model_config = ConfigDict(frozen=True)

    hour: str
    field_matches: tuple[ExtractedField, ...] = ()
    overall_confidence: float = 0.0
    valid_field_count: int = 0
    warnings: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        hour: str,
        fields: Iterable[ExtractedField],
        warnings: Iterable[str] = (),
    ) -> "HourlyReading":
        field_matches = tuple(fields)
        overall = fmean(f.confidence for f in field_matches) if field_matches else 0.0
        return cls(
            hour=hour,
            field_matches=field_matches,
            overall_confidence=overall,
            valid_field_count=sum(1 for f in field_matches if f.coerced),
            warnings=tuple(warnings),
        )

    def get(self, key: str) -> ExtractedField | None:
        for field in self.field_matches:
            if field.field_key == key:
                return field
        return None

    def keys(self) -> list[str]:
        return [f.field_key for f in self.field_matches]

    @property
    def values(self) -> dict[str, float | int | str]:
        return {f.field_key: f.value for f in self.field_matches if f.coerced and f.value is not None}
