"""
Static field catalog types.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class FieldType(str, Enum):
    """Physical kind of a log field; selects coercion and plausibility rules."""

    TEMPERATURE = "temperature"
    PRESSURE = "pressure"
    FLOW_RATE = "flowRate"
    CONCENTRATION = "concentration"
    TIME = "time"
    TOTALIZER = "totalizer"
    NUMERIC = "numeric"
    TEXT = "text"

    @property
    def is_numeric(self) -> bool:
        return self not in (FieldType.TIME, FieldType.TEXT)


class FieldSpec(BaseModel):
    """
    One known row of the oxidizer log.

    ``plausible_range`` is the typical operating band (outside -> warning),
    ``absolute_range`` the physical bound (outside -> hard error).
    """

    model_config = ConfigDict(frozen=True)

    key: str
    label_synonyms: frozenset[str]
    unit: str
    data_type: FieldType
    plausible_range: tuple[float, float] | None = None
    absolute_range: tuple[float, float] | None = None
    jump_threshold: float | None = None
    required: bool = False
    unit_markers: tuple[str, ...] = ()

    def in_plausible_range(self, value: float) -> bool:
        if self.plausible_range is None:
            return True
        low, high = self.plausible_range
        return low <= value <= high

    def in_absolute_range(self, value: float) -> bool:
        if self.absolute_range is None:
            return True
        low, high = self.absolute_range
        return low <= value <= high
