"""
Static catalog of the fields printed on the thermal-oxidizer hourly log.

The catalog is built once by the composition root and passed by reference;
``FieldSpec`` values are frozen so sharing across threads needs no locking.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from oxidizer_ocr.models.fields import FieldSpec, FieldType


class FieldDictionary:
    """Ordered, read-only mapping of field key -> FieldSpec."""

    def __init__(self, specs: Iterable[FieldSpec]):
        self._specs: dict[str, FieldSpec] = {}
        for spec in specs:
            if spec.key in self._specs:
                raise ValueError(f"Duplicate field key: {spec.key}")
            self._specs[spec.key] = spec

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, key: object) -> bool:
        return key in self._specs

    def get(self, key: str) -> FieldSpec | None:
        return self._specs.get(key)

    def keys(self) -> list[str]:
        return list(self._specs)

    def required_keys(self) -> list[str]:
        return [spec.key for spec in self._specs.values() if spec.required]

    def fields_with_marker(self, marker: str) -> list[FieldSpec]:
        """Fields whose unit markers include ``marker`` (case-insensitive)."""
        needle = marker.casefold()
        return [
            spec
            for spec in self._specs.values()
            if any(m.casefold() == needle for m in spec.unit_markers)
        ]

    def all_markers(self) -> list[str]:
        """Every distinct unit marker, longest first."""
        seen: dict[str, None] = {}
        for spec in self._specs.values():
            for marker in spec.unit_markers:
                seen.setdefault(marker.casefold(), None)
        return sorted(seen, key=len, reverse=True)


# ========================================
# DEFAULT CATALOG
# ========================================

_DEFAULT_SPECS: tuple[FieldSpec, ...] = (
    FieldSpec(
        key="inspectionTime",
        label_synonyms=frozenset({"time", "inspection time", "hour", "reading time"}),
        unit="",
        data_type=FieldType.TIME,
    ),
    FieldSpec(
        key="vaporInletFPM",
        label_synonyms=frozenset(
            {
                "vapor inlet flow rate",
                "vapor inlet flow rate fpm",
                "vapor inlet fpm",
                "vapor inlet",
                "vapor flow",
                "inlet flow rate",
                "vap0r inlet",
            }
        ),
        unit="FPM",
        data_type=FieldType.FLOW_RATE,
        plausible_range=(0.0, 10000.0),
        absolute_range=(0.0, 100000.0),
        jump_threshold=1500.0,
        required=True,
        unit_markers=("FPM", "FLOW RATE"),
    ),
    FieldSpec(
        key="dilutionAirFPM",
        label_synonyms=frozenset(
            {
                "dilution air",
                "dilution air fpm",
                "dilution air flow",
                "dilution air flow rate",
                "dilution",
            }
        ),
        unit="FPM",
        data_type=FieldType.FLOW_RATE,
        plausible_range=(0.0, 5000.0),
        absolute_range=(0.0, 100000.0),
        jump_threshold=1000.0,
        unit_markers=("FPM",),
    ),
    FieldSpec(
        key="combustionAirFPM",
        label_synonyms=frozenset(
            {
                "combustion air",
                "combustion air fpm",
                "combustion air flow",
                "combustion air flow rate",
                "combustion",
            }
        ),
        unit="FPM",
        data_type=FieldType.FLOW_RATE,
        plausible_range=(0.0, 5000.0),
        absolute_range=(0.0, 100000.0),
        jump_threshold=1000.0,
        unit_markers=("FPM",),
    ),
    FieldSpec(
        key="exhaustTempF",
        label_synonyms=frozenset(
            {
                "exhaust temperature",
                "exhaust temp",
                "exhaust temperature °f",
                "exhaust temp °f",
                "oxidizer temperature",
                "temperature",
                "exh temp",
            }
        ),
        unit="°F",
        data_type=FieldType.TEMPERATURE,
        plausible_range=(500.0, 2000.0),
        absolute_range=(-459.67, 5000.0),
        jump_threshold=300.0,
        required=True,
        unit_markers=("°F", "DEG F", "TEMPERATURE", "TEMP"),
    ),
    FieldSpec(
        key="spherePressurePSI",
        label_synonyms=frozenset(
            {
                "sphere pressure",
                "sphere pressure psi",
                "sphere psi",
                "pressure",
                "tank pressure",
            }
        ),
        unit="PSI",
        data_type=FieldType.PRESSURE,
        plausible_range=(0.0, 50.0),
        absolute_range=(-14.7, 500.0),
        jump_threshold=15.0,
        unit_markers=("PSI", "PRESSURE"),
    ),
    FieldSpec(
        key="inletPpm",
        label_synonyms=frozenset(
            {
                "inlet ppm",
                "inlet concentration",
                "inlet voc ppm",
                "1nlet ppm",
            }
        ),
        unit="PPM",
        data_type=FieldType.CONCENTRATION,
        plausible_range=(0.0, 100000.0),
        absolute_range=(0.0, 1000000.0),
        required=True,
        unit_markers=("PPM",),
    ),
    FieldSpec(
        key="outletPpm",
        label_synonyms=frozenset(
            {
                "outlet ppm",
                "outlet concentration",
                "outlet voc ppm",
                "0utlet ppm",
            }
        ),
        unit="PPM",
        data_type=FieldType.CONCENTRATION,
        plausible_range=(0.0, 1000.0),
        absolute_range=(0.0, 1000000.0),
        unit_markers=("PPM",),
    ),
    FieldSpec(
        key="lelPercent",
        label_synonyms=frozenset({"lel", "% lel", "lel %", "percent lel", "lower explosive limit"}),
        unit="%LEL",
        data_type=FieldType.CONCENTRATION,
        plausible_range=(0.0, 100.0),
        absolute_range=(0.0, 100.0),
        unit_markers=("%LEL", "LEL"),
    ),
    FieldSpec(
        key="totalizerSCF",
        label_synonyms=frozenset(
            {
                "totalizer",
                "totalizer reading",
                "totalizer scf",
                "total flow",
                "scf totalizer",
            }
        ),
        unit="SCF",
        data_type=FieldType.TOTALIZER,
        plausible_range=(1000.0, 999999999.0),
        absolute_range=(0.0, 1e12),
        jump_threshold=100000.0,
        unit_markers=("SCF", "TOTALIZER"),
    ),
)


def build_default_dictionary() -> FieldDictionary:
    return FieldDictionary(_DEFAULT_SPECS)
