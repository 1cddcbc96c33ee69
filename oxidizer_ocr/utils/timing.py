from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Dict, Iterator


class StageTimers:
    """Accumulates wall-clock seconds per named pipeline stage."""

    def __init__(self) -> None:
        self.totals: Dict[str, float] = {}

    @contextmanager
    def timer(self, name: str) -> Iterator[None]:
        t0 = time.perf_counter()
        try:
            yield
        finally:
            dt = time.perf_counter() - t0
            self.totals[name] = self.totals.get(name, 0.0) + dt

    def as_log_fields(self) -> Dict[str, float]:
        return {f"{name}_ms": round(total * 1000, 3) for name, total in self.totals.items()}
