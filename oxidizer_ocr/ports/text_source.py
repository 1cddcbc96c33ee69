"""TextSource protocol for text acquisition.

The core pipeline only ever sees ``AcquisitionResult`` values; adapters
convert their own failures at this boundary.
"""

from __future__ import annotations

from typing import Mapping, Protocol

from oxidizer_ocr.models.dto import AcquisitionResult, ImageRef


class TextSource(Protocol):
    """Abstraction over the recognition engine used by the orchestrator."""

    def extract_text(self, image_ref: ImageRef) -> AcquisitionResult: ...


class StaticTextSource:
    """Serves pre-recognised text keyed by image path (manual entry, tests)."""

    def __init__(self, texts: Mapping[str, str]):
        self._texts = dict(texts)

    def extract_text(self, image_ref: ImageRef) -> AcquisitionResult:
        text = self._texts.get(image_ref.path)
        if text is None:
            return AcquisitionResult.failed("NO_IMAGE", f"Image not found: {image_ref.path}")
        if not text.strip():
            return AcquisitionResult.failed("NO_TEXT", f"No text recognised in {image_ref.path}")
        return AcquisitionResult(text=text)
