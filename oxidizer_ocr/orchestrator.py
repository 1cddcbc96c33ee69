from __future__ import annotations

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Optional, Sequence

from oxidizer_ocr.clients.tesseract_async_client import TesseractTextSource
from oxidizer_ocr.core.exceptions import BaseError, InvalidFallbackLevelError, InvalidTargetHourError
from oxidizer_ocr.core.settings import PipelineSettings, get_settings
from oxidizer_ocr.models.dto import (
    BatchRequest,
    ImageRef,
    OcrIntegrationFailure,
    OcrIntegrationResult,
    OcrIntegrationSuccess,
    QualityAssessment,
)
from oxidizer_ocr.models.reading import FallbackLevel, HourlyReading
from oxidizer_ocr.ports.text_source import TextSource
from oxidizer_ocr.processors.fallback_handler import FallbackHandler, normalize_fallback_level
from oxidizer_ocr.processors.field_dictionary import FieldDictionary, build_default_dictionary
from oxidizer_ocr.processors.quality import assess_quality
from oxidizer_ocr.processors.validator import AntiHallucinationValidator, generate_validation_report
from oxidizer_ocr.utils.hours import normalize_hour
from oxidizer_ocr.utils.timing import StageTimers

logger = logging.getLogger(__name__)


def _failure(code: str, message: str) -> OcrIntegrationFailure:
    return OcrIntegrationFailure(message=message, error_code=code)


class OcrIntegrationOrchestrator:
    """
    Runs acquisition -> fallback extraction -> validation for one hour column.

    Every collaborator is injected; the orchestrator holds no per-request
    state, so one instance serves concurrent ``process`` calls.
    """

    def __init__(
        self,
        dictionary: FieldDictionary,
        fallback_handler: FallbackHandler,
        validator: AntiHallucinationValidator,
        text_source: Optional[TextSource] = None,
        settings: Optional[PipelineSettings] = None,
    ):
        self.dictionary = dictionary
        self.fallback_handler = fallback_handler
        self.validator = validator
        self.text_source = text_source
        self.settings = settings or PipelineSettings()

    def _acquire(
        self, source: str | ImageRef, request_id: str
    ) -> tuple[Optional[str], Optional[OcrIntegrationFailure]]:
        if isinstance(source, str):
            if not source.strip():
                return None, _failure("NO_TEXT", "No OCR text was supplied")
            return source, None

        if self.text_source is None:
            return None, _failure("NO_TEXT_SOURCE", "No text recognition engine is configured")
        try:
            result = self.text_source.extract_text(source)
        except Exception as e:
            logger.error(
                "Text source raised",
                exc_info=True,
                extra={"request_id": request_id, "error_code": "ACQUISITION_FAILED"},
            )
            return None, _failure("ACQUISITION_FAILED", f"Text recognition failed: {e}")

        if not result.ok:
            error = result.error
            return None, _failure(
                error.code if error else "NO_TEXT",
                error.message if error else "The recognition engine returned no text",
            )
        if not result.text.strip():
            return None, _failure("NO_TEXT", "The recognition engine returned no text")
        return result.text, None

    def process(
        self,
        source: str | ImageRef,
        target_hour: Any,
        fallback_level: FallbackLevel = FallbackLevel.AGGRESSIVE,
        previous_reading: Optional[HourlyReading] = None,
    ) -> OcrIntegrationResult:
        """
        Extract and validate the reading of ``target_hour``.

        Args:
            source: OCR text of the sheet, or an ImageRef for the text source
            target_hour: int 0-23, "HHMM" or "HH:MM"
            fallback_level: escalation allowed when the primary path is weak,
                as a FallbackLevel or its string value
            previous_reading: prior hour's reading for the rate-of-change check

        Returns:
            OcrIntegrationSuccess, or OcrIntegrationFailure when the hour or
            level is invalid or no text could be acquired
        """
        request_id = str(uuid.uuid4())
        timers = StageTimers()

        try:
            hour = normalize_hour(target_hour)
            fallback_level = normalize_fallback_level(fallback_level)
        except BaseError as e:
            logger.warning(
                "Rejected request: %s",
                e.message,
                extra={"request_id": request_id, "error_code": e.error_code},
            )
            return _failure(e.error_code, e.message)

        with timers.timer("acquire"):
            raw_text, failure = self._acquire(source, request_id)
        if failure is not None:
            logger.warning(
                "Text acquisition failed: %s",
                failure.message,
                extra={
                    "request_id": request_id,
                    "target_hour": hour,
                    "error_code": failure.error_code,
                    "stage": "acquire",
                },
            )
            return failure

        return self._extract(
            raw_text,
            hour,
            fallback_level,
            previous_reading,
            source if isinstance(source, ImageRef) else None,
            request_id,
            timers,
        )

    def _extract(
        self,
        raw_text: str,
        hour: str,
        fallback_level: FallbackLevel,
        previous_reading: Optional[HourlyReading],
        image_ref: Optional[ImageRef],
        request_id: str,
        timers: StageTimers,
    ) -> OcrIntegrationSuccess:
        with timers.timer("extract"):
            outcome = self.fallback_handler.handle_with_fallback(raw_text, hour, fallback_level)
        with timers.timer("validate"):
            validation = self.validator.validate(outcome.reading, previous_reading)

        result = OcrIntegrationSuccess(
            reading=outcome.reading,
            fallback_info=outcome.info,
            validation=validation,
            source_image_ref=image_ref,
            attempts=outcome.attempts,
        )
        logger.info(
            result.summary,
            extra={
                "request_id": request_id,
                "target_hour": hour,
                "fallback_level": fallback_level.value,
                "strategy": outcome.fallback_strategy.value,
                "field_count": len(outcome.reading.field_matches),
                "valid_field_count": outcome.reading.valid_field_count,
                "confidence": round(outcome.reading.overall_confidence, 4),
                "duration_ms": round(sum(timers.totals.values()) * 1000, 3),
            },
        )
        logger.debug("Stage timings", extra={"request_id": request_id, **timers.as_log_fields()})
        if validation.requires_manual_review or not validation.is_valid:
            logger.debug(generate_validation_report(validation, outcome.reading))
        return result

    def _process_request(self, indexed: tuple[int, BatchRequest]) -> OcrIntegrationResult:
        index, request = indexed
        try:
            return self.process(
                request.source,
                request.target_hour,
                request.fallback_level,
                request.previous_reading,
            )
        except Exception as e:
            logger.error(
                "Batch item failed",
                exc_info=True,
                extra={"batch_index": index, "error_code": "UNKNOWN_ERROR"},
            )
            return _failure("UNKNOWN_ERROR", f"Unexpected error: {e}")

    def process_batch(self, requests: Sequence[BatchRequest]) -> list[OcrIntegrationResult]:
        """Process independent requests; result i always answers request i."""
        items = list(enumerate(requests))
        workers = min(self.settings.BATCH_MAX_WORKERS, len(items))
        logger.info("Processing batch", extra={"batch_size": len(items)})

        if workers <= 1:
            return [self._process_request(item) for item in items]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._process_request, items))

    def process_hours(
        self,
        source: str | ImageRef,
        hours: Iterable[Any],
        fallback_level: FallbackLevel = FallbackLevel.AGGRESSIVE,
    ) -> list[OcrIntegrationResult]:
        """Process several hour columns of one sheet in order.

        Text is acquired once. Each successful reading becomes the previous
        reading of the next hour, so jumps between consecutive columns are
        checked.
        """
        hours = list(hours)
        request_id = str(uuid.uuid4())
        try:
            fallback_level = normalize_fallback_level(fallback_level)
        except InvalidFallbackLevelError as e:
            return [_failure(e.error_code, e.message) for _ in hours]

        raw_text, failure = self._acquire(source, request_id)
        if failure is not None:
            logger.warning(
                "Text acquisition failed: %s",
                failure.message,
                extra={"request_id": request_id, "error_code": failure.error_code},
            )
            return [failure for _ in hours]

        image_ref = source if isinstance(source, ImageRef) else None
        results: list[OcrIntegrationResult] = []
        previous: Optional[HourlyReading] = None
        for target_hour in hours:
            try:
                hour = normalize_hour(target_hour)
            except InvalidTargetHourError as e:
                results.append(_failure(e.error_code, e.message))
                continue
            result = self._extract(
                raw_text, hour, fallback_level, previous, image_ref, request_id, StageTimers()
            )
            previous = result.reading
            results.append(result)
        return results

    def assess_quality(self, result: OcrIntegrationResult) -> QualityAssessment:
        return assess_quality(result)


def build_orchestrator(
    settings: Optional[PipelineSettings] = None,
    text_source: Optional[TextSource] = None,
) -> OcrIntegrationOrchestrator:
    """Composition root: build every collaborator once and wire them together."""
    settings = settings or get_settings()
    dictionary = build_default_dictionary()
    if text_source is None and settings.OCR_BASE_URL:
        text_source = TesseractTextSource(settings)
    return OcrIntegrationOrchestrator(
        dictionary=dictionary,
        fallback_handler=FallbackHandler(dictionary, settings),
        validator=AntiHallucinationValidator(dictionary, settings),
        text_source=text_source,
        settings=settings,
    )
