import asyncio
import logging
import mimetypes
import os
from typing import Any, Optional

import httpx

from oxidizer_ocr.core.config import (
    ERROR_BODY_MAX_CHARS,
    OCR_CLIENT_TIMEOUT_SECONDS,
    OCR_POLL_BACKOFF,
    OCR_POLL_INTERVAL_SECONDS,
    OCR_POLL_MAX_INTERVAL_SECONDS,
    OCR_TIMEOUT_SECONDS,
)
from oxidizer_ocr.core.exceptions import BaseError, ExternalServiceError, ImageNotFoundError
from oxidizer_ocr.core.settings import PipelineSettings
from oxidizer_ocr.models.dto import AcquisitionResult, ImageRef

logger = logging.getLogger(__name__)

SERVICE_NAME = "tesseract"
_DONE = {"done", "completed", "success", "succeeded", "finished", "ready"}
_FAILED = {"failed", "error"}


def parse_ocr_result(resp: dict) -> tuple[Optional[str], tuple[float, ...], Optional[str]]:
    """Normalize an OCR job payload into (text, token confidences, error).

    Accepts pages under ``pages``, ``result.pages`` or ``result.result.pages``;
    each page carries ``text`` and optionally ``words`` with ``confidence``
    values on a 0-100 or 0-1 scale.
    """
    raw = resp.get("result") if isinstance(resp.get("result"), dict) else resp
    raw_inner = raw.get("result", raw) if isinstance(raw.get("result"), dict) else raw

    pages = resp.get("pages") or raw.get("pages") or raw_inner.get("pages")
    if not isinstance(pages, list):
        error = (
            resp.get("error")
            or raw.get("error_message")
            or raw.get("error")
            or "OCR result missing pages list"
        )
        return None, (), str(error)

    texts: list[str] = []
    confidences: list[float] = []
    for page in pages:
        if not isinstance(page, dict):
            continue
        texts.append(str(page.get("text", "")))
        for word in page.get("words") or []:
            conf = word.get("confidence") if isinstance(word, dict) else None
            if isinstance(conf, (int, float)) and conf >= 0:
                confidences.append(conf / 100.0 if conf > 1 else float(conf))
    return "\n".join(texts), tuple(confidences), None


class TesseractAsyncClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = OCR_CLIENT_TIMEOUT_SECONDS,
        verify: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        poll_interval: float = OCR_POLL_INTERVAL_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.verify = verify
        self.transport = transport
        self.poll_interval = poll_interval
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            verify=self.verify,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()

    async def upload(self, file_path: str) -> str:
        if not self._client:
            raise RuntimeError("Client not started")
        filename = os.path.basename(file_path)
        mime_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"

        with open(file_path, "rb") as f:
            resp = await self._client.post("/image", files={"file": (filename, f, mime_type)})

        resp.raise_for_status()
        data = resp.json()
        job_id = data.get("id") or data.get("job_id")
        if not isinstance(job_id, str) or not job_id:
            raise ExternalServiceError(
                SERVICE_NAME,
                "error",
                message="OCR upload response missing id",
                details={"detail": str(data)[:ERROR_BODY_MAX_CHARS]},
            )
        return job_id

    async def get_result(self, job_id: str) -> dict:
        if not self._client:
            raise RuntimeError("Client not started")
        resp = await self._client.get(f"/result/{job_id}")
        resp.raise_for_status()
        return resp.json()

    async def wait_for_result(self, job_id: str, timeout: float) -> dict:
        """Poll the OCR service until the job is done, using exponential backoff."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        interval = self.poll_interval
        attempts = 0

        while True:
            attempts += 1
            resp = await self.get_result(job_id)
            status = str(resp.get("status", "")).lower()

            if status in _DONE or (status not in _FAILED and resp.get("result") is not None):
                logger.debug("OCR ready after %d checks, job_id=%s", attempts, job_id)
                return resp
            if status in _FAILED:
                error = resp.get("error_message") or resp.get("error") or "OCR job failed"
                raise ExternalServiceError(SERVICE_NAME, "error", message=str(error))
            if loop.time() >= deadline:
                logger.warning(
                    "OCR timed out after %d checks, job_id=%s, status=%s",
                    attempts,
                    job_id,
                    status,
                )
                raise ExternalServiceError(SERVICE_NAME, "timeout")

            await asyncio.sleep(interval)
            interval = min(interval * OCR_POLL_BACKOFF, OCR_POLL_MAX_INTERVAL_SECONDS)


async def ask_tesseract_async(
    file_path: str,
    *,
    base_url: str,
    timeout: float = OCR_TIMEOUT_SECONDS,
    client_timeout: float = OCR_CLIENT_TIMEOUT_SECONDS,
    verify: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    poll_interval: float = OCR_POLL_INTERVAL_SECONDS,
) -> dict[str, Any]:
    async with TesseractAsyncClient(
        base_url=base_url,
        timeout=client_timeout,
        verify=verify,
        transport=transport,
        poll_interval=poll_interval,
    ) as client:
        job_id = await client.upload(file_path)
        return await client.wait_for_result(job_id, timeout)


def ask_tesseract(
    file_path: str,
    *,
    base_url: str,
    timeout: float = OCR_TIMEOUT_SECONDS,
    client_timeout: float = OCR_CLIENT_TIMEOUT_SECONDS,
    verify: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    poll_interval: float = OCR_POLL_INTERVAL_SECONDS,
) -> tuple[str, tuple[float, ...]]:
    """Recognise one image synchronously.

    Returns:
        (text, token confidences)

    Raises:
        ImageNotFoundError: ``file_path`` does not exist
        ExternalServiceError: HTTP failure, failed job or timeout
    """
    if not os.path.isfile(file_path):
        raise ImageNotFoundError(file_path)

    try:
        resp = asyncio.run(
            ask_tesseract_async(
                file_path,
                base_url=base_url,
                timeout=timeout,
                client_timeout=client_timeout,
                verify=verify,
                transport=transport,
                poll_interval=poll_interval,
            )
        )
    except httpx.TimeoutException as e:
        raise ExternalServiceError(SERVICE_NAME, "timeout", details={"detail": str(e)}) from e
    except httpx.HTTPStatusError as e:
        raise ExternalServiceError(
            SERVICE_NAME,
            "error",
            message=f"OCR service returned HTTP {e.response.status_code}",
            details={"detail": e.response.text[:ERROR_BODY_MAX_CHARS]},
        ) from e
    except httpx.HTTPError as e:
        raise ExternalServiceError(SERVICE_NAME, "unavailable", details={"detail": str(e)}) from e

    text, confidences, error = parse_ocr_result(resp)
    if error is not None:
        raise ExternalServiceError(SERVICE_NAME, "error", message=error)
    return text or "", confidences


class TesseractTextSource:
    """TextSource backed by the Tesseract OCR HTTP service."""

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        poll_interval: float = OCR_POLL_INTERVAL_SECONDS,
    ):
        self.settings = settings or PipelineSettings()
        self.transport = transport
        self.poll_interval = poll_interval

    def extract_text(self, image_ref: ImageRef) -> AcquisitionResult:
        base_url = self.settings.OCR_BASE_URL
        if not base_url:
            return AcquisitionResult.failed("NO_TEXT_SOURCE", "OCR_BASE_URL is not configured")
        try:
            text, confidences = ask_tesseract(
                image_ref.path,
                base_url=base_url,
                timeout=self.settings.OCR_TIMEOUT_SECONDS,
                client_timeout=self.settings.OCR_CLIENT_TIMEOUT_SECONDS,
                verify=self.settings.OCR_VERIFY_SSL,
                transport=self.transport,
                poll_interval=self.poll_interval,
            )
        except BaseError as e:
            logger.warning(
                "Text acquisition failed: %s",
                e.message,
                extra={"error_code": e.error_code},
            )
            return AcquisitionResult.failed(e.error_code, e.message)

        if not text.strip():
            return AcquisitionResult.failed("NO_TEXT", f"No text recognised in {image_ref.path}")
        return AcquisitionResult(text=text, token_confidences=confidences)
