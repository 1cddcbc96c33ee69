"""Unit tests for the Tesseract HTTP text source."""

import httpx
import pytest

from oxidizer_ocr.clients.tesseract_async_client import (
    TesseractTextSource,
    ask_tesseract,
    parse_ocr_result,
)
from oxidizer_ocr.core.exceptions import ExternalServiceError, ImageNotFoundError
from oxidizer_ocr.core.settings import PipelineSettings
from oxidizer_ocr.models.dto import ImageRef

BASE_URL = "http://ocr.test"


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "sheet.jpg"
    path.write_bytes(b"\xff\xd8\xff")
    return str(path)


def _transport(result_payloads, upload_status=200):
    """MockTransport answering the upload and then each result poll in turn."""
    payloads = list(result_payloads)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST" and request.url.path == "/image":
            if upload_status != 200:
                return httpx.Response(upload_status, text="internal error")
            return httpx.Response(200, json={"id": "job-1"})
        if request.method == "GET" and request.url.path == "/result/job-1":
            payload = payloads.pop(0) if len(payloads) > 1 else payloads[0]
            return httpx.Response(200, json=payload)
        return httpx.Response(404)

    return httpx.MockTransport(handler)


DONE = {
    "status": "done",
    "result": {"pages": [{"text": "0300 0400", "words": [{"text": "0300", "confidence": 95}]}]},
}


def _source(transport, **overrides):
    settings = PipelineSettings(OCR_BASE_URL=BASE_URL, **overrides)
    return TesseractTextSource(settings, transport=transport, poll_interval=0.0)


class TestParseOcrResult:
    """Tests for OCR payload normalization."""

    def test_nested_pages(self):
        """Test pages under result.result are found and confidences scaled."""
        text, confidences, error = parse_ocr_result(
            {"result": {"result": {"pages": [{"text": "a", "words": [{"confidence": 0.5}]}]}}}
        )
        assert (text, confidences, error) == ("a", (0.5,), None)

    def test_pages_joined(self):
        """Test multi-page text is joined with newlines."""
        text, _, _ = parse_ocr_result({"pages": [{"text": "a"}, {"text": "b"}]})
        assert text == "a\nb"

    def test_missing_pages_is_error(self):
        """Test a payload without pages reports its error message."""
        text, _, error = parse_ocr_result({"status": "failed", "error": "bad image"})
        assert text is None
        assert error == "bad image"


class TestTesseractTextSource:
    """Tests for acquisition through the HTTP service."""

    def test_success(self, image):
        """Test text and token confidences are returned after polling."""
        pending = {"status": "processing"}
        result = _source(_transport([pending, DONE])).extract_text(ImageRef(path=image))

        assert result.ok
        assert result.text == "0300 0400"
        assert result.token_confidences == (0.95,)

    def test_http_error(self, image):
        """Test an HTTP 500 from the service becomes ACQUISITION_FAILED."""
        result = _source(_transport([DONE], upload_status=500)).extract_text(ImageRef(path=image))

        assert not result.ok
        assert result.error.code == "ACQUISITION_FAILED"
        assert result.error.message == "OCR service returned HTTP 500"

    def test_failed_job(self, image):
        """Test a failed job reports the service's error message."""
        failed = {"status": "failed", "error_message": "unreadable image"}
        result = _source(_transport([failed])).extract_text(ImageRef(path=image))

        assert result.error.code == "ACQUISITION_FAILED"
        assert result.error.message == "unreadable image"

    def test_timeout(self, image):
        """Test a job that never finishes times out."""
        result = _source(_transport([{"status": "processing"}]), OCR_TIMEOUT_SECONDS=0).extract_text(
            ImageRef(path=image)
        )

        assert result.error.code == "ACQUISITION_FAILED"
        assert result.error.message == "tesseract service timeout"

    def test_connection_error(self, image):
        """Test an unreachable service is reported as unavailable."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = _source(httpx.MockTransport(handler)).extract_text(ImageRef(path=image))

        assert result.error.code == "ACQUISITION_FAILED"
        assert result.error.message == "tesseract service unavailable"

    def test_empty_text(self, image):
        """Test an empty recognition result fails with NO_TEXT."""
        empty = {"status": "done", "result": {"pages": [{"text": "  "}]}}
        result = _source(_transport([empty])).extract_text(ImageRef(path=image))

        assert result.error.code == "NO_TEXT"

    def test_missing_file(self, tmp_path):
        """Test a missing image fails with NO_IMAGE without any request."""
        result = _source(_transport([DONE])).extract_text(ImageRef(path=str(tmp_path / "nope.jpg")))
        assert result.error.code == "NO_IMAGE"

    def test_no_base_url(self, image):
        """Test a source without a service URL fails with NO_TEXT_SOURCE."""
        source = TesseractTextSource(PipelineSettings(OCR_BASE_URL=None))
        assert source.extract_text(ImageRef(path=image)).error.code == "NO_TEXT_SOURCE"


class TestAskTesseract:
    """Tests for the synchronous wrapper's exceptions."""

    def test_raises_image_not_found(self, tmp_path):
        """Test a missing file raises ImageNotFoundError."""
        with pytest.raises(ImageNotFoundError):
            ask_tesseract(str(tmp_path / "nope.jpg"), base_url=BASE_URL)

    def test_missing_job_id(self, image):
        """Test an upload response without an id raises ExternalServiceError."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))

        with pytest.raises(ExternalServiceError) as exc_info:
            ask_tesseract(image, base_url=BASE_URL, transport=transport, poll_interval=0.0)

        assert exc_info.value.retryable
        assert exc_info.value.details["service"] == "tesseract"
