"""OCR extraction and validation of thermal-oxidizer hourly log sheets."""

from oxidizer_ocr.orchestrator import OcrIntegrationOrchestrator, build_orchestrator

__all__ = ["OcrIntegrationOrchestrator", "build_orchestrator"]
