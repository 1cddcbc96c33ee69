"""Command-line entry: extract one or more hour columns from an OCR text file or image.

    python -m oxidizer_ocr sheet.txt 0300 0400
    python -m oxidizer_ocr --image sheet.jpg 3
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from oxidizer_ocr.core.logging_config import configure_structured_logging
from oxidizer_ocr.core.settings import get_settings
from oxidizer_ocr.models.dto import ImageRef
from oxidizer_ocr.models.reading import FallbackLevel
from oxidizer_ocr.orchestrator import build_orchestrator


def _hour_arg(value: str) -> int | str:
    # bare "3" or "14" means an hour of the day
    return int(value) if value.isdigit() and len(value) <= 2 else value


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="oxidizer_ocr")
    parser.add_argument("source", help="OCR text file, or image path with --image")
    parser.add_argument("hours", nargs="+", type=_hour_arg, help="Hour columns: 0-23, HHMM or HH:MM")
    parser.add_argument("--image", action="store_true", help="Send SOURCE to the OCR service")
    parser.add_argument(
        "--fallback-level",
        choices=[level.value for level in FallbackLevel],
        default=FallbackLevel.AGGRESSIVE.value,
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_structured_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    orchestrator = build_orchestrator(settings)
    level = FallbackLevel(args.fallback_level)

    source = ImageRef(path=args.source) if args.image else Path(args.source).read_text(encoding="utf-8")
    results = orchestrator.process_hours(source, args.hours, level)

    records = []
    for result in results:
        record = result.to_record()
        record["quality"] = orchestrator.assess_quality(result).model_dump()
        records.append(record)
    json.dump(records, sys.stdout, ensure_ascii=False, indent=2, default=str)
    sys.stdout.write("\n")
    return 0 if all(r.is_success for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
