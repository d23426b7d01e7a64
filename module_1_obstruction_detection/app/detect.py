"""Entry point for Module 1 obstruction detection."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config.settings import AppSettings, load_settings
from .services.obstruction_service import ObstructionService

LOGGER = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Module 1 - Obstruction Detection")
    parser.add_argument("image", type=str, help="Path to the image to analyze")
    parser.add_argument("--endpoint", type=str, default=None, help="Detector base URL")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    parser.add_argument("--retries", type=int, default=None, help="Retries after the first failed request")
    parser.add_argument("--preview-dir", type=str, default=None, help="Directory for annotated previews")
    parser.add_argument("--no-preview", action="store_true", help="Do not write preview images")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    parser.add_argument("--log-format", choices=["text", "json"], default=None, help="Logging format")
    return parser


def setup_logging(settings: AppSettings) -> None:
    log_level = logging.INFO
    if settings.log_format == "json":
        formatter = logging.Formatter('{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}')
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    logging.basicConfig(level=log_level, handlers=[handler])


def resolve_settings(args: argparse.Namespace) -> AppSettings:
    overrides = {}
    if args.endpoint:
        overrides["detector_endpoint"] = args.endpoint
    if args.timeout is not None:
        overrides["request_timeout_seconds"] = args.timeout
    if args.retries is not None:
        overrides["max_retries"] = args.retries
    if args.preview_dir:
        overrides["preview_dir"] = Path(args.preview_dir)
    if args.no_preview:
        overrides["save_previews"] = False
    if args.log_format:
        overrides["log_format"] = args.log_format
    return load_settings(**overrides)


def run_detection(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    setup_logging(settings)

    image_path = Path(args.image)
    if not image_path.exists():
        LOGGER.error("Image %s does not exist", image_path)
        return 2

    service = ObstructionService(settings)
    try:
        report = service.analyze_file(image_path)
    finally:
        service.close()

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        decision = report.decision
        print(f"Source: {report.source}")
        print(f"Status: {report.analysis.status}")
        print(f"Severity: {report.analysis.severity.value}")
        print(
            "Path: {status} | Action: {action} | Safety score: {score}".format(
                status=decision.path_status.value,
                action=decision.recommended_action.value,
                score=decision.safety_score,
            )
        )
        if report.preview_path:
            print(f"Preview: {report.preview_path}")
    return 0


def main() -> None:
    parser = build_arg_parser()
    args = parser.parse_args()
    sys.exit(run_detection(args))


if __name__ == "__main__":  # pragma: no cover
    main()
