from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from module_1_obstruction_detection.app.config.settings import AppSettings
from module_1_obstruction_detection.app.services.detector_client import (
    DetectorClient,
    DetectorFailure,
    DetectorSuccess,
)


@pytest.fixture()
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        detector_endpoint="http://detector.local:8000/",
        request_timeout_seconds=3.0,
        retry_backoff_seconds=0.0,
        preview_dir=tmp_path / "previews",
        save_previews=False,
    )


def build_response(status_code: int = 200, body: object = None, json_error: bool = False) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = body
    return response


def test_submit_posts_base64_payload(settings: AppSettings) -> None:
    session = MagicMock()
    session.post.return_value = build_response(body={"detections": []})

    result = DetectorClient(settings, session=session).submit("ZmFrZQ==")

    assert isinstance(result, DetectorSuccess)
    assert result.payload == {"detections": []}
    session.post.assert_called_once_with(
        "http://detector.local:8000/detect_base64",
        json={"image": "ZmFrZQ=="},
        timeout=3.0,
    )


@pytest.mark.parametrize(
    "response, fragment",
    [
        (build_response(status_code=503), "status 503"),
        (build_response(json_error=True), "malformed body"),
        (build_response(body=["not", "an", "object"]), "expected a JSON object"),
    ],
)
def test_submit_reports_failures(settings: AppSettings, response: MagicMock, fragment: str) -> None:
    session = MagicMock()
    session.post.return_value = response

    result = DetectorClient(settings, session=session).submit("ZmFrZQ==")

    assert isinstance(result, DetectorFailure)
    assert fragment in result.reason


def test_submit_reports_network_errors(settings: AppSettings) -> None:
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("refused")

    result = DetectorClient(settings, session=session).submit("ZmFrZQ==")

    assert isinstance(result, DetectorFailure)
    assert "network error" in result.reason


def test_submit_reports_timeouts(settings: AppSettings) -> None:
    session = MagicMock()
    session.post.side_effect = requests.Timeout("slow")

    result = DetectorClient(settings, session=session).submit("ZmFrZQ==")

    assert isinstance(result, DetectorFailure)
    assert "timed out" in result.reason


def test_submit_retries_before_succeeding(settings: AppSettings) -> None:
    settings.max_retries = 2
    session = MagicMock()
    session.post.side_effect = [
        requests.ConnectionError("refused"),
        build_response(status_code=500),
        build_response(body={"detections": [{"class_name": "person"}]}),
    ]

    result = DetectorClient(settings, session=session).submit("ZmFrZQ==")

    assert isinstance(result, DetectorSuccess)
    assert session.post.call_count == 3
