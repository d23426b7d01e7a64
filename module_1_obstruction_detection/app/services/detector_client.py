"""HTTP client for the remote obstruction detector."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import requests

from ..config.settings import AppSettings

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectorSuccess:
    payload: Dict[str, Any]
    ok: bool = True


@dataclass(frozen=True)
class DetectorFailure:
    reason: str
    ok: bool = False


DetectorResult = Union[DetectorSuccess, DetectorFailure]


class DetectorClient:
    """Submit one base64 image to the detector and return its raw JSON body."""

    def __init__(self, settings: AppSettings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self._session = session or requests.Session()

    def submit(self, image_b64: str) -> DetectorResult:
        url = self.settings.detect_url()
        attempts = self.settings.max_retries + 1
        backoff = self.settings.retry_backoff_seconds
        failure = DetectorFailure(reason="no attempt made")
        for attempt in range(1, attempts + 1):
            result = self._post_once(url, image_b64)
            if isinstance(result, DetectorSuccess):
                return result
            failure = result
            LOGGER.warning("Detector request failed (attempt %d/%d): %s", attempt, attempts, result.reason)
            if attempt < attempts:
                time.sleep(backoff)
                backoff *= 2
        return failure

    def _post_once(self, url: str, image_b64: str) -> DetectorResult:
        try:
            response = self._session.post(
                url,
                json={"image": image_b64},
                timeout=self.settings.request_timeout_seconds,
            )
        except requests.Timeout:
            return DetectorFailure(reason=f"timed out after {self.settings.request_timeout_seconds:.1f}s")
        except requests.RequestException as exc:
            return DetectorFailure(reason=f"network error: {exc}")

        if not 200 <= response.status_code < 300:
            return DetectorFailure(reason=f"received status {response.status_code}")
        try:
            body = response.json()
        except ValueError as exc:
            return DetectorFailure(reason=f"malformed body: {exc}")
        if not isinstance(body, dict):
            return DetectorFailure(reason="malformed body: expected a JSON object")
        LOGGER.debug("Detector responded in %s", body.get("processing_time"))
        return DetectorSuccess(payload=body)

    def close(self) -> None:
        self._session.close()
