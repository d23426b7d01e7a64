"""Decode, annotate and persist detection preview images."""
from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import cv2
import numpy as np

from ..config.settings import AppSettings
from ..models import Category, Detection
from ..utils.geometry import bbox_corners, clip_corners

LOGGER = logging.getLogger(__name__)

CATEGORY_COLORS: Dict[Category, Tuple[int, int, int]] = {
    Category.PERSON: (0, 0, 255),
    Category.ANIMAL: (0, 165, 255),
    Category.OBJECT: (255, 255, 0),
}


def decode_image(encoded: str) -> Optional[np.ndarray]:
    """Turn a base64 string (optionally a data URI) into a BGR frame."""

    if "," in encoded and encoded.lstrip().startswith("data:"):
        encoded = encoded.split(",", 1)[1]
    try:
        raw = base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError) as exc:
        LOGGER.warning("Preview is not valid base64: %s", exc)
        return None
    if not raw:
        return None
    buffer = np.frombuffer(raw, dtype=np.uint8)
    frame = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if frame is None:
        LOGGER.warning("Preview bytes could not be decoded as an image")
    return frame


def annotate_detections(
    frame: np.ndarray,
    detections: Iterable[Detection],
    settings: AppSettings,
) -> np.ndarray:
    output = frame.copy()
    height, width = output.shape[:2]
    for detection in detections:
        try:
            corners = bbox_corners(detection.bbox)
        except ValueError:
            LOGGER.debug("Skipping detection with malformed bbox %s", detection.bbox)
            continue
        top_left, bottom_right = clip_corners(corners, width, height)
        color = CATEGORY_COLORS.get(detection.category, tuple(settings.overlay_color_bgr))
        cv2.rectangle(output, top_left, bottom_right, color, 2)
        label = f"{detection.category.value}:{detection.confidence:.2f}"
        cv2.putText(
            output,
            label,
            (top_left[0], max(0, top_left[1] - 5)),
            cv2.FONT_HERSHEY_SIMPLEX,
            settings.overlay_font_scale,
            color,
            1,
            lineType=cv2.LINE_AA,
        )
    return output


class PreviewWriter:
    """Persist preview frames under the configured preview directory."""

    def __init__(self, settings: AppSettings) -> None:
        self.settings = settings
        self.preview_dir = settings.preview_dir

    def save_encoded(self, encoded: str) -> Optional[Path]:
        frame = decode_image(encoded)
        if frame is None:
            return None
        return self.save_frame(frame)

    def save_annotated(self, encoded_source: str, detections: Iterable[Detection]) -> Optional[Path]:
        frame = decode_image(encoded_source)
        if frame is None:
            return None
        return self.save_frame(annotate_detections(frame, detections, self.settings))

    def save_frame(self, frame: np.ndarray) -> Optional[Path]:
        """Write a timestamped preview and refresh latest.jpg; failures return None."""

        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        target = self.preview_dir / f"preview_{stamp}.jpg"
        try:
            self.preview_dir.mkdir(parents=True, exist_ok=True)
            if not cv2.imwrite(str(target), frame):
                LOGGER.warning("Unable to write preview %s", target)
                return None
            self._write_latest(frame)
        except OSError as exc:
            LOGGER.warning("Unable to write preview under %s: %s", self.preview_dir, exc)
            return None
        LOGGER.debug("Saved preview %s", target)
        return target

    def _write_latest(self, frame: np.ndarray) -> None:
        latest_path = self.preview_dir / "latest.jpg"
        temp_path = self.preview_dir / "latest.tmp.jpg"
        if not cv2.imwrite(str(temp_path), frame):
            LOGGER.warning("Unable to refresh %s", latest_path)
            return
        temp_path.replace(latest_path)
