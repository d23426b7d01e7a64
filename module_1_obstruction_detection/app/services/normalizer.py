"""Normalize raw detector payloads into typed detections."""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..models import Detection, NormalizedResponse, categorize

LOGGER = logging.getLogger(__name__)


class DetectionNormalizer:
    """Map heterogeneous detector output onto canonical detections.

    Values are passed through as reported by the detector. Confidence is not
    clamped and bounding boxes are not checked against the image size.
    """

    def normalize(self, payload: Mapping[str, Any]) -> NormalizedResponse:
        if not isinstance(payload, Mapping):
            payload = {}
        raw_detections = payload.get("detections")
        if not isinstance(raw_detections, list):
            raw_detections = []

        detections: List[Detection] = []
        for index, raw in enumerate(raw_detections):
            if not isinstance(raw, Mapping):
                LOGGER.debug("Skipping detection %d: not a mapping (%r)", index, raw)
                continue
            detections.append(self._to_detection(raw))

        return NormalizedResponse(
            detections=tuple(detections),
            image_size=self._image_size(payload.get("image_size")),
            processing_time=self._optional_float(payload.get("processing_time")),
            model_info=payload.get("model_info"),
            annotated_image=self._annotated_image(payload),
        )

    def _to_detection(self, raw: Mapping[str, Any]) -> Detection:
        class_name = raw.get("class_name")
        if not isinstance(class_name, str) or not class_name:
            class_name = "unknown"
        class_id = raw.get("class_id")
        try:
            class_id = int(class_id)
        except (TypeError, ValueError):
            class_id = -1
        confidence = self._optional_float(raw.get("confidence"))
        return Detection(
            bbox=self._bbox(raw.get("bbox")),
            confidence=confidence if confidence is not None else 0.0,
            class_id=class_id,
            class_name=class_name,
            category=categorize(class_name),
        )

    @staticmethod
    def _bbox(value: object) -> Tuple[float, ...]:
        if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
            return ()
        coerced: List[float] = []
        for item in value:
            try:
                coerced.append(float(item))
            except (TypeError, ValueError):
                coerced.append(0.0)
        return tuple(coerced)

    @staticmethod
    def _image_size(value: object) -> Optional[Tuple[int, int]]:
        if not isinstance(value, Sequence) or isinstance(value, (str, bytes)) or len(value) != 2:
            return None
        try:
            return int(value[0]), int(value[1])
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _optional_float(value: object) -> Optional[float]:
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _annotated_image(payload: Mapping[str, Any]) -> Optional[str]:
        value = payload.get("annotated_image")
        if isinstance(value, str) and value:
            return value
        return None
