"""Coordinate detector calls, fallback policy, and verdict derivation."""
from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..config.settings import AppSettings
from ..models import (
    DetectionReport,
    NavigationDecision,
    ObstructionAnalysis,
    PathStatus,
    RecommendedAction,
    Severity,
)
from .classifier import ObstructionClassifier
from .detector_client import DetectorClient, DetectorFailure
from .navigation import NavigationDecisionEngine
from .normalizer import DetectionNormalizer
from .preview_writer import PreviewWriter

LOGGER = logging.getLogger(__name__)

DEMO_RESPONSE: Dict[str, Any] = {
    "detections": [
        {"bbox": [50, 80, 200, 180], "confidence": 0.92, "class_id": 0, "class_name": "Animal"},
        {"bbox": [220, 60, 300, 250], "confidence": 0.88, "class_id": 1, "class_name": "Person"},
        {"bbox": [120, 200, 230, 280], "confidence": 0.76, "class_id": 2, "class_name": "Object"},
    ],
    "image_size": [350, 300],
    "processing_time": 0.0,
    "model_info": "demo",
}

DEMO_SAFETY_SCORE = 50
DEMO_STATUS = "Demo mode: detector unavailable, showing sample obstructions"


class ObstructionService:
    """Single entry point turning an image into a navigation verdict."""

    def __init__(
        self,
        settings: AppSettings,
        client: Optional[DetectorClient] = None,
        preview_writer: Optional[PreviewWriter] = None,
    ) -> None:
        self.settings = settings
        self.client = client or DetectorClient(settings)
        self.normalizer = DetectionNormalizer()
        self.classifier = ObstructionClassifier(confidence=settings.analysis_confidence)
        self.engine = NavigationDecisionEngine()
        self.preview_writer = preview_writer
        if self.preview_writer is None and settings.save_previews:
            self.preview_writer = PreviewWriter(settings)

    def analyze(self, image_b64: str) -> DetectionReport:
        result = self.client.submit(image_b64)
        if isinstance(result, DetectorFailure):
            LOGGER.warning("Falling back to demo detections: %s", result.reason)
            report = self.demo_report(reason=result.reason)
            if self.preview_writer is not None:
                path = self.preview_writer.save_annotated(image_b64, report.analysis.detections)
                report.preview_path = str(path) if path else None
            return report

        report = self.evaluate(result.payload)
        if self.preview_writer is not None and report.response.annotated_image:
            path = self.preview_writer.save_encoded(report.response.annotated_image)
            report.preview_path = str(path) if path else None
        LOGGER.info(
            "Verdict: %s | %s | safety=%d",
            report.decision.path_status.value,
            report.analysis.status,
            report.decision.safety_score,
        )
        return report

    def analyze_file(self, path: Path) -> DetectionReport:
        encoded = base64.b64encode(Path(path).read_bytes()).decode("ascii")
        return self.analyze(encoded)

    def evaluate(self, payload: Dict[str, Any]) -> DetectionReport:
        """Run normalizer, classifier and decision engine over a raw payload."""

        response = self.normalizer.normalize(payload)
        analysis = self.classifier.classify(response.detections)
        decision = self.engine.decide(analysis)
        return DetectionReport(response=response, analysis=analysis, decision=decision)

    def demo_report(self, reason: Optional[str] = None) -> DetectionReport:
        """Fixed degraded-mode verdict shown whenever the detector is unreachable.

        The verdict is a fixture rather than a recomputation: three sample
        obstructions are reported as HIGH severity with a safety score of 50.
        """

        response = self.normalizer.normalize(DEMO_RESPONSE)
        counted = self.classifier.classify(response.detections)
        analysis = ObstructionAnalysis(
            person_count=counted.person_count,
            animal_count=counted.animal_count,
            object_count=counted.object_count,
            total=counted.total,
            has_obstruction=True,
            severity=Severity.HIGH,
            confidence=self.settings.analysis_confidence,
            status=DEMO_STATUS,
            detections=counted.detections,
        )
        decision = NavigationDecision(
            can_proceed=False,
            path_status=PathStatus.BLOCKED,
            recommended_action=RecommendedAction.STOP_AND_WAIT,
            safety_score=DEMO_SAFETY_SCORE,
        )
        return DetectionReport(
            response=response,
            analysis=analysis,
            decision=decision,
            source="demo",
            fallback_reason=reason,
        )

    def close(self) -> None:
        self.client.close()
