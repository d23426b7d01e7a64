"""Aggregate normalized detections into an obstruction analysis."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List

from ..models import Category, Detection, ObstructionAnalysis, Severity, categorize

LOGGER = logging.getLogger(__name__)

HIGH_SEVERITY_THRESHOLD = 5


def severity_for(total: int) -> Severity:
    if total > HIGH_SEVERITY_THRESHOLD:
        return Severity.HIGH
    if total > 0:
        return Severity.MEDIUM
    return Severity.LOW


class ObstructionClassifier:
    """Count obstructions per category and grade their severity."""

    def __init__(self, confidence: float = 0.85) -> None:
        self.confidence = confidence

    def classify(self, detections: Iterable[Detection]) -> ObstructionAnalysis:
        counts: Dict[Category, int] = {category: 0 for category in Category}
        relabelled: List[Detection] = []
        for detection in detections:
            category = categorize(detection.class_name)
            counts[category] += 1
            relabelled.append(replace(detection, category=category))

        total = len(relabelled)
        analysis = ObstructionAnalysis(
            person_count=counts[Category.PERSON],
            animal_count=counts[Category.ANIMAL],
            object_count=counts[Category.OBJECT],
            total=total,
            has_obstruction=total > 0,
            severity=severity_for(total),
            confidence=self.confidence,
            status=self._status(counts, total),
            detections=tuple(relabelled),
        )
        LOGGER.debug("Classified %d detections as %s", total, analysis.severity.value)
        return analysis

    @staticmethod
    def _status(counts: Dict[Category, int], total: int) -> str:
        if total == 0:
            return "Path clear"
        return (
            f"{total} obstruction(s) detected: "
            f"{counts[Category.PERSON]} person, "
            f"{counts[Category.ANIMAL]} animal, "
            f"{counts[Category.OBJECT]} object"
        )
