"""Shared data models for Module 1."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Category(str, Enum):
    PERSON = "person"
    ANIMAL = "animal"
    OBJECT = "object"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class PathStatus(str, Enum):
    CLEAR = "CLEAR"
    CAUTION = "CAUTION"
    BLOCKED = "BLOCKED"


class RecommendedAction(str, Enum):
    PROCEED = "PROCEED"
    PROCEED_WITH_CAUTION = "PROCEED_WITH_CAUTION"
    STOP_AND_WAIT = "STOP_AND_WAIT"


def categorize(label: str) -> Category:
    """Map a free-text detector label onto a canonical category."""

    lowered = (label or "").lower()
    if "person" in lowered:
        return Category.PERSON
    if "animal" in lowered:
        return Category.ANIMAL
    return Category.OBJECT


@dataclass(frozen=True)
class Detection:
    """Represents a single detected obstruction."""

    bbox: Tuple[float, ...]
    confidence: float
    class_id: int
    class_name: str
    category: Category = Category.OBJECT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bbox": list(self.bbox),
            "confidence": self.confidence,
            "class_id": self.class_id,
            "class_name": self.class_name,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class NormalizedResponse:
    detections: Tuple[Detection, ...]
    image_size: Optional[Tuple[int, int]] = None
    processing_time: Optional[float] = None
    model_info: Any = None
    annotated_image: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detections": [item.to_dict() for item in self.detections],
            "image_size": list(self.image_size) if self.image_size else None,
            "processing_time": self.processing_time,
            "model_info": self.model_info,
            "has_annotated_image": self.annotated_image is not None,
        }


@dataclass(frozen=True)
class ObstructionAnalysis:
    person_count: int
    animal_count: int
    object_count: int
    total: int
    has_obstruction: bool
    severity: Severity
    confidence: float
    status: str
    detections: Tuple[Detection, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "person_count": self.person_count,
            "animal_count": self.animal_count,
            "object_count": self.object_count,
            "total": self.total,
            "has_obstruction": self.has_obstruction,
            "severity": self.severity.value,
            "confidence": self.confidence,
            "status": self.status,
            "detections": [item.to_dict() for item in self.detections],
        }


@dataclass(frozen=True)
class NavigationDecision:
    can_proceed: bool
    path_status: PathStatus
    recommended_action: RecommendedAction
    safety_score: int

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["path_status"] = self.path_status.value
        payload["recommended_action"] = self.recommended_action.value
        return payload


@dataclass
class DetectionReport:
    """Final verdict handed to the UI or API callers."""

    response: NormalizedResponse
    analysis: ObstructionAnalysis
    decision: NavigationDecision
    source: str = "detector"
    fallback_reason: Optional[str] = None
    preview_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "fallback_reason": self.fallback_reason,
            "response": self.response.to_dict(),
            "analysis": self.analysis.to_dict(),
            "decision": self.decision.to_dict(),
            "preview_path": self.preview_path,
        }

