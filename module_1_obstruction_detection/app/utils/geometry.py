"""Geometry helper utilities for bounding boxes."""
from __future__ import annotations

from typing import Sequence, Tuple

BBox = Sequence[float]
Point = Tuple[int, int]


def bbox_corners(bbox: BBox) -> Tuple[Point, Point]:
    """Return integer top-left and bottom-right corners of an xyxy box."""

    if len(bbox) != 4:
        raise ValueError(f"Expected 4 bbox values, got {len(bbox)}")
    x1, y1, x2, y2 = (int(round(value)) for value in bbox)
    return (min(x1, x2), min(y1, y2)), (max(x1, x2), max(y1, y2))


def clip_corners(corners: Tuple[Point, Point], width: int, height: int) -> Tuple[Point, Point]:
    """Clamp corners to the image so drawing never falls off the frame."""

    (x1, y1), (x2, y2) = corners
    x1, x2 = max(0, min(x1, width - 1)), max(0, min(x2, width - 1))
    y1, y2 = max(0, min(y1, height - 1)), max(0, min(y2, height - 1))
    return (x1, y1), (x2, y2)
