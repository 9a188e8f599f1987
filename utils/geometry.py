"""Geometry helpers for normalized bounding boxes and headings."""

import math
from typing import List, Sequence, Tuple

import numpy as np

BBox = Tuple[float, float, float, float]


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def clamp01(value: float) -> float:
    return clamp(value, 0.0, 1.0)


def bbox_center(bbox: BBox) -> Tuple[float, float]:
    """Get the (midX, midY) center of an (x, y, width, height) box."""
    x, y, w, h = bbox
    return (x + w / 2, y + h / 2)


def bbox_is_finite(bbox: Sequence[float]) -> bool:
    return len(bbox) == 4 and all(math.isfinite(v) for v in bbox)


def calculate_iou(bbox1: BBox, bbox2: BBox) -> float:
    """Calculate Intersection over Union between two bounding boxes.

    Args:
        bbox1: First bounding box as (x, y, width, height)
        bbox2: Second bounding box as (x, y, width, height)

    Returns:
        IoU value between 0.0 and 1.0, or 0.0 for invalid/non-overlapping boxes
    """
    x1, y1, w1, h1 = bbox1
    x2, y2, w2, h2 = bbox2

    if w1 <= 0 or h1 <= 0 or w2 <= 0 or h2 <= 0:
        return 0.0

    x_left = max(x1, x2)
    y_top = max(y1, y2)
    x_right = min(x1 + w1, x2 + w2)
    y_bottom = min(y1 + h1, y2 + h2)

    if x_right <= x_left or y_bottom <= y_top:
        return 0.0

    intersection_area = (x_right - x_left) * (y_bottom - y_top)
    union_area = w1 * h1 + w2 * h2 - intersection_area

    if union_area <= 0:
        return 0.0

    return float(intersection_area / union_area)


def non_max_suppression(boxes: Sequence[BBox], scores: Sequence[float],
                        labels: Sequence[str], iou_threshold: float) -> List[int]:
    """Greedy per-label non-max suppression.

    Boxes are visited from highest to lowest score; a box is dropped when it
    overlaps an already kept box of the same label by more than iou_threshold.

    Args:
        boxes: Bounding boxes as (x, y, width, height)
        scores: Confidence per box
        labels: Label per box (compared case-insensitively)
        iou_threshold: Overlap above which the lower-scored box is dropped

    Returns:
        Indices of kept boxes, highest score first
    """
    order = np.argsort(-np.asarray(scores, dtype=np.float64), kind='stable')
    kept: List[int] = []

    for idx in order:
        idx = int(idx)
        label = labels[idx].lower()
        overlaps = any(
            labels[k].lower() == label and calculate_iou(boxes[k], boxes[idx]) > iou_threshold
            for k in kept
        )
        if not overlaps:
            kept.append(idx)

    return kept


def angular_difference(angle1: float, angle2: float) -> float:
    """Calculate the shortest difference between two headings in degrees.

    Returns:
        Angle difference in degrees [0, 180]
    """
    diff = abs(angle1 - angle2) % 360.0
    if diff > 180:
        diff = 360 - diff
    return float(diff)
