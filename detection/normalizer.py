"""Conversion of raw detector output into uniform Detection candidates."""

import math
from typing import Any, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from .detection import Detection


def normalize_label(label: Any) -> Optional[str]:
    """Normalize a class name: lowercase, trimmed, spaces/dashes as underscores.

    Returns:
        Normalized label, or None if the label is missing or empty
    """
    if not isinstance(label, str):
        return None
    label = label.strip().lower().replace(' ', '_').replace('-', '_')
    return label or None


def _finite_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _parse_bbox(raw: Any) -> Optional[Tuple[float, float, float, float]]:
    if isinstance(raw, Mapping):
        try:
            raw = (raw['x'], raw['y'], raw.get('w', raw.get('width')), raw.get('h', raw.get('height')))
        except KeyError:
            return None

    if not isinstance(raw, Sequence) or isinstance(raw, str) or len(raw) != 4:
        return None

    values = [_finite_or_none(v) for v in raw]
    if any(v is None for v in values):
        return None

    x, y, w, h = values
    if w <= 0 or h <= 0:
        return None

    return (x, y, w, h)


def normalize_detection(raw: Any) -> Optional[Detection]:
    """Convert one raw detection into a Detection.

    Accepts a Detection, a mapping with 'label', 'bbox', 'confidence' and
    'distance' keys, or a (label, bbox[, confidence]) tuple. The bbox may be
    an (x, y, w, h) sequence or a mapping with x/y/w/h keys.

    Returns:
        Detection, or None if the entry has no usable label or geometry
    """
    if isinstance(raw, Detection):
        label, bbox, confidence, distance = raw.label, raw.bbox, raw.confidence, raw.distance
    elif isinstance(raw, Mapping):
        label = raw.get('label')
        bbox = raw.get('bbox')
        confidence = raw.get('confidence')
        distance = raw.get('distance')
    elif isinstance(raw, (tuple, list)) and len(raw) in (2, 3):
        label, bbox = raw[0], raw[1]
        confidence = raw[2] if len(raw) == 3 else None
        distance = None
    else:
        return None

    label = normalize_label(label)
    bbox = _parse_bbox(bbox)
    if label is None or bbox is None:
        return None

    distance = _finite_or_none(distance)
    if distance is not None and distance <= 0:
        distance = None

    return Detection(
        label=label,
        bbox=bbox,
        confidence=_finite_or_none(confidence),
        distance=distance
    )


def normalize_detections(raw_detections: Optional[Iterable[Any]]) -> List[Detection]:
    """Normalize a frame's raw detections, dropping unusable entries.

    Input order is preserved; it is the tie-breaker when ranking.
    """
    if raw_detections is None:
        return []

    detections = []
    for raw in raw_detections:
        detection = normalize_detection(raw)
        if detection is not None:
            detections.append(detection)
    return detections


def detection_from_xyxy(label: str, xyxy: Sequence[float], frame_size: Tuple[int, int],
                        confidence: Optional[float] = None) -> Optional[Detection]:
    """Build a normalized Detection from a pixel corner box.

    Args:
        label: Class name as reported by the model
        xyxy: Pixel box as (x1, y1, x2, y2)
        frame_size: Frame size as (width, height) in pixels
        confidence: Detection confidence score

    Returns:
        Detection with a normalized (x, y, width, height) box, or None if invalid
    """
    frame_width, frame_height = frame_size
    if frame_width <= 0 or frame_height <= 0:
        return None

    x1, y1, x2, y2 = (float(v) for v in xyxy)
    bbox = (
        x1 / frame_width,
        y1 / frame_height,
        (x2 - x1) / frame_width,
        (y2 - y1) / frame_height,
    )
    return normalize_detection({'label': label, 'bbox': bbox, 'confidence': confidence})


def normalize_confirmations(labels: Optional[Iterable[Any]]) -> FrozenSet[str]:
    """Normalize backend-confirmed labels into a set of lowercase labels."""
    if labels is None:
        return frozenset()
    normalized = (normalize_label(label) for label in labels)
    return frozenset(label for label in normalized if label is not None)
