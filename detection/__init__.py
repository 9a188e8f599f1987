"""Detection module: hazard candidates and their normalization."""

from .detection import Detection
from .normalizer import normalize_detections, normalize_confirmations, normalize_label

__all__ = ['Detection', 'normalize_detections', 'normalize_confirmations', 'normalize_label']
