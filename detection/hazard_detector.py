"""Hazard detector using YOLO object detection."""

import time
from typing import Dict, List, Optional

import numpy as np
from ultralytics import YOLO

from utils.geometry import non_max_suppression
from .detection import Detection
from .labels import ANIMAL_LABELS, CYCLIST_LABELS, PERSON, RELEVANT_LABELS, SIGNAGE_LABELS, VEHICLE_LABELS
from .normalizer import detection_from_xyxy, normalize_label


class HazardDetector:
    """Detects pedestrian hazards in camera frames using YOLO.

    Wraps the YOLO model with hazard-specific class filtering, per-class
    confidence thresholds, per-label non-max suppression and an adaptive
    throttle that backs off while inference is slow.

    Attributes:
        base_interval: Minimum seconds between runs while inference is fast
        slow_interval: Minimum seconds between runs while inference is slow
        current_interval: Interval currently enforced by should_run()
        last_run: Clock value of the last run, or None before the first one
    """

    # Per-class confidence floors
    CLASS_THRESHOLDS: Dict[str, float] = {
        PERSON: 0.50,
        **{label: 0.55 for label in VEHICLE_LABELS},
        **{label: 0.40 for label in CYCLIST_LABELS},
        **{label: 0.40 for label in ANIMAL_LABELS},
        **{label: 0.40 for label in SIGNAGE_LABELS},
    }

    def __init__(self, model_path: str, min_confidence: float = 0.35, iou_threshold: float = 0.45,
                 image_size: int = 640, base_interval: float = 0.30, slow_interval: float = 0.45,
                 slow_threshold_ms: float = 120.0, fast_threshold_ms: float = 90.0,
                 timing_alpha: float = 0.2):
        """Initialize the hazard detector.

        Args:
            model_path: Path to the YOLO model weights file
            min_confidence: Confidence floor for classes without their own threshold (default: 0.35)
            iou_threshold: Overlap above which same-label boxes are suppressed (default: 0.45)
            image_size: Inference image size passed to YOLO (default: 640)
            base_interval: Throttle interval in seconds while inference is fast (default: 0.30)
            slow_interval: Throttle interval in seconds while inference is slow (default: 0.45)
            slow_threshold_ms: Average inference time above which the slow interval applies
            fast_threshold_ms: Average inference time below which the base interval is restored
            timing_alpha: Smoothing factor for the inference time average (default: 0.2)
        """
        self.model = YOLO(model_path)
        self.min_confidence = min_confidence
        self.iou_threshold = iou_threshold
        self.image_size = image_size
        self.base_interval = base_interval
        self.slow_interval = slow_interval
        self.slow_threshold_ms = slow_threshold_ms
        self.fast_threshold_ms = fast_threshold_ms
        self.timing_alpha = timing_alpha

        self.current_interval = base_interval
        self.avg_inference_ms = 0.0
        self.last_run: Optional[float] = None

    def threshold_for(self, label: str) -> float:
        return self.CLASS_THRESHOLDS.get(label, self.min_confidence)

    def should_run(self, now: float) -> bool:
        """Check whether the throttle allows a detector run at clock value now."""
        if self.last_run is None:
            return True
        return now - self.last_run >= self.current_interval

    def detect(self, frame: np.ndarray, now: Optional[float] = None) -> List[Detection]:
        """Detect hazards in a single frame.

        Inference errors are reported as an empty list so the pipeline sees
        "no data" for this frame instead of a failure.

        Args:
            frame: Input frame as numpy array (BGR format)
            now: Clock value recorded as the time of this run (default: wall clock)

        Returns:
            List of Detection objects with normalized bounding boxes
        """
        self.last_run = time.time() if now is None else now
        start = time.perf_counter()

        try:
            results = self.model(frame, conf=self.min_confidence, imgsz=self.image_size, verbose=False)
        except Exception as e:
            print(f"Warning: YOLO inference failed: {e}")
            return []
        finally:
            self._record_timing((time.perf_counter() - start) * 1000.0)

        frame_height, frame_width = frame.shape[:2]
        candidates: List[Detection] = []

        for result in results:
            boxes = result.boxes

            for i in range(len(boxes)):
                box = boxes.xyxy[i].cpu().numpy()
                confidence = float(boxes.conf[i].cpu().numpy())
                class_id = int(boxes.cls[i].cpu().numpy())
                label = normalize_label(result.names[class_id])

                # Filter to hazard classes only
                if label not in RELEVANT_LABELS:
                    continue

                if confidence < self.threshold_for(label):
                    continue

                detection = detection_from_xyxy(label, box, (frame_width, frame_height), confidence)
                if detection is not None:
                    candidates.append(detection)

        kept = non_max_suppression(
            [d.bbox for d in candidates],
            [d.confidence for d in candidates],
            [d.label for d in candidates],
            self.iou_threshold
        )
        return [candidates[i] for i in kept]

    def _record_timing(self, elapsed_ms: float) -> None:
        """Update the inference time average and adapt the throttle interval."""
        if self.avg_inference_ms == 0:
            self.avg_inference_ms = elapsed_ms
        else:
            self.avg_inference_ms = (self.timing_alpha * elapsed_ms
                                     + (1 - self.timing_alpha) * self.avg_inference_ms)

        if self.avg_inference_ms > self.slow_threshold_ms:
            self.current_interval = self.slow_interval
        elif self.avg_inference_ms < self.fast_threshold_ms:
            self.current_interval = self.base_interval
