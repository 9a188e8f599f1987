"""Label-indexed velocity estimation across frames."""

import math
from dataclasses import dataclass
from typing import Dict, List, Tuple

from detection.detection import Detection
from utils.geometry import bbox_center


@dataclass
class VelocitySample:
    """Last observed box for a label.

    Attributes:
        last_bbox: Normalized bounding box seen on the last frame
        last_timestamp: Clock value of that frame in seconds
    """
    last_bbox: Tuple[float, float, float, float]
    last_timestamp: float


@dataclass(frozen=True)
class VelocityResult:
    """Instantaneous motion of a label between two frames.

    Attributes:
        label: Lowercase class name
        dx: Horizontal velocity of the box center (normalized units per second)
        dy: Vertical velocity of the box center (normalized units per second)
        approach_speed: Inverted vertical velocity
        is_approaching: Whether approach_speed exceeds the approach threshold
    """
    label: str
    dx: float
    dy: float
    approach_speed: float
    is_approaching: bool

    @property
    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.dx, self.dy, self.approach_speed))


class VelocityTracker:
    """Tracks one box per label across frames and reports its velocity.

    Tracking is by label rather than by instance: with at most a handful of
    simultaneous hazards a per-label sample is enough to tell approaching
    objects from static ones.

    Attributes:
        approach_threshold: Approach speed above which a label is approaching
        samples: Mapping from label to its last VelocitySample
    """

    def __init__(self, approach_threshold: float = 0.015):
        """Initialize the velocity tracker.

        Args:
            approach_threshold: Approach speed threshold in normalized units/s (default: 0.015)
        """
        self.approach_threshold = approach_threshold
        self.samples: Dict[str, VelocitySample] = {}

    def update(self, detections: List[Detection], now: float) -> Dict[str, VelocityResult]:
        """Compute velocities for this frame and store the new samples.

        The sample for a label is overwritten on every sighting whether or not
        a velocity could be computed. When a label appears more than once in a
        frame, the first occurrence's velocity is reported.

        Args:
            detections: Candidates seen this frame
            now: Clock value of this frame in seconds

        Returns:
            Mapping from label to VelocityResult for labels with a prior sample
        """
        results: Dict[str, VelocityResult] = {}
        previous = dict(self.samples)

        for detection in detections:
            key = detection.label.lower()
            prior = previous.get(key)

            if prior is not None and key not in results:
                dt = now - prior.last_timestamp
                if dt > 0:
                    last_x, last_y = bbox_center(prior.last_bbox)
                    dx = (detection.mid_x - last_x) / dt
                    dy = (detection.mid_y - last_y) / dt
                    # Invert so movement up the frame reads as a positive approach
                    approach_speed = -dy
                    results[key] = VelocityResult(
                        label=key,
                        dx=dx,
                        dy=dy,
                        approach_speed=approach_speed,
                        is_approaching=approach_speed > self.approach_threshold
                    )

            self.samples[key] = VelocitySample(last_bbox=detection.bbox, last_timestamp=now)

        return results

    def reset(self) -> None:
        self.samples.clear()
