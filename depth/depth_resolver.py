"""Tiered distance estimation for hazard candidates."""

import math
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from detection.labels import ANIMAL_LABELS, PERSON, VEHICLE_LABELS
from utils.geometry import bbox_center, bbox_is_finite

MonocularEstimator = Callable[[np.ndarray], np.ndarray]


class DepthResolver:
    """Resolves a distance in meters for a bounding box.

    Tries, in order, the latest sensor depth map, a monocular depth map and
    a size-based heuristic. Each tier falls through to the next when its
    data is unavailable, the sample lies outside the map, or the sampled
    value is non-finite or non-positive.

    Attributes:
        depth_map: Latest sensor depth map (HxW, meters), or None
        monocular_map: Latest monocular depth map (HxW, meters), or None
        image: Latest camera image used to produce a monocular map lazily
        estimator: Optional callable turning an image into a monocular depth map
    """

    # Heuristic scale per class: distance = k / apparent size
    HEURISTIC_SCALE: Dict[str, float] = {
        PERSON: 1.2,
        **{label: 0.8 for label in ANIMAL_LABELS},
        **{label: 3.0 for label in VEHICLE_LABELS},
    }
    DEFAULT_SCALE = 2.0
    MIN_BOX_SIZE = 0.05

    def __init__(self, estimator: Optional[MonocularEstimator] = None, use_heuristic: bool = True):
        """Initialize the depth resolver.

        Args:
            estimator: Optional monocular depth model, called with the latest image
            use_heuristic: Whether to fall back to the size heuristic (default: True)
        """
        self.estimator = estimator
        self.use_heuristic = use_heuristic
        self.depth_map: Optional[np.ndarray] = None
        self.monocular_map: Optional[np.ndarray] = None
        self.image: Optional[np.ndarray] = None

    def update(self, depth_map: Optional[np.ndarray] = None, image: Optional[np.ndarray] = None,
               monocular_map: Optional[np.ndarray] = None) -> None:
        """Store copies of the latest depth buffers.

        Copies are kept so the caller can reuse its frame buffers freely.

        Args:
            depth_map: Sensor depth map in meters, or None if the device has no depth sensor
            image: Camera image for the monocular estimator
            monocular_map: Precomputed monocular depth map in meters
        """
        self.depth_map = None if depth_map is None else np.array(depth_map, dtype=np.float32, copy=True)
        self.image = None if image is None else np.array(image, copy=True)
        self.monocular_map = (None if monocular_map is None
                              else np.array(monocular_map, dtype=np.float32, copy=True))

    def distance(self, bbox: Tuple[float, float, float, float], label: str) -> Optional[float]:
        """Resolve a distance in meters for a normalized bounding box.

        Args:
            bbox: Normalized bounding box as (x, y, width, height)
            label: Lowercase class name

        Returns:
            Distance in meters, or None if no tier produced a usable value
        """
        if not bbox_is_finite(bbox):
            return None

        sensor = self._sample(self.depth_map, bbox)
        if sensor is not None:
            return sensor

        monocular = self._sample(self._monocular(), bbox)
        if monocular is not None:
            return monocular

        if self.use_heuristic:
            return self.heuristic_distance(bbox, label)

        return None

    def heuristic_distance(self, bbox: Tuple[float, float, float, float], label: str) -> Optional[float]:
        """Estimate distance from apparent box size.

        Larger boxes are assumed closer; the class scale accounts for the
        typical physical size of the object.
        """
        _, _, w, h = bbox
        size = max((w + h) / 2.0, self.MIN_BOX_SIZE)
        distance = self.HEURISTIC_SCALE.get(label, self.DEFAULT_SCALE) / size
        return distance if math.isfinite(distance) and distance > 0 else None

    def _monocular(self) -> Optional[np.ndarray]:
        """Get the monocular map, running the estimator once per image if needed."""
        if self.monocular_map is None and self.image is not None and self.estimator is not None:
            try:
                self.monocular_map = np.asarray(self.estimator(self.image), dtype=np.float32)
            except Exception as e:
                print(f"Warning: monocular depth estimation failed: {e}")
                self.monocular_map = None
            # Don't retry the same image on every lookup
            self.image = None
        return self.monocular_map

    @staticmethod
    def _sample(depth_map: Optional[np.ndarray], bbox: Tuple[float, float, float, float]) -> Optional[float]:
        """Sample a depth map at the bbox center pixel."""
        if depth_map is None or depth_map.ndim < 2:
            return None

        height, width = depth_map.shape[:2]
        mid_x, mid_y = bbox_center(bbox)
        px = int(width * mid_x)
        py = int(height * mid_y)

        if px < 0 or px >= width or py < 0 or py >= height:
            return None

        value = float(np.ravel(depth_map[py, px])[0])
        if math.isfinite(value) and value > 0:
            return value
        return None
