"""Camera-relative placement of active hazards."""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from utils.geometry import bbox_center, clamp


@dataclass(frozen=True)
class Placement:
    """Camera-relative offset in meters handed to the renderer as is.

    Attributes:
        forward: Distance in front of the camera
        lateral: Offset to the right (negative is left)
        vertical: Offset upwards (negative is below eye level)
    """
    forward: float
    lateral: float
    vertical: float

    def to_dict(self) -> dict:
        return {'forward': self.forward, 'lateral': self.lateral, 'vertical': self.vertical}


class SpatialProjector:
    """Maps a hazard's smoothed side and distance to a placement offset.

    Hazards sit at a fixed distance in front of the camera and slightly
    below eye level so they stay visible when the phone tilts down.

    Attributes:
        forward_offset: Fixed placement distance in meters
        vertical_offset: Vertical offset in meters
        max_side: Lateral clamp in meters at the engagement distance
        min_distance: Lower clamp for the smoothed distance
        max_distance: Upper clamp for the smoothed distance
        default_distance: Distance used when the hazard distance is unknown
    """

    def __init__(self, forward_offset: float = 2.0, vertical_offset: float = -0.5,
                 max_side: float = 0.5, min_distance: float = 1.0, max_distance: float = 4.0,
                 default_distance: float = 2.0):
        self.forward_offset = forward_offset
        self.vertical_offset = vertical_offset
        self.max_side = max_side
        self.min_distance = min_distance
        self.max_distance = max_distance
        self.default_distance = default_distance

    def target_side(self, bbox: Tuple[float, float, float, float]) -> float:
        """Lateral target from the box's horizontal offset to screen center."""
        mid_x, _ = bbox_center(bbox)
        return clamp(mid_x - 0.5, -self.max_side, self.max_side)

    def target_distance(self, distance: Optional[float]) -> float:
        if distance is not None and math.isfinite(distance):
            return clamp(distance, self.min_distance, self.max_distance)
        return self.default_distance

    def project(self, side: float, distance: float) -> Placement:
        """Build the placement for a smoothed side and distance.

        The distance is only smoothed for animation; placement depth stays
        at the fixed forward offset.
        """
        return Placement(
            forward=self.forward_offset,
            lateral=clamp(side, -self.max_side, self.max_side),
            vertical=self.vertical_offset
        )
