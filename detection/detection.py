"""Detection data class for hazard candidates."""

from dataclasses import dataclass, replace
from typing import Optional, Tuple


@dataclass(frozen=True)
class Detection:
    """Represents a single hazard candidate in a frame.

    Attributes:
        label: Lowercase class name (e.g., 'person', 'car', 'crowd')
        bbox: Normalized bounding box as (x, y, width, height), top-left origin
        confidence: Detection confidence score (0.0 to 1.0), if known
        distance: Distance to the object in meters, if resolved
    """
    label: str
    bbox: Tuple[float, float, float, float]  # (x, y, width, height) in [0, 1]
    confidence: Optional[float] = None
    distance: Optional[float] = None

    @property
    def mid_x(self) -> float:
        return self.bbox[0] + self.bbox[2] / 2

    @property
    def mid_y(self) -> float:
        return self.bbox[1] + self.bbox[3] / 2

    @property
    def area(self) -> float:
        return self.bbox[2] * self.bbox[3]

    def with_distance(self, distance: Optional[float]) -> 'Detection':
        """Return a copy with the distance replaced."""
        return replace(self, distance=distance)
