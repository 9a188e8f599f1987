"""Cross-source fusion of ranked hazards with backend and motion signals."""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from scoring.severity import ScoredHazard
from tracking.velocity_tracker import VelocityResult


@dataclass(frozen=True)
class FusedHazard:
    """Final per-frame hazard carrying geometry.

    Attributes:
        id: Identifier derived from the label
        label: Lowercase class name
        severity: Fused priority score
        explanation: Human-readable reason with fusion suffixes
        bbox: Normalized bounding box as (x, y, width, height)
        distance: Distance in meters, if known
    """
    id: str
    label: str
    severity: float
    explanation: str
    bbox: Tuple[float, float, float, float]
    distance: Optional[float] = None


def hazard_id(label: str, occurrence: int) -> str:
    """Derive a hazard id from its label and its occurrence count in the frame."""
    return label if occurrence <= 1 else f"{label}-{occurrence}"


class HazardFusion:
    """Boosts ranked hazards with backend confirmation and motion cues.

    Backend confirmations carry no geometry, so they only strengthen a
    ranked hazard of the same class and never create one.

    Attributes:
        backend_boost: Severity added for a backend-confirmed class
        approach_boost: Severity added when the class is approaching
        crossing_boost: Severity added when the class moves across the path
        crossing_threshold: Horizontal speed above which a class is crossing
    """

    BACKEND_SUFFIX = ' — confirmed by backend'
    APPROACH_SUFFIX = ' — approaching fast'
    CROSSING_SUFFIX = ' — moving across path'

    def __init__(self, backend_boost: float = 8.0, approach_boost: float = 40.0,
                 crossing_boost: float = 5.0, crossing_threshold: float = 0.015):
        self.backend_boost = backend_boost
        self.approach_boost = approach_boost
        self.crossing_boost = crossing_boost
        self.crossing_threshold = crossing_threshold

    def fuse(self, ranked: List[ScoredHazard], confirmed: FrozenSet[str],
             velocities: Dict[str, VelocityResult]) -> List[FusedHazard]:
        """Fuse ranked hazards with backend labels and velocities.

        Args:
            ranked: Ranked hazards, highest severity first
            confirmed: Lowercase labels confirmed by the backend
            velocities: Velocity per label for this frame

        Returns:
            Fused hazards sorted by severity descending (stable)
        """
        fused: List[FusedHazard] = []
        occurrences: Dict[str, int] = {}

        for hazard in ranked:
            label = hazard.label.lower()
            severity = hazard.severity
            explanation = hazard.explanation

            if label in confirmed:
                severity += self.backend_boost
                explanation += self.BACKEND_SUFFIX

            velocity = velocities.get(label)
            if velocity is not None:
                if velocity.is_approaching:
                    severity += self.approach_boost
                    explanation += self.APPROACH_SUFFIX
                elif abs(velocity.dx) > self.crossing_threshold:
                    severity += self.crossing_boost
                    explanation += self.CROSSING_SUFFIX

            occurrences[label] = occurrences.get(label, 0) + 1
            fused.append(FusedHazard(
                id=hazard_id(label, occurrences[label]),
                label=label,
                severity=severity,
                explanation=explanation,
                bbox=hazard.detection.bbox,
                distance=hazard.detection.distance
            ))

        fused.sort(key=lambda h: -h.severity)
        return fused
