"""Severity scoring and top-K ranking of hazard candidates."""

from dataclasses import dataclass
from typing import Dict, List

from detection.detection import Detection
from detection.labels import ANIMAL_LABELS, CROWD, CYCLIST_LABELS, PERSON, VEHICLE_LABELS
from utils.geometry import clamp01


@dataclass(frozen=True)
class ScoredHazard:
    """A candidate with its pre-fusion severity.

    Attributes:
        label: Lowercase class name
        severity: Priority score (non-negative)
        explanation: Short human-readable reason
        detection: The candidate this score was computed for
        order: Position of the candidate in the frame's candidate list
    """
    label: str
    severity: float
    explanation: str
    detection: Detection
    order: int


class SeverityScorer:
    """Scores candidates by class risk and proximity, then keeps the top K.

    Attributes:
        max_distance: Distance in meters at which the proximity boost reaches zero
        distance_weight: Proximity boost at zero distance
        unknown_distance_boost: Flat boost when distance is unknown
        max_hazards: Number of hazards kept after ranking
    """

    BASE_SCORES: Dict[str, float] = {
        **{label: 70.0 for label in VEHICLE_LABELS},
        **{label: 55.0 for label in CYCLIST_LABELS},
        **{label: 40.0 for label in ANIMAL_LABELS},
        CROWD: 38.0,
        PERSON: 30.0,
    }

    # Motorcycles share the cyclist wording
    EXPLANATIONS: Dict[str, str] = {
        **{label: 'Vehicle ahead' for label in VEHICLE_LABELS},
        **{label: 'Bike approaching' for label in CYCLIST_LABELS},
        CROWD: 'Crowded path',
        'dog': 'Dog near path',
        PERSON: 'Person ahead',
    }
    DEFAULT_EXPLANATION = 'Possible hazard'

    def __init__(self, max_distance: float = 25.0, distance_weight: float = 30.0,
                 unknown_distance_boost: float = 10.0, max_hazards: int = 3):
        self.max_distance = max_distance
        self.distance_weight = distance_weight
        self.unknown_distance_boost = unknown_distance_boost
        self.max_hazards = max_hazards

    def severity(self, detection: Detection) -> float:
        """Compute the pre-fusion severity of a candidate."""
        score = self.BASE_SCORES.get(detection.label, 0.0)

        if detection.distance is not None:
            closeness = clamp01((self.max_distance - detection.distance) / self.max_distance)
            score += closeness * self.distance_weight
        else:
            score += self.unknown_distance_boost

        return score

    def explain(self, label: str) -> str:
        return self.EXPLANATIONS.get(label, self.DEFAULT_EXPLANATION)

    def rank(self, detections: List[Detection]) -> List[ScoredHazard]:
        """Score, sort by severity descending and truncate to the top K.

        Ties keep the original detection order.
        """
        scored = [
            ScoredHazard(
                label=d.label,
                severity=self.severity(d),
                explanation=self.explain(d.label),
                detection=d,
                order=i
            )
            for i, d in enumerate(detections)
        ]
        scored.sort(key=lambda s: -s.severity)
        return scored[:self.max_hazards]
