"""Filtering stages that narrow raw candidates down to relevant hazards ahead."""

from typing import FrozenSet, List, Optional

import numpy as np

from detection.detection import Detection
from detection.labels import CROWD, PERSON, RELEVANT_LABELS


class HazardFilter:
    """Applies the relevance, suppression, crowd and forward-cone stages.

    Every stage is a pure function of its inputs; the filter holds only
    configuration.

    Attributes:
        relevant_labels: Classes kept by the relevance stage
        min_box_area: Minimum normalized box area
        min_box_size: Minimum normalized box width and height
        stationary_speed: Speed (m/s) below which the user counts as standing still
        near_person_distance: Distance (m) under which a person is ignored while standing
        crowd_threshold: Number of persons that collapse into one crowd
        cone_degrees: Full width of the forward cone in degrees
    """

    def __init__(self, relevant_labels: Optional[FrozenSet[str]] = None, min_box_area: float = 0.010,
                 min_box_size: float = 0.05, stationary_speed: float = 0.3,
                 near_person_distance: float = 0.7, crowd_threshold: int = 5,
                 cone_degrees: float = 60.0):
        """Initialize the hazard filter.

        Args:
            relevant_labels: Classes to keep (default: the hazard class allow-list)
            min_box_area: Minimum normalized box area (default: 0.010)
            min_box_size: Minimum normalized width and height (default: 0.05)
            stationary_speed: Standing-still speed threshold in m/s (default: 0.3)
            near_person_distance: Near-person suppression distance in meters (default: 0.7)
            crowd_threshold: Persons needed to form a crowd (default: 5)
            cone_degrees: Forward cone width in degrees (default: 60)
        """
        self.relevant_labels = RELEVANT_LABELS if relevant_labels is None else frozenset(relevant_labels)
        self.min_box_area = min_box_area
        self.min_box_size = min_box_size
        self.stationary_speed = stationary_speed
        self.near_person_distance = near_person_distance
        self.crowd_threshold = crowd_threshold
        self.cone_degrees = cone_degrees

    def filter_relevant(self, detections: List[Detection]) -> List[Detection]:
        """Keep allow-listed classes with boxes large enough to be real objects.

        Tiny boxes are usually reflections or model noise on distant artifacts.
        Incoming crowd candidates are always dropped; the only crowd is the one
        cluster_crowd() builds.
        """
        return [
            d for d in detections
            if d.label in self.relevant_labels
            and d.label != CROWD
            and d.area >= self.min_box_area
            and d.bbox[2] >= self.min_box_size
            and d.bbox[3] >= self.min_box_size
        ]

    def suppress_contextual(self, detections: List[Detection], speed: Optional[float]) -> List[Detection]:
        """Drop a very near person while the user is standing still.

        Unknown speed counts as standing still. Only the person class is
        affected.
        """
        if (speed if speed is not None else 0.0) >= self.stationary_speed:
            return list(detections)

        return [
            d for d in detections
            if not (d.label == PERSON and d.distance is not None and d.distance < self.near_person_distance)
        ]

    def cluster_crowd(self, detections: List[Detection]) -> List[Detection]:
        """Collapse many persons into one crowd candidate.

        The crowd box is the element-wise mean of the person boxes. Other
        candidates keep their order and the crowd is appended after them.
        """
        persons = [d for d in detections if d.label == PERSON]
        if len(persons) < self.crowd_threshold:
            return list(detections)

        mean_box = np.mean(np.array([p.bbox for p in persons], dtype=np.float64), axis=0)
        crowd = Detection(label=CROWD, bbox=tuple(float(v) for v in mean_box))

        others = [d for d in detections if d.label != PERSON]
        others.append(crowd)
        return others

    def is_in_forward_cone(self, detection: Detection) -> bool:
        """Check whether the box center lies within the forward cone.

        Horizontal offset from screen center maps linearly onto 0-90 degrees
        each side, a cheap proxy for the bearing relative to travel direction.
        """
        deviation_deg = abs(detection.mid_x - 0.5) * 180.0
        return deviation_deg < self.cone_degrees / 2.0

    def filter_forward_cone(self, detections: List[Detection]) -> List[Detection]:
        return [d for d in detections if self.is_in_forward_cone(d)]
