"""Hazard fusion engine running the full pipeline once per frame tick."""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from depth.depth_resolver import DepthResolver
from detection.detection import Detection
from detection.normalizer import normalize_detections
from filtering.hazard_filter import HazardFilter
from fusion.backend import BackendParseResult, parse_backend_confirmation
from fusion.hazard_fusion import FusedHazard, HazardFusion
from projection.spatial_projector import Placement, SpatialProjector
from scoring.severity import SeverityScorer
from tracking.lifecycle import HazardLifecycleTracker, LifecycleUpdate
from tracking.velocity_tracker import VelocityResult, VelocityTracker
from .result_slot import LatestResultSlot, TimedResult


@dataclass(frozen=True)
class MotionState:
    """User motion reported by the motion/heading collaborator.

    Attributes:
        speed: Walking speed in m/s, if known
        heading: Heading in degrees clockwise from north, if known
    """
    speed: Optional[float] = None
    heading: Optional[float] = None


@dataclass(frozen=True)
class PlacedHazard:
    """A ranked hazard together with its camera-relative placement."""
    id: str
    label: str
    severity: float
    explanation: str
    bbox: Tuple[float, float, float, float]
    distance: Optional[float]
    placement: Placement

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'label': self.label,
            'severity': self.severity,
            'explanation': self.explanation,
            'bbox': list(self.bbox),
            'distance': self.distance,
            'placement': self.placement.to_dict()
        }


@dataclass
class TickResult:
    """Output of one engine tick for the rendering collaborator.

    Attributes:
        hazards: Placed hazards, at most three, highest severity first
        added: Ids that became active this tick
        removed: Ids evicted this tick
        fresh: Whether a new detector result was processed
        recomputed: Whether placements were recomputed this tick
        confirmed: Backend-confirmed labels applied this tick
    """
    hazards: List[PlacedHazard] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    fresh: bool = False
    recomputed: bool = False
    confirmed: FrozenSet[str] = frozenset()


class HazardEngine:
    """Turns per-frame detections into a stable, ranked set of placed hazards.

    The engine owns all mutable pipeline state (velocity samples, lifecycle
    entries, pending asynchronous results) and must be driven from a single
    frame loop. Asynchronous collaborators hand their results in through
    submit_detections() and submit_backend(); only the newest result is kept.

    Attributes:
        hazard_filter: Relevance, suppression, crowd and forward-cone stages
        depth_resolver: Distance source, or None to use input distances only
        velocity_tracker: Per-label motion estimation
        scorer: Severity scoring and top-K ranking
        fusion: Backend and motion fusion
        lifecycle: Smoothing, eviction and placement
        backend_max_age: Seconds a backend confirmation stays applicable
    """

    def __init__(self, hazard_filter: Optional[HazardFilter] = None,
                 depth_resolver: Optional[DepthResolver] = None,
                 velocity_tracker: Optional[VelocityTracker] = None,
                 scorer: Optional[SeverityScorer] = None,
                 fusion: Optional[HazardFusion] = None,
                 lifecycle: Optional[HazardLifecycleTracker] = None,
                 backend_max_age: float = 3.0):
        self.hazard_filter = hazard_filter if hazard_filter is not None else HazardFilter()
        self.depth_resolver = depth_resolver
        self.velocity_tracker = velocity_tracker if velocity_tracker is not None else VelocityTracker()
        self.scorer = scorer if scorer is not None else SeverityScorer()
        self.fusion = fusion if fusion is not None else HazardFusion()
        self.lifecycle = lifecycle if lifecycle is not None else HazardLifecycleTracker()
        self.backend_max_age = backend_max_age

        self._detections: LatestResultSlot[List[Detection]] = LatestResultSlot()
        self._backend: LatestResultSlot[BackendParseResult] = LatestResultSlot()
        self._confirmation: Optional[TimedResult[BackendParseResult]] = None

    @classmethod
    def from_config(cls, config: Dict, depth_resolver: Optional[DepthResolver] = None) -> 'HazardEngine':
        """Build an engine from the configuration dictionary.

        Args:
            config: Configuration dictionary; missing sections and keys use defaults
            depth_resolver: Distance source shared with the caller, if any

        Returns:
            New HazardEngine instance
        """
        filtering_config = config.get('filtering', {})
        relevant = filtering_config.get('relevant_labels')
        hazard_filter = HazardFilter(
            relevant_labels=frozenset(relevant) if relevant else None,
            min_box_area=filtering_config.get('min_box_area', 0.010),
            min_box_size=filtering_config.get('min_box_size', 0.05),
            stationary_speed=filtering_config.get('stationary_speed_mps', 0.3),
            near_person_distance=filtering_config.get('near_person_distance_m', 0.7),
            crowd_threshold=filtering_config.get('crowd_threshold', 5),
            cone_degrees=filtering_config.get('forward_cone_degrees', 60.0)
        )

        tracking_config = config.get('tracking', {})
        velocity_tracker = VelocityTracker(
            approach_threshold=tracking_config.get('approach_threshold', 0.015)
        )

        scoring_config = config.get('scoring', {})
        scorer = SeverityScorer(
            max_distance=scoring_config.get('max_distance_m', 25.0),
            distance_weight=scoring_config.get('distance_weight', 30.0),
            unknown_distance_boost=scoring_config.get('unknown_distance_boost', 10.0),
            max_hazards=scoring_config.get('max_hazards', 3)
        )

        fusion_config = config.get('fusion', {})
        fusion = HazardFusion(
            backend_boost=fusion_config.get('backend_boost', 8.0),
            approach_boost=fusion_config.get('approach_boost', 40.0),
            crossing_boost=fusion_config.get('crossing_boost', 5.0),
            crossing_threshold=fusion_config.get('crossing_threshold', 0.015)
        )

        projection_config = config.get('projection', {})
        projector = SpatialProjector(
            forward_offset=projection_config.get('forward_offset_m', 2.0),
            vertical_offset=projection_config.get('vertical_offset_m', -0.5),
            max_side=projection_config.get('max_side_m', 0.5),
            min_distance=projection_config.get('min_distance_m', 1.0),
            max_distance=projection_config.get('max_distance_m', 4.0),
            default_distance=projection_config.get('default_distance_m', 2.0)
        )

        lifecycle_config = config.get('lifecycle', {})
        lifecycle = HazardLifecycleTracker(
            projector=projector,
            alpha=lifecycle_config.get('smoothing_alpha', 0.25),
            timeout=lifecycle_config.get('timeout_s', 1.2),
            min_update_interval=lifecycle_config.get('min_update_interval_s', 0.20),
            heading_threshold=lifecycle_config.get('heading_threshold_deg', 5.0),
            max_hazards=scoring_config.get('max_hazards', 3)
        )

        return cls(
            hazard_filter=hazard_filter,
            depth_resolver=depth_resolver,
            velocity_tracker=velocity_tracker,
            scorer=scorer,
            fusion=fusion,
            lifecycle=lifecycle,
            backend_max_age=fusion_config.get('backend_max_age_s', 3.0)
        )

    def submit_detections(self, detections: Optional[Iterable[Any]], query_time: float) -> bool:
        """Hand in a completed detector result.

        A failed or empty detector run should be submitted as an empty list,
        which clears the displayed hazards on the next tick.

        Args:
            detections: Raw or normalized detections; None counts as empty
            query_time: Clock value of the frame the detector ran on

        Returns:
            True if accepted, False if older than an already accepted result
        """
        return self._detections.offer(normalize_detections(detections), query_time)

    def submit_backend(self, payload: Any, query_time: float) -> BackendParseResult:
        """Hand in a backend response.

        Malformed payloads are kept as an empty confirmation set.

        Args:
            payload: Response body or decoded JSON object
            query_time: Clock value of the frame the backend call was made for

        Returns:
            Parsed result, including the parse error kind if any
        """
        result = parse_backend_confirmation(payload)
        self._backend.offer(result, query_time)
        return result

    def tick(self, now: float, motion: Optional[MotionState] = None) -> TickResult:
        """Run one frame tick.

        With a pending detector result the full pipeline runs; otherwise
        entries only age out and the active hazards are emitted again.

        Args:
            now: Current clock value in seconds
            motion: Current user motion

        Returns:
            TickResult for the rendering collaborator
        """
        motion = motion if motion is not None else MotionState()

        backend = self._backend.take()
        if backend is not None:
            self._confirmation = backend

        pending = self._detections.take()
        if pending is None:
            return self._to_result(self.lifecycle.sweep(now), fresh=False, confirmed=frozenset())

        confirmed = self._current_confirmation(now)
        fused = self._run_pipeline(pending.value, pending.query_time, motion, confirmed)
        update = self.lifecycle.update(fused, now, motion.heading)
        return self._to_result(update, fresh=True, confirmed=confirmed)

    def process_frame(self, detections: Optional[Iterable[Any]], now: float,
                      motion: Optional[MotionState] = None, backend: Any = None) -> TickResult:
        """Run a full synchronous pass on one frame's detections.

        Args:
            detections: Raw or normalized detections of this frame
            now: Clock value of this frame in seconds
            motion: Current user motion
            backend: Optional backend response for this frame

        Returns:
            TickResult for the rendering collaborator
        """
        if backend is not None:
            self.submit_backend(backend, now)
        self.submit_detections(detections, now)
        return self.tick(now, motion)

    def rank(self, detections: List[Detection], now: float, motion: MotionState,
             confirmed: FrozenSet[str] = frozenset()) -> List[FusedHazard]:
        """Run the filtering, depth, velocity, scoring and fusion stages.

        Updates velocity samples but leaves lifecycle state untouched.
        """
        return self._run_pipeline(detections, now, motion, confirmed)

    def reset(self) -> None:
        """Clear all per-session state."""
        self.velocity_tracker.reset()
        self.lifecycle.reset()
        self._detections.clear()
        self._backend.clear()
        self._confirmation = None

    def _run_pipeline(self, detections: List[Detection], now: float, motion: MotionState,
                      confirmed: FrozenSet[str]) -> List[FusedHazard]:
        try:
            candidates = self.hazard_filter.filter_relevant(detections)
            # The suppressor needs distances, so resolve before it
            candidates = self._resolve_depth(candidates)
            candidates = self.hazard_filter.suppress_contextual(candidates, motion.speed)
            candidates = self.hazard_filter.cluster_crowd(candidates)
            candidates = self.hazard_filter.filter_forward_cone(candidates)
            candidates = self._resolve_depth(candidates)

            velocities = self.velocity_tracker.update(candidates, now)
            candidates, velocities = self._discard_non_finite(candidates, velocities)

            ranked = self.scorer.rank(candidates)
            return self.fusion.fuse(ranked, confirmed, velocities)
        except Exception as e:
            print(f"Warning: hazard pipeline failed, showing no hazards this frame: {e}")
            return []

    def _resolve_depth(self, candidates: List[Detection]) -> List[Detection]:
        """Fill in distances that are still unknown."""
        if self.depth_resolver is None:
            return candidates

        resolved = []
        for candidate in candidates:
            if candidate.distance is None:
                try:
                    distance = self.depth_resolver.distance(candidate.bbox, candidate.label)
                except Exception as e:
                    print(f"Warning: depth lookup failed for {candidate.label}: {e}")
                    distance = None
                if distance is not None and (not math.isfinite(distance) or distance <= 0):
                    distance = None
                candidate = candidate.with_distance(distance)
            resolved.append(candidate)
        return resolved

    @staticmethod
    def _discard_non_finite(candidates: List[Detection], velocities: Dict[str, VelocityResult]
                            ) -> Tuple[List[Detection], Dict[str, VelocityResult]]:
        """Drop candidates whose geometry, distance or velocity is not finite."""
        bad_labels = {label for label, v in velocities.items() if not v.is_finite}

        kept = [
            c for c in candidates
            if c.label not in bad_labels
            and all(math.isfinite(v) for v in c.bbox)
            and (c.distance is None or math.isfinite(c.distance))
        ]
        finite_velocities = {label: v for label, v in velocities.items() if label not in bad_labels}
        return kept, finite_velocities

    def _current_confirmation(self, now: float) -> FrozenSet[str]:
        if self._confirmation is None:
            return frozenset()
        if now - self._confirmation.query_time > self.backend_max_age:
            return frozenset()
        return self._confirmation.value.labels

    @staticmethod
    def _to_result(update: LifecycleUpdate, fresh: bool, confirmed: FrozenSet[str]) -> TickResult:
        hazards = [
            PlacedHazard(
                id=hazard.id,
                label=hazard.label,
                severity=hazard.severity,
                explanation=hazard.explanation,
                bbox=hazard.bbox,
                distance=hazard.distance,
                placement=placement
            )
            for hazard, placement in update.active
        ]
        return TickResult(
            hazards=hazards,
            added=update.added,
            removed=update.removed,
            fresh=fresh,
            recomputed=update.recomputed,
            confirmed=confirmed
        )
