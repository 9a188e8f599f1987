"""Hazard lifecycle tracking with smoothing, timeout eviction and update gating."""

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Tuple

from projection.spatial_projector import Placement, SpatialProjector
from utils.geometry import angular_difference

if TYPE_CHECKING:
    from fusion.hazard_fusion import FusedHazard


@dataclass
class ActiveHazard:
    """Lifecycle state for one hazard id.

    Attributes:
        hazard_id: Id of the tracked hazard
        last_seen: Clock value of the last frame the id was present
        smoothed_side: Smoothed lateral offset in meters
        smoothed_distance: Smoothed distance in meters
        hazard: Fused hazard from the last frame the id was present
        placement: Placement emitted at the last recompute
    """
    hazard_id: str
    last_seen: float
    smoothed_side: float
    smoothed_distance: float
    hazard: 'FusedHazard'
    placement: Placement


@dataclass
class LifecycleUpdate:
    """Outcome of one lifecycle step.

    Attributes:
        active: (hazard, placement) pairs in output order
        added: Ids created during this step
        removed: Ids evicted during this step
        recomputed: Whether the cadence gate allowed placements to be recomputed
    """
    active: List[Tuple['FusedHazard', Placement]]
    added: List[str]
    removed: List[str]
    recomputed: bool


class HazardLifecycleTracker:
    """Keeps one smoothed entry per hazard id and evicts stale ones.

    The tracker is the only writer of ActiveHazard entries. An id moves from
    absent to active on its first sighting, stays active while it keeps
    appearing, and is evicted when it drops out of the current top set or
    goes unseen longer than the timeout.

    Attributes:
        alpha: Exponential smoothing factor for side and distance
        timeout: Seconds an entry may go unseen before eviction
        min_update_interval: Minimum seconds between placement recomputes
        heading_threshold: Heading change in degrees that forces a recompute
        max_hazards: Number of fused hazards taken per frame
        active: Mapping from hazard id to ActiveHazard
    """

    def __init__(self, projector: Optional[SpatialProjector] = None, alpha: float = 0.25,
                 timeout: float = 1.2, min_update_interval: float = 0.20,
                 heading_threshold: float = 5.0, max_hazards: int = 3):
        """Initialize the lifecycle tracker.

        Args:
            projector: Spatial projector used to place hazards (default: SpatialProjector())
            alpha: Smoothing factor, weight of the new target (default: 0.25)
            timeout: Eviction timeout in seconds (default: 1.2)
            min_update_interval: Placement recompute interval in seconds (default: 0.20)
            heading_threshold: Heading change forcing a recompute, in degrees (default: 5)
            max_hazards: Maximum hazards tracked per frame (default: 3)
        """
        self.projector = projector if projector is not None else SpatialProjector()
        self.alpha = alpha
        self.timeout = timeout
        self.min_update_interval = min_update_interval
        self.heading_threshold = heading_threshold
        self.max_hazards = max_hazards

        self.active: Dict[str, ActiveHazard] = {}
        self.order: List[str] = []
        self.last_update: Optional[float] = None
        self.last_heading: Optional[float] = None

    def should_recompute(self, now: float, heading: Optional[float]) -> bool:
        """Check the cadence gate for placement recomputation.

        Opens when nothing has been computed yet, when the update interval
        elapsed, or when the heading turned by at least the threshold.
        """
        if self.last_update is None:
            return True

        if now - self.last_update >= self.min_update_interval:
            return True

        if heading is not None and self.last_heading is not None:
            return angular_difference(heading, self.last_heading) >= self.heading_threshold

        return False

    def update(self, fused: List['FusedHazard'], now: float, heading: Optional[float] = None) -> LifecycleUpdate:
        """Apply one frame of fused hazards.

        Args:
            fused: Fused hazards of this frame, highest severity first
            now: Clock value of this frame in seconds
            heading: User heading in degrees, if known

        Returns:
            LifecycleUpdate with the active hazards in output order
        """
        recompute = self.should_recompute(now, heading)
        seen: Set[str] = set()
        order: List[str] = []
        added: List[str] = []

        for hazard in fused[:self.max_hazards]:
            if hazard.id in seen:
                continue

            target_side = self.projector.target_side(hazard.bbox)
            target_distance = self.projector.target_distance(hazard.distance)
            if not (math.isfinite(target_side) and math.isfinite(target_distance)
                    and math.isfinite(hazard.severity)):
                continue

            seen.add(hazard.id)
            order.append(hazard.id)
            entry = self.active.get(hazard.id)

            if entry is not None:
                entry.last_seen = now
                entry.smoothed_side = self._ema(entry.smoothed_side, target_side)
                entry.smoothed_distance = self._ema(entry.smoothed_distance, target_distance)
                entry.hazard = hazard
                if recompute:
                    entry.placement = self.projector.project(entry.smoothed_side, entry.smoothed_distance)
            else:
                # First sighting is seeded at the target, no smoothing
                self.active[hazard.id] = ActiveHazard(
                    hazard_id=hazard.id,
                    last_seen=now,
                    smoothed_side=target_side,
                    smoothed_distance=target_distance,
                    hazard=hazard,
                    placement=self.projector.project(target_side, target_distance)
                )
                added.append(hazard.id)

        if recompute:
            self.last_update = now
            if heading is not None:
                self.last_heading = heading

        self.order = order
        removed = self._evict(now, keep=seen)

        return LifecycleUpdate(
            active=self._ordered_active(),
            added=added,
            removed=removed,
            recomputed=recompute
        )

    def sweep(self, now: float) -> LifecycleUpdate:
        """Evict entries that have timed out without touching the others.

        Used on ticks that carry no new detector result.
        """
        removed = self._evict(now, keep=None)
        return LifecycleUpdate(active=self._ordered_active(), added=[], removed=removed, recomputed=False)

    def reset(self) -> None:
        self.active.clear()
        self.order = []
        self.last_update = None
        self.last_heading = None

    def _ema(self, current: float, target: float) -> float:
        return self.alpha * target + (1 - self.alpha) * current

    def _evict(self, now: float, keep: Optional[Set[str]]) -> List[str]:
        """Remove expired entries, and entries missing from keep when given."""
        removed = []
        for hazard_id, entry in list(self.active.items()):
            expired = now - entry.last_seen > self.timeout
            dropped = keep is not None and hazard_id not in keep
            if expired or dropped:
                del self.active[hazard_id]
                removed.append(hazard_id)

        self.order = [hazard_id for hazard_id in self.order if hazard_id in self.active]
        return removed

    def _ordered_active(self) -> List[Tuple['FusedHazard', Placement]]:
        return [(self.active[i].hazard, self.active[i].placement) for i in self.order]
