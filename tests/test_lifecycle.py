import pytest

from fusion.hazard_fusion import FusedHazard
from tracking.lifecycle import HazardLifecycleTracker


def _hazard(hazard_id="car", mid_x=0.5, severity=94.0, distance=3.0):
    return FusedHazard(
        id=hazard_id,
        label=hazard_id.split("-")[0],
        severity=severity,
        explanation="Vehicle ahead",
        bbox=(mid_x - 0.1, 0.4, 0.2, 0.2),
        distance=distance
    )


def test_first_sighting_is_added_and_placed_at_target():
    tracker = HazardLifecycleTracker()

    update = tracker.update([_hazard(mid_x=0.8)], now=0.0)

    assert update.added == ["car"]
    assert update.removed == []
    hazard, placement = update.active[0]
    assert hazard.id == "car"
    assert placement.lateral == pytest.approx(0.3)
    assert placement.forward == 2.0
    assert placement.vertical == -0.5


def test_smoothing_converges_monotonically_without_eviction():
    tracker = HazardLifecycleTracker()
    tracker.update([_hazard(mid_x=0.5)], now=0.0)

    sides = []
    for step in range(1, 30):
        update = tracker.update([_hazard(mid_x=0.8)], now=step * 0.25)
        assert update.removed == []
        assert [h.id for h, _ in update.active] == ["car"]
        sides.append(update.active[0][1].lateral)

    assert sides[0] == pytest.approx(0.075)
    assert all(a < b for a, b in zip(sides, sides[1:]))
    assert all(side <= 0.3 for side in sides)
    assert sides[-1] == pytest.approx(0.3, abs=1e-3)


def test_distance_smoothing_uses_clamped_target():
    tracker = HazardLifecycleTracker()
    tracker.update([_hazard(distance=2.0)], now=0.0)
    tracker.update([_hazard(distance=10.0)], now=0.25)

    assert tracker.active["car"].smoothed_distance == pytest.approx(0.25 * 4.0 + 0.75 * 2.0)


def test_hazard_missing_from_frame_is_evicted():
    tracker = HazardLifecycleTracker()
    tracker.update([_hazard("car"), _hazard("dog", severity=50.0)], now=0.0)

    update = tracker.update([_hazard("car")], now=0.25)

    assert update.removed == ["dog"]
    assert [h.id for h, _ in update.active] == ["car"]


def test_sweep_evicts_after_timeout():
    tracker = HazardLifecycleTracker()
    tracker.update([_hazard()], now=0.0)

    assert tracker.sweep(1.0).removed == []
    assert [h.id for h, _ in tracker.sweep(1.2).active] == ["car"]

    update = tracker.sweep(1.3)
    assert update.removed == ["car"]
    assert update.active == []


def test_cadence_gate_holds_placement_between_recomputes():
    tracker = HazardLifecycleTracker()
    tracker.update([_hazard(mid_x=0.5)], now=0.0, heading=0.0)

    held = tracker.update([_hazard(mid_x=0.9)], now=0.1, heading=2.0)
    assert not held.recomputed
    assert held.active[0][1].lateral == pytest.approx(0.0)
    assert tracker.active["car"].smoothed_side == pytest.approx(0.1)

    turned = tracker.update([_hazard(mid_x=0.9)], now=0.15, heading=10.0)
    assert turned.recomputed
    assert turned.active[0][1].lateral == pytest.approx(0.175)


def test_heading_wraparound_counts_as_small_turn():
    tracker = HazardLifecycleTracker()
    tracker.update([_hazard()], now=0.0, heading=358.0)

    assert not tracker.should_recompute(0.1, 2.0)
    assert tracker.should_recompute(0.1, 10.0)
    assert tracker.should_recompute(0.2, None)


def test_only_top_hazards_are_tracked_in_order():
    tracker = HazardLifecycleTracker()
    fused = [
        _hazard("car", severity=94.0),
        _hazard("bus", severity=90.0),
        _hazard("dog", severity=50.0),
        _hazard("person", severity=40.0),
    ]

    update = tracker.update(fused, now=0.0)

    assert [h.id for h, _ in update.active] == ["car", "bus", "dog"]
    assert "person" not in tracker.active


def test_reset_clears_entries():
    tracker = HazardLifecycleTracker()
    tracker.update([_hazard()], now=0.0)
    tracker.reset()

    assert tracker.active == {}
    assert tracker.update([_hazard()], now=0.1).added == ["car"]
