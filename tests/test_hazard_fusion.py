import pytest

from detection.detection import Detection
from fusion.hazard_fusion import HazardFusion, hazard_id
from scoring.severity import ScoredHazard
from tracking.velocity_tracker import VelocityResult


def _scored(label, severity, explanation, order=0):
    detection = Detection(label=label, bbox=(0.4, 0.4, 0.2, 0.2), distance=5.0)
    return ScoredHazard(label=label, severity=severity, explanation=explanation, detection=detection, order=order)


def _velocity(label, dx=0.0, approach=0.0, threshold=0.015):
    return VelocityResult(label=label, dx=dx, dy=-approach, approach_speed=approach,
                          is_approaching=approach > threshold)


def test_backend_confirmation_boosts():
    fused = HazardFusion().fuse([_scored("car", 94.0, "Vehicle ahead")], frozenset({"car"}), {})

    assert fused[0].severity == pytest.approx(102.0)
    assert fused[0].explanation == "Vehicle ahead — confirmed by backend"
    assert fused[0].distance == 5.0


def test_approaching_boost_replaces_crossing_boost():
    fusion = HazardFusion()

    approaching = fusion.fuse([_scored("car", 94.0, "Vehicle ahead")], frozenset(),
                              {"car": _velocity("car", dx=0.5, approach=0.2)})
    crossing = fusion.fuse([_scored("car", 94.0, "Vehicle ahead")], frozenset(),
                           {"car": _velocity("car", dx=-0.05)})
    still = fusion.fuse([_scored("car", 94.0, "Vehicle ahead")], frozenset(),
                        {"car": _velocity("car", dx=0.01)})

    assert approaching[0].severity == pytest.approx(134.0)
    assert approaching[0].explanation == "Vehicle ahead — approaching fast"
    assert crossing[0].severity == pytest.approx(99.0)
    assert crossing[0].explanation == "Vehicle ahead — moving across path"
    assert still[0].severity == pytest.approx(94.0)
    assert still[0].explanation == "Vehicle ahead"


def test_backend_and_approach_suffixes_stack_in_order():
    fused = HazardFusion().fuse([_scored("bus", 80.0, "Vehicle ahead")], frozenset({"bus"}),
                                {"bus": _velocity("bus", approach=0.1)})

    assert fused[0].severity == pytest.approx(128.0)
    assert fused[0].explanation == "Vehicle ahead — confirmed by backend — approaching fast"


def test_output_is_resorted_after_boosts():
    ranked = [_scored("car", 70.0, "Vehicle ahead", 0), _scored("person", 40.0, "Person ahead", 1)]

    fused = HazardFusion().fuse(ranked, frozenset(), {"person": _velocity("person", approach=0.3)})

    assert [h.label for h in fused] == ["person", "car"]
    assert [h.severity for h in fused] == pytest.approx([80.0, 70.0])


def test_backend_only_labels_create_nothing():
    fused = HazardFusion().fuse([_scored("car", 70.0, "Vehicle ahead")], frozenset({"dog"}), {})

    assert [h.label for h in fused] == ["car"]


def test_duplicate_labels_get_distinct_ids():
    ranked = [_scored("person", 48.0, "Person ahead", 0), _scored("person", 48.0, "Person ahead", 1)]

    fused = HazardFusion().fuse(ranked, frozenset(), {})

    assert [h.id for h in fused] == ["person", "person-2"]
    assert hazard_id("dog", 1) == "dog"
    assert hazard_id("dog", 3) == "dog-3"
