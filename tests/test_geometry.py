import pytest

from utils.geometry import angular_difference, calculate_iou, clamp01, non_max_suppression


def test_calculate_iou():
    assert calculate_iou((0.1, 0.1, 0.2, 0.2), (0.1, 0.1, 0.2, 0.2)) == pytest.approx(1.0)
    assert calculate_iou((0.0, 0.0, 0.1, 0.1), (0.5, 0.5, 0.1, 0.1)) == 0.0
    assert calculate_iou((0.0, 0.0, 0.2, 0.2), (0.1, 0.0, 0.2, 0.2)) == pytest.approx(1 / 3)
    assert calculate_iou((0.0, 0.0, 0.0, 0.2), (0.0, 0.0, 0.2, 0.2)) == 0.0


def test_non_max_suppression_is_per_label():
    boxes = [(0.1, 0.1, 0.2, 0.2), (0.11, 0.1, 0.2, 0.2), (0.1, 0.1, 0.2, 0.2)]
    scores = [0.6, 0.9, 0.5]
    labels = ["car", "car", "person"]

    kept = non_max_suppression(boxes, scores, labels, iou_threshold=0.45)

    assert kept == [1, 2]


def test_angular_difference_wraps():
    assert angular_difference(350, 10) == pytest.approx(20)
    assert angular_difference(10, 350) == pytest.approx(20)
    assert angular_difference(0, 180) == pytest.approx(180)
    assert angular_difference(90, 90) == 0


def test_clamp01():
    assert clamp01(-0.5) == 0.0
    assert clamp01(0.25) == 0.25
    assert clamp01(2.0) == 1.0
