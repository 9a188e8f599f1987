import pytest

from detection.detection import Detection
from scoring.severity import SeverityScorer


def _detection(label, distance=None):
    return Detection(label=label, bbox=(0.4, 0.4, 0.2, 0.2), distance=distance)


def test_car_at_five_meters():
    scorer = SeverityScorer()

    ranked = scorer.rank([_detection("car", 5.0)])

    assert ranked[0].severity == pytest.approx(94.0)
    assert ranked[0].explanation == "Vehicle ahead"


def test_unknown_distance_gets_flat_boost():
    scorer = SeverityScorer()

    assert scorer.severity(_detection("person")) == pytest.approx(40.0)
    assert scorer.severity(_detection("crowd")) == pytest.approx(48.0)


def test_distance_beyond_range_adds_nothing():
    scorer = SeverityScorer()

    assert scorer.severity(_detection("person", 30.0)) == pytest.approx(30.0)
    assert scorer.severity(_detection("person", 0.0001)) == pytest.approx(60.0, abs=0.01)


def test_explanations():
    scorer = SeverityScorer()

    assert scorer.explain("bicycle") == "Bike approaching"
    assert scorer.explain("motorcycle") == "Bike approaching"
    assert scorer.explain("dog") == "Dog near path"
    assert scorer.explain("crowd") == "Crowded path"
    assert scorer.explain("person") == "Person ahead"
    assert scorer.explain("stop_sign") == "Possible hazard"


def test_unscored_class_only_gets_distance_boost():
    scorer = SeverityScorer()

    assert scorer.severity(_detection("stop_sign")) == pytest.approx(10.0)


def test_rank_sorts_truncates_and_keeps_tie_order():
    scorer = SeverityScorer()
    detections = [
        _detection("person", 10.0),
        _detection("dog", 10.0),
        _detection("person", 10.0),
        _detection("car", 10.0),
        _detection("bus", 10.0),
    ]

    ranked = scorer.rank(detections)

    assert len(ranked) == 3
    assert [h.label for h in ranked] == ["car", "bus", "dog"]
    assert [h.order for h in ranked] == [3, 4, 1]
    severities = [h.severity for h in ranked]
    assert severities == sorted(severities, reverse=True)


def test_rank_tie_between_equal_classes_keeps_input_order():
    scorer = SeverityScorer(max_hazards=2)
    first = _detection("person", 4.0)
    second = Detection(label="person", bbox=(0.1, 0.1, 0.2, 0.2), distance=4.0)

    ranked = scorer.rank([first, second])

    assert [h.detection for h in ranked] == [first, second]
