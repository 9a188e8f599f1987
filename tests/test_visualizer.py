import numpy as np

from detection.detection import Detection
from visualization.visualizer import Visualizer


def _frame():
    return np.zeros((100, 200, 3), dtype=np.uint8)


def test_from_config_turns_every_toggle_on_by_default():
    visualizer = Visualizer.from_config({})

    assert visualizer.show_detections
    assert visualizer.show_ids
    assert visualizer.show_placements
    assert visualizer.show_cone
    assert visualizer.cone_degrees == 60.0


def test_from_config_reads_toggles():
    visualizer = Visualizer.from_config({
        "visualization": {"show_detections": False, "show_cone": False},
        "filtering": {"forward_cone_degrees": 90.0},
    })

    assert not visualizer.show_detections
    assert not visualizer.show_cone
    assert visualizer.cone_degrees == 90.0


def test_draw_detections_respects_toggle():
    detections = [Detection(label="car", bbox=(0.25, 0.25, 0.5, 0.5), confidence=0.9)]

    drawn = Visualizer().draw_detections(_frame(), detections)
    hidden = Visualizer(show_detections=False).draw_detections(_frame(), detections)

    assert drawn.any()
    assert not hidden.any()
