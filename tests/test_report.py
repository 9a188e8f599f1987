import pytest

from engine.hazard_engine import HazardEngine
from utils.report import HazardReport


def _item(label, distance, y=0.4):
    return {"label": label, "bbox": [0.4, y, 0.2, 0.2], "distance": distance}


def test_record_tick_accumulates_label_statistics():
    engine = HazardEngine()
    report = HazardReport(video_path="walk.mp4", total_frames=0, processing_fps=0.0)

    report.record_tick(engine.process_frame([_item("car", 5.0, y=0.5)], now=0.0))
    report.record_tick(engine.process_frame([_item("car", 5.0, y=0.4)], now=0.5))
    report.record_tick(engine.tick(0.6))
    report.record_tick(engine.process_frame([], now=0.9))

    car = report.labels["car"]
    assert report.fresh_ticks == 3
    assert car.sightings == 3
    assert car.max_severity == pytest.approx(134.0)
    assert car.approaching_count == 2
    assert car.evictions == 1
    assert report.final_hazards == []


def test_numbered_ids_are_counted_under_their_label():
    engine = HazardEngine()
    report = HazardReport(video_path="walk.mp4", total_frames=0, processing_fps=0.0)

    report.record_tick(engine.process_frame([_item("bus", 5.0), _item("bus", 6.0)], now=0.0))
    report.record_tick(engine.process_frame([], now=0.5))

    assert report.labels["bus"].evictions == 2


def test_to_dict_includes_optional_fields_when_set():
    report = HazardReport(video_path="walk.mp4", total_frames=10, processing_fps=5.0,
                          success=False, error="boom")

    data = report.to_dict()

    assert data["error"] == "boom"
    assert data["success"] is False
    assert "output_path" not in data
