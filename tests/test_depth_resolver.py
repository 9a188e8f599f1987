import numpy as np
import pytest

from depth.depth_resolver import DepthResolver

CENTER_BOX = (0.4, 0.4, 0.2, 0.2)


def test_heuristic_used_without_depth_data():
    resolver = DepthResolver()

    assert resolver.distance(CENTER_BOX, "person") == pytest.approx(6.0)
    assert resolver.distance(CENTER_BOX, "car") == pytest.approx(15.0)
    assert resolver.distance(CENTER_BOX, "dog") == pytest.approx(4.0)
    assert resolver.distance(CENTER_BOX, "stop_sign") == pytest.approx(10.0)


def test_heuristic_floors_tiny_boxes():
    resolver = DepthResolver()

    assert resolver.distance((0.5, 0.5, 0.01, 0.01), "car") == pytest.approx(60.0)


def test_sensor_depth_takes_priority():
    resolver = DepthResolver(estimator=lambda image: np.full((10, 10), 9.0))
    resolver.update(depth_map=np.full((10, 10), 3.0), image=np.zeros((10, 10, 3)))

    assert resolver.distance(CENTER_BOX, "car") == pytest.approx(3.0)


def test_invalid_sensor_sample_falls_through():
    depth_map = np.full((10, 10), 3.0)
    depth_map[5, 5] = np.nan
    resolver = DepthResolver()
    resolver.update(depth_map=depth_map)

    assert resolver.distance(CENTER_BOX, "person") == pytest.approx(6.0)

    depth_map[5, 5] = 0.0
    resolver.update(depth_map=depth_map)
    assert resolver.distance(CENTER_BOX, "person") == pytest.approx(6.0)


def test_sample_outside_map_falls_through():
    resolver = DepthResolver()
    resolver.update(depth_map=np.full((10, 10), 3.0))

    assert resolver.distance((1.1, 0.4, 0.2, 0.2), "person") == pytest.approx(6.0)


def test_monocular_estimator_runs_once_per_image():
    calls = []

    def estimator(image):
        calls.append(image.shape)
        return np.full(image.shape[:2], 7.5)

    resolver = DepthResolver(estimator=estimator)
    resolver.update(image=np.zeros((20, 20, 3)))

    assert resolver.distance(CENTER_BOX, "car") == pytest.approx(7.5)
    assert resolver.distance((0.1, 0.1, 0.2, 0.2), "dog") == pytest.approx(7.5)
    assert len(calls) == 1


def test_failing_estimator_falls_back_to_heuristic():
    def estimator(image):
        raise RuntimeError("model unavailable")

    resolver = DepthResolver(estimator=estimator)
    resolver.update(image=np.zeros((20, 20, 3)))

    assert resolver.distance(CENTER_BOX, "person") == pytest.approx(6.0)


def test_no_heuristic_and_no_data_gives_none():
    resolver = DepthResolver(use_heuristic=False)

    assert resolver.distance(CENTER_BOX, "car") is None
    assert DepthResolver().distance((np.nan, 0.4, 0.2, 0.2), "car") is None


def test_update_copies_buffers():
    depth_map = np.full((10, 10), 3.0)
    resolver = DepthResolver()
    resolver.update(depth_map=depth_map)
    depth_map[:] = 8.0

    assert resolver.distance(CENTER_BOX, "car") == pytest.approx(3.0)
