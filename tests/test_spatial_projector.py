import math

import pytest

from projection.spatial_projector import Placement, SpatialProjector


def test_target_side_is_offset_from_center_and_clamped():
    projector = SpatialProjector()

    assert projector.target_side((0.4, 0.4, 0.2, 0.2)) == pytest.approx(0.0)
    assert projector.target_side((0.7, 0.4, 0.2, 0.2)) == pytest.approx(0.3)
    assert projector.target_side((-0.4, 0.4, 0.2, 0.2)) == pytest.approx(-0.5)
    assert projector.target_side((1.1, 0.4, 0.2, 0.2)) == pytest.approx(0.5)


def test_target_distance_clamps_and_defaults():
    projector = SpatialProjector()

    assert projector.target_distance(None) == 2.0
    assert projector.target_distance(math.nan) == 2.0
    assert projector.target_distance(0.2) == 1.0
    assert projector.target_distance(3.0) == 3.0
    assert projector.target_distance(10.0) == 4.0


def test_project_uses_fixed_forward_and_vertical_offsets():
    placement = SpatialProjector().project(side=0.8, distance=3.5)

    assert placement == Placement(forward=2.0, lateral=0.5, vertical=-0.5)
    assert placement.to_dict() == {"forward": 2.0, "lateral": 0.5, "vertical": -0.5}
