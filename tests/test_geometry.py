import math

import pytest

from follower.core.errors import DegenerateGeometry
from follower.core.geometry import BoundingBox, iou


def test_area_and_center():
    box = BoundingBox(10, 20, 30, 60)
    assert box.width == 20
    assert box.height == 40
    assert box.area == 800
    assert box.center == (20.0, 40.0)
    assert not box.is_degenerate


def test_inverted_edges_are_accepted_with_zero_area():
    box = BoundingBox(30, 0, 10, 10)
    assert box.area == 0.0
    assert box.is_degenerate


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_non_finite_coordinates_are_rejected(bad):
    with pytest.raises(DegenerateGeometry):
        BoundingBox(0, 0, bad, 10)


def test_degenerate_geometry_is_a_value_error():
    with pytest.raises(ValueError):
        BoundingBox(math.nan, 0, 1, 1)


def test_iou_identical_boxes_is_one():
    box = BoundingBox(0, 0, 10, 10)
    assert box.iou(BoundingBox(0, 0, 10, 10)) == 1.0


def test_iou_is_symmetric_and_bounded():
    a = BoundingBox(0, 0, 10, 10)
    b = BoundingBox(5, 5, 15, 15)
    assert a.iou(b) == b.iou(a)
    # inter 25, union 175
    assert a.iou(b) == pytest.approx(25.0 / 175.0)
    assert 0.0 <= a.iou(b) <= 1.0


def test_iou_non_overlapping_and_touching_is_zero():
    a = BoundingBox(0, 0, 10, 10)
    assert a.iou(BoundingBox(20, 20, 30, 30)) == 0.0
    assert a.iou(BoundingBox(10, 0, 20, 10)) == 0.0


def test_iou_zero_area_boxes_is_zero():
    assert iou(BoundingBox(0, 0, 0, 0), BoundingBox(0, 0, 0, 0)) == 0.0
    assert iou(BoundingBox(5, 5, 5, 5), BoundingBox(0, 0, 10, 10)) == 0.0


def test_from_normalized_scales_to_pixels():
    box = BoundingBox.from_normalized(0.1, 0.1, 0.3, 0.3, 640, 480)
    assert box.as_tuple() == pytest.approx((64.0, 48.0, 192.0, 144.0))


def test_clamp_to_frame_returns_new_clipped_box():
    box = BoundingBox(-10, -5, 700, 500)
    clamped = box.clamp_to_frame(640, 480)
    assert clamped.as_tuple() == (0.0, 0.0, 640.0, 480.0)
    assert box.as_tuple() == (-10.0, -5.0, 700.0, 500.0)


def test_xywh_round_trip_and_int_tuple():
    box = BoundingBox.from_xywh(1.5, 2.5, 10, 20)
    assert box.to_xywh() == (1.5, 2.5, 10.0, 20.0)
    assert box.as_int_tuple() == (1, 2, 11, 22)


def test_boxes_are_immutable():
    box = BoundingBox(0, 0, 1, 1)
    with pytest.raises(AttributeError):
        box.x1 = 5  # type: ignore[misc]
