import math

import numpy as np
import pytest

from planar2d.geometry import (
    Border, Line, LineLocation, LineRelation, Point, Rect,
    distance_degrees, distance_radians, intersect_lines, normalize_degrees, normalize_radians,
)
from planar2d.polygon import polygon_area


def test_point_cross_product_sign():
    o = Point(0.0, 0.0)
    assert o.cross_product_length((1.0, 0.0), (0.0, 1.0)) == 1.0
    assert o.cross_product_length((0.0, 1.0), (1.0, 0.0)) == -1.0
    assert o.is_collinear((1.0, 1.0), (3.0, 3.0))


def test_point_length_and_distance():
    p = Point(3.0, 4.0)
    assert p.length == 5.0
    assert p.distance((0.0, 0.0)) == 5.0
    assert math.isclose(Point(0.0, 1.0).angle, math.pi / 2)


def test_line_locate():
    line = Line(Point(0.0, 0.0), Point(2.0, 0.0))
    assert line.locate((1.0, 1.0)) == LineLocation.LEFT
    assert line.locate((1.0, -1.0)) == LineLocation.RIGHT
    assert line.locate((1.0, 0.0)) == LineLocation.BETWEEN
    assert line.locate((-1.0, 0.0)) == LineLocation.BEFORE
    assert line.locate((3.0, 0.0)) == LineLocation.AFTER
    assert line.locate((0.0, 0.0)) == LineLocation.START
    assert line.locate((2.0, 0.0)) == LineLocation.END


def test_line_locate_with_epsilon():
    line = Line(Point(0.0, 0.0), Point(2.0, 0.0))
    assert line.locate((1.0, 0.05)) == LineLocation.LEFT
    assert line.locate((1.0, 0.05), epsilon=0.1) == LineLocation.BETWEEN
    assert line.locate((2.05, -0.05), epsilon=0.1) == LineLocation.END

    with pytest.raises(ValueError):
        line.locate((1.0, 0.0), epsilon=-1.0)


def test_line_measures():
    line = Line.from_coords(0, 0, 4, 2)
    assert line.vector == (4.0, 2.0)
    assert line.slope == 0.5
    assert line.inverse_slope == 2.0
    assert line.find_y(2.0) == 1.0
    assert line.find_x(1.0) == 2.0
    assert line.reverse() == Line.from_coords(4, 2, 0, 0)
    assert line.distance_squared((0.0, 3.0)) == pytest.approx(7.2)
    assert line.distance_squared((-3.0, 0.0)) == 9.0


def test_intersect_crossing_lines():
    result = intersect_lines((0, 0), (2, 2), (0, 2), (2, 0))
    assert result.relation == LineRelation.DIVERGENT
    assert result.shared == (1.0, 1.0)
    assert result.first == LineLocation.BETWEEN
    assert result.second == LineLocation.BETWEEN
    assert result.exists_between


def test_intersect_outside_segments():
    result = Line.from_coords(0, 0, 1, 0).intersect(Line.from_coords(3, -1, 3, 1))
    assert result.exists
    assert not result.exists_between
    assert result.first == LineLocation.AFTER
    assert result.shared == (3.0, 0.0)


def test_intersect_parallel_and_collinear():
    parallel = intersect_lines((0, 0), (1, 0), (0, 1), (1, 1))
    assert parallel.relation == LineRelation.PARALLEL
    assert parallel.shared is None

    collinear = intersect_lines((0, 0), (1, 0), (2, 0), (3, 0))
    assert collinear.relation == LineRelation.COLLINEAR
    assert collinear.first == LineLocation.AFTER
    assert collinear.second == LineLocation.BEFORE


def test_rect_rejects_invalid_bounds():
    with pytest.raises(ValueError):
        Rect(1.0, 0.0, 0.0, 1.0)
    with pytest.raises(ValueError):
        Rect(0.0, 0.0, 1.0, float("nan"))
    with pytest.raises(ValueError):
        Rect.coerce((0.0, 0.0, 1.0))


def test_rect_containment():
    rect = Rect(0.0, 0.0, 10.0, 5.0)
    assert rect.width == 10.0 and rect.height == 5.0
    assert rect.contains((10.0, 5.0))
    assert not rect.contains_open((10.0, 5.0))
    assert rect.contains_open((1.0, 1.0))
    assert rect.contains_rect(Rect(1.0, 1.0, 2.0, 2.0))
    assert rect.corners[0] == (0.0, 0.0)
    assert rect.corners[2] == (10.0, 5.0)


def test_rect_union_and_from_points():
    a = Rect(0.0, 0.0, 1.0, 1.0)
    b = Rect(-1.0, 0.5, 0.5, 3.0)
    assert a.union(b).bounds == (-1.0, 0.0, 1.0, 3.0)
    assert Rect.from_points([[2, 3], [-1, 7], [0, 0]]).bounds == (-1.0, 0.0, 2.0, 7.0)


def test_rect_borders_of():
    rect = Rect(0.0, 0.0, 10.0, 10.0)
    assert rect.borders_of((0.0, 0.0)) == {Border.LEFT, Border.BOTTOM}
    assert rect.borders_of((5.0, 10.0)) == {Border.TOP}
    assert rect.borders_of((5.0, 5.0)) == set()


def test_rect_intersect_line():
    rect = Rect(0.0, 0.0, 10.0, 10.0)
    clipped = rect.intersect_line(Line.from_coords(-5, 5, 15, 5))
    assert clipped == Line.from_coords(0, 5, 10, 5)

    inside = Line.from_coords(1, 1, 2, 2)
    assert rect.intersect_line(inside) == inside

    assert rect.intersect_line(Line.from_coords(-5, -5, -1, 20)) is None
    assert not rect.intersects_line(Line.from_coords(11, 0, 11, 10))


def test_rect_intersect_polygon():
    rect = Rect(0.0, 0.0, 10.0, 10.0)
    ring = rect.intersect_polygon([[-5, -5], [15, -5], [15, 15], [-5, 15]])
    assert len(ring) == 4
    assert set(map(tuple, ring)) == {(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)}

    assert len(rect.intersect_polygon([[20, 20], [30, 20], [30, 30]])) == 0


def test_rect_intersect_polygon_is_counter_clockwise():
    rect = Rect(-1.0, -1.0, 11.0, 1.0)
    clockwise = [[0, 0], [0, 8], [10, 8], [10, 0]]
    ring = rect.intersect_polygon(clockwise)
    assert polygon_area(ring) == pytest.approx(10.0)


def test_rect_snap_moves_near_corner_points_onto_corner():
    rect = Rect(-0.20000000000000018, -0.20000000000000018, 4.2, 4.2)

    p = rect.snap((-0.2, -0.19999999999999996), Border.LEFT)
    assert p == Point(rect.min_x, rect.min_y)
    assert rect.borders_of(p) == {Border.LEFT, Border.BOTTOM}

    assert rect.snap((4.2 - 1e-14, 3.0), Border.TOP) == Point(4.2, 4.2)
    assert rect.snap((2.0, -5.0), Border.BOTTOM) == Point(2.0, rect.min_y)
    assert rect.snap((9.0, 1e-3), Border.RIGHT) == Point(4.2, 1e-3)


def test_angle_normalization():
    assert normalize_degrees(-90.0) == 270.0
    assert normalize_degrees(720.0) == 0.0
    assert distance_degrees(350.0, 10.0) == 20.0
    assert distance_degrees(10.0, 350.0) == -20.0
    assert math.isclose(normalize_radians(-math.pi / 2), 3 * math.pi / 2)
    assert math.isclose(distance_radians(0.0, 1.5 * math.pi), -math.pi / 2)
    assert np.isclose(distance_radians(0.0, math.pi), math.pi)
