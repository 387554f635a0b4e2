import numpy as np
import pytest

from planar2d.datastructures import DiagramResult, VoronoiEdge
from planar2d.geometry import Border, Point, Rect
from planar2d.polygon import polygon_area
from planar2d.regions import Corner, build_regions


def _result(sites, vertices, edges, bounds=(0.0, 0.0, 10.0, 10.0)):
    sites = np.array(sites, dtype=np.float64)
    return DiagramResult(
        bounds=Rect(*bounds),
        sites=sites,
        vertices=np.array(vertices, dtype=np.float64),
        edges=edges,
        canonical=np.arange(len(sites)),
    )


def _points(region):
    return {(float(x), float(y)) for x, y in region}


def test_corner_points():
    rect = Rect(0.0, 1.0, 2.0, 3.0)
    assert Corner.BOTTOM_LEFT.point(rect) == Point(0.0, 1.0)
    assert Corner.TOP_RIGHT.point(rect) == Point(2.0, 3.0)
    assert Corner.between(Border.LEFT, Border.TOP) == Corner.TOP_LEFT
    assert Corner.between(Border.LEFT, Border.RIGHT) is None


def test_closing_through_one_and_three_corners():
    result = _result(
        sites=[(1, 1), (5, 5)],
        vertices=[(6, 0), (0, 6)],
        edges=[VoronoiEdge(0, 1, 0, 1)],
    )
    small, large = build_regions(result)

    assert _points(small) == {(6.0, 0.0), (0.0, 6.0), (0.0, 0.0)}
    assert polygon_area(small) == pytest.approx(18.0)

    assert _points(large) == {(6.0, 0.0), (0.0, 6.0), (0.0, 10.0), (10.0, 10.0), (10.0, 0.0)}
    assert polygon_area(large) == pytest.approx(82.0)


def test_bridging_fragments_through_corners():
    # centre region cut by two diagonals at opposite corners
    result = _result(
        sites=[(5, 5), (1, 1), (9, 9)],
        vertices=[(0, 4), (4, 0), (6, 10), (10, 6)],
        edges=[VoronoiEdge(0, 1, 0, 1), VoronoiEdge(0, 2, 2, 3)],
    )
    centre, low, high = build_regions(result)

    assert len(centre) == 6
    assert _points(centre) == {(0.0, 4.0), (4.0, 0.0), (10.0, 0.0), (10.0, 6.0), (6.0, 10.0), (0.0, 10.0)}
    assert polygon_area(centre) == pytest.approx(84.0)
    assert polygon_area(low) == pytest.approx(8.0)
    assert polygon_area(high) == pytest.approx(8.0)


def test_closed_interior_region_is_kept():
    result = _result(
        sites=[(5, 5), (1, 1)],
        vertices=[(4, 4), (6, 4), (6, 6), (4, 6)],
        edges=[
            VoronoiEdge(0, 1, 2, 3),
            VoronoiEdge(0, 1, 0, 1),
            VoronoiEdge(0, 1, 3, 0),
            VoronoiEdge(0, 1, 1, 2),
        ],
    )
    region = build_regions(result)[0]
    assert len(region) == 4
    assert polygon_area(region) == pytest.approx(4.0)


def test_regions_are_counter_clockwise():
    result = _result(
        sites=[(2, 5), (8, 5)],
        vertices=[(5, 10), (5, 0)],
        edges=[VoronoiEdge(1, 0, 0, 1)],
    )
    for region in build_regions(result):
        assert polygon_area(region) == pytest.approx(50.0)


def test_unbridgeable_fragments_fail_loudly():
    result = _result(
        sites=[(5, 5), (1, 1)],
        vertices=[(3, 0), (3, 10), (7, 5), (8, 5)],
        edges=[VoronoiEdge(0, 1, 0, 1), VoronoiEdge(0, 1, 2, 3)],
    )
    with pytest.raises(AssertionError, match="bridge"):
        build_regions(result)
