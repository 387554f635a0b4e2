import numpy as np
import pytest

from planar2d.geometry import Point
from planar2d.mapping import to_delaunay_subdivision, to_voronoi_subdivision
from planar2d.polygon import polygon_area
from planar2d.sampling import sample_points_in_rect
from planar2d.voronoi import compute_diagram


def test_square_sites_map_round_trip():
    d = compute_diagram([(0, 0), (1, 0), (0, 1), (1, 1)], (-1, -1, 2, 2))
    division, site_map = to_voronoi_subdivision(d)
    division.validate()

    assert len(division.faces) == 5
    assert site_map.source is division
    assert site_map.target is d
    for i in range(4):
        face = site_map.face_of(i)
        assert face.key != 0
        assert site_map.site_of(face) == i
        assert site_map.site_of(face.key) == i


def test_two_sites_voronoi_subdivision():
    d = compute_diagram([(0, 0), (10, 0)], (-5, -5, 20, 10))
    division, site_map = to_voronoi_subdivision(d)
    division.validate()

    assert len(division.faces) == 3
    assert division.find_face((0.0, 0.0)) == site_map.face_of(0)
    assert division.find_face((10.0, 0.0)) == site_map.face_of(1)
    assert division.face_neighbors(site_map.face_of(0).key) == [0, site_map.face_of(1).key]


def test_single_site_voronoi_subdivision():
    d = compute_diagram([(1.0, 1.0)], (0, 0, 2, 2))
    division, site_map = to_voronoi_subdivision(d)
    assert len(division.faces) == 2
    assert site_map.face_of(0).key == 1
    assert polygon_area(division.face_polygon(1)) == pytest.approx(4.0)


def test_duplicate_sites_map_to_one_face():
    d = compute_diagram([(0, 0), (10, 0), (0, 0)], (-5, -5, 20, 10))
    division, site_map = to_voronoi_subdivision(d)

    assert len(division.faces) == 3
    assert site_map.face_of(2) == site_map.face_of(0)
    assert site_map.site_of(site_map.face_of(2)) == 0


def test_map_rejects_invalid_lookups():
    d = compute_diagram([(0, 0), (10, 0)], (-5, -5, 20, 10))
    _, site_map = to_voronoi_subdivision(d)

    with pytest.raises(ValueError):
        site_map.site_of(0)
    with pytest.raises(ValueError):
        site_map.site_of(3)
    with pytest.raises(ValueError):
        site_map.face_of(2)


@pytest.mark.parametrize("seed", [3, 8, 13])
def test_random_voronoi_subdivision(seed):
    rng = np.random.default_rng(seed)
    sites = sample_points_in_rect((0, 0, 100, 100), n_points=30, rng=rng)
    d = compute_diagram(sites, (0, 0, 100, 100))

    division, site_map = to_voronoi_subdivision(d)
    division.validate()
    assert len(division.faces) == len(sites) + 1

    for i in range(len(sites)):
        face = site_map.face_of(i)
        assert site_map.site_of(face) == i
        assert division.find_face(sites[i]) == face

    # sites separated by a Voronoi edge own neighbouring faces
    for e in d.edges:
        a = site_map.face_of(e.site1).key
        b = site_map.face_of(e.site2).key
        assert b in division.face_neighbors(a)


def test_delaunay_subdivision_of_triangle():
    d = compute_diagram([(0, 0), (10, 0), (5, 8)])
    division = to_delaunay_subdivision(d)
    division.validate()

    assert len(division.to_lines()) == 3
    assert len(division.faces) == 2
    assert division.find_face((5.0, 2.0)).key == 1
    assert division.vertex_regions == {}


def test_delaunay_subdivision_with_bounds_and_regions():
    d = compute_diagram([(0, 0), (10, 0), (5, 8)])

    division = to_delaunay_subdivision(d, (-1, -1, 11, 9), add_regions=True)
    assert len(division.to_lines()) == 3
    assert set(division.vertex_regions) == {Point(0.0, 0.0), Point(10.0, 0.0), Point(5.0, 8.0)}

    division = to_delaunay_subdivision(d, (-1, -1, 11, 1), add_regions=True)
    assert len(division.to_lines()) == 1
    assert len(division.faces) == 1
    assert set(division.vertex_regions) == {Point(0.0, 0.0), Point(10.0, 0.0)}
    for region in division.vertex_regions.values():
        assert np.all(region[:, 1] <= 1.0)
        assert polygon_area(region) > 0


def test_delaunay_subdivision_without_bounds_keeps_full_regions():
    d = compute_diagram([(0, 0), (10, 0), (5, 8)])
    division = to_delaunay_subdivision(d, add_regions=True)
    assert len(division.vertex_regions) == 3
    total = sum(polygon_area(r) for r in division.vertex_regions.values())
    assert total == pytest.approx(d.bounds.width * d.bounds.height)
