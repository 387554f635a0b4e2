from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import numpy as np
import structlog
from scipy.spatial import QhullError, Voronoi

from .datastructures import DiagramResult, VoronoiEdge
from .geometry import Point, Rect

logger = structlog.get_logger()

# relative tolerance for treating the site set as collinear
COLLINEAR_TOLERANCE = 1e-12


def _validate_sites(sites) -> np.ndarray:
    sites = np.asarray(sites, dtype=np.float64)
    if sites.size == 0:
        raise ValueError("At least one site required")
    if sites.ndim != 2 or sites.shape[1] != 2:
        raise ValueError("sites must be (N,2)")
    if not np.all(np.isfinite(sites)):
        raise ValueError("site coordinates must be finite")
    return sites


def _clipping_bounds(sites: np.ndarray, bounds, margin: float) -> Rect:
    """
    Square box around the sites, enlarged by margin so that every site lies
    strictly inside, united with the requested bounds.
    """
    lo = sites.min(axis=0)
    hi = sites.max(axis=0)
    d = float((hi - lo).max()) * margin
    if d == 0.0:
        d = 1.0

    cx, cy = (float(c) for c in (lo + hi) / 2.0)
    rect = Rect(cx - d / 2.0, cy - d / 2.0, cx + d / 2.0, cy + d / 2.0)

    if bounds is not None:
        requested = Rect.coerce(bounds)
        if requested.width > 0.0 and requested.height > 0.0:
            rect = rect.union(requested)
    return rect


def _distinct_sites(sites: np.ndarray):
    """
    Merge coincident sites.

    Returns (distinct_index, canonical): the input indices of the first
    occurrence of each distinct site in input order, and for every input site
    the index of its first occurrence.
    """
    _, first_index, inverse = np.unique(sites, axis=0, return_index=True, return_inverse=True)
    inverse = inverse.reshape(-1)
    canonical = first_index[inverse]
    distinct_index = np.sort(first_index)
    return distinct_index, canonical


def _is_collinear(points: np.ndarray) -> bool:
    if len(points) < 3:
        return True
    rel = points - points[0]
    norms = np.hypot(rel[:, 0], rel[:, 1])
    far = rel[int(np.argmax(norms))]
    cross = rel[:, 0] * far[1] - rel[:, 1] * far[0]
    return bool(np.all(np.abs(cross) <= COLLINEAR_TOLERANCE * float(far @ far)))


def _clip_ridge(bounds: Rect, start, end, direction) -> Optional[Tuple[Point, Point]]:
    """
    Clip a ridge to bounds.

    end is None for a ray from start along direction. Unclipped ends keep
    their exact input coordinates; clipped ends are snapped onto the border.
    """
    start = np.asarray(start, dtype=np.float64)
    direction = np.asarray(direction, dtype=np.float64)
    clip = bounds.clip_parameters(start, direction, 0.0, np.inf if end is None else 1.0)
    if clip is None:
        return None
    t0, t1, enter, exit_ = clip
    if not t0 < t1:
        return None

    if enter is None:
        p0 = Point(float(start[0]), float(start[1]))
    else:
        p0 = bounds.snap(start + t0 * direction, enter)
    if exit_ is None:
        p1 = Point(float(end[0]), float(end[1]))
    else:
        p1 = bounds.snap(start + t1 * direction, exit_)
    return p0, p1


def _collinear_ridges(points: np.ndarray, bounds: Rect):
    """Parallel bisectors between consecutive sites along a line."""
    rel = points - points[0]
    norms = np.hypot(rel[:, 0], rel[:, 1])
    axis = rel[int(np.argmax(norms))]
    axis = axis / np.hypot(axis[0], axis[1])
    normal = np.array([-axis[1], axis[0]])

    t = rel @ axis
    order = np.argsort(t, kind="stable")

    ridges = []
    for a, b in zip(order[:-1], order[1:]):
        if t[a] == t[b]:
            continue
        midpoint = (points[a] + points[b]) / 2.0
        clip = bounds.clip_parameters(midpoint, normal, -np.inf, np.inf)
        if clip is None:
            continue
        t0, t1, enter, exit_ = clip
        if not t0 < t1:
            continue
        p0 = bounds.snap(midpoint + t0 * normal, enter)
        p1 = bounds.snap(midpoint + t1 * normal, exit_)
        ridges.append((int(a), int(b), p0, p1))
    return ridges


def _weld_map(vertices: np.ndarray, bounds: Rect, weld_decimals: int) -> np.ndarray:
    """Map every Qhull vertex to the first vertex with the same rounded position."""
    scale = max(bounds.width, bounds.height)
    origin = np.array([bounds.min_x, bounds.min_y])
    keys = np.round((vertices - origin) / scale, weld_decimals)

    first: Dict[Tuple[float, float], int] = {}
    mapping = np.empty(len(vertices), dtype=np.int64)
    for i, key in enumerate(map(tuple, keys)):
        mapping[i] = first.setdefault(key, i)
    return mapping


def _voronoi_ridges(points: np.ndarray, bounds: Rect, weld_decimals: int):
    vor = Voronoi(points)
    weld = _weld_map(vor.vertices, bounds, weld_decimals)
    center = points.mean(axis=0)

    ridges = []
    for (a, b), ridge in zip(vor.ridge_points, vor.ridge_vertices):
        finite = [v for v in ridge if v >= 0]
        if not finite:
            continue

        if len(finite) == len(ridge):
            v0, v1 = weld[ridge[0]], weld[ridge[1]]
            if v0 == v1:
                continue
            p0, p1 = vor.vertices[v0], vor.vertices[v1]
            clipped = _clip_ridge(bounds, p0, p1, p1 - p0)
        else:
            # infinite ridge: ray from the finite vertex away from the hull
            origin = vor.vertices[weld[finite[0]]]
            tangent = points[b] - points[a]
            tangent = tangent / np.hypot(tangent[0], tangent[1])
            normal = np.array([-tangent[1], tangent[0]])
            midpoint = (points[a] + points[b]) / 2.0
            direction = np.sign(np.dot(midpoint - center, normal)) * normal
            if not np.any(direction):
                continue
            clipped = _clip_ridge(bounds, origin, None, direction)

        if clipped is not None:
            ridges.append((int(a), int(b), clipped[0], clipped[1]))
    return ridges


def _distinct_ridges(points: np.ndarray, bounds: Rect, weld_decimals: int):
    if len(points) < 2:
        return []
    if _is_collinear(points):
        return _collinear_ridges(points, bounds)
    try:
        return _voronoi_ridges(points, bounds, weld_decimals)
    except QhullError as exc:
        logger.warning("Qhull rejected sites, using collinear bisectors", sites=len(points), error=str(exc))
        return _collinear_ridges(points, bounds)


def compute_diagram(
    sites,
    bounds=None,
    *,
    margin: float = 1.1,
    weld_decimals: int = 9,
) -> DiagramResult:
    """
    Compute the Voronoi diagram of sites, clipped to a rectangle.

    The clipping rectangle contains bounds (when it has positive area) and
    every site strictly inside. Coincident sites are merged; later copies
    take part in no edge and share the region of their first occurrence.
    """
    sites = _validate_sites(sites)
    if not margin > 1.0:
        raise ValueError("margin must be greater than 1")

    rect = _clipping_bounds(sites, bounds, margin)
    distinct_index, canonical = _distinct_sites(sites)
    ridges = _distinct_ridges(sites[distinct_index], rect, weld_decimals)

    vertices: List[List[float]] = []
    vertex_map: Dict[Point, int] = {}

    def get_vertex_index(pt: Point) -> int:
        if pt not in vertex_map:
            vertex_map[pt] = len(vertices)
            vertices.append([pt.x, pt.y])
        return vertex_map[pt]

    edges = []
    seen = set()
    for a, b, p0, p1 in ridges:
        v0 = get_vertex_index(p0)
        v1 = get_vertex_index(p1)
        key = (min(v0, v1), max(v0, v1))
        if v0 == v1 or key in seen:
            continue
        seen.add(key)
        edges.append(VoronoiEdge(int(distinct_index[a]), int(distinct_index[b]), v0, v1))

    vertices_arr = np.array(vertices, dtype=np.float64).reshape(-1, 2)

    logger.debug(
        "Voronoi diagram computed",
        sites=len(sites),
        distinct=len(distinct_index),
        vertices=len(vertices_arr),
        edges=len(edges),
        bounds=rect.bounds,
    )

    return DiagramResult(
        bounds=rect,
        sites=sites.copy(),
        vertices=vertices_arr,
        edges=edges,
        canonical=canonical,
    )


def compute_delaunay(sites) -> np.ndarray:
    """
    Delaunay edges of the distinct sites as (K,2) site index pairs,
    each pair ordered low-high, rows sorted.
    """
    sites = _validate_sites(sites)
    distinct_index, _ = _distinct_sites(sites)
    points = sites[distinct_index]

    if len(points) < 2:
        pairs = np.zeros((0, 2), dtype=np.int64)
    elif _is_collinear(points):
        pairs = _collinear_pairs(points)
    else:
        try:
            pairs = np.asarray(Voronoi(points).ridge_points, dtype=np.int64)
        except QhullError as exc:
            logger.warning("Qhull rejected sites, using collinear neighbours", sites=len(points), error=str(exc))
            pairs = _collinear_pairs(points)

    if len(pairs) == 0:
        return np.zeros((0, 2), dtype=np.int64)
    pairs = np.sort(distinct_index[pairs].reshape(-1, 2), axis=1)
    return np.unique(pairs, axis=0)


def _collinear_pairs(points: np.ndarray) -> np.ndarray:
    rel = points - points[0]
    norms = np.hypot(rel[:, 0], rel[:, 1])
    t = rel @ rel[int(np.argmax(norms))]
    order = np.argsort(t, kind="stable")
    return np.column_stack([order[:-1], order[1:]]).astype(np.int64)
