from __future__ import annotations

from typing import List

import numpy as np
from scipy.spatial import ConvexHull, QhullError

from .geometry import Line, LineLocation, Point, PolygonLocation, as_points


def _check_polygon(polygon) -> List[Point]:
    pts = as_points(polygon)
    if len(pts) < 3:
        raise ValueError("polygon must have at least three vertices")
    return pts


def point_in_polygon(q, polygon, epsilon: float = 0.0) -> PolygonLocation:
    """
    Locate q relative to a simple polygon using the crossing count.
    Vertices and edges are matched within epsilon before the interior test.
    """
    if epsilon < 0.0:
        raise ValueError("epsilon must be non-negative")
    pts = _check_polygon(polygon)
    x, y = float(q[0]), float(q[1])

    for p in pts:
        if abs(p.x - x) <= epsilon and abs(p.y - y) <= epsilon:
            return PolygonLocation.VERTEX

    inside = False
    a = pts[-1]
    for b in pts:
        location = Line(a, b).locate((x, y), epsilon)
        if location == LineLocation.BETWEEN:
            return PolygonLocation.EDGE
        if (b.y > y) != (a.y > y):
            x_cross = b.x + (y - b.y) * (a.x - b.x) / (a.y - b.y)
            if x < x_cross:
                inside = not inside
        a = b

    return PolygonLocation.INSIDE if inside else PolygonLocation.OUTSIDE


def polygon_area(polygon) -> float:
    """Signed area, positive for counter-clockwise vertex order."""
    pts = np.asarray(polygon, dtype=np.float64).reshape(-1, 2)
    if len(pts) < 3:
        return 0.0
    x, y = pts[:, 0], pts[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def is_counter_clockwise(polygon) -> bool:
    return polygon_area(polygon) > 0.0


def polygon_centroid(polygon) -> Point:
    pts = np.asarray(polygon, dtype=np.float64).reshape(-1, 2)
    if len(pts) == 0:
        raise ValueError("polygon must not be empty")

    x, y = pts[:, 0], pts[:, 1]
    xn, yn = np.roll(x, -1), np.roll(y, -1)
    cross = x * yn - xn * y
    area = 0.5 * cross.sum()
    if area == 0.0:
        c = pts.mean(axis=0)
        return Point(float(c[0]), float(c[1]))

    cx = ((x + xn) * cross).sum() / (6.0 * area)
    cy = ((y + yn) * cross).sum() / (6.0 * area)
    return Point(float(cx), float(cy))


def convex_hull(points) -> np.ndarray:
    """
    Convex hull vertices in counter-clockwise order.

    Fewer than three distinct or collinear inputs yield the distinct
    extreme points.
    """
    pts = np.unique(np.asarray(points, dtype=np.float64).reshape(-1, 2), axis=0)
    if len(pts) < 3:
        return pts
    try:
        hull = ConvexHull(pts)
    except QhullError:
        # collinear: the lexicographic extremes span the hull
        return pts[[0, -1]]
    return pts[hull.vertices]


def nearest_point(points, q) -> int:
    """Index of the point nearest to q."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) == 0:
        raise ValueError("points must not be empty")
    d2 = ((pts - np.asarray(q, dtype=np.float64)) ** 2).sum(axis=1)
    return int(np.argmin(d2))


def connect_points(points, closed: bool) -> List[Line]:
    pts = as_points(points)
    lines = [Line(a, b) for a, b in zip(pts, pts[1:])]
    if closed and len(pts) > 2:
        lines.append(Line(pts[-1], pts[0]))
    return lines
