from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, NamedTuple, Optional, Set, Tuple

import numpy as np
from shapely.geometry import Polygon, box
from shapely.geometry.polygon import orient


DEGREES_TO_RADIANS = math.pi / 180.0
RADIANS_TO_DEGREES = 180.0 / math.pi

# relative distance within which a snapped point also lands on a perpendicular border
SNAP_TOLERANCE = 1e-9


class LineLocation(Enum):
    NONE = 0
    BEFORE = 1
    START = 2
    BETWEEN = 3
    END = 4
    AFTER = 5
    LEFT = 6
    RIGHT = 7


class LineRelation(Enum):
    PARALLEL = 1
    COLLINEAR = 2
    DIVERGENT = 3


class PolygonLocation(Enum):
    INSIDE = 1
    OUTSIDE = 2
    EDGE = 3
    VERTEX = 4


class Border(Enum):
    LEFT = 1
    BOTTOM = 2
    RIGHT = 3
    TOP = 4


class Point(NamedTuple):
    x: float
    y: float

    @property
    def length(self) -> float:
        return math.hypot(self.x, self.y)

    @property
    def angle(self) -> float:
        return math.atan2(self.y, self.x)

    def distance(self, other) -> float:
        return math.hypot(other[0] - self.x, other[1] - self.y)

    def cross_product_length(self, a, b) -> float:
        """
        Cross product of (a - self) and (b - self).
        Positive when b lies to the left of the directed line self -> a.
        """
        return (a[0] - self.x) * (b[1] - self.y) - (b[0] - self.x) * (a[1] - self.y)

    def is_collinear(self, a, b, epsilon: float = 0.0) -> bool:
        return abs(self.cross_product_length(a, b)) <= epsilon


def _parameter_location(t: float) -> LineLocation:
    if t < 0.0:
        return LineLocation.BEFORE
    if t == 0.0:
        return LineLocation.START
    if t < 1.0:
        return LineLocation.BETWEEN
    if t == 1.0:
        return LineLocation.END
    return LineLocation.AFTER


class Line(NamedTuple):
    start: Point
    end: Point

    @classmethod
    def from_coords(cls, x0: float, y0: float, x1: float, y1: float) -> "Line":
        return cls(Point(float(x0), float(y0)), Point(float(x1), float(y1)))

    @property
    def vector(self) -> Point:
        return Point(self.end.x - self.start.x, self.end.y - self.start.y)

    @property
    def length(self) -> float:
        return self.vector.length

    @property
    def angle(self) -> float:
        return self.vector.angle

    @property
    def slope(self) -> float:
        dx, dy = self.vector
        if dx == 0.0:
            return math.copysign(math.inf, dy) if dy else math.nan
        return dy / dx

    @property
    def inverse_slope(self) -> float:
        dx, dy = self.vector
        if dy == 0.0:
            return math.copysign(math.inf, dx) if dx else math.nan
        return dx / dy

    def reverse(self) -> "Line":
        return Line(self.end, self.start)

    def find_x(self, y: float) -> float:
        """x-coordinate of the infinite line at y."""
        return self.start.x + (y - self.start.y) * self.inverse_slope

    def find_y(self, x: float) -> float:
        """y-coordinate of the infinite line at x."""
        return self.start.y + (x - self.start.x) * self.slope

    def distance_squared(self, q) -> float:
        """Squared distance from q to the nearest point of the segment."""
        dx, dy = self.vector
        qx, qy = q[0] - self.start.x, q[1] - self.start.y
        length2 = dx * dx + dy * dy
        if length2 == 0.0:
            return qx * qx + qy * qy
        t = min(1.0, max(0.0, (qx * dx + qy * dy) / length2))
        ex, ey = qx - t * dx, qy - t * dy
        return ex * ex + ey * ey

    def locate_collinear(self, q) -> LineLocation:
        """Position of q along the segment, assuming q lies on the infinite line."""
        if q[0] == self.start.x and q[1] == self.start.y:
            return LineLocation.START
        if q[0] == self.end.x and q[1] == self.end.y:
            return LineLocation.END
        dx, dy = self.vector
        length2 = dx * dx + dy * dy
        if length2 == 0.0:
            return LineLocation.NONE
        t = ((q[0] - self.start.x) * dx + (q[1] - self.start.y) * dy) / length2
        if t < 0.0:
            return LineLocation.BEFORE
        if t > 1.0:
            return LineLocation.AFTER
        return LineLocation.BETWEEN

    def locate(self, q, epsilon: float = 0.0) -> LineLocation:
        """
        Classify q against the directed segment.

        LEFT and RIGHT when q is off the infinite line (by more than epsilon),
        otherwise its position along the segment.
        """
        if epsilon < 0.0:
            raise ValueError("epsilon must be non-negative")

        qx0, qy0 = q[0] - self.start.x, q[1] - self.start.y
        if abs(qx0) <= epsilon and abs(qy0) <= epsilon:
            return LineLocation.START
        qx1, qy1 = q[0] - self.end.x, q[1] - self.end.y
        if abs(qx1) <= epsilon and abs(qy1) <= epsilon:
            return LineLocation.END

        dx, dy = self.vector
        area = dx * qy0 - qx0 * dy
        if epsilon > 0.0:
            length = math.hypot(dx, dy)
            distance = area / length if length else 0.0
            if distance > epsilon:
                return LineLocation.LEFT
            if distance < -epsilon:
                return LineLocation.RIGHT
        else:
            if area > 0.0:
                return LineLocation.LEFT
            if area < 0.0:
                return LineLocation.RIGHT

        length2 = dx * dx + dy * dy
        t = (qx0 * dx + qy0 * dy) / length2 if length2 else 0.0
        if t < 0.0:
            return LineLocation.BEFORE
        if t > 1.0:
            return LineLocation.AFTER
        return LineLocation.BETWEEN

    def intersect(self, other: "Line") -> "LineIntersection":
        return intersect_lines(self.start, self.end, other.start, other.end)


class LineIntersection(NamedTuple):
    shared: Optional[Point]
    first: LineLocation
    second: LineLocation
    relation: LineRelation

    @property
    def exists(self) -> bool:
        return self.shared is not None

    @property
    def exists_between(self) -> bool:
        on_segment = (LineLocation.START, LineLocation.BETWEEN, LineLocation.END)
        return self.exists and self.first in on_segment and self.second in on_segment


def intersect_lines(a, b, c, d) -> LineIntersection:
    """
    Intersect the infinite lines a-b and c-d.

    first and second give the position of the shared point relative to
    each segment.
    """
    a, b, c, d = Point(*a), Point(*b), Point(*c), Point(*d)
    abx, aby = b.x - a.x, b.y - a.y
    cdx, cdy = d.x - c.x, d.y - c.y
    acx, acy = c.x - a.x, c.y - a.y

    denom = abx * cdy - aby * cdx
    if denom == 0.0:
        if acx * aby - acy * abx != 0.0:
            return LineIntersection(None, LineLocation.NONE, LineLocation.NONE, LineRelation.PARALLEL)
        first = Line(a, b).locate_collinear(c)
        second = Line(c, d).locate_collinear(a)
        return LineIntersection(None, first, second, LineRelation.COLLINEAR)

    s = (acx * cdy - acy * cdx) / denom
    t = (acx * aby - acy * abx) / denom
    first = _parameter_location(s)
    second = _parameter_location(t)

    if first == LineLocation.START:
        shared = a
    elif first == LineLocation.END:
        shared = b
    elif second == LineLocation.START:
        shared = c
    elif second == LineLocation.END:
        shared = d
    else:
        shared = Point(a.x + s * abx, a.y + s * aby)
    return LineIntersection(shared, first, second, LineRelation.DIVERGENT)


@dataclass(frozen=True)
class Rect:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def __post_init__(self):
        values = (self.min_x, self.min_y, self.max_x, self.max_y)
        if not all(math.isfinite(v) for v in values):
            raise ValueError(f"Rect coordinates must be finite, got {values}")
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise ValueError(f"Rect minimum exceeds maximum: {values}")

    @classmethod
    def coerce(cls, value) -> "Rect":
        if isinstance(value, Rect):
            return value
        values = tuple(float(v) for v in value)
        if len(values) != 4:
            raise ValueError("bounds must be (min_x, min_y, max_x, max_y)")
        return cls(*values)

    @classmethod
    def from_points(cls, points) -> "Rect":
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        if len(pts) == 0:
            raise ValueError("at least one point required")
        lo = pts.min(axis=0)
        hi = pts.max(axis=0)
        return cls(float(lo[0]), float(lo[1]), float(hi[0]), float(hi[1]))

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def corners(self) -> Tuple[Point, Point, Point, Point]:
        """Counter-clockwise from the bottom-left corner."""
        return (
            Point(self.min_x, self.min_y),
            Point(self.max_x, self.min_y),
            Point(self.max_x, self.max_y),
            Point(self.min_x, self.max_y),
        )

    def contains(self, q) -> bool:
        return self.min_x <= q[0] <= self.max_x and self.min_y <= q[1] <= self.max_y

    def contains_open(self, q) -> bool:
        return self.min_x < q[0] < self.max_x and self.min_y < q[1] < self.max_y

    def contains_rect(self, other: "Rect") -> bool:
        return (
            self.min_x <= other.min_x and other.max_x <= self.max_x
            and self.min_y <= other.min_y and other.max_y <= self.max_y
        )

    def union(self, other: "Rect") -> "Rect":
        return Rect(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def borders_of(self, q) -> Set[Border]:
        """Borders on which q lies exactly."""
        result = set()
        if q[0] == self.min_x:
            result.add(Border.LEFT)
        if q[0] == self.max_x:
            result.add(Border.RIGHT)
        if q[1] == self.min_y:
            result.add(Border.BOTTOM)
        if q[1] == self.max_y:
            result.add(Border.TOP)
        return result

    def clip_parameters(self, origin, direction, t0: float = 0.0, t1: float = 1.0):
        """
        Liang-Barsky clip of origin + t * direction for t in [t0, t1].

        Returns (t0, t1, enter, exit) where enter/exit name the border that
        cut the corresponding end (None if that end was not cut), or None if
        the line misses the rectangle.
        """
        x0, y0 = origin
        dx, dy = direction
        checks = (
            (-dx, x0 - self.min_x, Border.LEFT),
            (dx, self.max_x - x0, Border.RIGHT),
            (-dy, y0 - self.min_y, Border.BOTTOM),
            (dy, self.max_y - y0, Border.TOP),
        )
        enter = exit_ = None
        for p, q, border in checks:
            if p == 0.0:
                if q < 0.0:
                    return None
                continue
            r = q / p
            if p < 0.0:
                if r > t1:
                    return None
                if r > t0:
                    t0, enter = r, border
            else:
                if r < t0:
                    return None
                if r < t1:
                    t1, exit_ = r, border
        return t0, t1, enter, exit_

    def intersect_line(self, line: Line) -> Optional[Line]:
        """Part of the segment inside the rectangle, or None."""
        clip = self.clip_parameters(line.start, line.vector)
        if clip is None:
            return None
        t0, t1, enter, exit_ = clip
        if t0 > t1:
            return None
        dx, dy = line.vector
        start = line.start if enter is None else self.snap(
            Point(line.start.x + t0 * dx, line.start.y + t0 * dy), enter)
        end = line.end if exit_ is None else self.snap(
            Point(line.start.x + t1 * dx, line.start.y + t1 * dy), exit_)
        return Line(start, end)

    def intersects_line(self, line: Line) -> bool:
        return self.intersect_line(line) is not None

    def snap(self, q, border: Border, tolerance: float = SNAP_TOLERANCE) -> Point:
        """
        Place q exactly on border, clamping the other coordinate.

        A point within tolerance (relative to the larger side) of a
        perpendicular border is moved onto the corner.
        """
        x = min(self.max_x, max(self.min_x, float(q[0])))
        y = min(self.max_y, max(self.min_y, float(q[1])))
        eps = tolerance * max(self.width, self.height)
        if border in (Border.LEFT, Border.RIGHT):
            x = self.min_x if border == Border.LEFT else self.max_x
            if y - self.min_y <= eps:
                y = self.min_y
            elif self.max_y - y <= eps:
                y = self.max_y
        else:
            y = self.min_y if border == Border.BOTTOM else self.max_y
            if x - self.min_x <= eps:
                x = self.min_x
            elif self.max_x - x <= eps:
                x = self.max_x
        return Point(x, y)

    def intersect_polygon(self, polygon) -> np.ndarray:
        """
        Clip a simple polygon to the rectangle.
        Returns a counter-clockwise (K,2) ring without closing vertex, empty
        if nothing remains.
        """
        clipped = Polygon(polygon).intersection(box(*self.bounds))
        if clipped.is_empty:
            return np.zeros((0, 2), dtype=np.float64)
        if clipped.geom_type == "MultiPolygon":
            clipped = max(clipped.geoms, key=lambda g: g.area)
        if clipped.geom_type != "Polygon":
            return np.zeros((0, 2), dtype=np.float64)
        clipped = orient(clipped, sign=1.0)
        return np.array(clipped.exterior.coords[:-1], dtype=np.float64)


def as_points(points: Iterable) -> list:
    return [Point(float(p[0]), float(p[1])) for p in points]


def normalize_degrees(angle: float) -> float:
    """Angle in [0, 360)."""
    angle = math.fmod(angle, 360.0)
    if angle < 0.0:
        angle += 360.0
    return 0.0 if angle >= 360.0 else angle


def normalize_radians(angle: float) -> float:
    """Angle in [0, 2pi)."""
    angle = math.fmod(angle, 2.0 * math.pi)
    if angle < 0.0:
        angle += 2.0 * math.pi
    return 0.0 if angle >= 2.0 * math.pi else angle


def distance_degrees(a: float, b: float) -> float:
    """Shortest signed rotation from a to b, in (-180, 180]."""
    d = normalize_degrees(b - a)
    return d - 360.0 if d > 180.0 else d


def distance_radians(a: float, b: float) -> float:
    """Shortest signed rotation from a to b, in (-pi, pi]."""
    d = normalize_radians(b - a)
    return d - 2.0 * math.pi if d > math.pi else d
