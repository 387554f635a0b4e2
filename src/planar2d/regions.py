from __future__ import annotations

from collections import deque
from enum import Enum
from typing import TYPE_CHECKING, Deque, Dict, List, Tuple, Union

import numpy as np
import structlog

from .geometry import Border, Point, Rect
from .polygon import polygon_area

if TYPE_CHECKING:
    from .datastructures import DiagramResult

logger = structlog.get_logger()


class Corner(Enum):
    """Corner of the clipping rectangle, named by the two borders meeting there."""
    BOTTOM_LEFT = (Border.LEFT, Border.BOTTOM)
    BOTTOM_RIGHT = (Border.RIGHT, Border.BOTTOM)
    TOP_RIGHT = (Border.RIGHT, Border.TOP)
    TOP_LEFT = (Border.LEFT, Border.TOP)

    def point(self, bounds: Rect) -> Point:
        vertical, horizontal = self.value
        x = bounds.min_x if vertical == Border.LEFT else bounds.max_x
        y = bounds.min_y if horizontal == Border.BOTTOM else bounds.max_y
        return Point(x, y)

    @classmethod
    def between(cls, a: Border, b: Border) -> "Corner | None":
        for corner in cls:
            if {a, b} == set(corner.value):
                return corner
        return None


# chain items are indices into the vertex array or synthetic corners
Item = Union[int, Corner]


class _RegionBuilder:
    def __init__(self, result: "DiagramResult"):
        self.bounds = result.bounds
        self.vertices = result.vertices
        self._borders: Dict[int, set] = {}

        w, h = self.bounds.width, self.bounds.height
        self.perimeter = 2.0 * (w + h)
        self.corner_positions = {
            Corner.BOTTOM_LEFT: 0.0,
            Corner.BOTTOM_RIGHT: w,
            Corner.TOP_RIGHT: w + h,
            Corner.TOP_LEFT: 2.0 * w + h,
        }

    def point(self, item: Item) -> Point:
        if isinstance(item, Corner):
            return item.point(self.bounds)
        return Point(float(self.vertices[item, 0]), float(self.vertices[item, 1]))

    def borders(self, item: Item) -> set:
        if isinstance(item, Corner):
            return set(item.value)
        if item not in self._borders:
            self._borders[item] = self.bounds.borders_of(self.point(item))
        return self._borders[item]

    def distance(self, a: Item, b: Item) -> float:
        return self.point(a).distance(self.point(b))

    # ordering and bridging

    def order(self, site: int, candidates: List[Tuple[Item, Item]]) -> Deque[Item]:
        remaining = list(candidates)
        first = remaining.pop(0)
        chain: Deque[Item] = deque(first)

        while remaining:
            if chain[0] == chain[-1]:
                raise AssertionError(
                    f"region of site {site} closed with {len(remaining)} edges left")

            for i, (u, v) in enumerate(remaining):
                if u == chain[-1]:
                    chain.append(v)
                elif v == chain[-1]:
                    chain.append(u)
                elif v == chain[0]:
                    chain.appendleft(u)
                elif u == chain[0]:
                    chain.appendleft(v)
                else:
                    continue
                del remaining[i]
                break
            else:
                remaining[:0] = self.bridge(site, chain, remaining)

        return chain

    def bridge(self, site: int, chain: Deque[Item], remaining) -> List[Tuple[Item, Item]]:
        """
        Synthetic edges joining a chain end to the nearest loose fragment,
        along one border or through the corner between two borders.
        """
        ends = (chain[-1], chain[0])
        loose = {p for edge in remaining for p in edge}

        best = None
        for end in ends:
            for p in loose:
                if self.borders(end) & self.borders(p):
                    d = self.distance(end, p)
                    if best is None or d < best[0]:
                        best = (d, [(end, p)])
        if best is not None:
            return best[1]

        for end in ends:
            for p in loose:
                for a in self.borders(end):
                    for b in self.borders(p):
                        corner = Corner.between(a, b)
                        if corner is None:
                            continue
                        d = self.distance(end, corner) + self.distance(corner, p)
                        if best is None or d < best[0]:
                            best = (d, [(end, corner), (corner, p)])
        if best is not None:
            return best[1]

        raise AssertionError(f"cannot bridge open region of site {site}")

    # closing along the border

    def position(self, item: Item) -> float:
        """Counter-clockwise distance along the perimeter from the bottom-left corner."""
        if isinstance(item, Corner):
            return self.corner_positions[item]
        b = self.bounds
        p = self.point(item)
        borders = self.borders(item)
        if Border.BOTTOM in borders and p.x != b.max_x:
            return p.x - b.min_x
        if Border.RIGHT in borders and p.y != b.max_y:
            return b.width + p.y - b.min_y
        if Border.TOP in borders and p.x != b.min_x:
            return b.width + b.height + b.max_x - p.x
        if Border.LEFT in borders:
            return 2.0 * b.width + b.height + b.max_y - p.y
        raise AssertionError(f"open region ends at interior vertex {p}")

    def perimeter_paths(self, start: Item, end: Item) -> Tuple[List[Corner], List[Corner]]:
        """Corners passed walking from start to end, counter-clockwise and clockwise."""
        p0, p1 = self.position(start), self.position(end)
        span_ccw = (p1 - p0) % self.perimeter
        span_cw = (p0 - p1) % self.perimeter

        ccw, cw = [], []
        for corner, pc in self.corner_positions.items():
            offset = (pc - p0) % self.perimeter
            if 0.0 < offset < span_ccw:
                ccw.append((offset, corner))
            offset = (p0 - pc) % self.perimeter
            if 0.0 < offset < span_cw:
                cw.append((offset, corner))
        return [c for _, c in sorted(ccw, key=lambda t: t[0])], [c for _, c in sorted(cw, key=lambda t: t[0])]

    def closing_corners(self, site: Point, chain: Deque[Item]) -> List[Corner]:
        first, last = chain[0], chain[-1]
        if self.borders(first) & self.borders(last):
            return []

        ccw, cw = self.perimeter_paths(last, first)
        a, b = self.point(last), self.point(first)

        probes = np.array([self.point(item) for item in chain], dtype=np.float64)
        cross = (b.x - a.x) * (probes[:, 1] - a.y) - (b.y - a.y) * (probes[:, 0] - a.x)
        k = int(np.argmax(np.abs(cross)))

        if cross[k] != 0.0:
            # the region opens away from the chain
            side = -np.sign(cross[k])
        else:
            side = np.sign(a.cross_product_length(b, site))

        if side == 0.0:
            # lower / left side wins
            if Corner.BOTTOM_LEFT in ccw:
                return ccw
            if Corner.BOTTOM_LEFT in cw:
                return cw
            return min(
                (ccw, cw),
                key=lambda path: min(((self.point(c).y, self.point(c).x) for c in path), default=(np.inf, np.inf)),
            )

        if not ccw and not cw:
            return []
        if ccw:
            probe_side = np.sign(a.cross_product_length(b, self.point(ccw[0])))
            return ccw if probe_side == side else cw
        probe_side = np.sign(a.cross_product_length(b, self.point(cw[0])))
        return cw if probe_side == side else ccw

    def emit(self, chain: List[Item]) -> np.ndarray:
        points: List[Point] = []
        for item in chain:
            p = self.point(item)
            if not points or points[-1] != p:
                points.append(p)
        while len(points) > 1 and points[0] == points[-1]:
            points.pop()

        region = np.array(points, dtype=np.float64).reshape(-1, 2)
        if polygon_area(region) < 0.0:
            region = region[::-1].copy()
        return region

    def build(self, site_index: int, site: Point, candidates) -> np.ndarray:
        if not candidates:
            return np.array(self.bounds.corners, dtype=np.float64)

        chain = self.order(site_index, candidates)
        if chain[0] == chain[-1]:
            chain.pop()
            return self.emit(list(chain))

        corners = self.closing_corners(site, chain)
        return self.emit(list(chain) + corners)


def build_regions(result: "DiagramResult") -> List[np.ndarray]:
    """
    Reconstruct the closed, counter-clockwise region of every site from the
    unordered edge list, closing open regions along the clipping bounds.
    """
    builder = _RegionBuilder(result)

    candidates: Dict[int, List[Tuple[Item, Item]]] = {}
    for e in result.edges:
        candidates.setdefault(e.site1, []).append((e.vertex1, e.vertex2))
        candidates.setdefault(e.site2, []).append((e.vertex1, e.vertex2))

    regions: List[np.ndarray] = []
    for i in range(result.site_count()):
        canonical = int(result.canonical[i])
        if canonical != i:
            regions.append(regions[canonical])
            continue
        regions.append(builder.build(i, result.site(i), candidates.get(i, [])))

    logger.debug("Voronoi regions reconstructed", regions=len(regions), bounds=result.bounds.bounds)
    return regions
