from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple, Union

import numpy as np
import structlog

from .geometry import Line, LineLocation, Point, PolygonLocation, as_points
from .polygon import point_in_polygon, polygon_area, polygon_centroid

logger = structlog.get_logger()


@dataclass
class SubdivisionEdge:
    """
    Half-edge. All links are keys into Subdivision.edges / Subdivision.faces;
    the incident face lies to the left.
    """
    key: int
    origin: Point
    twin: int = -1
    next: int = -1
    previous: int = -1
    face: int = -1


@dataclass
class SubdivisionFace:
    key: int
    outer_edge: Optional[int] = None
    inner_edges: List[int] = field(default_factory=list)

    @property
    def is_unbounded(self) -> bool:
        return self.outer_edge is None


class ElementType(Enum):
    VERTEX = 1
    EDGE = 2
    FACE = 3


class SubdivisionElement(NamedTuple):
    kind: ElementType
    value: Union[Point, SubdivisionEdge, SubdivisionFace]


class Subdivision:
    """
    Planar subdivision stored as a doubly-connected edge list.

    Twin half-edges have keys 2k and 2k + 1. Face 0 is the unbounded face,
    every other face has exactly one outer cycle and any number of inner
    cycles (holes, dangling edges, isolated components).
    """

    def __init__(self):
        self.edges: List[SubdivisionEdge] = []
        self.faces: List[SubdivisionFace] = [SubdivisionFace(0)]
        self.vertices: Dict[Point, int] = {}
        self.vertex_regions: Dict[Point, np.ndarray] = {}

    # construction

    @classmethod
    def from_lines(cls, lines: Iterable) -> "Subdivision":
        """
        Build from unordered line segments. Shared endpoints are joined and
        duplicate segments ignored; segments must not cross.
        """
        division = cls()
        division._add_lines(lines)
        division._link()
        division._create_faces([])
        return division

    @classmethod
    def from_polygons(cls, polygons: Iterable) -> "Subdivision":
        """
        Build from simple polygons that share edges and vertices but never
        overlap. Polygon i becomes face i + 1.
        """
        polys = [as_points(p) for p in polygons]
        for poly in polys:
            if len(poly) < 3:
                raise ValueError("polygon must have at least three vertices")

        division = cls()
        lines = [Line(a, b) for poly in polys for a, b in zip(poly, poly[1:] + poly[:1])]
        half_edges = division._add_lines(lines)
        division._link()

        preferred = []
        for poly in polys:
            key = half_edges[(poly[0], poly[1])]
            if polygon_area(poly) < 0.0:
                key = division.edges[key].twin
            preferred.append(key)

        division._create_faces(preferred)
        return division

    def _add_lines(self, lines: Iterable) -> Dict[Tuple[Point, Point], int]:
        half_edges: Dict[Tuple[Point, Point], int] = {}
        for line in lines:
            a = Point(float(line[0][0]), float(line[0][1]))
            b = Point(float(line[1][0]), float(line[1][1]))
            if a == b:
                raise ValueError(f"zero-length segment at {a}")
            if (a, b) in half_edges:
                continue

            key = len(self.edges)
            self.edges.append(SubdivisionEdge(key, a, twin=key + 1))
            self.edges.append(SubdivisionEdge(key + 1, b, twin=key))
            half_edges[(a, b)] = key
            half_edges[(b, a)] = key + 1
        return half_edges

    def _link(self) -> None:
        """Sort outgoing half-edges around each vertex and chain next/previous."""
        outgoing: Dict[Point, List[int]] = defaultdict(list)
        for edge in self.edges:
            outgoing[edge.origin].append(edge.key)

        for vertex, keys in outgoing.items():
            keys.sort(key=lambda k: _direction(vertex, self.destination(k)))
            for i, key in enumerate(keys):
                incoming = self.edges[key].twin
                following = keys[i - 1]
                self.edges[incoming].next = following
                self.edges[following].previous = incoming
            self.vertices[vertex] = keys[0]

    def _find_cycles(self) -> List[List[int]]:
        visited = [False] * len(self.edges)
        cycles = []
        for start in range(len(self.edges)):
            if visited[start]:
                continue
            cycle = []
            key = start
            while not visited[key]:
                visited[key] = True
                cycle.append(key)
                key = self.edges[key].next
            cycles.append(cycle)
        return cycles

    def _is_zero_area(self, cycle: List[int]) -> bool:
        members = set(cycle)
        return all(self.edges[key].twin in members for key in cycle)

    def _create_faces(self, preferred: List[int]) -> None:
        cycles = self._find_cycles()
        cycle_of = {}
        for index, cycle in enumerate(cycles):
            for key in cycle:
                cycle_of[key] = index

        # counter-clockwise cycles with positive area bound faces
        outer, inner = [], []
        for index, cycle in enumerate(cycles):
            if not self._is_zero_area(cycle) and self.cycle_area(cycle[0]) > 0.0:
                outer.append(index)
            else:
                inner.append(index)

        outer_set = set(outer)
        face_order: List[Tuple[int, int]] = []
        assigned = set()
        for key in preferred:
            index = cycle_of[key]
            if index in outer_set and index not in assigned:
                assigned.add(index)
                face_order.append((index, key))
        for index in outer:
            if index not in assigned:
                assigned.add(index)
                face_order.append((index, cycles[index][0]))

        for index, key in face_order:
            face = SubdivisionFace(len(self.faces), outer_edge=key)
            self.faces.append(face)
            for edge_key in cycles[index]:
                self.edges[edge_key].face = face.key

        outer_polygons = [
            (face.key, self.cycle_polygon(face.outer_edge), self.cycle_area(face.outer_edge))
            for face in self.faces[1:]
        ]

        for index in inner:
            cycle = cycles[index]
            pivot = min(cycle, key=lambda k: (self.edges[k].origin.y, self.edges[k].origin.x))
            q = self.edges[pivot].origin

            owner, owner_area = 0, math.inf
            for face_key, polygon, area in outer_polygons:
                if area < owner_area and point_in_polygon(q, polygon) == PolygonLocation.INSIDE:
                    owner, owner_area = face_key, area

            self.faces[owner].inner_edges.append(pivot)
            for edge_key in cycle:
                self.edges[edge_key].face = owner

        logger.debug(
            "Subdivision built",
            edges=len(self.edges),
            faces=len(self.faces),
            vertices=len(self.vertices),
        )

    # traversal

    def destination(self, key: int) -> Point:
        return self.edges[self.edges[key].twin].origin

    def edge_line(self, key: int) -> Line:
        return Line(self.edges[key].origin, self.destination(key))

    def cycle_edges(self, key: int) -> List[int]:
        keys = [key]
        current = self.edges[key].next
        while current != key:
            keys.append(current)
            current = self.edges[current].next
        return keys

    def cycle_polygon(self, key: int) -> np.ndarray:
        return np.array([self.edges[k].origin for k in self.cycle_edges(key)], dtype=np.float64)

    def cycle_area(self, key: int) -> float:
        return polygon_area(self.cycle_polygon(key))

    def cycle_centroid(self, key: int) -> Point:
        return polygon_centroid(self.cycle_polygon(key))

    def origin_edges(self, vertex) -> List[int]:
        """Half-edges leaving vertex, clockwise."""
        first = self.vertices.get(Point(*vertex))
        if first is None:
            return []
        keys = [first]
        current = self.edges[self.edges[first].twin].next
        while current != first:
            keys.append(current)
            current = self.edges[self.edges[current].twin].next
        return keys

    def face_edges(self, face_key: int) -> List[int]:
        face = self.faces[face_key]
        keys = [] if face.outer_edge is None else self.cycle_edges(face.outer_edge)
        for inner in face.inner_edges:
            keys.extend(self.cycle_edges(inner))
        return keys

    def face_polygon(self, face_key: int) -> Optional[np.ndarray]:
        face = self.faces[face_key]
        if face.outer_edge is None:
            return None
        return self.cycle_polygon(face.outer_edge)

    def face_neighbors(self, face_key: int) -> List[int]:
        neighbors = {self.edges[self.edges[k].twin].face for k in self.face_edges(face_key)}
        neighbors.discard(face_key)
        return sorted(neighbors)

    # queries

    def contains(self, vertex) -> bool:
        return Point(*vertex) in self.vertices

    def neighbors(self, vertex) -> List[Point]:
        return [self.destination(k) for k in self.origin_edges(vertex)]

    def distance(self, source, target) -> float:
        return Point(*source).distance(target)

    def find_edge(self, origin, destination) -> Optional[SubdivisionEdge]:
        target = Point(*destination)
        for key in self.origin_edges(origin):
            if self.destination(key) == target:
                return self.edges[key]
        return None

    def find_face(self, q) -> SubdivisionFace:
        """Smallest bounded face containing q, or the unbounded face."""
        result, result_area = self.faces[0], math.inf
        for face in self.faces[1:]:
            polygon = self.cycle_polygon(face.outer_edge)
            if point_in_polygon(q, polygon) == PolygonLocation.OUTSIDE:
                continue
            area = polygon_area(polygon)
            if area < result_area:
                result, result_area = face, area
        return result

    def find_face_by_polygon(self, polygon, verify: bool = False) -> Optional[SubdivisionFace]:
        """
        Bounded face whose outer cycle has exactly the vertices of polygon,
        in either direction and from any starting vertex.

        With verify, every polygon side must also be an edge.
        """
        pts = as_points(polygon)
        if len(pts) < 3:
            raise ValueError("polygon must have at least three vertices")

        edge = self.find_edge(pts[-1], pts[0])
        if edge is None:
            return None
        if verify:
            for a, b in zip(pts, pts[1:]):
                if self.find_edge(a, b) is None:
                    return None

        wanted = set(pts)
        for face_key in (edge.face, self.edges[edge.twin].face):
            face = self.faces[face_key]
            if face.outer_edge is None:
                continue
            cycle = [self.edges[k].origin for k in self.cycle_edges(face.outer_edge)]
            if len(cycle) == len(pts) and set(cycle) == wanted:
                return face
        return None

    def locate(self, q, epsilon: float = 0.0) -> SubdivisionElement:
        """Vertex, edge or face containing q."""
        if epsilon < 0.0:
            raise ValueError("epsilon must be non-negative")
        q = Point(float(q[0]), float(q[1]))
        face = self.find_face(q)

        starts = [] if face.outer_edge is None else [face.outer_edge]
        starts.extend(face.inner_edges)
        for start in starts:
            for key in self.cycle_edges(start):
                line = self.edge_line(key)
                location = line.locate(q, epsilon)
                if location == LineLocation.START:
                    return SubdivisionElement(ElementType.VERTEX, line.start)
                if location == LineLocation.END:
                    return SubdivisionElement(ElementType.VERTEX, line.end)
                if location == LineLocation.BETWEEN:
                    return SubdivisionElement(ElementType.EDGE, self.edges[key])

        return SubdivisionElement(ElementType.FACE, face)

    def find_nearest_vertex(self, q) -> Optional[Point]:
        if not self.vertices:
            return None
        points = list(self.vertices)
        coords = np.array(points, dtype=np.float64)
        d2 = ((coords - np.asarray(q, dtype=np.float64)) ** 2).sum(axis=1)
        return points[int(np.argmin(d2))]

    def find_nearest_edge(self, q) -> Tuple[Optional[SubdivisionEdge], float]:
        """Nearest edge (lower key of each twin pair) and its distance to q."""
        best, best_d2 = None, math.inf
        for edge in self.edges[::2]:
            d2 = self.edge_line(edge.key).distance_squared(q)
            if d2 < best_d2:
                best, best_d2 = edge, d2
        return best, math.sqrt(best_d2)

    def zero_area_cycles(self) -> List[int]:
        return [
            key
            for face in self.faces
            for key in face.inner_edges
            if self._is_zero_area(self.cycle_edges(key))
        ]

    # export

    def to_lines(self) -> List[Line]:
        return [self.edge_line(edge.key) for edge in self.edges if edge.key < edge.twin]

    def to_polygons(self) -> List[np.ndarray]:
        return [self.cycle_polygon(face.outer_edge) for face in self.faces[1:]]

    def validate(self) -> None:
        """Check all structural invariants; raises AssertionError on the first violation."""
        n = len(self.edges)
        if n % 2:
            raise AssertionError("odd number of half-edges")
        if (n == 0) != (len(self.vertices) == 0) or (n and len(self.vertices) < 2):
            raise AssertionError("vertex count does not match edges")
        if not self.faces or self.faces[0].key != 0 or self.faces[0].outer_edge is not None:
            raise AssertionError("face 0 must be the unbounded face")
        if (n == 0) != (not self.faces[0].inner_edges):
            raise AssertionError("unbounded face must hold the outermost cycles")

        for index, edge in enumerate(self.edges):
            if edge.key != index:
                raise AssertionError(f"edge {index} has key {edge.key}")
            if not 0 <= edge.face < len(self.faces):
                raise AssertionError(f"edge {index} has no face")
            if self.edges[edge.twin].twin != index:
                raise AssertionError(f"edge {index} twin is not symmetric")
            if self.edges[edge.next].previous != index or self.edges[edge.previous].next != index:
                raise AssertionError(f"edge {index} next/previous mismatch")
            if self.destination(index) != self.edges[edge.next].origin:
                raise AssertionError(f"edge {index} does not end at its successor")

        for vertex, first in self.vertices.items():
            key, steps = first, 0
            while True:
                if self.edges[key].origin != vertex:
                    raise AssertionError(f"vertex {vertex} ring leaves the vertex")
                key = self.edges[self.edges[key].twin].next
                steps += 1
                if key == first:
                    break
                if steps > n:
                    raise AssertionError(f"vertex {vertex} ring does not close")

        for index, face in enumerate(self.faces):
            if face.key != index:
                raise AssertionError(f"face {index} has key {face.key}")
            if index and face.outer_edge is None:
                raise AssertionError(f"bounded face {index} has no outer cycle")
            starts = [] if face.outer_edge is None else [face.outer_edge]
            for start in starts + face.inner_edges:
                for key in self.cycle_edges(start):
                    if self.edges[key].face != index:
                        raise AssertionError(f"edge {key} in cycle of face {index} has face {self.edges[key].face}")


def _direction(origin: Point, target: Point) -> float:
    return math.atan2(target.y - origin.y, target.x - origin.x)


def build_subdivision_from_lines(lines: Iterable) -> Subdivision:
    return Subdivision.from_lines(lines)


def build_subdivision_from_polygons(polygons: Iterable) -> Subdivision:
    return Subdivision.from_polygons(polygons)
