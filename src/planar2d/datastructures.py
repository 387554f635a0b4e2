from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .geometry import Line, Point, Rect
from .regions import build_regions


@dataclass(frozen=True)
class VoronoiEdge:
    site1: int
    site2: int
    vertex1: int
    vertex2: int


@dataclass
class DiagramResult:
    """
    Voronoi diagram of a site set, clipped to bounds.

    Regions are reconstructed on first access and cached; concurrent first
    readers compute them once.
    """
    bounds: Rect
    sites: np.ndarray               # (N,2)
    vertices: np.ndarray            # (M,2)
    edges: List[VoronoiEdge]
    canonical: np.ndarray           # (N,) first site with the same coordinates
    _regions: Optional[List[np.ndarray]] = field(default=None, init=False, repr=False, compare=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def site_count(self) -> int:
        return len(self.sites)

    def vertex_count(self) -> int:
        return len(self.vertices)

    def edge_count(self) -> int:
        return len(self.edges)

    def site(self, index: int) -> Point:
        return Point(float(self.sites[index, 0]), float(self.sites[index, 1]))

    def vertex(self, index: int) -> Point:
        return Point(float(self.vertices[index, 0]), float(self.vertices[index, 1]))

    def is_duplicate(self, index: int) -> bool:
        return int(self.canonical[index]) != index

    def edge_line(self, edge: VoronoiEdge) -> Line:
        return Line(self.vertex(edge.vertex1), self.vertex(edge.vertex2))

    def regions(self) -> List[np.ndarray]:
        """One counter-clockwise (k,2) polygon per site, in site order."""
        regions = self._regions
        if regions is None:
            with self._lock:
                if self._regions is None:
                    self._regions = build_regions(self)
                regions = self._regions
        return regions

    def clear_regions(self) -> None:
        with self._lock:
            self._regions = None

    def delaunay_edges(self) -> List[Line]:
        return [Line(self.site(e.site1), self.site(e.site2)) for e in self.edges]

    def clip_delaunay_edges(self, bounds) -> List[Line]:
        """
        Delaunay edges whose sites both lie within bounds and whose Voronoi
        edge intersects bounds.
        """
        rect = Rect.coerce(bounds)
        lines = []
        for e in self.edges:
            s1, s2 = self.site(e.site1), self.site(e.site2)
            if rect.contains(s1) and rect.contains(s2):
                if rect.intersects_line(self.edge_line(e)):
                    lines.append(Line(s1, s2))
        return lines
