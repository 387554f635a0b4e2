from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple, Union

import structlog

from .datastructures import DiagramResult
from .geometry import Rect
from .subdivision import Subdivision, SubdivisionFace

logger = structlog.get_logger()


@dataclass
class SubdivisionMap:
    """
    Lookup between the faces of a Voronoi subdivision and the sites of the
    diagram it was built from.

    Both tables are snapshots taken at construction; they go stale if the
    subdivision is changed afterwards.
    """
    source: Subdivision
    target: DiagramResult
    face_to_site: List[int]     # face key - 1 -> site index
    site_to_face: List[int]     # site index -> face key

    def site_of(self, face: Union[SubdivisionFace, int]) -> int:
        key = face.key if isinstance(face, SubdivisionFace) else int(face)
        if not 1 <= key <= len(self.face_to_site):
            raise ValueError(f"face {key} is not a bounded face of the map")
        return self.face_to_site[key - 1]

    def face_of(self, index: int) -> SubdivisionFace:
        if not 0 <= index < len(self.site_to_face):
            raise ValueError(f"site {index} out of range")
        return self.source.faces[self.site_to_face[index]]


def to_voronoi_subdivision(result: DiagramResult) -> Tuple[Subdivision, SubdivisionMap]:
    """
    Subdivision whose bounded faces are the Voronoi regions, with the map
    between faces and sites. Coincident sites map to one face.
    """
    regions = result.regions()
    distinct = [i for i in range(result.site_count()) if not result.is_duplicate(i)]

    division = Subdivision.from_polygons([regions[i] for i in distinct])
    if len(division.faces) != len(distinct) + 1:
        raise AssertionError(
            f"{len(division.faces)} faces for {len(distinct)} regions")

    face_to_site = [-1] * len(distinct)
    site_to_face = [0] * result.site_count()
    for i in distinct:
        face = division.find_face_by_polygon(regions[i])
        if face is None:
            raise AssertionError(f"no face matches region of site {i}")
        face_to_site[face.key - 1] = i
        site_to_face[i] = face.key

    for i in range(result.site_count()):
        site_to_face[i] = site_to_face[int(result.canonical[i])]

    logger.debug("Voronoi subdivision built", faces=len(division.faces), sites=result.site_count())
    return division, SubdivisionMap(division, result, face_to_site, site_to_face)


def to_delaunay_subdivision(result: DiagramResult, bounds=None, add_regions: bool = False) -> Subdivision:
    """
    Subdivision of the Delaunay edges, restricted to bounds when given.

    With add_regions, the Voronoi region of every site is stored in
    vertex_regions, clipped to bounds.
    """
    rect = None if bounds is None else Rect.coerce(bounds)
    lines = result.delaunay_edges() if rect is None else result.clip_delaunay_edges(rect)
    division = Subdivision.from_lines(lines)

    if add_regions:
        regions = result.regions()
        for i in range(result.site_count()):
            site = result.site(i)
            if rect is None:
                division.vertex_regions[site] = regions[i]
            elif rect.contains(site):
                clipped = rect.intersect_polygon(regions[i])
                if len(clipped):
                    division.vertex_regions[site] = clipped

    logger.debug("Delaunay subdivision built", edges=len(division.edges) // 2, faces=len(division.faces))
    return division
