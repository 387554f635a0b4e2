from .geometry import (
    Border, Line, LineIntersection, LineLocation, LineRelation, Point, PolygonLocation, Rect,
    distance_degrees, distance_radians, intersect_lines, normalize_degrees, normalize_radians,
)
from .polygon import (
    connect_points, convex_hull, is_counter_clockwise, nearest_point, point_in_polygon,
    polygon_area, polygon_centroid,
)
from .sampling import sample_points_in_polygon, sample_points_in_rect
from .datastructures import DiagramResult, VoronoiEdge
from .regions import Corner, build_regions
from .voronoi import compute_delaunay, compute_diagram
from .subdivision import (
    ElementType, Subdivision, SubdivisionEdge, SubdivisionElement, SubdivisionFace,
    build_subdivision_from_lines, build_subdivision_from_polygons,
)
from .mapping import SubdivisionMap, to_delaunay_subdivision, to_voronoi_subdivision
