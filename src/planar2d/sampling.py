import numpy as np
import shapely
from shapely.geometry import Polygon

from .geometry import Rect


def sample_points_in_rect(
    bounds,
    *,
    n_points: int,
    rng: np.random.Generator,
) -> np.ndarray:
    rect = Rect.coerce(bounds)
    if n_points < 0:
        raise ValueError("n_points must be non-negative")

    xs = rng.uniform(rect.min_x, rect.max_x, n_points)
    ys = rng.uniform(rect.min_y, rect.max_y, n_points)
    return np.column_stack([xs, ys]).astype(np.float64)


def sample_points_in_polygon(
    polygon,
    *,
    target_area: float | None = None,
    n_points: int | None = None,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Uniform sites strictly inside polygon, drawn by rejection from its
    bounding box. The count is n_points, or one site per target_area.
    """
    poly = Polygon(polygon)
    if poly.is_empty or not poly.is_valid or poly.area == 0.0:
        raise ValueError("polygon must be a valid polygon with positive area")

    if n_points is None:
        if target_area is None:
            raise ValueError("Either target_area or n_points required")
        n_points = max(1, int(poly.area / target_area))

    shapely.prepare(poly)
    low, high = np.array(poly.bounds[:2]), np.array(poly.bounds[2:])
    batch = max(2 * n_points, 16)

    points = np.zeros((0, 2), dtype=np.float64)
    while len(points) < n_points:
        candidates = rng.uniform(low, high, size=(batch, 2))
        inside = shapely.contains_xy(poly, candidates[:, 0], candidates[:, 1])
        points = np.vstack([points, candidates[inside]])

    return points[:n_points]
