"""
Planar segment intersection.

Finish line crossings are tested in the (longitude, latitude) plane using the
orientation of point triples. Two segments intersect when each one's endpoints
lie on opposite sides of the other's supporting line, or when a collinear
endpoint falls inside the other segment's bounding box.
"""

import numpy as np
from numpy.typing import NDArray

Point2D = tuple[float, float]

COLLINEAR = 0
CLOCKWISE = 1
COUNTERCLOCKWISE = 2


def orientation(p: Point2D, q: Point2D, r: Point2D) -> int:
    """Orientation of the ordered triple (p, q, r)."""
    val = (q[1] - p[1]) * (r[0] - q[0]) - (q[0] - p[0]) * (r[1] - q[1])
    if val == 0:
        return COLLINEAR
    return CLOCKWISE if val > 0 else COUNTERCLOCKWISE


def on_segment(p: Point2D, q: Point2D, r: Point2D) -> bool:
    """Whether q lies within the bounding box of segment pr."""
    return (
        min(p[0], r[0]) <= q[0] <= max(p[0], r[0])
        and min(p[1], r[1]) <= q[1] <= max(p[1], r[1])
    )


def segments_intersect(p1: Point2D, q1: Point2D, p2: Point2D, q2: Point2D) -> bool:
    """Whether segment p1q1 intersects segment p2q2."""
    o1 = orientation(p1, q1, p2)
    o2 = orientation(p1, q1, q2)
    o3 = orientation(p2, q2, p1)
    o4 = orientation(p2, q2, q1)

    if o1 != o2 and o3 != o4:
        return True

    # Collinear special cases
    if o1 == COLLINEAR and on_segment(p1, p2, q1):
        return True
    if o2 == COLLINEAR and on_segment(p1, q2, q1):
        return True
    if o3 == COLLINEAR and on_segment(p2, p1, q2):
        return True
    if o4 == COLLINEAR and on_segment(p2, q1, q2):
        return True

    return False


def _orientation_array(
    p: NDArray[np.float64],
    q: NDArray[np.float64],
    r: NDArray[np.float64],
) -> NDArray[np.int8]:
    val = (q[..., 1] - p[..., 1]) * (r[..., 0] - q[..., 0]) - (q[..., 0] - p[..., 0]) * (r[..., 1] - q[..., 1])
    return np.where(val == 0, COLLINEAR, np.where(val > 0, CLOCKWISE, COUNTERCLOCKWISE)).astype(np.int8)


def _on_segment_array(
    p: NDArray[np.float64],
    q: NDArray[np.float64],
    r: NDArray[np.float64],
) -> NDArray[np.bool_]:
    return (
        (np.minimum(p[..., 0], r[..., 0]) <= q[..., 0])
        & (q[..., 0] <= np.maximum(p[..., 0], r[..., 0]))
        & (np.minimum(p[..., 1], r[..., 1]) <= q[..., 1])
        & (q[..., 1] <= np.maximum(p[..., 1], r[..., 1]))
    )


def path_crossings(
    points: NDArray[np.float64],
    line_start: Point2D,
    line_end: Point2D,
) -> NDArray[np.bool_]:
    """
    Test every consecutive segment of a polyline against one line segment.

    Vectorized equivalent of calling ``segments_intersect`` on
    ``(points[k], points[k + 1])`` for each k.

    Args:
        points: N x 2+ array of (lon, lat, ...) samples
        line_start, line_end: Endpoints of the line to cross

    Returns:
        Boolean array of length N - 1 (empty when N < 2)
    """
    if len(points) < 2:
        return np.zeros(0, dtype=np.bool_)

    p1 = points[:-1, :2]
    q1 = points[1:, :2]
    p2 = np.broadcast_to(np.asarray(line_start, dtype=np.float64), p1.shape)
    q2 = np.broadcast_to(np.asarray(line_end, dtype=np.float64), p1.shape)

    o1 = _orientation_array(p1, q1, p2)
    o2 = _orientation_array(p1, q1, q2)
    o3 = _orientation_array(p2, q2, p1)
    o4 = _orientation_array(p2, q2, q1)

    general = (o1 != o2) & (o3 != o4)
    collinear = (
        ((o1 == COLLINEAR) & _on_segment_array(p1, p2, q1))
        | ((o2 == COLLINEAR) & _on_segment_array(p1, q2, q1))
        | ((o3 == COLLINEAR) & _on_segment_array(p2, p1, q2))
        | ((o4 == COLLINEAR) & _on_segment_array(p2, q1, q2))
    )
    return general | collinear


def points_on_segment(
    points: NDArray[np.float64],
    line_start: Point2D,
    line_end: Point2D,
) -> NDArray[np.bool_]:
    """Whether each (lon, lat) sample lies exactly on the given segment."""
    if len(points) == 0:
        return np.zeros(0, dtype=np.bool_)
    xy = points[:, :2]
    p = np.broadcast_to(np.asarray(line_start, dtype=np.float64), xy.shape)
    r = np.broadcast_to(np.asarray(line_end, dtype=np.float64), xy.shape)
    return (_orientation_array(p, xy, r) == COLLINEAR) & _on_segment_array(p, xy, r)
