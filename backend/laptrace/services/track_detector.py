"""
Track detection from a session's position trace.

The trace centroid (plain mean of longitudes and latitudes) is compared to
each candidate track's finish line midpoint. The closest candidate wins if it
is within the threshold distance.
"""

import logging
from typing import Optional, Sequence

from laptrace.config import TRACK_DETECTION_THRESHOLD_METERS
from laptrace.models.trace import Trace
from laptrace.models.track import Track
from laptrace.utils.geodesy import haversine_distance, midpoint


logger = logging.getLogger(__name__)


def closest_track(trace: Trace, candidates: Sequence[Track]) -> tuple[Optional[int], float]:
    """
    Find the candidate whose finish line midpoint is nearest the trace centroid.

    Candidates only need ``finish_line_start`` and ``finish_line_end``
    attributes, so records from outside the registry (e.g. partially filled
    track rows) can be passed directly. Those missing either endpoint are
    skipped; a validated ``Track`` always has both. Ties keep the first
    candidate encountered.

    Returns:
        (index, distance in meters), or (None, inf) when there is no usable
        candidate
    """
    avg_lon, avg_lat = trace.centroid()

    closest_index: Optional[int] = None
    closest_distance = float("inf")

    for i, track in enumerate(candidates):
        start = getattr(track, "finish_line_start", None)
        end = getattr(track, "finish_line_end", None)
        if start is None or end is None:
            continue

        mid_lon, mid_lat = midpoint(start, end)
        distance = float(haversine_distance(avg_lat, avg_lon, mid_lat, mid_lon))
        if distance < closest_distance:
            closest_distance = distance
            closest_index = i

    return closest_index, closest_distance


def detect_track(
    trace: Trace,
    candidates: Sequence[Track],
    threshold_m: float = TRACK_DETECTION_THRESHOLD_METERS,
) -> Optional[int]:
    """
    Identify which candidate track a trace was recorded on.

    Args:
        trace: Canonical session trace
        candidates: Tracks to check against, in priority order
        threshold_m: Maximum centroid-to-finish-line distance for a match

    Returns:
        Index into candidates, or None if nothing is within threshold
    """
    index, distance = closest_track(trace, candidates)
    if index is None or distance > threshold_m:
        logger.warning(f"No track within {threshold_m:.0f} m of trace centroid (closest {distance:.0f} m)")
        return None

    logger.info(f"Detected track '{candidates[index].name}' at {distance:.0f} m")
    return index
