"""
Lap Splitter - cuts an interpolated session trace into timed laps.

A crossing happens where the segment between two consecutive samples
intersects the track's finish line. The samples between two consecutive
crossings form one lap; the crossing sample opens the next lap. The stretch
before the first crossing (out lap) and after the last one (incomplete lap)
are discarded.
"""

import logging

import numpy as np
from numpy.typing import NDArray

from laptrace.config import MICROSECONDS_PER_MILLISECOND
from laptrace.errors import LapSplitError
from laptrace.models.trace import Lap, Trace
from laptrace.models.track import Track
from laptrace.utils.formatting import format_lap_time
from laptrace.utils.geometry import path_crossings, points_on_segment


logger = logging.getLogger(__name__)


def find_crossings(trace: Trace, track: Track) -> NDArray[np.intp]:
    """
    Sample indices i at which segment (i-1, i) crosses the finish line.

    A sample lying exactly on the finish line is shared by two segments that
    both touch the line; only the first of them counts as a crossing.
    """
    coords = trace.coordinates
    hits = path_crossings(coords, track.finish_line_start, track.finish_line_end)
    if len(hits) == 0:
        return np.zeros(0, dtype=np.intp)

    on_line = points_on_segment(coords, track.finish_line_start, track.finish_line_end)
    repeat = np.zeros_like(hits)
    repeat[1:] = hits[:-1] & on_line[1:-1]

    return np.flatnonzero(hits & ~repeat) + 1


def _validate(trace: Trace) -> None:
    if not np.all(np.isfinite(trace.coordinates[:, :2])):
        raise LapSplitError("Trace contains non-finite coordinates")
    if not np.all(np.isfinite(trace.timestamps)):
        raise LapSplitError("Trace contains non-finite timestamps")
    if np.any(np.diff(trace.timestamps) < 0):
        raise LapSplitError("Trace timestamps are not in chronological order")


def _split(trace: Trace, track: Track) -> list[Lap]:
    _validate(trace)

    timestamps = trace.timestamps
    laps: list[Lap] = []
    lap_counter = 0
    lap_start_idx = 0
    lap_start_ts = timestamps[0] if len(timestamps) else 0.0

    for idx in find_crossings(trace, track):
        crossing_ts = timestamps[idx]

        # Nothing before the first crossing is a complete lap
        if lap_counter > 0:
            laps.append(
                Lap(
                    data=trace.slice(lap_start_idx, idx),
                    lap_time_ms=float(crossing_ts - lap_start_ts) / MICROSECONDS_PER_MILLISECOND,
                    lap_number=lap_counter,
                )
            )

        lap_counter += 1
        lap_start_idx = int(idx)
        lap_start_ts = crossing_ts

    return laps


def split_into_laps(trace: Trace, track: Track, strict: bool = False) -> list[Lap]:
    """
    Split an interpolated trace into laps on finish line crossings.

    Args:
        trace: Session trace, already passed through the resampler
        track: Track whose finish line delimits laps
        strict: Raise LapSplitError on malformed input instead of
            returning an empty list

    Returns:
        Laps numbered from 1, in chronological order
    """
    try:
        laps = _split(trace, track)
    except Exception as e:
        if strict:
            if isinstance(e, LapSplitError):
                raise
            raise LapSplitError(f"Failed to split trace into laps: {e}") from e
        logger.exception(f"Lap splitting failed on track '{getattr(track, 'name', '?')}'")
        return []

    if laps:
        best = min(laps, key=lambda lap: lap.lap_time_ms)
        logger.info(
            f"Split {len(laps)} laps on '{track.name}', best L{best.lap_number} "
            f"{format_lap_time(best.lap_time_ms)}"
        )
    else:
        logger.info(f"No complete laps found on '{track.name}'")
    return laps
