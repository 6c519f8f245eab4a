"""
Temporal upsampling of a canonical trace.

GPS fixes may arrive as slowly as once per second. Finish line crossing
detection needs much finer spacing to place the crossing instant precisely,
so each gap between consecutive fixes is split into ``factor`` equal steps
by linear interpolation of longitude, latitude, elevation and timestamp.
"""

import numpy as np

from laptrace.config import INTERPOLATION_FACTOR
from laptrace.models.trace import Trace


def interpolate(trace: Trace, factor: int = INTERPOLATION_FACTOR) -> Trace:
    """
    Insert evenly spaced synthetic samples between each pair of samples.

    For every pair (i, i+1) the output holds sample i plus ``factor - 1``
    intermediate samples; the final input sample is appended unmodified.
    Output length is ``(N - 1) * factor + 1`` for N >= 2. An empty trace
    stays empty and a single sample is returned as is.

    Args:
        trace: Canonical trace (N samples)
        factor: Number of subdivisions per gap (>= 1)

    Returns:
        New, denser Trace with the same metadata
    """
    if factor < 1:
        raise ValueError(f"Interpolation factor must be >= 1, got {factor}")

    n = len(trace)
    if n <= 1:
        return trace.slice(0, n)

    coords = trace.coordinates
    times = trace.timestamps

    j = np.arange(factor, dtype=np.float64)

    coord_step = (coords[1:] - coords[:-1]) / factor          # (N-1, 3)
    new_coords = coords[:-1, None, :] + j[None, :, None] * coord_step[:, None, :]
    new_coords = new_coords.reshape(-1, 3)

    time_step = (times[1:] - times[:-1]) / factor             # (N-1,)
    new_times = (times[:-1, None] + j[None, :] * time_step[:, None]).reshape(-1)

    return Trace(
        coordinates=np.vstack([new_coords, coords[-1:]]),
        timestamps=np.concatenate([new_times, times[-1:]]),
        device=trace.device,
        session_start_ms=trace.session_start_ms,
        driver_name=trace.driver_name,
    )
