"""
Display formatting helpers.
"""

import math
from typing import Optional

from laptrace.config import MILLISECONDS_PER_SECOND, SECONDS_PER_MINUTE


def format_lap_time(lap_time_ms: Optional[float]) -> str:
    """
    Format a lap time in milliseconds.

    Returns:
        "1:23.45" above a minute, "23.45" below, "N/A" for missing values
    """
    if lap_time_ms is None or math.isnan(lap_time_ms):
        return "N/A"

    ms_per_minute = MILLISECONDS_PER_SECOND * SECONDS_PER_MINUTE
    minutes = int(lap_time_ms // ms_per_minute)
    seconds = int((lap_time_ms % ms_per_minute) // MILLISECONDS_PER_SECOND)
    centiseconds = int((lap_time_ms % MILLISECONDS_PER_SECOND) // 10)

    if minutes > 0:
        return f"{minutes}:{seconds:02d}.{centiseconds:02d}"
    return f"{seconds}.{centiseconds:02d}"
