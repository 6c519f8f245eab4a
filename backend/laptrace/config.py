"""
Runtime configuration.

Values can be overridden through environment variables.
"""

import os
from pathlib import Path


EARTH_RADIUS_METERS = 6371000.0

# Synthetic samples inserted between each pair of GPS fixes
INTERPOLATION_FACTOR = int(os.getenv("LAPTRACE_INTERPOLATION_FACTOR", "100"))

# Max distance between trace centroid and finish line midpoint
TRACK_DETECTION_THRESHOLD_METERS = float(os.getenv("LAPTRACE_TRACK_THRESHOLD_M", "2000"))

# Fixed sampling cadence of RPM lap exports
RPM_SAMPLE_INTERVAL_S = 0.1

TRACKS_FILE_ENV = "LAPTRACE_TRACKS_FILE"
DEFAULT_TRACKS_FILE = Path("./data/tracks.json")

MICROSECONDS_PER_MILLISECOND = 1000
MILLISECONDS_PER_SECOND = 1000
SECONDS_PER_MINUTE = 60
