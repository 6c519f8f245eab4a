"""
RPM-Distance Reconstructor for lap timers without GPS.

Alfano-style exports contain one CSV per lap (``LAP_<n>.csv``) sampled every
0.1 s with engine RPM and two temperatures. Speed is derived from RPM through
the sprocket ratio and wheel circumference, integrated into distance, then
rescaled ("rubber-banded") so each lap measures exactly the track's reference
length. The result is a 1-D trace: cumulative distance in meters on the
longitude axis, latitude and elevation fixed at 0.
"""

import io
import logging
import re
import time
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Mapping, Optional, Union

import numpy as np
import pandas as pd

from laptrace.config import MICROSECONDS_PER_MILLISECOND, RPM_SAMPLE_INTERVAL_S
from laptrace.errors import SourceParseError
from laptrace.models.trace import Lap, Trace
from laptrace.models.track import Track
from laptrace.utils.tabular import read_csv_block


logger = logging.getLogger(__name__)

RPM_DEVICE = "Alfano (Calculated)"
SAMPLE_INTERVAL_US = int(RPM_SAMPLE_INTERVAL_S * 1_000_000)
SAMPLE_INTERVAL_MS = RPM_SAMPLE_INTERVAL_S * 1000

LAP_FILE_PATTERN = re.compile(r"^LAP_(\d+)[^/]*\.csv$")

RPM_COLUMNS = ["rpm", "temp1", "temp2"]


@dataclass
class RpmParams:
    """Drivetrain and track parameters for RPM-based reconstruction."""

    front_sprocket: int
    rear_sprocket: int
    wheel_circumference_m: float
    track: Track

    def __post_init__(self):
        if self.front_sprocket <= 0 or self.rear_sprocket <= 0:
            raise ValueError("Sprocket tooth counts must be positive")
        if self.wheel_circumference_m <= 0:
            raise ValueError("Wheel circumference must be positive")

    @property
    def meters_per_revolution(self) -> float:
        """Distance covered per engine revolution."""
        return (self.front_sprocket / self.rear_sprocket) * self.wheel_circumference_m


def parse_rpm_lap(content: str) -> pd.DataFrame:
    """
    Parse one lap file into rpm/temp1/temp2 columns.

    The first line is a header. Columns 2-4 hold RPM and the two
    temperatures; missing or non-numeric cells read as 0.
    """
    lines = content.strip().splitlines()
    if len(lines) <= 1:
        return pd.DataFrame({name: pd.Series(dtype=np.float64) for name in RPM_COLUMNS})

    df = read_csv_block(lines[1:], ["time", *RPM_COLUMNS])
    return pd.DataFrame(
        {
            name: pd.to_numeric(df[name], errors="coerce").fillna(0.0).astype(np.float64)
            for name in RPM_COLUMNS
        }
    )


def reconstruct_lap(
    samples: pd.DataFrame,
    params: RpmParams,
    lap_number: int,
    start_us: float,
) -> Lap:
    """
    Build a 1-D lap trace from RPM samples.

    Args:
        samples: Output of ``parse_rpm_lap`` (must not be empty)
        params: Drivetrain and track parameters
        lap_number: Lap number taken from the file name
        start_us: Absolute timestamp of the first sample, microseconds

    Returns:
        Lap whose final cumulative distance equals the track length
    """
    rpm = samples["rpm"].to_numpy(dtype=np.float64)
    n = len(rpm)

    speed_ms = (rpm / 60.0) * params.meters_per_revolution
    step_distance = speed_ms * RPM_SAMPLE_INTERVAL_S
    raw_total = float(step_distance.sum())

    if raw_total > 0:
        correction = params.track.length_m / raw_total
    else:
        logger.warning(f"Lap {lap_number} has no RPM-derived distance, skipping correction")
        correction = 1.0

    cumulative = np.cumsum(step_distance * correction)
    coordinates = np.column_stack([cumulative, np.zeros(n), np.zeros(n)])
    timestamps = start_us + np.arange(n, dtype=np.float64) * SAMPLE_INTERVAL_US

    trace = Trace(
        coordinates=coordinates,
        timestamps=timestamps,
        device=RPM_DEVICE,
        session_start_ms=start_us / MICROSECONDS_PER_MILLISECOND,
        driver_name="",
    )
    logger.debug(
        f"Lap {lap_number}: raw distance {raw_total:.1f} m, correction {correction:.4f}"
    )
    return Lap(data=trace, lap_time_ms=n * SAMPLE_INTERVAL_MS, lap_number=lap_number)


def lap_number_from_name(name: str) -> Optional[int]:
    """Lap number embedded in a ``LAP_<n>...csv`` file name, or None."""
    match = LAP_FILE_PATTERN.match(PurePosixPath(name).name)
    return int(match.group(1)) if match else None


def process_lap_files(
    files: Mapping[str, str],
    params: RpmParams,
    start_us: Optional[float] = None,
) -> list[Lap]:
    """
    Reconstruct laps from a set of per-lap files.

    Files not named ``LAP_<n>*.csv`` and empty laps are ignored. Laps are
    ordered by lap number and laid end to end in time from ``start_us``
    (defaults to now).

    Args:
        files: Mapping of file name to file text
        params: Drivetrain and track parameters
        start_us: Timestamp of the first lap's first sample, microseconds
    """
    numbered = []
    for name, content in files.items():
        number = lap_number_from_name(name)
        if number is not None:
            numbered.append((number, name, content))
    numbered.sort(key=lambda item: item[0])

    cursor = start_us if start_us is not None else time.time() * 1_000_000
    laps: list[Lap] = []

    for number, name, content in numbered:
        samples = parse_rpm_lap(content)
        if samples.empty:
            logger.warning(f"Lap file {name} has no samples, skipping")
            continue
        lap = reconstruct_lap(samples, params, number, cursor)
        cursor += len(samples) * SAMPLE_INTERVAL_US
        laps.append(lap)

    logger.info(f"Reconstructed {len(laps)} laps from {len(numbered)} lap files")
    return laps


def process_lap_bundle(
    bundle: Union[bytes, Path],
    params: RpmParams,
    start_us: Optional[float] = None,
) -> list[Lap]:
    """
    Reconstruct laps from a zip archive of ``LAP_<n>.csv`` files.

    Raises:
        SourceParseError: if the bundle is not a valid zip archive
    """
    source = io.BytesIO(bundle) if isinstance(bundle, bytes) else bundle
    try:
        with zipfile.ZipFile(source) as archive:
            files = {
                info.filename: archive.read(info).decode("utf-8", errors="replace")
                for info in archive.infolist()
                if not info.is_dir() and lap_number_from_name(info.filename) is not None
            }
    except zipfile.BadZipFile as e:
        raise SourceParseError(f"Invalid lap bundle: {e}") from e

    return process_lap_files(files, params, start_us)
