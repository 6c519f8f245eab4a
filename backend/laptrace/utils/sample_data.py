"""
Sample data generator for testing.

Generates synthetic karting sessions: a car lapping a square circuit at
constant speed, exported as a canonical trace, AiM-style CSV, GPX or a zip of
per-lap RPM files.
"""

import io
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

import gpxpy.gpx
import numpy as np

from laptrace.models.trace import Trace
from laptrace.models.track import Track


METERS_PER_DEG_LAT = 111000

DEFAULT_CENTER_LAT = 45.4642
DEFAULT_CENTER_LON = 9.1900
DEFAULT_START_US = 1_700_000_000_000_000.0


def _local_to_gps(
    x_local: np.ndarray,
    y_local: np.ndarray,
    center_lat: float,
    center_lon: float,
) -> tuple[np.ndarray, np.ndarray]:
    meters_per_deg_lon = METERS_PER_DEG_LAT * np.cos(np.radians(center_lat))
    lat = center_lat + y_local / METERS_PER_DEG_LAT
    lon = center_lon + x_local / meters_per_deg_lon
    return lat, lon


def _square_position(u: np.ndarray, side_m: float) -> tuple[np.ndarray, np.ndarray]:
    """
    Local (x, y) after travelling u meters counterclockwise around a square
    centred on the origin, starting from its bottom-left corner.
    """
    half = side_m / 2
    u = np.mod(u, 4 * side_m)
    edge = np.floor_divide(u, side_m)
    t = u - edge * side_m

    x = np.select(
        [edge == 0, edge == 1, edge == 2],
        [-half + t, np.full_like(t, half), half - t],
        default=-half,
    )
    y = np.select(
        [edge == 0, edge == 1, edge == 2],
        [np.full_like(t, -half), -half + t, np.full_like(t, half)],
        default=half - t,
    )
    return x, y


def make_square_track(
    name: str = "Square",
    center_lat: float = DEFAULT_CENTER_LAT,
    center_lon: float = DEFAULT_CENTER_LON,
    side_m: float = 100.0,
    line_half_width_m: float = 10.0,
) -> Track:
    """Square circuit whose finish line crosses the middle of the bottom edge."""
    half = side_m / 2
    lat, lon = _local_to_gps(
        np.array([0.0, 0.0]),
        np.array([-half - line_half_width_m, -half + line_half_width_m]),
        center_lat,
        center_lon,
    )
    return Track(
        name=name,
        length_m=4 * side_m,
        finish_line_start=(float(lon[0]), float(lat[0])),
        finish_line_end=(float(lon[1]), float(lat[1])),
    )


def generate_square_session(
    loops: int = 3,
    side_m: float = 100.0,
    speed_ms: float = 10.0,
    sample_rate_hz: float = 1.0,
    center_lat: float = DEFAULT_CENTER_LAT,
    center_lon: float = DEFAULT_CENTER_LON,
    start_us: float = DEFAULT_START_US,
    noise_m: float = 0.0,
    seed: Optional[int] = None,
    device: str = "Synthetic",
) -> Trace:
    """
    Generate a session lapping the square circuit of ``make_square_track``.

    The car starts a quarter of an edge before the finish line and stops a
    quarter of an edge past it after ``loops`` full laps, so the line is
    crossed ``loops + 1`` times.
    """
    perimeter = 4 * side_m
    start_u = side_m / 4
    total_distance = loops * perimeter + side_m / 2

    step = speed_ms / sample_rate_hz
    n_samples = int(total_distance // step) + 1
    u = start_u + np.arange(n_samples) * step

    x_local, y_local = _square_position(u, side_m)
    if noise_m > 0:
        rng = np.random.default_rng(seed)
        x_local = x_local + rng.normal(0, noise_m, n_samples)
        y_local = y_local + rng.normal(0, noise_m, n_samples)

    lat, lon = _local_to_gps(x_local, y_local, center_lat, center_lon)
    elevation = np.full(n_samples, 250.0)

    timestamps = start_us + np.arange(n_samples) * (1_000_000 / sample_rate_hz)

    return Trace(
        coordinates=np.column_stack([lon, lat, elevation]),
        timestamps=timestamps,
        device=device,
        session_start_ms=start_us / 1000,
        driver_name="",
    )


def trace_to_aim_csv(
    trace: Trace,
    date_str: str = "Sunday, December 7, 2025",
    time_str: str = "1:33 PM",
    racer: str = "Test Driver",
) -> str:
    """Render a trace as an AiM-style CSV export (times relative to the first sample)."""
    lines = [
        '"Format","AiM CSV File"',
        '"Session","Synthetic"',
        '"Vehicle","Kart"',
        f'"Racer","{racer}"',
        f'"Date","{date_str}"',
        f'"Time","{time_str}"',
        '"Sample Rate","1"',
        "",
        '"Time","GPS Speed","GPS Latitude","GPS Longitude","GPS Altitude"',
        '"s","km/h","deg","deg","m"',
        "",
    ]
    relative_s = (trace.timestamps - trace.timestamps[0]) / 1_000_000
    for t, (lon, lat, ele) in zip(relative_s, trace.coordinates):
        lines.append(f'"{t:.3f}","36.0","{lat:.8f}","{lon:.8f}","{ele:.1f}"')
    return "\n".join(lines) + "\n"


def trace_to_gpx(trace: Trace) -> str:
    """Render a trace as GPX 1.1 XML."""
    gpx = gpxpy.gpx.GPX()
    track = gpxpy.gpx.GPXTrack(name="Synthetic session")
    segment = gpxpy.gpx.GPXTrackSegment()
    gpx.tracks.append(track)
    track.segments.append(segment)

    for (lon, lat, ele), ts in zip(trace.coordinates, trace.timestamps):
        segment.points.append(
            gpxpy.gpx.GPXTrackPoint(
                latitude=float(lat),
                longitude=float(lon),
                elevation=float(ele),
                time=datetime.fromtimestamp(ts / 1_000_000, tz=timezone.utc),
            )
        )
    return gpx.to_xml()


def rpm_lap_csv(rpm: Sequence[float], temp1: float = 60.0, temp2: float = 55.0) -> str:
    """One per-lap RPM file sampled at 0.1 s."""
    lines = ["Time,RPM,T1,T2"]
    for i, value in enumerate(rpm):
        lines.append(f"{i * 0.1:.1f},{value:.0f},{temp1:.0f},{temp2:.0f}")
    return "\n".join(lines) + "\n"


def generate_rpm_bundle(laps: Sequence[Sequence[float]], first_lap: int = 1) -> bytes:
    """Zip archive with one ``LAP_<n>.csv`` per RPM sequence."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for offset, rpm in enumerate(laps):
            archive.writestr(f"LAP_{first_lap + offset}.csv", rpm_lap_csv(rpm))
    return buffer.getvalue()


def generate_test_data_set(output_folder: Path) -> list[Path]:
    """Write a set of sample session files."""
    output_folder.mkdir(parents=True, exist_ok=True)

    session = generate_square_session(loops=5, noise_m=0.5, seed=7)

    files = [
        output_folder / "square_5_laps.csv",
        output_folder / "square_5_laps.gpx",
        output_folder / "square_rpm.zip",
    ]
    files[0].write_text(trace_to_aim_csv(session))
    files[1].write_text(trace_to_gpx(session))

    rng = np.random.default_rng(7)
    files[2].write_bytes(
        generate_rpm_bundle([rng.uniform(8000, 14000, 400) for _ in range(5)])
    )
    return files


if __name__ == "__main__":
    output = Path("./data/samples")
    files = generate_test_data_set(output)
    print(f"Generated {len(files)} sample files in {output}")
    for f in files:
        print(f"  - {f.name}")
