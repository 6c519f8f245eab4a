"""
Canonical trace and lap data model.

Every source format is normalized into a ``Trace``:
- coordinates as (longitude, latitude, elevation) rows, WGS84 degrees / meters
- one absolute timestamp per row, microseconds since epoch
- session metadata (device label, start time, driver)

The GeoJSON Feature layout used on the wire is:

    {"type": "Feature",
     "geometry": {"type": "LineString", "coordinates": [[lon, lat, ele], ...]},
     "properties": {"device": ..., "AbsoluteUtcMicroSec": [...],
                    "sessionStartTime": ms, "driverName": ...}}
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from laptrace.config import MICROSECONDS_PER_MILLISECOND
from laptrace.utils.geodesy import centroid


@dataclass
class Trace:
    """Time-aligned sequence of position samples for one recording session."""

    coordinates: NDArray[np.float64]  # (N, 3): lon, lat, elevation
    timestamps: NDArray[np.float64]   # (N,): microseconds since epoch
    device: str = ""
    session_start_ms: float = 0.0
    driver_name: str = ""

    def __post_init__(self):
        self.coordinates = np.asarray(self.coordinates, dtype=np.float64).reshape(-1, 3)
        self.timestamps = np.asarray(self.timestamps, dtype=np.float64).reshape(-1)
        if len(self.coordinates) != len(self.timestamps):
            raise ValueError(
                f"Trace has {len(self.coordinates)} coordinates but {len(self.timestamps)} timestamps"
            )

    def __len__(self) -> int:
        return len(self.timestamps)

    @property
    def longitude(self) -> NDArray[np.float64]:
        return self.coordinates[:, 0]

    @property
    def latitude(self) -> NDArray[np.float64]:
        return self.coordinates[:, 1]

    @property
    def elevation(self) -> NDArray[np.float64]:
        return self.coordinates[:, 2]

    @property
    def duration_ms(self) -> float:
        if len(self.timestamps) < 2:
            return 0.0
        return float(self.timestamps[-1] - self.timestamps[0]) / MICROSECONDS_PER_MILLISECOND

    def centroid(self) -> tuple[float, float]:
        """Mean (lon, lat) of all samples."""
        return centroid(self.coordinates)

    def slice(self, start: int, stop: int) -> "Trace":
        """Independent copy of samples [start, stop) with the same metadata."""
        return Trace(
            coordinates=self.coordinates[start:stop].copy(),
            timestamps=self.timestamps[start:stop].copy(),
            device=self.device,
            session_start_ms=self.session_start_ms,
            driver_name=self.driver_name,
        )

    def to_geojson(self) -> dict:
        return {
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": self.coordinates.tolist(),
            },
            "properties": {
                "device": self.device,
                "AbsoluteUtcMicroSec": self.timestamps.tolist(),
                "sessionStartTime": self.session_start_ms,
                "driverName": self.driver_name,
            },
        }

    @classmethod
    def from_geojson(cls, data: dict) -> "Trace":
        """
        Build a trace from a GeoJSON Feature dict.

        Points given as [lon, lat], or with a non-finite elevation, get
        elevation 0. ``sessionStartTime`` defaults to the first timestamp
        (converted to ms) when absent.

        Raises:
            KeyError, TypeError, ValueError: on a structurally invalid feature
        """
        geometry = data["geometry"]
        properties = data["properties"]

        raw_coords = geometry["coordinates"]
        coords = np.zeros((len(raw_coords), 3), dtype=np.float64)
        for i, point in enumerate(raw_coords):
            if len(point) < 2:
                raise ValueError(f"Coordinate {i} has fewer than two components")
            coords[i, : min(len(point), 3)] = point[:3]
        coords[~np.isfinite(coords[:, 2]), 2] = 0.0

        timestamps = np.asarray(properties["AbsoluteUtcMicroSec"], dtype=np.float64)

        session_start = properties.get("sessionStartTime")
        if session_start is None:
            session_start = timestamps[0] / MICROSECONDS_PER_MILLISECOND if len(timestamps) else 0.0

        return cls(
            coordinates=coords,
            timestamps=timestamps,
            device=properties.get("device") or "",
            session_start_ms=float(session_start),
            driver_name=properties.get("driverName") or "",
        )


@dataclass(frozen=True)
class Lap:
    """A single lap cut from a session trace."""

    data: Trace
    lap_time_ms: float
    lap_number: int

    def to_dict(self) -> dict:
        return {
            "data": self.data.to_geojson(),
            "lapTime": self.lap_time_ms,
            "lapNumber": self.lap_number,
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SavedLap:
    """Lap enriched for storage by a persistence layer."""

    driver_name: str
    track_name: str
    lap_number: int
    lap_time_ms: float
    session_time_ms: float
    data: Trace
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    saved_at_ms: int = field(default_factory=_now_ms)

    @classmethod
    def from_lap(
        cls,
        lap: Lap,
        driver_name: str,
        track_name: str,
        session_time_ms: float,
        lap_id: Optional[str] = None,
    ) -> "SavedLap":
        saved = cls(
            driver_name=driver_name,
            track_name=track_name,
            lap_number=lap.lap_number,
            lap_time_ms=lap.lap_time_ms,
            session_time_ms=session_time_ms,
            data=lap.data,
        )
        if lap_id is not None:
            saved.id = lap_id
        return saved

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "driverName": self.driver_name,
            "trackName": self.track_name,
            "lapNumber": self.lap_number,
            "lapTime": self.lap_time_ms,
            "sessionTime": self.session_time_ms,
            "data": self.data.to_geojson(),
            "savedAt": self.saved_at_ms,
        }
