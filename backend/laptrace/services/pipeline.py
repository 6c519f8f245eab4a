"""
Telemetry-to-laps pipeline.

raw input -> normalizer -> canonical trace -> (track detection) ->
resampler -> lap splitter -> laps

RPM bundles take a separate path straight to laps, since each file is
already one lap.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from laptrace.config import INTERPOLATION_FACTOR, TRACK_DETECTION_THRESHOLD_METERS
from laptrace.errors import TrackNotDetectedError
from laptrace.models.trace import Lap, Trace
from laptrace.models.track import Track
from laptrace.services.lap_splitter import split_into_laps
from laptrace.services.resampler import interpolate
from laptrace.services.rpm_reconstructor import RpmParams, process_lap_bundle
from laptrace.services.sources import SourceKind, detect_source_kind, normalize_source
from laptrace.services.track_detector import closest_track, detect_track
from laptrace.services.track_registry import TrackRegistry, get_registry


logger = logging.getLogger(__name__)


@dataclass
class SessionLaps:
    """Result of processing one session."""

    track: Track
    laps: list[Lap]
    trace: Trace
    detected: bool = False


def extract_laps(
    trace: Trace,
    tracks: Sequence[Track],
    track_index: Optional[int] = None,
    threshold_m: float = TRACK_DETECTION_THRESHOLD_METERS,
    factor: int = INTERPOLATION_FACTOR,
) -> SessionLaps:
    """
    Split a canonical trace into laps.

    Args:
        trace: Canonical session trace
        tracks: Candidate tracks
        track_index: Index of the track to use; detected when None
        threshold_m: Detection threshold in meters
        factor: Interpolation factor

    Raises:
        TrackNotDetectedError: if no track is given and none is close enough
    """
    detected = track_index is None
    if track_index is None:
        track_index = detect_track(trace, tracks, threshold_m)
        if track_index is None:
            _, distance = closest_track(trace, tracks)
            raise TrackNotDetectedError(distance, threshold_m)

    track = tracks[track_index]
    dense = interpolate(trace, factor)
    logger.debug(f"Interpolated {len(trace)} samples to {len(dense)}")

    laps = split_into_laps(dense, track)
    return SessionLaps(track=track, laps=laps, trace=trace, detected=detected)


def extract_laps_from_file(
    content: Union[str, bytes, dict],
    filename: str,
    registry: Optional[TrackRegistry] = None,
    track_id: Optional[str] = None,
    threshold_m: float = TRACK_DETECTION_THRESHOLD_METERS,
    factor: int = INTERPOLATION_FACTOR,
    kind: Optional[SourceKind] = None,
) -> SessionLaps:
    """
    Normalize a source file and split it into laps.

    Args:
        content: File content (or extractor payload for video sources)
        filename: Original file name, used to pick the source kind
        registry: Track registry; the global one when None
        track_id: Registry id of the track; detected when None
        kind: Explicit source kind, overriding the file extension
    """
    registry = registry or get_registry()
    kind = kind or detect_source_kind(filename)
    trace = normalize_source(content, kind)

    tracks = registry.list_tracks()
    track_index = None
    if track_id is not None:
        track = registry.get_track(track_id)
        track_index = next(i for i, t in enumerate(tracks) if t.id == track.id)

    return extract_laps(trace, tracks, track_index, threshold_m, factor)


def extract_rpm_laps(
    bundle: Union[bytes, Path],
    track_id: str,
    front_sprocket: int,
    rear_sprocket: int,
    wheel_circumference_m: float,
    registry: Optional[TrackRegistry] = None,
    start_us: Optional[float] = None,
) -> list[Lap]:
    """Reconstruct laps from a per-lap RPM bundle for a registry track."""
    registry = registry or get_registry()
    params = RpmParams(
        front_sprocket=front_sprocket,
        rear_sprocket=rear_sprocket,
        wheel_circumference_m=wheel_circumference_m,
        track=registry.get_track(track_id),
    )
    return process_lap_bundle(bundle, params, start_us)
