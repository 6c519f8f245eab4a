"""
Source Normalizer - converts input files into a canonical Trace.

Supported sources:
- video: position stream already extracted from a camera's telemetry track
  (GeoJSON Feature payload produced upstream)
- gpx: GPX 1.0/1.1 track points
- csv: AiM-style lap timer exports (metadata block, header row, units row, data)
- geojson: a previously exported canonical trace
"""

import json
import logging
import re
import time
from datetime import timezone
from enum import Enum
from typing import Callable, Optional, Union

import gpxpy
import gpxpy.gpx
import numpy as np
import pandas as pd

from laptrace.config import MICROSECONDS_PER_MILLISECOND
from laptrace.errors import SourceParseError
from laptrace.models.trace import Trace
from laptrace.utils.tabular import read_csv_block


logger = logging.getLogger(__name__)


class SourceKind(Enum):
    """Input file kinds accepted by the normalizer."""

    VIDEO = "video"
    GPX = "gpx"
    CSV = "csv"
    GEOJSON = "geojson"


EXTENSION_KINDS = {
    "mp4": SourceKind.VIDEO,
    "gpx": SourceKind.GPX,
    "geojson": SourceKind.GEOJSON,
    "json": SourceKind.GEOJSON,
    "csv": SourceKind.CSV,
}

CSV_TIME_COLUMN = "Time"
CSV_LAT_COLUMN = "GPS Latitude"
CSV_LON_COLUMN = "GPS Longitude"
CSV_ALT_COLUMN = "GPS Altitude"

_DATE_PATTERN = re.compile(r'^"Date","(.*)"')
_QUOTED_VALUE = re.compile(r'^"(?:Time|Racer)",\s*"?([^"]*)"?')


def detect_source_kind(filename: str) -> SourceKind:
    """Source kind from a file name's extension."""
    ext = filename.lower().rsplit(".", 1)[-1] if "." in filename else ""
    try:
        return EXTENSION_KINDS[ext]
    except KeyError:
        raise SourceParseError(f"Unsupported file type: {filename}") from None


def _as_text(content: Union[str, bytes]) -> str:
    if isinstance(content, bytes):
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise SourceParseError(f"File is not UTF-8 text: {e}") from e
    return content


# ============================================================================
# Video-derived / GeoJSON
# ============================================================================

def from_video_payload(payload: Union[dict, str, bytes]) -> Trace:
    """
    Canonical trace from the upstream video telemetry extractor.

    The payload is already a GeoJSON Feature; only the driver name is reset.
    """
    if not isinstance(payload, dict):
        payload = _load_json(_as_text(payload))
    trace = _feature_to_trace(payload)
    trace.driver_name = ""
    return trace


def parse_geojson(content: Union[str, bytes]) -> Trace:
    """Canonical trace from exported GeoJSON text."""
    return _feature_to_trace(_load_json(_as_text(content)))


def _load_json(text: str) -> dict:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SourceParseError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SourceParseError("JSON trace must be a GeoJSON Feature object")
    return data


def _feature_to_trace(data: dict) -> Trace:
    try:
        return Trace.from_geojson(data)
    except (KeyError, TypeError, ValueError) as e:
        raise SourceParseError(f"Invalid GeoJSON trace: {e}") from e


# ============================================================================
# GPX
# ============================================================================

def parse_gpx(content: Union[str, bytes]) -> Trace:
    """
    Canonical trace from GPX track points.

    Elevation defaults to 0 and time to epoch 0 when a point lacks them.

    Raises:
        SourceParseError: malformed XML or no track points
    """
    try:
        gpx = gpxpy.parse(_as_text(content))
    except (gpxpy.gpx.GPXException, ValueError, TypeError) as e:
        raise SourceParseError(f"Invalid GPX file: {e}") from e

    coordinates: list[tuple[float, float, float]] = []
    timestamps_ms: list[float] = []

    for track in gpx.tracks:
        for segment in track.segments:
            for point in segment.points:
                elevation = point.elevation if point.elevation is not None else 0.0
                coordinates.append((point.longitude, point.latitude, elevation))

                if point.time is None:
                    timestamps_ms.append(0.0)
                    continue
                dt = point.time
                if dt.tzinfo is None:
                    dt = dt.replace(tzinfo=timezone.utc)
                timestamps_ms.append(dt.timestamp() * 1000)

    if not coordinates:
        raise SourceParseError("GPX file contains no track points")

    timestamps = np.asarray(timestamps_ms, dtype=np.float64) * MICROSECONDS_PER_MILLISECOND

    return Trace(
        coordinates=np.asarray(coordinates, dtype=np.float64),
        timestamps=timestamps,
        device="GPX",
        session_start_ms=float(timestamps[0]) / MICROSECONDS_PER_MILLISECOND,
        driver_name="",
    )


# ============================================================================
# CSV (AiM lap timer export)
# ============================================================================

def _split_cells(line: str) -> list[str]:
    return [cell.replace('"', "").strip() for cell in line.split(",")]


def _is_header_line(line: str) -> bool:
    cells = _split_cells(line)
    return CSV_TIME_COLUMN in cells and any(c.startswith("GPS ") for c in cells)


def _find_header_line(lines: list[str]) -> Optional[int]:
    for i, line in enumerate(lines):
        if _is_header_line(line):
            return i
    return None


def _read_csv_metadata(lines: list[str]) -> tuple[str, str, str]:
    """Date, time and racer strings from the metadata block above the header."""
    date_str = ""
    time_str = ""
    driver_name = ""

    for line in lines:
        if _is_header_line(line):
            break
        if line.startswith('"Date"'):
            match = _DATE_PATTERN.match(line)
            if match:
                date_str = match.group(1)
            else:
                date_str = ",".join(line.split(",")[1:]).replace('"', "").strip()
        elif line.startswith('"Time"'):
            match = _QUOTED_VALUE.match(line)
            if match:
                time_str = match.group(1).strip()
        elif line.startswith('"Racer"'):
            match = _QUOTED_VALUE.match(line)
            if match:
                driver_name = match.group(1).strip()

    return date_str, time_str, driver_name


def _parse_session_start(date_str: str, time_str: str) -> float:
    """Session start in ms since epoch; falls back to now."""
    if date_str:
        try:
            parsed = pd.to_datetime(f"{date_str} {time_str}".strip())
        except (ValueError, OverflowError):
            parsed = None
        if parsed is not None and not pd.isna(parsed):
            if parsed.tzinfo is None:
                parsed = parsed.tz_localize("UTC")
            return parsed.timestamp() * 1000

    logger.warning(f"Could not parse session date '{date_str} {time_str}', using current time")
    return time.time() * 1000


def parse_csv(content: Union[str, bytes]) -> Trace:
    """
    Canonical trace from an AiM-style CSV export.

    Rows with a non-numeric time or invalid coordinates are skipped.
    Absolute timestamps are ``session_start_ms * 1000 + time_s * 1e6``.

    Raises:
        SourceParseError: if Time, GPS Latitude or GPS Longitude is missing
    """
    lines = _as_text(content).splitlines()

    date_str, time_str, driver_name = _read_csv_metadata(lines)
    session_start_ms = _parse_session_start(date_str, time_str)

    header_idx = _find_header_line(lines)
    if header_idx is None:
        raise SourceParseError(
            "Invalid CSV format: Missing required GPS columns (Time, GPS Latitude, GPS Longitude)"
        )

    columns: list[str] = []
    for i, cell in enumerate(_split_cells(lines[header_idx])):
        columns.append(cell if cell and cell not in columns else f"_column_{i}")
    df = read_csv_block(lines[header_idx + 1 :], columns)

    missing = [c for c in (CSV_TIME_COLUMN, CSV_LAT_COLUMN, CSV_LON_COLUMN) if c not in df.columns]
    if missing:
        raise SourceParseError(
            f"Invalid CSV format: Missing required GPS columns ({', '.join(missing)})"
        )

    rel_time = pd.to_numeric(df[CSV_TIME_COLUMN], errors="coerce")
    lat = pd.to_numeric(df[CSV_LAT_COLUMN], errors="coerce")
    lon = pd.to_numeric(df[CSV_LON_COLUMN], errors="coerce")
    if CSV_ALT_COLUMN in df.columns:
        alt = pd.to_numeric(df[CSV_ALT_COLUMN], errors="coerce").fillna(0.0)
    else:
        alt = pd.Series(0.0, index=df.index)

    valid = (
        rel_time.notna()
        & lat.notna()
        & lon.notna()
        & lat.between(-90, 90)
        & lon.between(-180, 180)
    )

    skipped = int((rel_time.notna() & ~valid).sum())
    if skipped:
        logger.warning(f"Skipped {skipped} CSV rows with invalid coordinates")

    coordinates = np.column_stack(
        [
            lon[valid].to_numpy(dtype=np.float64),
            lat[valid].to_numpy(dtype=np.float64),
            alt[valid].to_numpy(dtype=np.float64),
        ]
    )
    timestamps = session_start_ms * 1000 + rel_time[valid].to_numpy(dtype=np.float64) * 1_000_000

    return Trace(
        coordinates=coordinates,
        timestamps=timestamps,
        device="AiM CSV",
        session_start_ms=session_start_ms,
        driver_name=driver_name,
    )


# ============================================================================
# Dispatch
# ============================================================================

PARSERS: dict[SourceKind, Callable[..., Trace]] = {
    SourceKind.VIDEO: from_video_payload,
    SourceKind.GPX: parse_gpx,
    SourceKind.CSV: parse_csv,
    SourceKind.GEOJSON: parse_geojson,
}


def normalize_source(content: Union[str, bytes, dict], kind: SourceKind) -> Trace:
    """
    Convert raw input of the given kind into a canonical Trace.

    Args:
        content: File text/bytes, or the extractor payload for video sources
        kind: Source kind, see ``detect_source_kind``
    """
    trace = PARSERS[kind](content)
    logger.info(f"Normalized {kind.value} source: {len(trace)} samples from '{trace.device}'")
    return trace
