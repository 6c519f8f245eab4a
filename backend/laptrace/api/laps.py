"""
API routes for extracting laps from session files.
"""

import base64
import binascii
from typing import Optional

from fastapi import APIRouter, HTTPException

from laptrace.api.schemas import (
    ErrorResponse,
    ExtractLapsRequest,
    ExtractLapsResponse,
    LapResponse,
    RpmLapsRequest,
    RpmLapsResponse,
)
from laptrace.errors import SourceParseError, TrackNotDetectedError, TrackNotFoundError
from laptrace.models.trace import Lap
from laptrace.services.pipeline import extract_laps_from_file, extract_rpm_laps
from laptrace.services.track_registry import get_registry
from laptrace.utils.formatting import format_lap_time


router = APIRouter(prefix="/laps", tags=["laps"])


def _build_lap_response(lap: Lap, include_data: bool) -> LapResponse:
    return LapResponse(
        lap_number=lap.lap_number,
        lap_time_ms=lap.lap_time_ms,
        lap_time=format_lap_time(lap.lap_time_ms),
        sample_count=len(lap.data),
        data=lap.data.to_geojson() if include_data else None,
    )


def _best_lap_number(laps: list[Lap]) -> Optional[int]:
    if not laps:
        return None
    return min(laps, key=lambda lap: lap.lap_time_ms).lap_number


@router.post(
    "/extract",
    response_model=ExtractLapsResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def extract_laps(request: ExtractLapsRequest):
    """
    Split a session file (GPX, CSV, GeoJSON or video extractor output) into laps.

    The track is detected from the trace position unless ``track_id`` is given.
    """
    registry = get_registry()
    try:
        session = extract_laps_from_file(
            request.content,
            request.filename,
            registry=registry,
            track_id=request.track_id,
            threshold_m=request.threshold_m,
            factor=request.interpolation_factor,
        )
    except SourceParseError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TrackNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TrackNotDetectedError as e:
        raise HTTPException(status_code=422, detail=str(e))

    trace = session.trace
    return ExtractLapsResponse(
        track_id=session.track.id,
        track_name=session.track.name,
        detected=session.detected,
        device=trace.device,
        driver_name=trace.driver_name,
        session_start_ms=trace.session_start_ms,
        sample_count=len(trace),
        best_lap_number=_best_lap_number(session.laps),
        laps=[_build_lap_response(lap, request.include_data) for lap in session.laps],
    )


@router.post(
    "/rpm",
    response_model=RpmLapsResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def extract_rpm(request: RpmLapsRequest):
    """Reconstruct laps from a zip of per-lap RPM files."""
    try:
        bundle = base64.b64decode(request.bundle_b64, validate=True)
    except binascii.Error as e:
        raise HTTPException(status_code=400, detail=f"Invalid base64 bundle: {e}")

    registry = get_registry()
    try:
        track = registry.get_track(request.track_id)
        laps = extract_rpm_laps(
            bundle,
            track_id=request.track_id,
            front_sprocket=request.front_sprocket,
            rear_sprocket=request.rear_sprocket,
            wheel_circumference_m=request.wheel_circumference_m,
            registry=registry,
        )
    except TrackNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SourceParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return RpmLapsResponse(
        track_id=track.id,
        track_name=track.name,
        laps=[_build_lap_response(lap, request.include_data) for lap in laps],
    )
