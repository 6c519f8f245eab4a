"""
API routes for the track registry.
"""

from fastapi import APIRouter, HTTPException

from laptrace.api.schemas import ErrorResponse, TrackRequest, TrackResponse
from laptrace.errors import InvalidTrackError, TrackNotFoundError, TrackPermissionError
from laptrace.models.track import SavedTrack, Track
from laptrace.services.track_registry import get_registry


router = APIRouter(prefix="/tracks", tags=["tracks"])

NOT_FOUND = {404: {"model": ErrorResponse}}
READ_ONLY = {403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}


def _build_track_response(track: SavedTrack) -> TrackResponse:
    return TrackResponse(
        id=track.id,
        name=track.name,
        length=track.length_m,
        fl_start=track.finish_line_start,
        fl_end=track.finish_line_end,
        midpoint=track.finish_line_midpoint,
        notes=track.notes,
        is_system=track.is_system,
        created_at=track.created_at,
        updated_at=track.updated_at,
    )


def _track_from_request(request: TrackRequest) -> Track:
    try:
        return Track(
            name=request.name,
            length_m=request.length,
            finish_line_start=request.fl_start,
            finish_line_end=request.fl_end,
        )
    except InvalidTrackError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("", response_model=list[TrackResponse])
async def list_tracks():
    """List all tracks sorted by name."""
    return [_build_track_response(t) for t in get_registry().list_tracks()]


@router.get("/{track_id}", response_model=TrackResponse, responses=NOT_FOUND)
async def get_track(track_id: str):
    try:
        return _build_track_response(get_registry().get_track(track_id))
    except TrackNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=TrackResponse, status_code=201)
async def create_track(request: TrackRequest):
    """Add a user track."""
    track = _track_from_request(request)
    saved = get_registry().save_track(track, notes=request.notes)
    return _build_track_response(saved)


@router.put("/{track_id}", response_model=TrackResponse, responses=READ_ONLY)
async def update_track(track_id: str, request: TrackRequest):
    """
    Update a user track.

    System tracks are read-only.
    """
    track = _track_from_request(request)
    try:
        saved = get_registry().save_track(track, track_id=track_id, notes=request.notes)
    except TrackNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TrackPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return _build_track_response(saved)


@router.delete("/{track_id}", status_code=204, responses=READ_ONLY)
async def delete_track(track_id: str):
    """Delete a user track. System tracks cannot be deleted."""
    try:
        get_registry().delete_track(track_id)
    except TrackNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TrackPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
