"""
API schemas (Pydantic models) for request/response validation.
"""

from typing import Optional
from pydantic import BaseModel, Field

from laptrace.config import INTERPOLATION_FACTOR, TRACK_DETECTION_THRESHOLD_METERS


# ============================================================================
# Track Schemas
# ============================================================================

class TrackRequest(BaseModel):
    """Track definition submitted for create/update."""
    name: str = Field(min_length=1)
    length: float = Field(gt=0, description="Reference lap length in meters")
    fl_start: tuple[float, float] = Field(description="Finish line start (lon, lat)")
    fl_end: tuple[float, float] = Field(description="Finish line end (lon, lat)")
    notes: Optional[str] = None


class TrackResponse(BaseModel):
    """Stored track."""
    id: str
    name: str
    length: float
    fl_start: tuple[float, float]
    fl_end: tuple[float, float]
    midpoint: tuple[float, float]
    notes: str
    is_system: bool
    created_at: int
    updated_at: int


# ============================================================================
# Lap Schemas
# ============================================================================

class LapResponse(BaseModel):
    """Single lap extracted from a session."""
    lap_number: int
    lap_time_ms: float
    lap_time: str  # formatted, e.g. "1:23.45"
    sample_count: int
    data: Optional[dict] = None  # GeoJSON Feature when requested


class ExtractLapsRequest(BaseModel):
    """Session file to split into laps."""
    filename: str
    content: str  # file text; extractor JSON payload for video files
    track_id: Optional[str] = None  # detected when omitted
    interpolation_factor: int = Field(default=INTERPOLATION_FACTOR, ge=1, le=1000)
    threshold_m: float = Field(default=TRACK_DETECTION_THRESHOLD_METERS, gt=0)
    include_data: bool = False


class ExtractLapsResponse(BaseModel):
    """Laps found in a session."""
    track_id: str
    track_name: str
    detected: bool
    device: str
    driver_name: str
    session_start_ms: float
    sample_count: int
    best_lap_number: Optional[int] = None
    laps: list[LapResponse]


class RpmLapsRequest(BaseModel):
    """Zip bundle of per-lap RPM files (base64) with drivetrain parameters."""
    bundle_b64: str
    track_id: str
    front_sprocket: int = Field(gt=0)
    rear_sprocket: int = Field(gt=0)
    wheel_circumference_m: float = Field(gt=0)
    include_data: bool = False


class RpmLapsResponse(BaseModel):
    """Laps reconstructed from RPM data."""
    track_id: str
    track_name: str
    laps: list[LapResponse]


# ============================================================================
# Error Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    code: Optional[str] = None
