"""
Track definitions.

A track is identified by its finish line, a two-point segment in
(longitude, latitude) order, plus a reference lap length in meters.
"""

import time
from dataclasses import dataclass, field

from laptrace.errors import InvalidTrackError
from laptrace.utils.geodesy import midpoint


LonLat = tuple[float, float]


@dataclass
class Track:
    """Circuit with its finish line and reference length."""

    name: str
    length_m: float
    finish_line_start: LonLat
    finish_line_end: LonLat

    def __post_init__(self):
        self.finish_line_start = (float(self.finish_line_start[0]), float(self.finish_line_start[1]))
        self.finish_line_end = (float(self.finish_line_end[0]), float(self.finish_line_end[1]))
        if not self.name or not self.name.strip():
            raise InvalidTrackError("Track name is required")
        if self.length_m is None or self.length_m <= 0:
            raise InvalidTrackError(f"Track length must be positive, got {self.length_m}")
        if self.finish_line_start == self.finish_line_end:
            raise InvalidTrackError(f"Finish line of '{self.name}' has identical endpoints")

    @property
    def finish_line_midpoint(self) -> LonLat:
        return midpoint(self.finish_line_start, self.finish_line_end)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "length": self.length_m,
            "fLStart": list(self.finish_line_start),
            "fLEnd": list(self.finish_line_end),
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SavedTrack(Track):
    """Track stored in the registry."""

    id: str = ""
    notes: str = ""
    is_system: bool = False
    created_at: int = field(default_factory=_now_ms)
    updated_at: int = field(default_factory=_now_ms)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            {
                "id": self.id,
                "notes": self.notes,
                "isSystem": self.is_system,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SavedTrack":
        return cls(
            id=data["id"],
            name=data["name"],
            length_m=data["length"],
            finish_line_start=tuple(data["fLStart"]),
            finish_line_end=tuple(data["fLEnd"]),
            notes=data.get("notes", ""),
            is_system=data.get("isSystem", False),
            created_at=data.get("createdAt", _now_ms()),
            updated_at=data.get("updatedAt", _now_ms()),
        )
