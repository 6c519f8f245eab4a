"""
Track Registry - catalog of known circuits.

System tracks ship with the package and cannot be edited or removed.
User tracks live in memory and, when a file is configured, are persisted
as JSON after every change.
"""

import json
import logging
import time
import uuid
from pathlib import Path
from typing import Optional

from laptrace.config import TRACK_DETECTION_THRESHOLD_METERS
from laptrace.errors import InvalidTrackError, TrackNotFoundError, TrackPermissionError
from laptrace.models.track import LonLat, SavedTrack, Track
from laptrace.utils.geodesy import haversine_distance


logger = logging.getLogger(__name__)


def _system_tracks() -> list[SavedTrack]:
    return [
        SavedTrack(
            id="system-tito",
            name="Tito",
            length_m=424,
            finish_line_start=(15.724561, 40.597828),
            finish_line_end=(15.724723, 40.59782),
            notes="Kartodromo di Tito (PZ)",
            is_system=True,
            created_at=0,
            updated_at=0,
        ),
        SavedTrack(
            id="system-salandra",
            name="Salandra",
            length_m=915,
            finish_line_start=(16.311973832554074, 40.56100840695992),
            finish_line_end=(16.311696223947372, 40.56096408671552),
            notes="Autodromo di Salandra (MT)",
            is_system=True,
            created_at=0,
            updated_at=0,
        ),
    ]


class TrackRegistry:
    """
    Registry of tracks keyed by identifier.

    Iteration order of ``list_tracks`` is by name, which is also the order
    used for track detection tie-breaks.
    """

    def __init__(self, tracks_file: Optional[Path] = None):
        """
        Initialize the registry.

        Args:
            tracks_file: JSON file holding user tracks. If None, user tracks
                are kept in memory only.
        """
        self._tracks_file: Optional[Path] = tracks_file
        self._tracks: dict[str, SavedTrack] = {t.id: t for t in _system_tracks()}

        if tracks_file is not None:
            self._load(tracks_file)

    @property
    def tracks_file(self) -> Optional[Path]:
        return self._tracks_file

    def list_tracks(self) -> list[SavedTrack]:
        """All tracks sorted by name."""
        return sorted(self._tracks.values(), key=lambda t: t.name.lower())

    def get_track(self, track_id: str) -> SavedTrack:
        try:
            return self._tracks[track_id]
        except KeyError:
            raise TrackNotFoundError(track_id) from None

    def get_track_by_name(self, name: str) -> Optional[SavedTrack]:
        for track in self._tracks.values():
            if track.name == name:
                return track
        return None

    def save_track(
        self,
        track: Track,
        track_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SavedTrack:
        """
        Add a new track or update an existing one.

        Args:
            track: Track definition (name, length, finish line)
            track_id: Identifier of the track to update; a new one is
                generated when None
            notes: Free-text notes; existing notes are kept when None

        Returns:
            The stored SavedTrack

        Raises:
            TrackPermissionError: if the target is a system track
            TrackNotFoundError: if track_id is given but unknown
        """
        now = int(time.time() * 1000)

        if track_id is not None:
            existing = self.get_track(track_id)
            if existing.is_system:
                raise TrackPermissionError(f"System track '{existing.name}' cannot be modified")
            saved = SavedTrack(
                id=existing.id,
                name=track.name,
                length_m=track.length_m,
                finish_line_start=track.finish_line_start,
                finish_line_end=track.finish_line_end,
                notes=existing.notes if notes is None else notes,
                is_system=False,
                created_at=existing.created_at,
                updated_at=now,
            )
            logger.info(f"Updated track {saved.id} ({saved.name})")
        else:
            saved = SavedTrack(
                id=str(uuid.uuid4()),
                name=track.name,
                length_m=track.length_m,
                finish_line_start=track.finish_line_start,
                finish_line_end=track.finish_line_end,
                notes=notes or "",
                is_system=False,
                created_at=now,
                updated_at=now,
            )
            logger.info(f"Added track {saved.id} ({saved.name})")

        self._tracks[saved.id] = saved
        self._persist()
        return saved

    def delete_track(self, track_id: str) -> None:
        """
        Remove a user track.

        Raises:
            TrackPermissionError: if the track is a system track
            TrackNotFoundError: if the id is unknown
        """
        track = self.get_track(track_id)
        if track.is_system:
            raise TrackPermissionError(f"System track '{track.name}' cannot be deleted")
        del self._tracks[track_id]
        logger.info(f"Deleted track {track_id} ({track.name})")
        self._persist()

    def finish_line_midpoint(self, track_id: str) -> LonLat:
        return self.get_track(track_id).finish_line_midpoint

    def find_by_proximity(
        self,
        point: LonLat,
        threshold_m: float = TRACK_DETECTION_THRESHOLD_METERS,
    ) -> Optional[SavedTrack]:
        """
        Closest track whose finish line midpoint is within threshold of point.

        Args:
            point: (lon, lat) to search around

        Returns:
            The closest track, or None when none is within threshold
        """
        best: Optional[SavedTrack] = None
        best_distance = float("inf")
        for track in self.list_tracks():
            mid_lon, mid_lat = track.finish_line_midpoint
            distance = float(haversine_distance(point[1], point[0], mid_lat, mid_lon))
            if distance < best_distance:
                best_distance = distance
                best = track
        if best is not None and best_distance <= threshold_m:
            return best
        return None

    def _load(self, path: Path) -> None:
        if not path.exists():
            logger.info(f"Tracks file not found, starting with system tracks: {path}")
            return

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        count = 0
        for entry in data.get("tracks", []):
            try:
                track = SavedTrack.from_dict(entry)
            except (InvalidTrackError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid track entry in {path}: {e}")
                continue
            if track.is_system or track.id in self._tracks:
                continue
            self._tracks[track.id] = track
            count += 1
        logger.info(f"Loaded {count} user tracks from {path}")

    def _persist(self) -> None:
        if self._tracks_file is None:
            return

        user_tracks = [t.to_dict() for t in self.list_tracks() if not t.is_system]
        self._tracks_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self._tracks_file, "w", encoding="utf-8") as f:
            json.dump({"tracks": user_tracks}, f, indent=2)
        logger.debug(f"Saved {len(user_tracks)} user tracks to {self._tracks_file}")


# Global registry instance (set up by app initialization)
_registry: Optional[TrackRegistry] = None


def get_registry() -> TrackRegistry:
    """Get the global registry instance."""
    global _registry
    if _registry is None:
        _registry = TrackRegistry()
    return _registry


def init_registry(tracks_file: Optional[Path] = None) -> TrackRegistry:
    """Initialize the global registry with an optional tracks file."""
    global _registry
    _registry = TrackRegistry(tracks_file)
    return _registry
