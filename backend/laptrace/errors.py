"""
Exception types raised by the telemetry-to-laps pipeline.
"""


class LaptraceError(Exception):
    """Base class for all pipeline errors."""


class SourceParseError(LaptraceError, ValueError):
    """Input file is malformed or of an unsupported kind."""


class TrackNotDetectedError(LaptraceError):
    """No known track lies within the detection threshold."""

    def __init__(self, distance_m: float, threshold_m: float):
        self.distance_m = distance_m
        self.threshold_m = threshold_m
        super().__init__(
            f"Could not detect track: closest finish line is {distance_m:.0f} m away "
            f"(threshold {threshold_m:.0f} m). Select the track manually."
        )


class TrackNotFoundError(LaptraceError, KeyError):
    """Track identifier is not in the registry."""

    def __str__(self) -> str:
        return f"Track not found: {self.args[0]}"


class TrackPermissionError(LaptraceError, PermissionError):
    """Attempt to modify or remove a system track."""


class InvalidTrackError(LaptraceError, ValueError):
    """Track definition cannot be used for lap detection."""


class LapSplitError(LaptraceError):
    """Lap splitting failed on a malformed trace."""
