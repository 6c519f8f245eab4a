"""
Tests for the end-to-end session pipeline.
"""

import json

import pytest
from numpy.testing import assert_allclose

from laptrace.errors import SourceParseError, TrackNotDetectedError, TrackNotFoundError
from laptrace.services.pipeline import extract_laps, extract_laps_from_file, extract_rpm_laps
from laptrace.services.track_registry import TrackRegistry
from laptrace.utils.sample_data import (
    generate_rpm_bundle,
    generate_square_session,
    make_square_track,
    trace_to_aim_csv,
    trace_to_gpx,
)


@pytest.fixture
def session():
    return generate_square_session(loops=3)


@pytest.fixture
def registry():
    """Registry holding the system tracks plus the synthetic square."""
    registry = TrackRegistry()
    registry.save_track(make_square_track())
    return registry


class TestExtractLaps:
    """Tests for extract_laps on canonical traces."""

    def test_detects_track(self, session, registry):
        result = extract_laps(session, registry.list_tracks())

        assert result.detected
        assert result.track.name == "Square"
        assert [lap.lap_number for lap in result.laps] == [1, 2, 3]
        for lap in result.laps:
            assert_allclose(lap.lap_time_ms, 40000, atol=20)

    def test_explicit_track(self, session):
        tracks = [make_square_track()]
        result = extract_laps(session, tracks, track_index=0)

        assert not result.detected
        assert len(result.laps) == 3

    def test_not_detected(self, session):
        tracks = TrackRegistry().list_tracks()
        with pytest.raises(TrackNotDetectedError) as exc_info:
            extract_laps(session, tracks)
        assert exc_info.value.distance_m > exc_info.value.threshold_m

    def test_lower_interpolation_factor(self, session):
        result = extract_laps(session, [make_square_track()], track_index=0, factor=10)
        for lap in result.laps:
            assert_allclose(lap.lap_time_ms, 40000, atol=200)


class TestExtractLapsFromFile:
    """Tests for file-based extraction."""

    def test_csv(self, session, registry):
        result = extract_laps_from_file(trace_to_aim_csv(session), "session.csv", registry=registry)

        assert result.track.name == "Square"
        assert result.trace.driver_name == "Test Driver"
        assert [lap.lap_number for lap in result.laps] == [1, 2, 3]

    def test_gpx(self, session, registry):
        result = extract_laps_from_file(trace_to_gpx(session), "session.gpx", registry=registry)
        assert len(result.laps) == 3

    def test_video_payload(self, session, registry):
        payload = json.dumps(session.to_geojson())
        result = extract_laps_from_file(payload, "GX010042.MP4", registry=registry)

        assert result.trace.device == "Synthetic"
        assert len(result.laps) == 3

    def test_track_by_id(self, session, registry):
        square = registry.get_track_by_name("Square")
        result = extract_laps_from_file(
            trace_to_gpx(session), "session.gpx", registry=registry, track_id=square.id
        )

        assert not result.detected
        assert result.track.id == square.id

    def test_unknown_track_id(self, session, registry):
        with pytest.raises(TrackNotFoundError):
            extract_laps_from_file(
                trace_to_gpx(session), "session.gpx", registry=registry, track_id="missing"
            )

    def test_unsupported_file(self, registry):
        with pytest.raises(SourceParseError):
            extract_laps_from_file("hello", "notes.txt", registry=registry)


class TestExtractRpmLaps:
    """Tests for the RPM path."""

    def test_system_track(self, registry):
        bundle = generate_rpm_bundle([[11000] * 300, [11500] * 290])

        laps = extract_rpm_laps(
            bundle,
            track_id="system-tito",
            front_sprocket=10,
            rear_sprocket=80,
            wheel_circumference_m=0.88,
            registry=registry,
            start_us=0.0,
        )

        assert [lap.lap_number for lap in laps] == [1, 2]
        assert [lap.lap_time_ms for lap in laps] == [30000, 29000]
        for lap in laps:
            assert_allclose(lap.data.longitude[-1], 424)

    def test_unknown_track(self, registry):
        with pytest.raises(TrackNotFoundError):
            extract_rpm_laps(generate_rpm_bundle([[9000]]), "missing", 10, 80, 0.88, registry=registry)
