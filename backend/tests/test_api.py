"""
Tests for API endpoints.
"""

import base64
import json

import pytest
from fastapi.testclient import TestClient

from laptrace.main import app
from laptrace.services.track_registry import get_registry, init_registry
from laptrace.utils.sample_data import (
    generate_rpm_bundle,
    generate_square_session,
    make_square_track,
    trace_to_aim_csv,
    trace_to_gpx,
)


@pytest.fixture
def tracks_file(tmp_path):
    return tmp_path / "tracks.json"


@pytest.fixture
def client(tracks_file):
    """Create test client with a fresh registry."""
    init_registry(tracks_file)

    client = TestClient(app)
    yield client


@pytest.fixture
def square_payload():
    track = make_square_track()
    return {
        "name": track.name,
        "length": track.length_m,
        "fl_start": list(track.finish_line_start),
        "fl_end": list(track.finish_line_end),
        "notes": "synthetic",
    }


@pytest.fixture
def client_with_square(client, square_payload):
    client.post("/tracks", json=square_payload)
    return client


@pytest.fixture
def session():
    return generate_square_session(loops=3)


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client):
        """Root endpoint should return basic info."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Lap Trace"
        assert data["status"] == "running"

    def test_health_endpoint(self, client, tracks_file):
        """Health endpoint should report the registry."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["tracks_file"] == str(tracks_file)
        assert data["track_count"] == 2


class TestTrackEndpoints:
    """Tests for track registry endpoints."""

    def test_list_system_tracks(self, client):
        response = client.get("/tracks")

        assert response.status_code == 200
        data = response.json()
        assert [t["name"] for t in data] == ["Salandra", "Tito"]
        assert all(t["is_system"] for t in data)

    def test_get_track(self, client):
        response = client.get("/tracks/system-tito")

        assert response.status_code == 200
        data = response.json()
        assert data["length"] == 424
        assert data["midpoint"][0] == pytest.approx(15.724642)

    def test_get_unknown_track(self, client):
        response = client.get("/tracks/nonexistent")
        assert response.status_code == 404

    def test_create_track(self, client, square_payload, tracks_file):
        response = client.post("/tracks", json=square_payload)

        assert response.status_code == 201
        data = response.json()
        assert data["id"]
        assert data["name"] == "Square"
        assert data["notes"] == "synthetic"
        assert not data["is_system"]
        assert tracks_file.exists()
        assert len(client.get("/tracks").json()) == 3

    def test_create_degenerate_track(self, client, square_payload):
        square_payload["fl_end"] = square_payload["fl_start"]
        response = client.post("/tracks", json=square_payload)
        assert response.status_code == 422

    def test_create_invalid_length(self, client, square_payload):
        square_payload["length"] = 0
        response = client.post("/tracks", json=square_payload)
        assert response.status_code == 422

    def test_update_track(self, client, square_payload):
        track_id = client.post("/tracks", json=square_payload).json()["id"]
        square_payload["name"] = "Big Square"

        response = client.put(f"/tracks/{track_id}", json=square_payload)

        assert response.status_code == 200
        assert response.json()["name"] == "Big Square"
        assert response.json()["id"] == track_id

    def test_update_system_track(self, client, square_payload):
        response = client.put("/tracks/system-tito", json=square_payload)

        assert response.status_code == 403
        assert get_registry().get_track("system-tito").name == "Tito"

    def test_update_unknown_track(self, client, square_payload):
        response = client.put("/tracks/nonexistent", json=square_payload)
        assert response.status_code == 404

    def test_delete_track(self, client, square_payload):
        track_id = client.post("/tracks", json=square_payload).json()["id"]

        response = client.delete(f"/tracks/{track_id}")

        assert response.status_code == 204
        assert client.get(f"/tracks/{track_id}").status_code == 404

    def test_delete_system_track(self, client):
        response = client.delete("/tracks/system-salandra")
        assert response.status_code == 403

    def test_delete_unknown_track(self, client):
        response = client.delete("/tracks/nonexistent")
        assert response.status_code == 404


class TestExtractEndpoint:
    """Tests for lap extraction."""

    def test_extract_csv(self, client_with_square, session):
        response = client_with_square.post(
            "/laps/extract",
            json={"filename": "session.csv", "content": trace_to_aim_csv(session)},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["track_name"] == "Square"
        assert data["detected"] is True
        assert data["driver_name"] == "Test Driver"
        assert data["sample_count"] == len(session)
        assert [lap["lap_number"] for lap in data["laps"]] == [1, 2, 3]
        assert data["best_lap_number"] in (1, 2, 3)
        for lap in data["laps"]:
            assert lap["lap_time_ms"] == pytest.approx(40000, abs=20)
            assert lap["lap_time"].startswith("40.0") or lap["lap_time"].startswith("39.9")
            assert lap["data"] is None

    def test_extract_with_data(self, client_with_square, session):
        response = client_with_square.post(
            "/laps/extract",
            json={
                "filename": "session.gpx",
                "content": trace_to_gpx(session),
                "include_data": True,
                "interpolation_factor": 10,
            },
        )

        assert response.status_code == 200
        lap = response.json()["laps"][0]
        assert lap["data"]["type"] == "Feature"
        assert len(lap["data"]["geometry"]["coordinates"]) == lap["sample_count"]
        assert len(lap["data"]["properties"]["AbsoluteUtcMicroSec"]) == lap["sample_count"]

    def test_extract_with_missing_elevation(self, client_with_square, session):
        """Laps from a GeoJSON trace with NaN elevations serialize cleanly."""
        feature = session.to_geojson()
        for point in feature["geometry"]["coordinates"]:
            point[2] = float("nan")

        response = client_with_square.post(
            "/laps/extract",
            json={"filename": "session.geojson", "content": json.dumps(feature), "include_data": True},
        )

        assert response.status_code == 200
        lap = response.json()["laps"][0]
        assert all(point[2] == 0.0 for point in lap["data"]["geometry"]["coordinates"])

    def test_extract_explicit_track(self, client, square_payload, session):
        track_id = client.post("/tracks", json=square_payload).json()["id"]

        response = client.post(
            "/laps/extract",
            json={
                "filename": "session.json",
                "content": json.dumps(session.to_geojson()),
                "track_id": track_id,
            },
        )

        assert response.status_code == 200
        assert response.json()["detected"] is False
        assert len(response.json()["laps"]) == 3

    def test_track_not_detected(self, client, session):
        response = client.post(
            "/laps/extract",
            json={"filename": "session.gpx", "content": trace_to_gpx(session)},
        )
        assert response.status_code == 422

    def test_unknown_track(self, client, session):
        response = client.post(
            "/laps/extract",
            json={"filename": "session.gpx", "content": trace_to_gpx(session), "track_id": "missing"},
        )
        assert response.status_code == 404

    def test_unsupported_file(self, client):
        response = client.post("/laps/extract", json={"filename": "notes.txt", "content": "hi"})
        assert response.status_code == 400

    def test_malformed_gpx(self, client):
        response = client.post(
            "/laps/extract", json={"filename": "broken.gpx", "content": "<gpx><trk>"}
        )
        assert response.status_code == 400


class TestRpmEndpoint:
    """Tests for RPM lap reconstruction."""

    def _request(self, bundle: bytes, **overrides) -> dict:
        body = {
            "bundle_b64": base64.b64encode(bundle).decode("ascii"),
            "track_id": "system-tito",
            "front_sprocket": 10,
            "rear_sprocket": 80,
            "wheel_circumference_m": 0.88,
        }
        body.update(overrides)
        return body

    def test_rpm_laps(self, client):
        bundle = generate_rpm_bundle([[11000] * 300, [11500] * 290])

        response = client.post("/laps/rpm", json=self._request(bundle, include_data=True))

        assert response.status_code == 200
        data = response.json()
        assert data["track_name"] == "Tito"
        assert [lap["lap_number"] for lap in data["laps"]] == [1, 2]
        assert [lap["lap_time_ms"] for lap in data["laps"]] == [30000, 29000]
        assert [lap["lap_time"] for lap in data["laps"]] == ["30.00", "29.00"]
        last = data["laps"][0]["data"]["geometry"]["coordinates"][-1]
        assert last[0] == pytest.approx(424)

    def test_invalid_base64(self, client):
        body = self._request(b"")
        body["bundle_b64"] = "not base64!!"
        response = client.post("/laps/rpm", json=body)
        assert response.status_code == 400

    def test_not_a_zip(self, client):
        response = client.post("/laps/rpm", json=self._request(b"plain bytes"))
        assert response.status_code == 400

    def test_unknown_track(self, client):
        bundle = generate_rpm_bundle([[9000] * 10])
        response = client.post("/laps/rpm", json=self._request(bundle, track_id="missing"))
        assert response.status_code == 404

    def test_invalid_sprocket(self, client):
        bundle = generate_rpm_bundle([[9000] * 10])
        response = client.post("/laps/rpm", json=self._request(bundle, front_sprocket=0))
        assert response.status_code == 422
