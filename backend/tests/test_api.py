"""
Tests for API endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from tracksalvage.main import app
from tracksalvage.services.repository import init_repository
from tracksalvage.utils.sample_data import (
    DEFAULT_START_UTC,
    build_session_archive,
    generate_acc_lines,
    generate_session_archive,
    header_lines,
)


@pytest.fixture
def test_data_folder(tmp_path):
    """Create a test data folder with two session archives."""
    data_folder = tmp_path / "sessions"
    generate_session_archive(data_folder / "session_001.zip", duration_s=90.0)
    (data_folder / "session_002.zip").write_bytes(
        build_session_archive(
            header_lines(app_version="2.1.0") + ["D,500,?,?,-150,3.2,180"],
            generate_acc_lines(duration_s=2.0),
        )
    )
    return data_folder


@pytest.fixture
def client_with_data(test_data_folder):
    """Create test client with initialized repository."""
    init_repository(test_data_folder)
    yield TestClient(app)


@pytest.fixture
def client():
    """Create test client without initialized repository."""
    return TestClient(app)


def session_id_for(client, source_file):
    sessions = client.get("/sessions").json()
    return next(s["id"] for s in sessions if s["source_file"] == source_file)


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Track Salvage"
        assert data["status"] == "running"

    def test_health_endpoint(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestFolderEndpoints:
    """Tests for folder management endpoints."""

    def test_get_folder_info(self, client_with_data, test_data_folder):
        response = client_with_data.get("/folder")

        assert response.status_code == 200
        data = response.json()
        assert data["path"] == str(test_data_folder)
        assert data["session_count"] == 2

    def test_set_folder(self, client_with_data, tmp_path):
        new_folder = tmp_path / "other"
        generate_session_archive(new_folder / "only.zip", duration_s=30.0)

        response = client_with_data.post("/folder", json={"path": str(new_folder)})

        assert response.status_code == 200
        assert response.json()["session_count"] == 1

    def test_set_folder_nonexistent(self, client_with_data, tmp_path):
        response = client_with_data.post("/folder", json={"path": str(tmp_path / "missing")})

        assert response.status_code == 400

    def test_rescan(self, client_with_data, test_data_folder):
        generate_session_archive(test_data_folder / "session_003.zip", duration_s=30.0)

        response = client_with_data.post("/folder/rescan")

        assert response.status_code == 200
        assert response.json()["session_count"] == 3

    def test_rescan_drops_deleted_archive(self, client_with_data, test_data_folder):
        (test_data_folder / "session_002.zip").unlink()

        response = client_with_data.post("/folder/rescan")
        sessions = client_with_data.get("/sessions").json()

        assert response.json()["session_count"] == 1
        assert [s["source_file"] for s in sessions] == ["session_001.zip"]


class TestSessionEndpoints:
    """Tests for session endpoints."""

    def test_list_sessions(self, client_with_data):
        response = client_with_data.get("/sessions")

        assert response.status_code == 200
        sessions = response.json()
        assert len(sessions) == 2
        assert {"id", "name", "trackpoint_count", "sample_count", "warning_count"} <= set(sessions[0])

    def test_get_session_metadata(self, client_with_data):
        session_id = session_id_for(client_with_data, "session_001.zip")

        response = client_with_data.get(f"/sessions/{session_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["trackpoint_count"] == 91
        assert data["tz_offset_s"] == 3600
        assert data["gps_headers"]["device_id"] == ["Nokia", "N95"]
        assert data["max_speed_mps"] == pytest.approx(3.2)
        assert data["max_speed_mph"] == pytest.approx(3.2 * 2.2369363)
        assert data["error_count"] == 0

    def test_session_not_found(self, client_with_data):
        response = client_with_data.get("/sessions/nonexistent")

        assert response.status_code == 404

    def test_trackpoints_window(self, client_with_data):
        session_id = session_id_for(client_with_data, "session_001.zip")

        response = client_with_data.get(
            f"/sessions/{session_id}/trackpoints",
            params={"start": DEFAULT_START_UTC, "end": DEFAULT_START_UTC + 5},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 6
        first, second = data["trackpoints"][:2]
        assert first["from_anchor"] is True
        assert second["field_2"]["confidence"] == "unknown"
        assert second["heading"]["unit"] == "deg"

    def test_trackpoints_invalid_range(self, client_with_data):
        session_id = session_id_for(client_with_data, "session_001.zip")

        response = client_with_data.get(
            f"/sessions/{session_id}/trackpoints",
            params={"start": DEFAULT_START_UTC + 10, "end": DEFAULT_START_UTC},
        )

        assert response.status_code == 400

    def test_samples_limit(self, client_with_data):
        session_id = session_id_for(client_with_data, "session_001.zip")

        response = client_with_data.get(f"/sessions/{session_id}/samples", params={"limit": 50})

        assert response.status_code == 200
        data = response.json()
        assert data["truncated"] is True
        assert len(data["samples"]) == 50
        assert data["samples"][0]["accel_y"]["value"] == pytest.approx(9.81)

    def test_diagnostics_for_failed_stream(self, client_with_data):
        session_id = session_id_for(client_with_data, "session_002.zip")

        response = client_with_data.get(f"/sessions/{session_id}/diagnostics")

        assert response.status_code == 200
        data = response.json()
        assert data["errors"] == [{
            "stream": "gps",
            "error": "SequencingError",
            "message": "delta record before any anchor record",
            "line_number": 5,
        }]

    def test_reload_with_overrides(self, client_with_data, test_data_folder):
        (test_data_folder / "gps_only.zip").write_bytes(
            build_session_archive(header_lines(), None)
        )
        client_with_data.post("/folder/rescan")
        session_id = session_id_for(client_with_data, "gps_only.zip")

        lenient = client_with_data.post(f"/sessions/{session_id}/reload", json={})
        strict = client_with_data.post(
            f"/sessions/{session_id}/reload", json={"require_both_members": True}
        )

        assert lenient.status_code == 200
        assert lenient.json()["notes"] == ["archive has no .acc member"]
        assert strict.status_code == 422

    def test_reload_not_found(self, client_with_data):
        response = client_with_data.post("/sessions/nonexistent/reload", json={})

        assert response.status_code == 404
