"""
Tests for the Flask API using the test client.
"""
import pytest

from lyricsync import api
from lyricsync.audio_analysis import AudioAnalysis


@pytest.fixture
def client():
    api.app.config["TESTING"] = True
    with api.app.test_client() as client:
        yield client


def test_health(client):
    """Test the health check endpoint."""
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_resolve_end_to_end(client):
    """Test resolving the active line with interpolation."""
    response = client.post("/api/resolve", json={
        "lyrics": "[Verse]\nline A\nline B\nline C",
        "anchors": [{"line_index": 1, "timestamp": 0.0}, {"line_index": 3, "timestamp": 6.0}],
        "bpm": 60,
        "bar_length": 4,
        "interpolation_enabled": True,
        "playback_time": 5.0,
    })
    assert response.status_code == 200
    data = response.get_json()
    assert data["active_line_index"] == 2
    assert [s["timestamp"] for s in data["schedule"]] == [0.0, 4.0, 6.0]
    assert [s["is_interpolated"] for s in data["schedule"]] == [False, True, False]


def test_resolve_without_anchors(client):
    """Test that unscheduled lines serialize as null and nothing is active."""
    response = client.post("/api/resolve", json={"lyrics": "a\nb", "playback_time": 3.0})
    data = response.get_json()
    assert data["active_line_index"] is None
    assert [s["timestamp"] for s in data["schedule"]] == [None, None]


def test_resolve_invalid_anchor(client):
    """Test that a malformed anchor is a 400."""
    response = client.post("/api/resolve", json={"lyrics": "a", "anchors": [{"line_index": 0}]})
    assert response.status_code == 400


def test_analyze_missing_field(client):
    """Test that the analyze endpoint validates its input."""
    response = client.post("/api/analyze", json={"song_id": "1"})
    assert response.status_code == 400


def test_analyze_missing_file(client):
    """Test that a missing audio file is rejected up front."""
    response = client.post("/api/analyze", json={"song_id": "1", "audio": "nonexistent_audio.wav"})
    assert response.status_code == 400


def test_analyze_and_fetch_result(client, tmp_path, monkeypatch):
    """Test the analyze -> status -> analysis flow."""
    audio = tmp_path / "song.wav"
    audio.write_bytes(b"dummy audio data")
    monkeypatch.setattr(
        api.jobs, "analyzer",
        lambda path: AudioAnalysis(bpm=120, waveform=[0.5, 0.25], duration=2.0),
    )

    response = client.post("/api/analyze", json={"song_id": "api-song", "audio": str(audio)})
    assert response.status_code == 202
    job_id = response.get_json()["job_id"]
    assert api.jobs.wait(job_id, timeout=5)

    status = client.get(f"/api/status/{job_id}").get_json()
    assert status["status"] == "complete"

    data = client.get("/api/songs/api-song/analysis").get_json()
    assert data["bpm"] == 120
    assert data["waveform"] == [0.5, 0.25]


def test_unknown_job_and_song(client):
    """Test 404s for unknown ids."""
    assert client.get("/api/status/does-not-exist").status_code == 404
    assert client.get("/api/songs/does-not-exist/analysis").status_code == 404


def test_resolve_non_finite_anchor_serializes_null(client):
    """Test that a NaN anchor time is skipped and the response stays valid JSON."""
    response = client.post("/api/resolve", json={
        "lyrics": "a\nb",
        "anchors": [{"line_index": 0, "timestamp": 1.0}, {"line_index": 1, "timestamp": "NaN"}],
        "playback_time": 5.0,
    })
    assert response.status_code == 200
    data = response.get_json()
    assert data["active_line_index"] == 0
    assert [s["timestamp"] for s in data["schedule"]] == [1.0, None]
    assert b"NaN" not in response.data


def test_api_server_main_runs_app(monkeypatch):
    """Test that the server entry point starts the Flask app on the API port."""
    from lyricsync import api_server
    from lyricsync.config import API_PORT

    calls = []
    monkeypatch.setattr(api.app, "run", lambda **kwargs: calls.append(kwargs))
    api_server.main()
    assert len(calls) == 1
    assert calls[0]["port"] == API_PORT
    assert calls[0]["threaded"] is True
