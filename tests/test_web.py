"""Unit tests for the Pronounce web UI."""

import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from conftest import wait_until
from pronounce.session import PracticeSession
from pronounce.settings import RecorderSettings
from pronounce.web import create_app

PACTL_OUTPUT = "1\talsa_input.usb-mic\tPipeWire\ts16le 1ch 48000Hz\tIDLE\n"


@pytest.fixture
def session(loop, fake_platform, tmp_path):
    s = PracticeSession(loop, fake_platform, RecorderSettings(recording_path=tmp_path / "rec.wav"))
    yield s
    loop.call(s.shutdown)


@pytest.fixture
def app(session):
    app = create_app(session=session)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def reference(tmp_path) -> Path:
    path = tmp_path / "ref.wav"
    path.write_bytes(b"RIFF")
    return path


def _load(client, session, path, duration=125.4):
    with patch("pronounce.session.ffutil.probe_duration", return_value=duration):
        resp = client.post("/api/reference", json={"path": str(path)})
        session._probe_thread.join(5)
    return resp


class TestIndex:
    def test_serves_html(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert b"Pronounce" in resp.data

    def test_unknown_route_is_json(self, client):
        resp = client.get("/api/nonexistent")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Not found"


class TestState:
    def test_initial(self, client):
        data = client.get("/api/state").get_json()
        assert data["status"] == "Ready to record"
        assert data["range"]["start_text"] == "00:00"
        assert data["buttons"]["record"]["label"] == "Record"


class TestReference:
    def test_no_path(self, client):
        resp = client.post("/api/reference", json={})
        assert resp.status_code == 400

    def test_blank_path(self, client):
        resp = client.post("/api/reference", json={"path": "   "})
        assert resp.status_code == 400

    def test_load(self, client, session, reference):
        resp = _load(client, session, reference)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "Loading reference file..."

        data = client.get("/api/state").get_json()
        assert data["duration_text"] == "Duration: 02:05"
        assert data["range"]["end_text"] == "02:05"
        assert data["range"]["enabled"] is True

    def test_missing_file_reported_in_state(self, client, tmp_path):
        resp = client.post("/api/reference", json={"path": str(tmp_path / "missing.wav")})
        assert resp.status_code == 200
        assert resp.get_json()["error"].startswith("File not found")


class TestRange:
    def test_nothing_to_update(self, client):
        resp = client.post("/api/range", json={})
        assert resp.status_code == 400

    def test_text_must_be_string(self, client):
        resp = client.post("/api/range", json={"start": 12})
        assert resp.status_code == 400

    def test_percent_must_be_number(self, client):
        resp = client.post("/api/range", json={"end_percent": "50"})
        assert resp.status_code == 400

    def test_percent_rejects_bool(self, client):
        resp = client.post("/api/range", json={"start_percent": True})
        assert resp.status_code == 400

    def test_slider_updates_text(self, client, session, reference):
        _load(client, session, reference)
        data = client.post("/api/range", json={"start_percent": 50}).get_json()
        assert data["range"]["start_text"] == "01:02"

    def test_text_updates_slider(self, client, session, reference):
        _load(client, session, reference, duration=100.0)
        data = client.post("/api/range", json={"start": "00:25", "end": "01:15"}).get_json()
        assert data["range"]["start_percent"] == pytest.approx(25.0)
        assert data["range"]["end_percent"] == pytest.approx(75.0)

    def test_malformed_text_becomes_zero(self, client, session, reference):
        _load(client, session, reference)
        data = client.post("/api/range", json={"start": "abc"}).get_json()
        assert data["range"]["start"] == 0.0


class TestToggles:
    def test_reference_without_file(self, client):
        data = client.post("/api/reference/toggle").get_json()
        assert data["status"] == "No reference file loaded"

    def test_reference_play_and_stop(self, client, session, reference):
        _load(client, session, reference)
        data = client.post("/api/reference/toggle").get_json()
        assert data["buttons"]["play_reference"]["label"] == "Stop Reference"
        data = client.post("/api/reference/toggle").get_json()
        assert data["status"] == "Reference playback stopped"

    def test_record_and_stop(self, client):
        data = client.post("/api/record/toggle").get_json()
        assert data["status"] == "Recording..."
        data = client.post("/api/record/toggle").get_json()
        assert data["status"].startswith("Recording saved to")

    def test_play_recording_without_file(self, client):
        data = client.post("/api/recording/toggle").get_json()
        assert data["status"] == "No recording found"


class TestDevices:
    @patch("pronounce.devices.subprocess.run")
    def test_list(self, mock_run, client):
        mock_run.return_value = MagicMock(returncode=0, stdout=PACTL_OUTPUT, stderr="")
        resp = client.get("/api/devices")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["devices"] == [
            {"id": "", "label": "<system default>"},
            {"id": "alsa_input.usb-mic", "label": "alsa_input.usb-mic"},
        ]
        assert data["selected"] == ""

    @patch("pronounce.devices.subprocess.run")
    def test_configured_device_kept_when_unlisted(self, mock_run, client, session):
        session.settings.device = "bluez_input.headset"
        mock_run.return_value = MagicMock(returncode=0, stdout=PACTL_OUTPUT, stderr="")
        data = client.get("/api/devices").get_json()
        assert data["selected"] == "bluez_input.headset"
        assert data["devices"][-1] == {"id": "bluez_input.headset", "label": "bluez_input.headset"}
        assert len(data["devices"]) == 3

    @patch("pronounce.devices.subprocess.run")
    def test_list_failure(self, mock_run, client):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="Connection refused")
        resp = client.get("/api/devices")
        assert resp.status_code == 502
        assert "Connection refused" in resp.get_json()["error"]
        state = client.get("/api/state").get_json()
        assert state["error"] == "Could not list capture devices"

    def test_select(self, client, session):
        data = client.post("/api/devices", json={"device": "alsa_input.usb-mic"}).get_json()
        assert data["device"] == "alsa_input.usb-mic"
        assert session.settings.device == "alsa_input.usb-mic"

    def test_select_default_label(self, client, session):
        session.settings.device = "mic"
        data = client.post("/api/devices", json={"device": "<system default>"}).get_json()
        assert data["device"] == ""

    def test_select_missing(self, client):
        resp = client.post("/api/devices", json={})
        assert resp.status_code == 400


class TestEvents:
    def test_stream_ends_on_shutdown(self, client, session):
        def shut_down_once_subscribed():
            wait_until(lambda: session.loop.call(lambda: bool(session._listeners)))
            session.loop.call(session.shutdown)

        closer = threading.Thread(target=shut_down_once_subscribed)
        closer.start()
        resp = client.get("/api/events")
        closer.join(5)

        assert resp.status_code == 200
        assert resp.mimetype == "text/event-stream"
        body = resp.get_data(as_text=True)
        assert body.startswith("data: ")
        assert '"status": "Ready to record"' in body
