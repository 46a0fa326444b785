"""Tests for the HTTP and WebSocket application."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from presence.config import Settings
from presence.interface.ws_server import create_app
from presence.models import Memory, Speaker
from presence.store import MemoryStore

TOKEN = "test-token"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        admin_token=TOKEN,
        memory_path=tmp_path / "memory.json",
        static_dir=tmp_path / "public",
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


def _ws(client):
    return client.websocket_connect(f"/ws?token={TOKEN}")


def _ready(ws):
    """Round-trip a ping so the server has registered the connection."""
    ws.send_json({"type": "ping"})
    assert ws.receive_json() == {"type": "pong"}


class TestHTTP:

    def test_create_app_routes(self, settings):
        app = create_app(settings)
        assert app.title == "Presence Hub"
        routes = [r.path for r in app.routes]
        for path in ("/", "/health", "/admin", "/api/report", "/ws"):
            assert path in routes

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok", "connections": 0, "faces": 0}

    def test_index_placeholder(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert "Presence Hub" in r.text

    def test_index_serves_static_client(self, settings):
        settings.static_dir.mkdir()
        (settings.static_dir / "index.html").write_text("<h1>client</h1>")
        with TestClient(create_app(settings)) as c:
            assert "client" in c.get("/").text


class TestAdminReport:

    @pytest.fixture
    def seeded(self, settings):
        mem = Memory()
        mem.remember_face("Анна", [0.1, 0.2])
        mem.log(Speaker.USER, "включи свет", now=1_700_000_000_000)
        mem.state.light = True
        MemoryStore(settings.memory_path).flush(mem)
        with TestClient(create_app(settings)) as c:
            yield c

    @pytest.mark.parametrize("query", ["", "?token=wrong", "?token="])
    def test_admin_unauthorized(self, seeded, query):
        r = seeded.get(f"/admin{query}")
        assert r.status_code == 401
        assert r.text == "Unauthorized"

    def test_admin_html(self, seeded):
        r = seeded.get(f"/admin?token={TOKEN}")
        assert r.status_code == 200
        assert "<li>Анна</li>" in r.text
        assert "Light: ON" in r.text
        assert "user: включи свет" in r.text

    def test_admin_escapes_names(self, settings):
        mem = Memory()
        mem.remember_face("<script>x</script>", [0.1])
        MemoryStore(settings.memory_path).flush(mem)
        with TestClient(create_app(settings)) as c:
            r = c.get(f"/admin?token={TOKEN}")
        assert "<script>x</script>" not in r.text

    def test_api_report_unauthorized(self, seeded):
        r = seeded.get("/api/report?token=nope")
        assert r.status_code == 401
        body = r.json()
        assert "faces" not in body
        assert "conversation" not in body

    def test_api_report(self, seeded):
        r = seeded.get("/api/report", params={"token": TOKEN})
        assert r.status_code == 200
        body = r.json()
        assert body["faces"] == ["Анна"]
        assert body["light"] is True
        assert body["conversation"][0]["speaker"] == "user"
        assert body["conversation"][0]["timestamp"] == 1_700_000_000_000


class TestWebSocket:

    def test_rejects_bad_token(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws?token=wrong") as ws:
                ws.receive_json()

    def test_rejects_missing_token(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws") as ws:
                ws.receive_json()

    def test_invalid_frame_gets_error(self, client):
        with _ws(client) as ws:
            ws.send_text("{broken")
            reply = ws.receive_json()
            assert reply["type"] == "error"
            # connection survives
            _ready(ws)

    def test_voice_command_flow(self, client, settings):
        with _ws(client) as ws:
            ws.send_json({"type": "voice-transcript", "text": "включи свет"})
            assert ws.receive_json() == {"type": "transcript", "text": "включи свет"}
            assert ws.receive_json() == {"type": "tts", "text": "Хорошо, включаю свет."}
            assert ws.receive_json() == {"type": "light-state", "on": True}
        assert MemoryStore(settings.memory_path).load().state.light is True

    def test_face_greeting(self, client):
        with _ws(client) as ws:
            ws.send_json({"type": "face-data", "descriptor": [0.1] * 4, "emotion": "happy"})
            assert ws.receive_json() == {"type": "tts", "text": "Привет! Рад видеть твою улыбку."}

    def test_remember_face_over_socket(self, client, settings):
        with _ws(client) as ws:
            ws.send_json({"type": "face-data", "descriptor": [0.3] * 4, "emotion": "neutral"})
            ws.send_json({"type": "voice-transcript", "text": "запомни лицо как Анна"})
            assert ws.receive_json()["type"] == "transcript"
            assert ws.receive_json() == {"type": "tts", "text": "Запомнил лицо как Анна."}
        assert MemoryStore(settings.memory_path).load().face_names == ["Анна"]

    def test_light_state_broadcast_to_all(self, client):
        with _ws(client) as a, _ws(client) as b:
            _ready(a)
            _ready(b)
            a.send_json({"type": "smart-home", "device": "light", "action": "on"})
            assert a.receive_json() == {"type": "light-state", "on": True}
            assert b.receive_json() == {"type": "light-state", "on": True}

    def test_rtc_relayed_to_other_peer_only(self, client):
        offer = {"type": "rtc-offer", "payload": {"sdp": "v=0"}}
        with _ws(client) as a, _ws(client) as b:
            _ready(a)
            _ready(b)
            a.send_json(offer)
            assert b.receive_json() == offer
            # the sender gets nothing back besides its own pong
            _ready(a)

    def test_lidar_forwarded_to_others(self, client):
        with _ws(client) as a, _ws(client) as b:
            _ready(a)
            _ready(b)
            a.send_json({"type": "lidar-data", "frame": [1, 2, 3]})
            assert b.receive_json() == {"type": "lidar-update", "frame": [1, 2, 3]}
            _ready(a)

    def test_connection_count(self, client):
        with _ws(client) as ws:
            _ready(ws)
            assert client.get("/health").json()["connections"] == 1
