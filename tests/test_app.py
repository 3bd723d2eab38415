import logging

import pytest
from fastapi.testclient import TestClient

from config import settings
from main import create_app


def test_root_lists_endpoints(client):
    body = client.get("/").json()

    assert body["message"] == "WebRTC Signaling Server"
    assert body["endpoints"]["health"] == "/health"


def test_health_and_rooms_start_empty(client):
    assert client.get("/health").json() == {"status": "ok", "rooms": 0, "totalParticipants": 0}
    assert client.get("/rooms").json() == []


def test_rooms_report_creation_time(client):
    with client.websocket_connect("/ws") as a:
        a.receive_json()
        a.send_json({"type": "join-room", "roomId": "lobby"})
        a.receive_json()

        (room,) = client.get("/rooms").json()

    assert room["id"] == "lobby"
    assert room["participants"] == 1
    assert room["createdAt"]


def test_unknown_endpoint_returns_json_404(client):
    response = client.get("/nope")

    assert response.status_code == 404
    assert "/health" in response.json()["available_endpoints"]


def test_security_headers(client):
    response = client.get("/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"


def test_relay_servers_default_to_stun(monkeypatch):
    for var in settings.TURN_VARS:
        monkeypatch.delenv(var, raising=False)

    servers = settings.get_relay_servers()

    assert servers == settings.STUN_SERVERS
    assert servers is not settings.STUN_SERVERS


def test_turn_server_is_added_when_fully_configured(monkeypatch):
    monkeypatch.setenv("TURN_URL", "turn:turn.example.org:3478")
    monkeypatch.setenv("TURN_USERNAME", "user")
    monkeypatch.setenv("TURN_CREDENTIAL", "secret")

    servers = settings.get_relay_servers()

    assert servers[-1] == {"urls": "turn:turn.example.org:3478", "username": "user", "credential": "secret"}
    assert len(servers) == len(settings.STUN_SERVERS) + 1


def test_partial_turn_configuration_is_ignored(monkeypatch, caplog):
    monkeypatch.setenv("TURN_URL", "turn:turn.example.org:3478")
    monkeypatch.delenv("TURN_USERNAME", raising=False)
    monkeypatch.delenv("TURN_CREDENTIAL", raising=False)

    with caplog.at_level(logging.WARNING):
        settings.validate_environment()

    assert settings.get_relay_servers() == settings.STUN_SERVERS
    assert "TURN_USERNAME" in caplog.text


def test_turn_server_reaches_joining_clients(monkeypatch):
    monkeypatch.setenv("TURN_URL", "turn:turn.example.org:3478")
    monkeypatch.setenv("TURN_USERNAME", "user")
    monkeypatch.setenv("TURN_CREDENTIAL", "secret")

    with TestClient(create_app()) as client, client.websocket_connect("/ws") as a:
        a.receive_json()
        a.send_json({"type": "join-room", "roomId": "r1"})
        created = a.receive_json()

    assert created["relayServers"][-1]["username"] == "user"


def test_allowed_origins(monkeypatch):
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)
    monkeypatch.delenv("CLIENT_URL", raising=False)
    assert settings.get_allowed_origins() is None

    monkeypatch.setenv("CLIENT_URL", "https://localhost:3000")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example,")
    assert settings.get_allowed_origins() == [
        "https://localhost:3000",
        "https://a.example",
        "https://b.example",
    ]


def test_ssl_options_fall_back_without_certificates(monkeypatch, tmp_path):
    monkeypatch.delenv("SSL_KEY_PATH", raising=False)
    monkeypatch.delenv("SSL_CERT_PATH", raising=False)
    assert settings.get_ssl_options() == {}

    monkeypatch.setenv("SSL_KEY_PATH", str(tmp_path / "missing.key"))
    monkeypatch.setenv("SSL_CERT_PATH", str(tmp_path / "missing.crt"))
    assert settings.get_ssl_options() == {}

    key = tmp_path / "server.key"
    cert = tmp_path / "server.crt"
    key.write_text("key")
    cert.write_text("cert")
    monkeypatch.setenv("SSL_KEY_PATH", str(key))
    monkeypatch.setenv("SSL_CERT_PATH", str(cert))
    assert settings.get_ssl_options() == {"ssl_keyfile": str(key), "ssl_certfile": str(cert)}


def test_unhandled_error_returns_json_500():
    app = create_app()

    @app.get("/explode")
    async def explode():
        raise RuntimeError("boom")

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/explode")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "message": "An unexpected error occurred"}


def test_invalid_port_is_reported(monkeypatch):
    monkeypatch.setenv("PORT", "not-a-port")

    with pytest.raises(RuntimeError, match="PORT must be an integer"):
        settings.validate_environment()
