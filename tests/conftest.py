import pytest
from fastapi.testclient import TestClient

from main import create_app
from room_manager import RoomManager

RELAY_SERVERS = [{"urls": "stun:stun.example.org:3478"}]


def assert_consistent(manager: RoomManager):
    """Every room member is in the directory under that room, and nothing else is."""
    members = {}
    for room in manager.rooms:
        assert 1 <= len(room.participants) <= 2, room
        assert len(set(room.participants)) == len(room.participants), room
        for connection_id in room.participants:
            assert connection_id not in members
            members[connection_id] = room.room_id
    assert len(manager.directory) == len(members)
    assert dict(manager.directory.items()) == members


@pytest.fixture
def manager():
    return RoomManager(relay_servers=RELAY_SERVERS)


@pytest.fixture
def client(monkeypatch):
    for var in ("TURN_URL", "TURN_USERNAME", "TURN_CREDENTIAL", "ALLOWED_ORIGINS", "CLIENT_URL"):
        monkeypatch.delenv(var, raising=False)
    with TestClient(create_app()) as test_client:
        yield test_client
