import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, NamedTuple, Optional

from models.schemas import (
    ErrorMessage,
    LeftRoom,
    OutboundMessage,
    PeerJoined,
    PeerLeft,
    RoomCreated,
    RoomFull,
    RoomJoined,
)

logger = logging.getLogger(__name__)

ROOM_CAPACITY = 2


class Delivery(NamedTuple):
    recipient: str
    message: OutboundMessage


@dataclass
class Room:
    room_id: str
    participants: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= ROOM_CAPACITY


class RoomRegistry:
    """Room identifier -> Room. Rooms with no participants are never kept."""

    def __init__(self):
        self._rooms: Dict[str, Room] = {}

    def get_or_create(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            room = self._rooms[room_id] = Room(room_id)
        return room

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def remove(self, room_id: str):
        self._rooms.pop(room_id, None)

    def __len__(self) -> int:
        return len(self._rooms)

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))


class ConnectionDirectory:
    """Connection identifier -> identifier of the room it occupies."""

    def __init__(self):
        self._memberships: Dict[str, str] = {}

    def assign(self, connection_id: str, room_id: str):
        self._memberships[connection_id] = room_id

    def release(self, connection_id: str) -> Optional[str]:
        return self._memberships.pop(connection_id, None)

    def room_of(self, connection_id: str) -> Optional[str]:
        return self._memberships.get(connection_id)

    def items(self):
        return list(self._memberships.items())

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._memberships

    def __len__(self) -> int:
        return len(self._memberships)


class RoomManager:
    """Pairs connections into two-party rooms.

    Every mutating operation runs under a single lock and returns the
    deliveries it produced instead of sending them, so callers can hand
    them to the transport after the lock is released.
    """

    def __init__(self, relay_servers: Optional[List[Dict[str, str]]] = None):
        self.relay_servers = relay_servers or []
        self.rooms = RoomRegistry()
        self.directory = ConnectionDirectory()
        self._lock = asyncio.Lock()

    async def join(self, connection_id: str, room_id: str) -> List[Delivery]:
        logger.info(f"User {connection_id} attempting to join room: {room_id}")
        async with self._lock:
            current = self.directory.room_of(connection_id)
            if current is not None:
                logger.warning(f"User {connection_id} is already in room {current}, join to {room_id} rejected")
                return [Delivery(connection_id, ErrorMessage(message=f"Already in room {current}"))]

            room = self.rooms.get_or_create(room_id)
            if room.is_full:
                logger.info(f"Room {room_id} is full, rejecting {connection_id}")
                return [Delivery(connection_id, RoomFull(roomId=room_id))]

            peers = list(room.participants)
            room.participants.append(connection_id)
            self.directory.assign(connection_id, room_id)

            if len(room.participants) == 1:
                deliveries = [Delivery(connection_id, RoomCreated(roomId=room_id, relayServers=self.relay_servers))]
            else:
                deliveries = [Delivery(connection_id, RoomJoined(roomId=room_id, relayServers=self.relay_servers))]
                deliveries.extend(Delivery(peer, PeerJoined(peerId=connection_id)) for peer in peers)

            logger.info(f"Room {room_id} now has {len(room.participants)} participants")
            return deliveries

    async def leave(self, connection_id: str) -> List[Delivery]:
        """Explicit leave; acknowledges the departing connection."""
        logger.info(f"User {connection_id} is leaving")
        async with self._lock:
            room_id, deliveries = self._evict(connection_id)
        if room_id is not None:
            deliveries.append(Delivery(connection_id, LeftRoom(roomId=room_id)))
        return deliveries

    async def disconnect(self, connection_id: str) -> List[Delivery]:
        """Transport-initiated departure."""
        async with self._lock:
            _, deliveries = self._evict(connection_id)
        return deliveries

    def _evict(self, connection_id: str):
        room_id = self.directory.release(connection_id)
        if room_id is None:
            return None, []

        room = self.rooms.get(room_id)
        room.participants.remove(connection_id)
        if not room.participants:
            self.rooms.remove(room_id)
            logger.info(f"Room {room_id} is empty, removed")
            return room_id, []

        return room_id, [Delivery(peer, PeerLeft()) for peer in room.participants]

    def room_of(self, connection_id: str) -> Optional[str]:
        return self.directory.room_of(connection_id)

    def total_participants(self) -> int:
        return sum(len(room.participants) for room in self.rooms)
