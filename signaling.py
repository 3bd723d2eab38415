import logging
import uuid
from typing import Dict, Iterable

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from models.schemas import Connected, ErrorMessage, JoinRoom, Leave, OutboundMessage, RelayRequest, parse_inbound
from room_manager import Delivery, RoomManager

logger = logging.getLogger(__name__)
router = APIRouter()


class ConnectionHub:
    """Live WebSockets by connection identifier."""

    def __init__(self):
        self.connections: Dict[str, WebSocket] = {}

    def register(self, websocket: WebSocket) -> str:
        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = websocket
        return connection_id

    def unregister(self, connection_id: str):
        self.connections.pop(connection_id, None)

    async def send(self, connection_id: str, message: OutboundMessage) -> bool:
        websocket = self.connections.get(connection_id)
        if websocket is None:
            logger.warning(f"Dropping {message.type} for unknown connection {connection_id}")
            return False
        try:
            await websocket.send_json(message.to_wire())
        except Exception as e:
            logger.warning(f"Dropping {message.type} for {connection_id}, send failed: {e}")
            return False
        return True

    async def deliver(self, deliveries: Iterable[Delivery]):
        for recipient, message in deliveries:
            await self.send(recipient, message)


def relay(request: RelayRequest, sender_id: str) -> Delivery:
    """Forward an opaque payload to the named target, tagged with the sender."""
    logger.debug(f"Received {request.type} from {sender_id} to {request.target}")
    return Delivery(request.target, request.forward(sender_id))


async def dispatch(manager: RoomManager, connection_id: str, message) -> list:
    if isinstance(message, JoinRoom):
        return await manager.join(connection_id, message.roomId)
    if isinstance(message, Leave):
        return await manager.leave(connection_id)
    return [relay(message, connection_id)]


@router.websocket("/ws")
async def signaling_endpoint(websocket: WebSocket):
    manager: RoomManager = websocket.app.state.room_manager
    hub: ConnectionHub = websocket.app.state.hub

    await websocket.accept()
    connection_id = hub.register(websocket)
    logger.info(f"User connected: {connection_id}")

    try:
        await hub.send(connection_id, Connected(connectionId=connection_id))
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))

            try:
                if frame.get("text") is None:
                    raise ValueError("binary frames are not accepted")
                message = parse_inbound(frame["text"])
            except (ValidationError, ValueError) as e:
                logger.warning(f"Invalid message from {connection_id}: {e}")
                await hub.send(connection_id, ErrorMessage(message="Invalid message"))
                continue

            await hub.deliver(await dispatch(manager, connection_id, message))
    except WebSocketDisconnect:
        logger.info(f"User disconnected: {connection_id}")
    finally:
        hub.unregister(connection_id)
        await hub.deliver(await manager.disconnect(connection_id))
