from typing import List

from fastapi import APIRouter, Request

from models.schemas import HealthResponse, RoomSummary
from room_manager import RoomManager

router = APIRouter()


def _manager(request: Request) -> RoomManager:
    return request.app.state.room_manager


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    manager = _manager(request)
    return HealthResponse(
        status="ok",
        rooms=len(manager.rooms),
        totalParticipants=manager.total_participants(),
    )


@router.get("/rooms", response_model=List[RoomSummary])
async def list_rooms(request: Request):
    """
    List active rooms with their participant counts
    """
    return [
        RoomSummary(id=room.room_id, participants=len(room.participants), createdAt=room.created_at)
        for room in _manager(request).rooms
    ]
