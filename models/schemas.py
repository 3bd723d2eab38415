# models/schemas.py
from datetime import datetime
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Type, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


# Outbound messages (server -> client)
class OutboundMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Connected(OutboundMessage):
    type: Literal["connected"] = "connected"
    connectionId: str


class RoomCreated(OutboundMessage):
    type: Literal["room-created"] = "room-created"
    roomId: str
    isInitiator: bool = True
    relayServers: List[Dict[str, str]]


class RoomJoined(OutboundMessage):
    type: Literal["room-joined"] = "room-joined"
    roomId: str
    isInitiator: bool = False
    relayServers: List[Dict[str, str]]


class RoomFull(OutboundMessage):
    type: Literal["room-full"] = "room-full"
    roomId: str


class PeerJoined(OutboundMessage):
    type: Literal["peer-joined"] = "peer-joined"
    peerId: str


class PeerLeft(OutboundMessage):
    type: Literal["peer-left"] = "peer-left"


class LeftRoom(OutboundMessage):
    type: Literal["left-room"] = "left-room"
    roomId: str


class ErrorMessage(OutboundMessage):
    type: Literal["error"] = "error"
    message: str


class RelayedMessage(OutboundMessage):
    sender: str = Field(alias="from")


class RelayedOffer(RelayedMessage):
    type: Literal["offer"] = "offer"
    offer: Any


class RelayedAnswer(RelayedMessage):
    type: Literal["answer"] = "answer"
    answer: Any


class RelayedIceCandidate(RelayedMessage):
    type: Literal["ice-candidate"] = "ice-candidate"
    candidate: Any


# Inbound messages (client -> server)
class JoinRoom(BaseModel):
    type: Literal["join-room"]
    roomId: str


class Leave(BaseModel):
    type: Literal["leave"]


class RelayRequest(BaseModel):
    """Base for messages forwarded verbatim to another connection.

    Subclasses name the field carrying the opaque payload and the
    outbound model the target receives.
    """

    payload_field: ClassVar[str]
    relayed: ClassVar[Type[RelayedMessage]]

    target: str

    def forward(self, sender: str) -> RelayedMessage:
        return self.relayed(**{self.payload_field: getattr(self, self.payload_field), "from": sender})


class Offer(RelayRequest):
    payload_field = "offer"
    relayed = RelayedOffer

    type: Literal["offer"]
    offer: Any


class Answer(RelayRequest):
    payload_field = "answer"
    relayed = RelayedAnswer

    type: Literal["answer"]
    answer: Any


class IceCandidate(RelayRequest):
    payload_field = "candidate"
    relayed = RelayedIceCandidate

    type: Literal["ice-candidate"]
    candidate: Any


InboundMessage = Annotated[
    Union[JoinRoom, Leave, Offer, Answer, IceCandidate],
    Field(discriminator="type"),
]

inbound_adapter = TypeAdapter(InboundMessage)


def parse_inbound(raw: str):
    """Validate one JSON text frame; raises pydantic.ValidationError."""
    return inbound_adapter.validate_json(raw)


# Status models
class RoomSummary(BaseModel):
    id: str
    participants: int
    createdAt: datetime


class HealthResponse(BaseModel):
    status: str
    rooms: int
    totalParticipants: int
