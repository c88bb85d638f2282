"""
WebSocket Event Type Definitions

This module defines every Socket.IO event exchanged with tracker clients
and the payload models for each.

Events are categorized as:
- Client -> Server: name claims, location updates, notifications
- Server -> Client: presence changes and relayed updates

Wire names match the map front end (`set-name`, `send-location`,
`receive-location`, ...).
"""

from enum import Enum
from pydantic import AliasChoices, BaseModel, Field, model_validator
from typing import Any, Dict, Optional


# ============================================
# Event Name Constants
# ============================================

class ServerEvent(str, Enum):
    """Events emitted from server to client"""

    # Name claims
    NAME_ACCEPTED = "name-accepted"
    NAME_REJECTED = "name-rejected"

    # Presence
    PARTICIPANT_JOINED = "user-connected"
    PARTICIPANT_LEFT = "user-left"
    PARTICIPANT_DISCONNECTED = "user-disconnected"

    # Relayed updates
    LOCATION = "receive-location"
    NOTIFICATION = "receive-notification"

    # Errors
    EVENT_REJECTED = "event-rejected"


class ClientEvent(str, Enum):
    """Events received from client"""

    # Connection
    CONNECT = "connect"
    DISCONNECT = "disconnect"

    # Participant actions
    CLAIM_NAME = "set-name"
    LOCATION = "send-location"
    NOTIFICATION = "send-notification"


# ============================================
# Client -> Server Event Data Models
# ============================================

class ClaimNameRequest(BaseModel):
    """Request for set-name event"""
    name: str
    attrs: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def fold_legacy_attrs(cls, data: Any) -> Any:
        # Older clients send `gender` next to the name instead of in attrs
        if isinstance(data, dict) and "gender" in data:
            data = dict(data)
            attrs = dict(data.get("attrs") or {})
            if data["gender"] is not None:
                attrs.setdefault("gender", str(data["gender"]))
            data["attrs"] = attrs
        return data


class LocationRequest(BaseModel):
    """Request for send-location event"""
    latitude: float
    longitude: float


class NotificationRequest(BaseModel):
    """Request for send-notification event"""
    text: str = Field(validation_alias=AliasChoices("text", "message"))

    # The map client attaches its current position to each message
    latitude: Optional[float] = None
    longitude: Optional[float] = None


# ============================================
# Server -> Client Event Data Models
# ============================================

class NameAcceptedData(BaseModel):
    """Data for name-accepted event (unicast to the claimer)"""
    name: str
    attrs: Dict[str, str] = Field(default_factory=dict)


class NameRejectedData(BaseModel):
    """Data for name-rejected event (unicast to the claimer)"""
    reason: str  # invalid_format | name_taken | too_short


class ParticipantJoinedData(BaseModel):
    """Data for user-connected event"""
    name: str
    attrs: Dict[str, str] = Field(default_factory=dict)


class LocationData(BaseModel):
    """Data for receive-location event"""
    id: str
    name: Optional[str] = None
    attrs: Dict[str, str] = Field(default_factory=dict)
    latitude: float
    longitude: float


class NotificationData(BaseModel):
    """Data for receive-notification event"""
    id: str
    name: Optional[str] = None
    attrs: Dict[str, str] = Field(default_factory=dict)
    text: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ParticipantLeftData(BaseModel):
    """Data for user-left event"""
    name: str
    attrs: Dict[str, str] = Field(default_factory=dict)


class ParticipantDisconnectedData(BaseModel):
    """Data for user-disconnected event"""
    id: str


class EventRejectedData(BaseModel):
    """Data for event-rejected event (unicast to the sender)"""
    event: str
    reason: str


# ============================================
# Inbound Parsing
# ============================================

INBOUND_MODELS = {
    ClientEvent.CLAIM_NAME: ClaimNameRequest,
    ClientEvent.LOCATION: LocationRequest,
    ClientEvent.NOTIFICATION: NotificationRequest,
}


def parse_client_event(event: ClientEvent, payload: Any) -> BaseModel:
    """
    Validate a raw Socket.IO payload into its request model

    Raises:
        KeyError: event has no payload model
        pydantic.ValidationError: payload does not match the model
    """
    return INBOUND_MODELS[event].model_validate(payload)
