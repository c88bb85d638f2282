"""
Participant Data Models

State tracked by the ParticipantRegistry for each live connection.
Records are owned by the registry; callers only ever see copies.
"""

from pydantic import BaseModel, Field
from typing import Dict, Optional
import time


class Location(BaseModel):
    """GPS position (latitude, longitude)"""
    latitude: float
    longitude: float

    class Config:
        json_schema_extra = {
            "example": {"latitude": 28.6139, "longitude": 77.2090}
        }


class Participant(BaseModel):
    """
    One connected, possibly named entity

    Created on connect with no name and no location. The display name is
    locked once claimed; location and notification text are overwritten
    by each accepted update.
    """
    # Identity
    connection_id: str
    display_name: Optional[str] = None
    attrs: Dict[str, str] = Field(default_factory=dict)

    # Last known state
    last_location: Optional[Location] = None
    last_notification_text: Optional[str] = None

    # Bookkeeping
    connected_at: float = Field(default_factory=time.time)
    last_seen_at: float = Field(default_factory=time.time)

    @property
    def is_named(self) -> bool:
        return self.display_name is not None

    @property
    def has_location(self) -> bool:
        return self.last_location is not None

    def to_location_payload(self) -> Dict:
        """Outbound `receive-location` body for this participant"""
        return {
            "id": self.connection_id,
            "name": self.display_name,
            "attrs": dict(self.attrs),
            "latitude": self.last_location.latitude if self.has_location else None,
            "longitude": self.last_location.longitude if self.has_location else None,
        }

    class Config:
        json_schema_extra = {
            "example": {
                "connection_id": "Xk3f9aQ2",
                "display_name": "alice",
                "attrs": {"gender": "female"},
                "last_location": {"latitude": 28.6139, "longitude": 77.2090},
                "last_notification_text": "on my way",
            }
        }
