"""
Participant Registry

Single source of truth for who is connected, which display name each
connection holds and where each participant was last seen.

Rules:
1. One entry per connection id, created on connect, removed on disconnect
2. Display names are unique under case-insensitive comparison
3. A rejected claim never mutates state
4. A claimed name is locked until the connection unregisters

Every public method runs under one lock, held only for in-memory work.
Records handed out are deep copies; the registry never leaks its own.
"""

import logging
import math
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tracker.models.participant import Location, Participant
from tracker.registry.errors import (
    AlreadyRegistered,
    EmptyMessage,
    InvalidFormat,
    InvalidLocation,
    MessageTooLong,
    NameTaken,
    NameTooShort,
    TrackerError,
    UnknownConnection,
)

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"[\w-]+")


@dataclass
class ClaimResult:
    """Outcome of a name claim"""
    accepted: bool
    name: Optional[str] = None
    reason: Optional[str] = None
    participant: Optional[Participant] = None
    # Other participants with a known location, read in the same critical
    # section as the claim
    backfill: List[Participant] = field(default_factory=list)
    # Connection ids that were live when the claim was accepted
    peers: List[str] = field(default_factory=list)


class ParticipantRegistry:
    """
    Track connected participants and enforce name uniqueness

    Names are compared with str.casefold(); the original spelling is kept
    for display.
    """

    def __init__(self, config: dict = None):
        """
        Initialize the registry

        Args:
            config: Optional settings (minNameLength, maxNameLength,
                    maxMessageLength)
        """
        self.config = config or {}

        self.min_name_length = self.config.get("minNameLength", 2)
        self.max_name_length = self.config.get("maxNameLength", 32)
        self.max_message_length = self.config.get("maxMessageLength", 500)

        # connection_id -> Participant (dict keeps insertion order)
        self._participants: Dict[str, Participant] = {}
        # casefolded name -> connection_id
        self._names: Dict[str, str] = {}
        self._lock = threading.Lock()

        # Statistics
        self.total_registered = 0
        self.total_claims = 0
        self.rejected_claims = 0

        logger.debug(
            "[REGISTRY] Initialized (name length %d-%d)",
            self.min_name_length,
            self.max_name_length,
        )

    # ============================================
    # Lifecycle
    # ============================================

    def register(self, connection_id: str) -> Participant:
        """
        Create an empty participant entry

        Raises:
            AlreadyRegistered: the id is already present
        """
        with self._lock:
            if connection_id in self._participants:
                raise AlreadyRegistered(
                    f"Connection {connection_id} is already registered",
                    connection_id=connection_id,
                )
            participant = Participant(connection_id=connection_id)
            self._participants[connection_id] = participant
            self.total_registered += 1
            return participant.model_copy(deep=True)

    def unregister(self, connection_id: str) -> Optional[Participant]:
        """
        Remove a participant and free its name

        Idempotent: returns None when the id is already gone.
        """
        with self._lock:
            participant = self._participants.pop(connection_id, None)
            if participant is None:
                return None
            if participant.display_name is not None:
                key = participant.display_name.casefold()
                if self._names.get(key) == connection_id:
                    del self._names[key]
            return participant

    # ============================================
    # Name Claims
    # ============================================

    def normalize_name(self, requested_name) -> str:
        """
        Trim and validate a requested name

        Raises:
            NameTooShort: fewer than min_name_length characters
            InvalidFormat: not a string, too long or bad characters
        """
        if not isinstance(requested_name, str):
            raise InvalidFormat("Name must be a string")

        name = requested_name.strip()
        if len(name) < self.min_name_length:
            raise NameTooShort(
                f"Name must be at least {self.min_name_length} characters"
            )
        if len(name) > self.max_name_length:
            raise InvalidFormat(
                f"Name must be at most {self.max_name_length} characters"
            )
        if not NAME_PATTERN.fullmatch(name):
            raise InvalidFormat(
                "Name may only contain letters, digits, underscore and hyphen"
            )
        return name

    def claim_name(
        self,
        connection_id: str,
        requested_name,
        attrs: Optional[Dict[str, str]] = None,
    ) -> ClaimResult:
        """
        Reserve a display name for a connection

        On success the result also carries the backfill: every other
        participant with a known location, read under the same lock.

        Raises:
            UnknownConnection: the id is not registered
        """
        try:
            name = self.normalize_name(requested_name)
        except TrackerError as e:
            with self._lock:
                self.total_claims += 1
                self.rejected_claims += 1
                if connection_id not in self._participants:
                    raise UnknownConnection(
                        f"Claim from unknown connection {connection_id}",
                        connection_id=connection_id,
                    )
            return ClaimResult(accepted=False, reason=e.reason)

        key = name.casefold()

        with self._lock:
            self.total_claims += 1
            participant = self._participants.get(connection_id)
            if participant is None:
                self.rejected_claims += 1
                raise UnknownConnection(
                    f"Claim from unknown connection {connection_id}",
                    connection_id=connection_id,
                )

            # Names are locked for the session; renaming is not supported
            if participant.display_name is not None or key in self._names:
                self.rejected_claims += 1
                return ClaimResult(accepted=False, reason=NameTaken.reason)

            self._names[key] = connection_id
            participant.display_name = name
            participant.attrs = dict(attrs or {})
            participant.last_seen_at = time.time()

            backfill = [
                p.model_copy(deep=True)
                for cid, p in self._participants.items()
                if cid != connection_id and p.last_location is not None
            ]
            peers = [cid for cid in self._participants if cid != connection_id]

            return ClaimResult(
                accepted=True,
                name=name,
                participant=participant.model_copy(deep=True),
                backfill=backfill,
                peers=peers,
            )

    def is_name_available(self, requested_name: str) -> bool:
        """Check whether a name is valid and unclaimed right now"""
        try:
            name = self.normalize_name(requested_name)
        except TrackerError:
            return False
        with self._lock:
            return name.casefold() not in self._names

    # ============================================
    # State Updates
    # ============================================

    def update_location(self, connection_id: str, latitude, longitude) -> Participant:
        """
        Overwrite the last known location

        Raises:
            InvalidLocation: either coordinate is not a finite number
            UnknownConnection: the id is not registered
        """
        location = validate_location(latitude, longitude, connection_id)

        with self._lock:
            participant = self._require(connection_id)
            participant.last_location = location
            participant.last_seen_at = time.time()
            return participant.model_copy(deep=True)

    def record_notification(self, connection_id: str, text) -> Participant:
        """
        Overwrite the last notification text

        Raises:
            EmptyMessage: text is empty or whitespace-only
            MessageTooLong: text exceeds max_message_length
            UnknownConnection: the id is not registered
        """
        if not isinstance(text, str) or not text.strip():
            raise EmptyMessage("Notification text is empty", connection_id=connection_id)
        text = text.strip()
        if len(text) > self.max_message_length:
            raise MessageTooLong(
                f"Notification exceeds {self.max_message_length} characters",
                connection_id=connection_id,
            )

        with self._lock:
            participant = self._require(connection_id)
            participant.last_notification_text = text
            participant.last_seen_at = time.time()
            return participant.model_copy(deep=True)

    # ============================================
    # Queries
    # ============================================

    def snapshot(self, exclude: Optional[str] = None) -> List[Participant]:
        """All participants with a known location, in insertion order"""
        with self._lock:
            return [
                p.model_copy(deep=True)
                for cid, p in self._participants.items()
                if cid != exclude and p.has_location
            ]

    def get(self, connection_id: str) -> Optional[Participant]:
        with self._lock:
            participant = self._participants.get(connection_id)
            return participant.model_copy(deep=True) if participant else None

    def connection_ids(self, exclude: Optional[str] = None) -> List[str]:
        """Ids of every registered connection except `exclude`"""
        with self._lock:
            return [cid for cid in self._participants if cid != exclude]

    def claimed_names(self) -> List[str]:
        with self._lock:
            return [
                self._participants[cid].display_name
                for cid in self._names.values()
            ]

    def get_stats(self) -> Dict:
        with self._lock:
            return {
                "connected": len(self._participants),
                "named": len(self._names),
                "located": sum(
                    1 for p in self._participants.values() if p.has_location
                ),
                "totalRegistered": self.total_registered,
                "totalClaims": self.total_claims,
                "rejectedClaims": self.rejected_claims,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._participants)

    def __contains__(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._participants

    # ============================================
    # Internal Methods
    # ============================================

    def _require(self, connection_id: str) -> Participant:
        """Look up a participant; caller must hold the lock"""
        participant = self._participants.get(connection_id)
        if participant is None:
            raise UnknownConnection(
                f"Unknown connection {connection_id}",
                connection_id=connection_id,
            )
        return participant


def _finite(value) -> Optional[float]:
    """Coerce a coordinate to float, or None if it is not a finite number"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return value


def validate_location(latitude, longitude, connection_id: Optional[str] = None) -> Location:
    """
    Build a Location from raw coordinates

    Raises:
        InvalidLocation: either coordinate is not a finite number
    """
    lat = _finite(latitude)
    lng = _finite(longitude)
    if lat is None or lng is None:
        raise InvalidLocation(
            f"Invalid coordinates: {latitude!r}, {longitude!r}",
            connection_id=connection_id,
        )
    return Location(latitude=lat, longitude=lng)
