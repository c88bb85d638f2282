"""
Session State Machine

Per-connection lifecycle: CONNECTED -> NAMED -> CLOSED.

Transition rules:
- CONNECTED -> NAMED: name claim accepted
- CONNECTED -> CONNECTED: name claim rejected (no transition)
- NAMED -> NAMED: location/notification events (no transition)
- CONNECTED | NAMED -> CLOSED: disconnect
- CLOSED is terminal

A session is a plain record: it knows its own connection id and the name
it was granted, nothing else. Participant state lives in the registry.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import time

from tracker.registry.errors import InvalidTransition


class SessionState(Enum):
    """Connection lifecycle states"""
    CONNECTED = "CONNECTED"     # Transport open, no name yet
    NAMED = "NAMED"             # Display name claimed
    CLOSED = "CLOSED"           # Disconnected (terminal)


VALID_TRANSITIONS = {
    SessionState.CONNECTED: [SessionState.NAMED, SessionState.CLOSED],
    SessionState.NAMED: [SessionState.CLOSED],
    SessionState.CLOSED: [],
}


@dataclass
class Session:
    """Thin per-connection handle"""
    connection_id: str
    state: SessionState = SessionState.CONNECTED
    name: Optional[str] = None
    attrs: Dict[str, str] = field(default_factory=dict)
    opened_at: float = field(default_factory=time.time)
    closed_at: Optional[float] = None
    transition_history: List[dict] = field(default_factory=list)

    @property
    def is_named(self) -> bool:
        return self.state == SessionState.NAMED

    @property
    def is_closed(self) -> bool:
        return self.state == SessionState.CLOSED

    @property
    def accepts_events(self) -> bool:
        """Inbound events are only processed until the session closes"""
        return self.state != SessionState.CLOSED

    @property
    def was_named(self) -> bool:
        """True if the session reached NAMED at any point"""
        return self.name is not None

    def mark_named(self, name: str, attrs: Optional[Dict[str, str]] = None):
        """
        Record an accepted name claim

        Raises:
            InvalidTransition: session is not in CONNECTED
        """
        self._transition_to(SessionState.NAMED, f"Claimed name {name}")
        self.name = name
        self.attrs = dict(attrs or {})

    def close(self, reason: str = "disconnect") -> bool:
        """
        Move to CLOSED

        Returns:
            False if the session was already closed, True otherwise
        """
        if self.state == SessionState.CLOSED:
            return False
        self._transition_to(SessionState.CLOSED, reason)
        self.closed_at = time.time()
        return True

    def get_state_info(self) -> dict:
        return {
            "connectionId": self.connection_id,
            "state": self.state.value,
            "name": self.name,
            "attrs": dict(self.attrs),
            "openedAt": self.opened_at,
            "closedAt": self.closed_at,
        }

    def _transition_to(self, new_state: SessionState, reason: str):
        if new_state not in VALID_TRANSITIONS[self.state]:
            raise InvalidTransition(
                f"Invalid transition: {self.state.value} -> {new_state.value}",
                connection_id=self.connection_id,
            )
        self.transition_history.append({
            "from": self.state.value,
            "to": new_state.value,
            "timestamp": time.time(),
            "reason": reason,
        })
        self.state = new_state
