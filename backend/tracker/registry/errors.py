"""
Tracker Error Taxonomy

Every error raised by the registry and session layers derives from
TrackerError and carries a short `reason` code that is safe to send
back to the originating client.

Categories:
- ValidationError: malformed input, reported to the sender only
- ConflictError: input is well-formed but collides with shared state
- ProtocolError: event references a connection that is not registered
- InvariantViolation: gateway/programming bug, the session is terminated
"""

from typing import Optional


class TrackerError(Exception):
    """Base class for all tracker errors"""

    reason: str = "error"

    def __init__(self, message: str = "", connection_id: Optional[str] = None):
        super().__init__(message or self.reason)
        self.message = message or self.reason
        self.connection_id = connection_id


# ============================================
# Validation Errors
# ============================================

class ValidationError(TrackerError):
    """Input failed validation"""
    reason = "invalid"


class InvalidFormat(ValidationError):
    """Name contains disallowed characters or is too long"""
    reason = "invalid_format"


class NameTooShort(ValidationError):
    """Name is shorter than the configured minimum"""
    reason = "too_short"


class EmptyMessage(ValidationError):
    """Notification text is empty or whitespace-only"""
    reason = "empty_message"


class MessageTooLong(ValidationError):
    """Notification text exceeds the configured maximum"""
    reason = "message_too_long"


class InvalidLocation(ValidationError):
    """Coordinates are not finite numbers"""
    reason = "invalid_location"


# ============================================
# Conflict Errors
# ============================================

class ConflictError(TrackerError):
    """Request conflicts with current registry state"""
    reason = "conflict"


class NameTaken(ConflictError):
    """Requested name is already claimed (case-insensitive)"""
    reason = "name_taken"


# ============================================
# Protocol Errors
# ============================================

class ProtocolError(TrackerError):
    """Event could not be attributed to a live connection"""
    reason = "protocol_error"


class UnknownConnection(ProtocolError):
    reason = "unknown_connection"


# ============================================
# Invariant Violations
# ============================================

class InvariantViolation(TrackerError):
    """Internal invariant broken; the affected session must be closed"""
    reason = "invariant_violation"


class AlreadyRegistered(InvariantViolation):
    reason = "already_registered"


class InvalidTransition(InvariantViolation):
    reason = "invalid_transition"
