"""
Participant registry and error taxonomy
"""

from .errors import (
    TrackerError,
    ValidationError,
    InvalidFormat,
    NameTooShort,
    EmptyMessage,
    MessageTooLong,
    InvalidLocation,
    ConflictError,
    NameTaken,
    ProtocolError,
    UnknownConnection,
    InvariantViolation,
    AlreadyRegistered,
    InvalidTransition,
)
from .participant_registry import ClaimResult, ParticipantRegistry, validate_location

__all__ = [
    "ClaimResult",
    "ParticipantRegistry",
    "validate_location",
    "TrackerError",
    "ValidationError",
    "InvalidFormat",
    "NameTooShort",
    "EmptyMessage",
    "MessageTooLong",
    "InvalidLocation",
    "ConflictError",
    "NameTaken",
    "ProtocolError",
    "UnknownConnection",
    "InvariantViolation",
    "AlreadyRegistered",
    "InvalidTransition",
]
