"""
Per-connection session lifecycle
"""

from .session import Session, SessionState

__all__ = [
    "Session",
    "SessionState",
]
