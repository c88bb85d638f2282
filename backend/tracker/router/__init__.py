"""
Inbound event routing and fanout
"""

from .event_router import EventRouter

__all__ = [
    "EventRouter",
]
