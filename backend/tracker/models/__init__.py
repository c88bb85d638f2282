"""
Pydantic Models Package

Data models for the live location tracker.
"""

from .participant import Location, Participant

__all__ = [
    "Location",
    "Participant",
]
