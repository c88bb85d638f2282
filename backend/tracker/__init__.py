"""
Live Location Tracker
Backend Application Package

Presence registry, event fanout and the Socket.IO gateway for the
real-time location sharing map.
"""

__version__ = "1.0.0"
