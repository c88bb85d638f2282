"""
WebSocket Package

This package is the Socket.IO connection gateway for the tracker.

Components:
- events: Event names and payload models
- emitter: Per-recipient outbound delivery queues
- handlers: Socket.IO callbacks bound to the EventRouter

Usage:
    from tracker.websocket import WebSocketEmitter, WebSocketHandlers

    emitter = WebSocketEmitter(sio)
    router = EventRouter(registry, emitter)
    handlers = WebSocketHandlers(sio, router)
"""

from .events import ServerEvent, ClientEvent
from .emitter import WebSocketEmitter
from .handlers import WebSocketHandlers

__all__ = [
    "ServerEvent",
    "ClientEvent",
    "WebSocketEmitter",
    "WebSocketHandlers",
]
