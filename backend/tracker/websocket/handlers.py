"""
WebSocket Client Event Handlers

This module binds Socket.IO events to the EventRouter. It is the
connection gateway: it owns the sid -> Session table and the transport,
and leaves every participant decision to the router.

All handlers are registered with the Socket.IO server in main.py.
"""

import logging
import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from tracker.registry.errors import AlreadyRegistered
from tracker.session.session import Session

from .events import ClientEvent

if TYPE_CHECKING:
    from tracker.router.event_router import EventRouter

logger = logging.getLogger(__name__)


class WebSocketHandlers:
    """
    Centralized WebSocket event handlers

    Translates Socket.IO callbacks into router calls.
    """

    def __init__(self, sio, router: "EventRouter"):
        """
        Initialize handlers

        Args:
            sio: Socket.IO AsyncServer instance
            router: Event router shared by all connections
        """
        self.sio = sio
        self.router = router
        self.router.on_terminate = self.terminate_session

        # Track connected clients
        self._sessions: Dict[str, Session] = {}
        self._clients: Dict[str, Dict[str, Any]] = {}

        # Register all event handlers
        self._register_handlers()

    def _register_handlers(self):
        """Register all Socket.IO event handlers"""

        # Connection events
        self.sio.on(ClientEvent.CONNECT.value, self.handle_connect)
        self.sio.on(ClientEvent.DISCONNECT.value, self.handle_disconnect)

        # Participant actions
        self.sio.on(ClientEvent.CLAIM_NAME.value, self.handle_claim_name)
        self.sio.on(ClientEvent.LOCATION.value, self.handle_location)
        self.sio.on(ClientEvent.NOTIFICATION.value, self.handle_notification)

    # ============================================
    # Connection Handlers
    # ============================================

    async def handle_connect(self, sid: str, environ: Dict, auth: Any = None):
        """
        Handle client connection

        Args:
            sid: Session ID
            environ: Connection environment
            auth: Optional auth payload (unused)

        Returns:
            False to refuse the connection
        """
        try:
            session = await self.router.on_connect(sid)
        except AlreadyRegistered as e:
            logger.error("[WS] Refusing connection %s: %s", sid, e.message)
            return False

        self._sessions[sid] = session
        self._clients[sid] = {
            "sid": sid,
            "connected_at": time.time(),
            "remote_addr": environ.get("REMOTE_ADDR", "unknown"),
            "user_agent": environ.get("HTTP_USER_AGENT", "unknown"),
        }

        logger.info(
            "[WS] Client connected: %s from %s",
            sid, self._clients[sid]["remote_addr"],
        )

    async def handle_disconnect(self, sid: str, reason: Any = None):
        """
        Handle client disconnection

        Args:
            sid: Session ID
            reason: Disconnect reason (newer python-socketio versions)
        """
        session = self._sessions.pop(sid, None)
        client = self._clients.pop(sid, None)
        if session is None:
            logger.debug("[WS] Duplicate disconnect for %s", sid)
            return

        await self.router.on_disconnect(session)

        if client:
            duration = time.time() - client["connected_at"]
            logger.info("[WS] Client disconnected: %s (duration: %.1fs)", sid, duration)

    async def terminate_session(self, session: Session):
        """Force one connection closed after an invariant violation"""
        sid = session.connection_id
        logger.warning("[WS] Terminating session %s", sid)
        try:
            await self.sio.disconnect(sid)
        finally:
            # Socket.IO may not call the disconnect handler for a sid it
            # already dropped
            await self.handle_disconnect(sid)

    # ============================================
    # Participant Event Handlers
    # ============================================

    async def handle_claim_name(self, sid: str, data: Any = None):
        """
        Handle name claim

        Args:
            sid: Session ID
            data: {name, attrs?, gender?}
        """
        await self._route(sid, ClientEvent.CLAIM_NAME, data)

    async def handle_location(self, sid: str, data: Any = None):
        """
        Handle location update

        Args:
            sid: Session ID
            data: {latitude, longitude}
        """
        await self._route(sid, ClientEvent.LOCATION, data)

    async def handle_notification(self, sid: str, data: Any = None):
        """
        Handle notification message

        Args:
            sid: Session ID
            data: {text | message, latitude?, longitude?}
        """
        await self._route(sid, ClientEvent.NOTIFICATION, data)

    async def _route(self, sid: str, event: ClientEvent, data: Any):
        session = self.get_session(sid)
        if session is None:
            logger.warning("[WS] %s from unknown connection %s, dropped", event.value, sid)
            return
        await self.router.on_event(session, event, data)

    # ============================================
    # Utility Methods
    # ============================================

    def get_session(self, sid: str) -> Optional[Session]:
        return self._sessions.get(sid)

    def get_connected_clients(self) -> Dict[str, Dict[str, Any]]:
        """Get all connected clients"""
        return self._clients.copy()

    def get_client_count(self) -> int:
        """Get number of connected clients"""
        return len(self._clients)

    def is_client_connected(self, sid: str) -> bool:
        """Check if client is connected"""
        return sid in self._clients
