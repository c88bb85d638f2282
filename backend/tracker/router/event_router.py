"""
Event Router

Mediates between inbound client events, the ParticipantRegistry and the
outbound delivery queues. Every mutation of participant state goes
through `on_connect`, `on_event` or `on_disconnect`.

Routing table:
- set-name:          claim -> user-connected to others, then name-accepted
                     and the location backfill to the claimer
- send-location:     update -> receive-location to others
- send-notification: record -> receive-notification to others
- disconnect:        unregister -> user-left (named only) and
                     user-disconnected to everyone remaining

Error policy:
- ValidationError / ConflictError: unicast rejection to the sender
- ProtocolError: logged and dropped
- InvariantViolation: logged, the offending session is terminated

Registry calls and the queueing of their outbound messages happen with
no await in between, so the messages for one inbound event reach each
recipient in issue order.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, ValidationError as PayloadError

from tracker.registry.errors import (
    ConflictError,
    InvalidFormat,
    InvalidLocation,
    InvariantViolation,
    ProtocolError,
    ValidationError,
)
from tracker.registry.participant_registry import ParticipantRegistry, validate_location
from tracker.session.session import Session
from tracker.websocket.emitter import WebSocketEmitter
from tracker.websocket.events import (
    ClaimNameRequest,
    ClientEvent,
    EventRejectedData,
    LocationData,
    LocationRequest,
    NameAcceptedData,
    NameRejectedData,
    NotificationData,
    NotificationRequest,
    ParticipantDisconnectedData,
    ParticipantJoinedData,
    ParticipantLeftData,
    ServerEvent,
    parse_client_event,
)

logger = logging.getLogger(__name__)

TerminateCallback = Callable[[Session], Awaitable[None]]

# Reason reported when a payload cannot be parsed at all
MALFORMED_REASONS = {
    ClientEvent.CLAIM_NAME: InvalidFormat.reason,
    ClientEvent.LOCATION: InvalidLocation.reason,
    ClientEvent.NOTIFICATION: InvalidFormat.reason,
}


class EventRouter:
    """
    Route inbound events to the registry and fan out the results

    The gateway owns the transport; it calls on_connect / on_event /
    on_disconnect and provides the send capability via the emitter.
    """

    def __init__(
        self,
        registry: ParticipantRegistry,
        emitter: WebSocketEmitter,
        on_terminate: Optional[TerminateCallback] = None,
    ):
        """
        Initialize router

        Args:
            registry: Shared participant registry
            emitter: Per-recipient delivery queues
            on_terminate: Called to close a session after an invariant
                          violation (default: local disconnect)
        """
        self.registry = registry
        self.emitter = emitter
        self.on_terminate = on_terminate

        # Statistics
        self.events_handled = 0
        self.events_rejected = 0
        self.events_dropped = 0
        self.sessions_terminated = 0

    # ============================================
    # Gateway Interface
    # ============================================

    async def on_connect(self, connection_id: str) -> Session:
        """
        Register a new connection and open its delivery queue

        Raises:
            AlreadyRegistered: the gateway reused a live connection id
        """
        self.registry.register(connection_id)
        self.emitter.open(connection_id)
        logger.info("[ROUTER] Session opened: %s", connection_id)
        return Session(connection_id=connection_id)

    async def on_event(self, session: Session, event: ClientEvent, payload: Any):
        """
        Validate and route one inbound event

        Never raises: every failure becomes a rejection, a drop or a
        session termination.
        """
        if not session.accepts_events:
            self.events_dropped += 1
            logger.debug(
                "[ROUTER] Ignoring %s from closed session %s",
                event.value, session.connection_id,
            )
            return

        try:
            request = parse_client_event(event, payload)
        except (PayloadError, KeyError):
            self._reject(session, event, MALFORMED_REASONS.get(event, InvalidFormat.reason))
            return

        try:
            self._dispatch(session, request)
            self.events_handled += 1

        except (ValidationError, ConflictError) as e:
            self._reject(session, event, e.reason)

        except ProtocolError as e:
            self.events_dropped += 1
            logger.warning(
                "[ROUTER] Dropped %s from %s: %s",
                event.value, session.connection_id, e.message,
            )

        except InvariantViolation as e:
            logger.error(
                "[ROUTER] Invariant violation on %s: %s",
                session.connection_id, e.message,
            )
            await self._terminate(session)

    async def on_disconnect(self, session: Session):
        """
        Close the session, free its name and announce the departure

        Safe to call more than once; only the first call broadcasts.
        """
        session.close()

        participant = self.registry.unregister(session.connection_id)
        if participant is None:
            await self.emitter.close(session.connection_id)
            return

        remaining = self.registry.connection_ids()
        if participant.display_name is not None:
            self.emitter.broadcast(
                ServerEvent.PARTICIPANT_LEFT.value,
                ParticipantLeftData(
                    name=participant.display_name,
                    attrs=participant.attrs,
                ).model_dump(),
                remaining,
            )
        self.emitter.broadcast(
            ServerEvent.PARTICIPANT_DISCONNECTED.value,
            ParticipantDisconnectedData(id=session.connection_id).model_dump(),
            remaining,
        )

        await self.emitter.close(session.connection_id)

        duration = time.time() - session.opened_at
        logger.info(
            "[ROUTER] Session closed: %s (%s, %.1fs)",
            session.connection_id, session.name if session.was_named else "unnamed", duration,
        )

    # ============================================
    # Event Handlers
    # ============================================

    def _dispatch(self, session: Session, request: BaseModel):
        if isinstance(request, ClaimNameRequest):
            self._handle_claim_name(session, request)
        elif isinstance(request, LocationRequest):
            self._handle_location(session, request)
        elif isinstance(request, NotificationRequest):
            self._handle_notification(session, request)
        else:
            raise TypeError(f"Unroutable request: {type(request).__name__}")

    def _handle_claim_name(self, session: Session, request: ClaimNameRequest):
        sid = session.connection_id
        result = self.registry.claim_name(sid, request.name, request.attrs)

        if not result.accepted:
            self.events_rejected += 1
            logger.info("[ROUTER] Name rejected for %s: %s", sid, result.reason)
            self.emitter.send(
                sid,
                ServerEvent.NAME_REJECTED.value,
                NameRejectedData(reason=result.reason).model_dump(),
            )
            return

        session.mark_named(result.name, result.participant.attrs)
        logger.info("[ROUTER] %s claimed name %s", sid, result.name)

        self.emitter.broadcast(
            ServerEvent.PARTICIPANT_JOINED.value,
            ParticipantJoinedData(
                name=result.name,
                attrs=result.participant.attrs,
            ).model_dump(),
            result.peers,
        )

        self.emitter.send(
            sid,
            ServerEvent.NAME_ACCEPTED.value,
            NameAcceptedData(
                name=result.name,
                attrs=result.participant.attrs,
            ).model_dump(),
        )
        for peer in result.backfill:
            self.emitter.send(
                sid,
                ServerEvent.LOCATION.value,
                LocationData(**peer.to_location_payload()).model_dump(),
            )

    def _handle_location(self, session: Session, request: LocationRequest):
        sid = session.connection_id
        participant = self.registry.update_location(
            sid, request.latitude, request.longitude
        )
        logger.debug(
            "[ROUTER] Location from %s: %s, %s",
            sid, request.latitude, request.longitude,
        )

        self.emitter.broadcast(
            ServerEvent.LOCATION.value,
            LocationData(**participant.to_location_payload()).model_dump(),
            self.registry.connection_ids(exclude=sid),
        )

    def _handle_notification(self, session: Session, request: NotificationRequest):
        sid = session.connection_id
        location = None
        if request.latitude is not None and request.longitude is not None:
            location = validate_location(request.latitude, request.longitude, sid)

        participant = self.registry.record_notification(sid, request.text)
        logger.debug("[ROUTER] Notification from %s", sid)

        data = NotificationData(
            id=sid,
            name=participant.display_name,
            attrs=participant.attrs,
            text=participant.last_notification_text,
        ).model_dump(exclude={"latitude", "longitude"})
        if location is not None:
            data.update(location.model_dump())

        self.emitter.broadcast(
            ServerEvent.NOTIFICATION.value,
            data,
            self.registry.connection_ids(exclude=sid),
        )

    # ============================================
    # Internal Methods
    # ============================================

    def _reject(self, session: Session, event: ClientEvent, reason: str):
        """Tell the sender its event was not accepted"""
        self.events_rejected += 1
        logger.info(
            "[ROUTER] Rejected %s from %s: %s",
            event.value, session.connection_id, reason,
        )
        if event == ClientEvent.CLAIM_NAME:
            self.emitter.send(
                session.connection_id,
                ServerEvent.NAME_REJECTED.value,
                NameRejectedData(reason=reason).model_dump(),
            )
        else:
            self.emitter.send(
                session.connection_id,
                ServerEvent.EVENT_REJECTED.value,
                EventRejectedData(event=event.value, reason=reason).model_dump(),
            )

    async def _terminate(self, session: Session):
        """Close one session without touching any other"""
        self.sessions_terminated += 1
        if self.on_terminate is not None:
            try:
                await self.on_terminate(session)
                return
            except Exception as e:
                logger.error(
                    "[ROUTER] Terminate callback failed for %s: %s",
                    session.connection_id, e,
                )
        await self.on_disconnect(session)

    def get_stats(self) -> Dict[str, Any]:
        """Get router statistics"""
        return {
            "eventsHandled": self.events_handled,
            "eventsRejected": self.events_rejected,
            "eventsDropped": self.events_dropped,
            "sessionsTerminated": self.sessions_terminated,
        }
