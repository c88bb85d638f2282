"""
WebSocket Event Emitter

This module provides the WebSocketEmitter class, the outbound half of the
connection gateway. The router never calls Socket.IO directly; it hands
each message to the recipient's delivery queue and returns.

Features:
- One FIFO queue and one consumer task per connection
- Per-recipient ordering: messages arrive in the order they were queued
- Isolation: a slow recipient only backs up its own queue
- Error handling: emit failures are counted and logged, never raised
"""

import asyncio
import logging
import time
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

# Queue marker telling a consumer task to exit
_CLOSE = object()


class WebSocketEmitter:
    """
    Per-recipient outbound delivery

    `send` is synchronous and never blocks: it only enqueues. The consumer
    task for each connection performs the actual `sio.emit`.
    """

    def __init__(self, sio, queue_size: int = 0):
        """
        Initialize the WebSocket emitter

        Args:
            sio: Socket.IO AsyncServer instance
            queue_size: Max pending messages per connection (0 = unbounded)
        """
        self.sio = sio
        self.queue_size = queue_size

        self._queues: Dict[str, asyncio.Queue] = {}
        self._tasks: Dict[str, asyncio.Task] = {}

        # Statistics
        self._emit_count = 0
        self._error_count = 0
        self._dropped_count = 0
        self._last_emit_time = 0

    # ============================================
    # Connection Lifecycle
    # ============================================

    def open(self, sid: str):
        """Create the delivery queue and consumer task for a connection"""
        if self.is_open(sid):
            return
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._queues[sid] = queue
        self._tasks[sid] = asyncio.create_task(self._deliver(sid, queue))

    async def close(self, sid: str, wait: bool = False):
        """
        Stop delivering to a connection

        Messages already queued are still handed to Socket.IO; nothing new
        is accepted once this is called.

        Args:
            sid: Session ID
            wait: Wait for the queue to drain before returning
        """
        queue = self._queues.pop(sid, None)
        task = self._tasks.pop(sid, None)
        if queue is None:
            return

        try:
            queue.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            # Bounded queue backed up behind a dead client
            task.cancel()

        if wait:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def shutdown(self):
        """Close every connection's queue and wait for the consumers"""
        for sid in list(self._queues):
            await self.close(sid, wait=True)

    def is_open(self, sid: str) -> bool:
        return sid in self._queues

    # ============================================
    # Sending
    # ============================================

    def send(self, sid: str, event: str, data: Any) -> bool:
        """
        Queue one message for one connection

        Returns:
            False if the connection has no open queue or the queue is full
        """
        queue = self._queues.get(sid)
        if queue is None:
            self._dropped_count += 1
            logger.debug("[WS] Dropping %s for closed connection %s", event, sid)
            return False

        try:
            queue.put_nowait((event, data))
        except asyncio.QueueFull:
            self._dropped_count += 1
            logger.warning("[WS] Delivery queue full for %s, dropping %s", sid, event)
            return False
        return True

    def broadcast(self, event: str, data: Any, recipients: Iterable[str]) -> int:
        """
        Queue the same message for every recipient

        Returns:
            Number of recipients the message was queued for
        """
        return sum(1 for sid in recipients if self.send(sid, event, data))

    async def flush(self, sid: Optional[str] = None):
        """Wait until queued messages have been handed to Socket.IO"""
        if sid is not None:
            queue = self._queues.get(sid)
            if queue is not None:
                await queue.join()
            return
        for queue in list(self._queues.values()):
            await queue.join()

    # ============================================
    # Internal Methods
    # ============================================

    async def _deliver(self, sid: str, queue: asyncio.Queue):
        """Consumer task: emit queued messages for one connection in order"""
        while True:
            item = await queue.get()
            try:
                if item is _CLOSE:
                    return
                event, data = item
                await self._emit(event, data, room=sid)
            finally:
                queue.task_done()

    async def _emit(self, event: str, data: Any, room: str = None):
        """
        Internal emit with error handling and statistics

        Args:
            event: Event name
            data: Event data
            room: Optional room to emit to
        """
        try:
            if room:
                await self.sio.emit(event, data, room=room)
            else:
                await self.sio.emit(event, data)

            self._emit_count += 1
            self._last_emit_time = time.time()

        except Exception as e:
            self._error_count += 1
            logger.error("[WS ERROR] Failed to emit %s: %s", event, e)

    def get_stats(self) -> Dict[str, Any]:
        """Get emitter statistics"""
        return {
            "totalEmits": self._emit_count,
            "errorCount": self._error_count,
            "droppedCount": self._dropped_count,
            "lastEmitTime": self._last_emit_time,
            "openQueues": len(self._queues),
            "pendingMessages": sum(q.qsize() for q in self._queues.values()),
        }
