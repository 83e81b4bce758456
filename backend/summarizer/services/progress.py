"""
Progress Channel

Ordered, per-request stream of events from the summarization pipeline to the
HTTP response. The producer (orchestrator task) emits models; the consumer
(StreamingResponse) iterates `stream()` and receives newline-delimited JSON.

Once the consumer goes away, further emits are silently dropped so the
producer can notice and stop at its next checkpoint.
"""
import asyncio
import json
import logging
from typing import AsyncIterator, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Upper bound on undelivered events per request
MAX_PENDING_EVENTS = 64
# A consumer that has not drained a full queue within this many seconds is gone
EMIT_TIMEOUT_SECONDS = 30.0

_CLOSED = object()


class ConsumerDisconnected(Exception):
    """Raised inside the pipeline when the stream consumer has gone away"""


class ProgressChannel:
    """Single-producer, single-consumer event channel for one request"""

    def __init__(self, max_pending: int = MAX_PENDING_EVENTS, emit_timeout: float = EMIT_TIMEOUT_SECONDS):
        self.emit_timeout = emit_timeout
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self._consumer_connected = True
        self._closed = False

    @property
    def consumer_connected(self) -> bool:
        return self._consumer_connected

    @property
    def is_open(self) -> bool:
        return not self._closed and self._consumer_connected

    async def emit(self, event: Union[BaseModel, dict]) -> None:
        """Queue one event; a no-op once the channel is closed or abandoned"""
        if not self.is_open:
            return

        if isinstance(event, BaseModel):
            payload = event.model_dump(mode="json", by_alias=True, exclude_none=True)
        else:
            payload = event

        try:
            await asyncio.wait_for(self._queue.put(payload), timeout=self.emit_timeout)
        except asyncio.TimeoutError:
            # The response was dropped before its stream was ever iterated
            logger.warning(f"Progress consumer stalled for {self.emit_timeout}s, treating it as disconnected")
            self.disconnect()

    def ensure_connected(self) -> None:
        """Raise ConsumerDisconnected if nobody is reading any more"""
        if not self._consumer_connected:
            raise ConsumerDisconnected()

    async def close(self) -> None:
        """Mark the end of the stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._consumer_connected:
            try:
                await asyncio.wait_for(self._queue.put(_CLOSED), timeout=self.emit_timeout)
            except asyncio.TimeoutError:
                self.disconnect()

    def disconnect(self) -> None:
        """Called when the consumer stops reading; unblocks any pending emit"""
        if not self._consumer_connected:
            return
        self._consumer_connected = False
        while not self._queue.empty():
            self._queue.get_nowait()
        logger.info("Progress stream consumer disconnected")

    async def stream(self) -> AsyncIterator[str]:
        """Yield queued events as NDJSON lines until the channel is closed"""
        try:
            while True:
                item = await self._queue.get()
                if item is _CLOSED:
                    break
                yield json.dumps(item, ensure_ascii=False) + "\n"
        finally:
            if not self._closed:
                self.disconnect()
