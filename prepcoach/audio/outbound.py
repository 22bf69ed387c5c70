"""Bounded queue of outbound audio chunks awaiting send."""

import asyncio
import logging
from typing import Optional

from ..models.audio import EncodedAudioChunk

logger = logging.getLogger(__name__)


class OutboundAudioQueue:
    """Drop-oldest queue between the capture callback and the remote sender.

    `put` never blocks: when the queue is full the oldest chunk is discarded,
    so a slow or not-yet-connected remote can never stall capture.
    """

    def __init__(self, max_pending: int = 8):
        if max_pending < 1:
            raise ValueError("max_pending must be at least 1")
        self.max_pending = max_pending
        self._queue: Optional[asyncio.Queue] = None
        self.enqueued = 0
        self.dropped = 0

    @property
    def queue(self) -> asyncio.Queue:
        # Created lazily so it binds to the running loop
        if self._queue is None:
            self._queue = asyncio.Queue(maxsize=self.max_pending)
        return self._queue

    def __len__(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def put(self, chunk: EncodedAudioChunk) -> None:
        queue = self.queue
        if queue.full():
            queue.get_nowait()
            self.dropped += 1
            logger.debug(f"Outbound queue full, dropped oldest chunk ({self.dropped} dropped)")
        queue.put_nowait(chunk)
        self.enqueued += 1

    async def get(self) -> EncodedAudioChunk:
        return await self.queue.get()

    def clear(self) -> int:
        """Discard every pending chunk and return how many were discarded."""
        cleared = 0
        if self._queue is not None:
            while not self._queue.empty():
                self._queue.get_nowait()
                cleared += 1
        return cleared
