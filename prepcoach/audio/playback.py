"""Playback queue tracking scheduled-but-unfinished output buffers."""

import logging
from typing import Set

from .output import ScheduledBuffer

logger = logging.getLogger(__name__)


class PlaybackQueue:
    """Set of in-flight buffers.

    Each buffer leaves the queue exactly once: through `discard` when it ends
    naturally, or through `stop_all` on interruption or teardown.
    """

    def __init__(self):
        self._buffers: Set[ScheduledBuffer] = set()
        self.completed = 0
        self.stopped = 0

    def __len__(self) -> int:
        return len(self._buffers)

    def __contains__(self, buffer: ScheduledBuffer) -> bool:
        return buffer in self._buffers

    def add(self, buffer: ScheduledBuffer) -> None:
        self._buffers.add(buffer)

    def discard(self, buffer: ScheduledBuffer) -> None:
        """Remove a buffer that finished playing. Unknown buffers are ignored."""
        if buffer in self._buffers:
            self._buffers.remove(buffer)
            self.completed += 1

    def stop_all(self) -> int:
        """Stop and remove every queued buffer.

        Returns:
            Number of buffers that were actually stopped
        """
        buffers, self._buffers = self._buffers, set()
        stopped = 0
        for buffer in buffers:
            if buffer.stop():
                stopped += 1
        self.stopped += stopped
        if buffers:
            logger.debug(f"Stopped {stopped} of {len(buffers)} queued buffers")
        return stopped
