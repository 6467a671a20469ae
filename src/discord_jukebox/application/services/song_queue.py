"""Lock-guarded FIFO of pending play requests plus the "something is playing" flag."""

from __future__ import annotations

import asyncio
import logging
import random
from collections import deque

from ...domain.music.entities import QueueEntry
from ...domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)


class SongQueue:
    """Pending entries and the playing_active flag, mutated under one lock.

    Entries are appended at the tail and removed only from the head, and only
    through claim_if_idle()/claim_next(), which the queue driver owns.
    """

    def __init__(self) -> None:
        self._entries: deque[QueueEntry] = deque()
        self._playing_active = False
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def playing_active(self) -> bool:
        return self._playing_active

    async def append(self, entry: QueueEntry) -> int:
        """Append at the tail and return the entry's 0-based pending position."""
        async with self._lock:
            self._entries.append(entry)
            position = len(self._entries) - 1
        logger.debug(LogTemplates.QUEUE_ENQUEUED, entry.media_locator, position, entry.guild_id)
        return position

    async def claim_if_idle(self) -> QueueEntry | None:
        """Mark playback active and pop the head, unless already active or empty."""
        async with self._lock:
            if self._playing_active or not self._entries:
                return None
            self._playing_active = True
            return self._entries.popleft()

    async def claim_next(self) -> QueueEntry | None:
        """Pop the head for the running driver, or clear the flag when drained."""
        async with self._lock:
            if not self._entries:
                self._playing_active = False
                return None
            return self._entries.popleft()

    async def release(self) -> None:
        """Clear playing_active without touching the entries."""
        async with self._lock:
            self._playing_active = False

    async def shuffle(self, rng: random.Random | None = None) -> int:
        """Randomly permute the pending entries; the one playing is not among them."""
        rng = rng or random.Random()
        async with self._lock:
            pending = list(self._entries)
            rng.shuffle(pending)
            self._entries = deque(pending)
            count = len(pending)
        logger.info(LogTemplates.QUEUE_SHUFFLED, count)
        return count

    async def snapshot(self) -> list[QueueEntry]:
        async with self._lock:
            return list(self._entries)
