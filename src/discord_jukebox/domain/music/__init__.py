"""
Music Bounded Context

Domain objects for queued play requests and the play-cycle lifecycle.
"""

from discord_jukebox.domain.music.entities import QueueEntry
from discord_jukebox.domain.music.value_objects import SESSION_TRANSITIONS, SessionState

__all__ = [
    "QueueEntry",
    "SessionState",
    "SESSION_TRANSITIONS",
]
