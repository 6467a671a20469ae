# ruff: noqa: N999
"""
Domain Layer

Contains pure business logic:
- shared/: Constrained types, messages and exceptions
- music/: Queue entries and the play-cycle lifecycle
"""

from discord_jukebox.domain.music.entities import QueueEntry
from discord_jukebox.domain.shared.exceptions import DomainError, PlaybackError

__all__ = [
    "QueueEntry",
    "DomainError",
    "PlaybackError",
]
