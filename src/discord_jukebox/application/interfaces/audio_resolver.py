"""Port interface for resolving search text and playlists to media locators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from discord_jukebox.domain.shared.types import NonEmptyStr


class AudioResolver(ABC):
    """Interface for turning user queries into playable media locators."""

    @abstractmethod
    async def resolve_search(self, query: NonEmptyStr) -> str:
        """Return the locator of the best match. Raises ResolutionError."""
        ...

    @abstractmethod
    def resolve_playlist(self, url: NonEmptyStr) -> AsyncIterator[str]:
        """Yield item locators in playlist order, fetching pages lazily.

        Raises ResolutionError for an invalid playlist reference.
        """
        ...

    @abstractmethod
    def is_playlist(self, query: NonEmptyStr) -> bool: ...
