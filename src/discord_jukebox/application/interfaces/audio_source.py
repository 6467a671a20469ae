"""Port interfaces for producing PCM audio and encoding it into voice packets."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from pathlib import Path

from discord_jukebox.domain.shared.types import NonEmptyStr


class AudioSource(ABC):
    """Fetches a media locator and exposes it as a raw PCM byte stream."""

    @abstractmethod
    async def download(self, locator: NonEmptyStr) -> Path:
        """Fetch and decode the locator into the temporary artifact.

        Raises DownloadError; a partial artifact is removed before raising.
        """
        ...

    @abstractmethod
    def stream(self, artifact: Path) -> AbstractAsyncContextManager[asyncio.StreamReader]:
        """Resample the artifact and yield a pipe of s16le 48 kHz stereo PCM.

        The child process is terminated on exit from the context, whatever
        the exit path. Raises TranscodeError if the process fails.
        """
        ...

    @abstractmethod
    def remove_artifact(self) -> None:
        """Delete the temporary artifact if it exists."""
        ...


class PacketEncoder(ABC):
    """Turns a PCM byte stream into an ordered sequence of voice packets."""

    @abstractmethod
    async def stream(
        self,
        reader: asyncio.StreamReader,
        send: Callable[[bytes], Awaitable[None]],
    ) -> int:
        """Encode every frame and await send() for each packet, in order.

        Returns the number of packets sent.
        """
        ...
