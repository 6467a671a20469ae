"""Port interfaces for voice connections and their outbound packet channel."""

from __future__ import annotations

from abc import ABC, abstractmethod

from discord_jukebox.domain.shared.types import ChannelIdField, GuildIdField


class VoiceHandle(ABC):
    """A live voice connection with a bounded outbound packet channel."""

    @property
    @abstractmethod
    def guild_id(self) -> GuildIdField: ...

    @property
    @abstractmethod
    def channel_id(self) -> ChannelIdField: ...

    @property
    @abstractmethod
    def is_connected(self) -> bool: ...

    @abstractmethod
    async def send(self, packet: bytes) -> None:
        """Hand one encoded packet to the transport.

        Blocks while the outbound channel is full. Raises TransportError
        if the connection is gone.
        """
        ...

    @abstractmethod
    async def drain(self) -> None:
        """Wait until every packet handed to send() has been transmitted."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the voice connection."""
        ...


class VoiceAdapter(ABC):
    """Interface for joining and leaving voice channels."""

    @abstractmethod
    async def join(self, guild_id: GuildIdField, channel_id: ChannelIdField) -> VoiceHandle:
        """Return a connection to the channel, reusing an existing one when possible.

        Raises JoinError when the connection is unavailable.
        """
        ...

    @abstractmethod
    async def disconnect(self, guild_id: GuildIdField) -> bool:
        """Disconnect from voice in a guild."""
        ...

    @abstractmethod
    def is_connected(self, guild_id: GuildIdField) -> bool: ...
