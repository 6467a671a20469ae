"""Port interface for best-effort text notifications."""

from __future__ import annotations

from abc import ABC, abstractmethod

from discord_jukebox.domain.shared.types import ChannelIdField, GuildIdField


class Notifier(ABC):
    """Fire-and-forget text notifications; implementations never raise."""

    @abstractmethod
    def bind_channel(self, guild_id: GuildIdField, text_channel_id: ChannelIdField) -> None:
        """Remember where notifications for a guild should go."""
        ...

    @abstractmethod
    async def notify_now_playing(self, guild_id: GuildIdField, text: str) -> None: ...

    @abstractmethod
    async def notify_queued(self, guild_id: GuildIdField, text: str) -> None: ...
