"""Core domain entities for the music bounded context."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from discord_jukebox.domain.shared.types import ChannelIdField, GuildIdField, NonEmptyStr


class QueueEntry(BaseModel):
    """Immutable play request: which locator to play, and where.

    Owned by the song queue until the driver dequeues it, then by the
    playback session for the duration of playback.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    guild_id: GuildIdField
    voice_channel_id: ChannelIdField
    media_locator: NonEmptyStr

    @field_validator("media_locator", mode="before")
    @classmethod
    def _strip_locator(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v
