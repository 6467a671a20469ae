"""Reusable Pydantic Annotated types for domain-wide validation.

Every constrained type used across the package is defined here once,
so models can simply annotate their fields::

    from discord_jukebox.domain.shared.types import DiscordSnowflake, NonEmptyStr

    class MyModel(BaseModel):
        guild_id: DiscordSnowflake
        media_locator: NonEmptyStr
"""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

# ── Numeric constraints ─────────────────────────────────────────────

DiscordSnowflake = Annotated[int, Field(gt=0, lt=2**64)]
"""Positive integer that fits a Discord snowflake (1 … 2^64-1)."""

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer >= 0."""

PositiveInt = Annotated[int, Field(gt=0)]
"""Integer > 0."""

PositiveFloat = Annotated[float, Field(gt=0.0)]
"""Float > 0.0."""


# ── String constraints ──────────────────────────────────────────────

NonEmptyStr = Annotated[str, Field(min_length=1)]
"""String with at least one character."""

CommandPrefixStr = Annotated[str, Field(min_length=1, max_length=5)]
"""Bot command prefix: 1-5 characters."""


# ── Settings-specific constraints ──────────────────────────────────

IdleWindowSeconds = Annotated[float, Field(gt=0.0, le=86_400.0)]
"""Idle-disconnect window in seconds: (0 … 86 400]."""

PlaylistPageSize = Annotated[int, Field(ge=1, le=50)]
"""Items requested per playlist page: 1 … 50 (YouTube's page maximum)."""


# ── Pydantic-compatible ID aliases ──────────────────────────────────

GuildIdField = DiscordSnowflake
"""Alias: guild ID used as a plain Pydantic field."""

ChannelIdField = DiscordSnowflake
"""Alias: channel ID used as a plain Pydantic field."""
