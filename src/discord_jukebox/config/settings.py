"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.messages import ErrorMessages
from ..domain.shared.types import (
    CommandPrefixStr,
    IdleWindowSeconds,
    NonEmptyStr,
    PlaylistPageSize,
    PositiveFloat,
    PositiveInt,
)


class DiscordSettings(BaseModel):
    """Discord bot configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    token: SecretStr = Field(
        default=SecretStr(""), validation_alias=AliasChoices("token", "bot_token", "discord_token")
    )
    command_prefix: CommandPrefixStr = Field(
        default="&",
        validation_alias=AliasChoices("command_prefix", "prefix", "bot_prefix"),
    )
    test_guild_ids: tuple[int, ...] = Field(
        default_factory=tuple, validation_alias=AliasChoices("test_guild_ids", "test_guilds")
    )
    sync_on_startup: bool = False

    @field_validator("test_guild_ids", mode="before")
    @classmethod
    def validate_snowflake_ids(cls, v: tuple[int, ...] | list[int]) -> tuple[int, ...]:
        """Validate Discord snowflake IDs and convert lists to tuples."""
        if isinstance(v, list):
            v = tuple(v)
        for snowflake in v:
            if snowflake <= 0:
                raise ValueError(ErrorMessages.INVALID_SNOWFLAKE)
            if snowflake >= 2**64:
                raise ValueError(ErrorMessages.SNOWFLAKE_TOO_LARGE)
        return v


class AudioSettings(BaseModel):
    """External tools and on-disk artifact used by the audio pipeline."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    ytdlp_binary: NonEmptyStr = Field(
        default="yt-dlp",
        validation_alias=AliasChoices("ytdlp_binary", "ytdlp_path", "downloader"),
    )
    ffmpeg_binary: NonEmptyStr = Field(
        default="ffmpeg",
        validation_alias=AliasChoices("ffmpeg_binary", "ffmpeg_path"),
    )
    work_dir: Path = Path("data")
    artifact_name: NonEmptyStr = "audio.mp3"
    download_timeout_seconds: PositiveFloat = Field(
        default=600.0,
        validation_alias=AliasChoices("download_timeout_seconds", "download_timeout"),
    )
    search_limit: PositiveInt = Field(default=5, le=50)
    playlist_page_size: PlaylistPageSize = 50
    packet_buffer_frames: PositiveInt = Field(default=50, le=1000)

    @field_validator("artifact_name")
    @classmethod
    def validate_artifact_name(cls, v: str) -> str:
        """The artifact is a bare file name with an audio extension."""
        path = Path(v)
        if path.name != v or not path.suffix:
            raise ValueError(ErrorMessages.INVALID_ARTIFACT_NAME.format(name=v))
        return v

    @property
    def artifact_path(self) -> Path:
        return self.work_dir / self.artifact_name

    def for_scope(self, scope: str) -> AudioSettings:
        """Copy of these settings with the work directory nested under the scope key."""
        subdir = re.sub(r"[^A-Za-z0-9_-]+", "-", scope).strip("-") or "default"
        return self.model_copy(update={"work_dir": self.work_dir / subdir})


class PlaybackSettings(BaseModel):
    """Queue driver and voice session behavior."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    idle_disconnect_seconds: IdleWindowSeconds = Field(
        default=900.0,
        validation_alias=AliasChoices("idle_disconnect_seconds", "idle_timeout"),
    )
    per_guild_playback: bool = False
    failure_alert_threshold: PositiveInt = 5
    connect_timeout_seconds: PositiveFloat = 10.0


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DISCORD__TOKEN, DISCORD__COMMAND_PREFIX, etc. (nested with prefix)
    - AUDIO__FFMPEG_BINARY, AUDIO__WORK_DIR, etc.
    - PLAYBACK__IDLE_DISCONNECT_SECONDS, PLAYBACK__PER_GUILD_PLAYBACK, etc.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels))
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
