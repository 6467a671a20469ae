"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Discord (bot, cogs, voice and notification adapters)
- Audio (yt-dlp resolver and downloader, FFmpeg resampling, Opus encoding)
"""

from discord_jukebox.infrastructure.discord.bot import create_bot
from discord_jukebox.infrastructure.discord.adapters.voice_adapter import DiscordVoiceAdapter

__all__ = [
    "create_bot",
    "DiscordVoiceAdapter",
]
