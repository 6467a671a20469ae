"""Discord notifier posting play-cycle announcements to a bound text channel."""

from __future__ import annotations

import logging

import discord
from discord.ext import commands

from discord_jukebox.application.interfaces.notifier import Notifier
from discord_jukebox.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


class DiscordNotifier(Notifier):
    """Per-guild text channel binding; the last /play invocation wins."""

    def __init__(self, bot: commands.Bot) -> None:
        self._bot = bot
        self._channel_by_guild: dict[int, int] = {}

    def bind_channel(self, guild_id: int, text_channel_id: int) -> None:
        self._channel_by_guild[guild_id] = text_channel_id

    def bound_channel(self, guild_id: int) -> int | None:
        return self._channel_by_guild.get(guild_id)

    async def notify_now_playing(self, guild_id: int, text: str) -> None:
        await self._send(guild_id, text)

    async def notify_queued(self, guild_id: int, text: str) -> None:
        await self._send(guild_id, text)

    async def _send(self, guild_id: int, text: str) -> None:
        channel_id = self._channel_by_guild.get(guild_id)
        if channel_id is None:
            logger.debug(LogTemplates.NOTIFY_NO_CHANNEL, guild_id)
            return

        try:
            channel = self._bot.get_channel(channel_id)
            if channel is None:
                channel = await self._bot.fetch_channel(channel_id)

            send = getattr(channel, "send", None)
            if send is None:
                logger.debug(LogTemplates.NOTIFY_NO_CHANNEL, guild_id)
                return

            await send(text[:MAX_MESSAGE_LENGTH])
        except discord.HTTPException as e:
            logger.warning(LogTemplates.NOTIFY_FAILED, guild_id, e)
        except Exception as e:
            logger.exception(LogTemplates.NOTIFY_FAILED, guild_id, e)
