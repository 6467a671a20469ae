"""Slash-command music cog delegating to the play request handler and queue drivers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from discord_jukebox.application.commands.play_request import PlayRequest
from discord_jukebox.domain.shared.messages import DiscordUIMessages, LogTemplates
from discord_jukebox.infrastructure.discord.guards.voice_guards import (
    get_user_voice_channel,
    send_ephemeral,
)
from discord_jukebox.utils.reply import format_queue_listing

if TYPE_CHECKING:
    from ....config.container import Container

logger = logging.getLogger(__name__)

QUEUE_LISTING_LIMIT = 10


class MusicCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

    @app_commands.command(name="play", description="Play a song by search query or playlist URL.")
    @app_commands.describe(query="Search text or YouTube playlist URL")
    async def play(self, interaction: discord.Interaction, query: str) -> None:
        channel = await get_user_voice_channel(interaction)
        if channel is None:
            return

        assert interaction.guild is not None

        # Resolving a playlist can exceed the 3-second interaction deadline
        await interaction.response.defer(ephemeral=True, thinking=True)

        if interaction.channel_id is not None:
            self.container.notifier.bind_channel(interaction.guild.id, interaction.channel_id)

        request = PlayRequest(
            guild_id=interaction.guild.id,
            voice_channel_id=channel.id,
            query=query,
        )
        result = await self.container.play_request_handler.handle(request)
        await send_ephemeral(interaction, result.message)

    @app_commands.command(name="shuffle", description="Shuffle the song queue.")
    async def shuffle(self, interaction: discord.Interaction) -> None:
        if not interaction.guild:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        count = await self.container.driver_registry.shuffle(interaction.guild.id)
        logger.info(LogTemplates.QUEUE_SHUFFLED, count)
        await interaction.response.send_message(DiscordUIMessages.QUEUE_SHUFFLED)

    @app_commands.command(name="queue", description="Show the songs waiting to play.")
    async def queue(self, interaction: discord.Interaction) -> None:
        if not interaction.guild:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        entries = await self.container.driver_registry.pending(interaction.guild.id)
        await interaction.response.send_message(
            format_queue_listing(entries, limit=QUEUE_LISTING_LIMIT), ephemeral=True
        )


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError("Container not found on bot instance")

    await bot.add_cog(MusicCog(bot, container))
