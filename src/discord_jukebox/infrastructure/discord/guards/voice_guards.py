"""Voice-channel guard functions for Discord slash commands.

These are free functions that take the interaction explicitly, so any cog
can reuse them.
"""

from __future__ import annotations

import discord

from discord_jukebox.domain.shared.messages import DiscordUIMessages

VoiceChannelLike = discord.VoiceChannel | discord.StageChannel


async def send_ephemeral(interaction: discord.Interaction, message: str) -> None:
    """Send an ephemeral message, handling both fresh and already-responded interactions."""
    if interaction.response.is_done():
        await interaction.followup.send(message, ephemeral=True)
    else:
        await interaction.response.send_message(message, ephemeral=True)


async def get_member(interaction: discord.Interaction) -> discord.Member | None:
    """Validate that the interaction comes from a guild member. Returns None with error on failure."""
    if not interaction.guild:
        await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
        return None

    user = interaction.user
    if not isinstance(user, discord.Member):
        await send_ephemeral(interaction, DiscordUIMessages.STATE_VERIFY_VOICE_FAILED)
        return None

    return user


async def get_user_voice_channel(interaction: discord.Interaction) -> VoiceChannelLike | None:
    """Return the voice channel the invoking member is in, replying with an error if none."""
    member = await get_member(interaction)
    if member is None:
        return None

    channel = member.voice.channel if member.voice else None
    if not isinstance(channel, VoiceChannelLike):
        await send_ephemeral(interaction, DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE)
        return None

    return channel
