"""
Unit Tests for DiscordVoiceAdapter and DiscordVoiceHandle

Tests for:
- Joining: fresh connect (self-deafened), reuse, move, stale cleanup
- Join failures mapped to JoinError
- Packet transport: order, 20 ms pacing, speaking state, drain
- Sender failures surfaced as TransportError
- Releasing and disconnecting
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from conftest import GUILD_A, VOICE_A, VOICE_B
from discord_jukebox.config.settings import PlaybackSettings
from discord_jukebox.domain.shared.exceptions import JoinError, TransportError
from discord_jukebox.infrastructure.discord.adapters.voice_adapter import (
    FRAME_DURATION,
    DiscordVoiceAdapter,
)

# =============================================================================
# Fixtures
# =============================================================================


def _voice_client(channel_id: int = VOICE_A, connected: bool = True) -> MagicMock:
    vc = MagicMock(spec=discord.VoiceClient)
    vc.channel = MagicMock(id=channel_id)
    vc.is_connected.return_value = connected
    vc.ws = MagicMock()
    vc.ws.speak = AsyncMock()
    vc.disconnect = AsyncMock()
    vc.move_to = AsyncMock()
    return vc


def _voice_channel(channel_id: int, vc: MagicMock | None = None) -> MagicMock:
    channel = MagicMock(spec=discord.VoiceChannel)
    channel.id = channel_id
    channel.name = f"voice-{channel_id}"
    channel.connect = AsyncMock(return_value=vc or _voice_client(channel_id))
    return channel


@pytest.fixture
def guild():
    guild = MagicMock()
    guild.id = GUILD_A
    guild.name = "guild"
    guild.voice_client = None
    guild.change_voice_state = AsyncMock()
    channels = {VOICE_A: _voice_channel(VOICE_A), VOICE_B: _voice_channel(VOICE_B)}
    guild.get_channel.side_effect = channels.get
    guild.channels = channels
    return guild


@pytest.fixture
def bot(guild):
    bot = MagicMock()
    bot.get_guild.side_effect = lambda gid: guild if gid == GUILD_A else None
    return bot


@pytest.fixture
def adapter(bot):
    return DiscordVoiceAdapter(bot, PlaybackSettings(connect_timeout_seconds=1))


# =============================================================================
# Join Tests
# =============================================================================


class TestJoin:
    """Establishing and reusing voice connections."""

    @pytest.mark.asyncio
    async def test_connects_self_deafened(self, adapter, guild):
        """Should connect with self_deaf=True and re-apply it on the guild."""
        channel = guild.channels[VOICE_A]

        handle = await adapter.join(GUILD_A, VOICE_A)

        channel.connect.assert_awaited_once()
        assert channel.connect.await_args.kwargs["self_deaf"] is True
        guild.change_voice_state.assert_awaited_once_with(channel=channel, self_deaf=True)
        assert handle.voice_client is channel.connect.return_value
        assert (handle.guild_id, handle.channel_id) == (GUILD_A, VOICE_A)

    @pytest.mark.asyncio
    async def test_reuses_connected_client(self, adapter, guild):
        """Should return the same handle without reconnecting."""
        guild.voice_client = _voice_client(VOICE_A)

        first = await adapter.join(GUILD_A, VOICE_A)
        second = await adapter.join(GUILD_A, VOICE_A)

        assert first is second
        guild.channels[VOICE_A].connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_moves_to_another_channel(self, adapter, guild):
        """Should move the existing client instead of reconnecting."""
        vc = _voice_client(VOICE_A)
        guild.voice_client = vc

        handle = await adapter.join(GUILD_A, VOICE_B)

        vc.move_to.assert_awaited_once_with(guild.channels[VOICE_B])
        assert handle.channel_id == VOICE_B
        guild.channels[VOICE_B].connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stale_client_replaced(self, adapter, guild):
        """Should drop a disconnected client and connect again."""
        stale = _voice_client(VOICE_A, connected=False)
        guild.voice_client = stale

        await adapter.join(GUILD_A, VOICE_A)

        stale.disconnect.assert_awaited_once_with(force=True)
        guild.channels[VOICE_A].connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_guild(self, adapter):
        """Should raise JoinError for a guild the bot is not in."""
        with pytest.raises(JoinError, match="not found"):
            await adapter.join(999, VOICE_A)

    @pytest.mark.asyncio
    async def test_not_a_voice_channel(self, adapter, guild):
        """Should raise JoinError for text channels."""
        guild.get_channel.side_effect = lambda cid: MagicMock(spec=discord.TextChannel)

        with pytest.raises(JoinError, match="not a voice channel"):
            await adapter.join(GUILD_A, VOICE_A)

    @pytest.mark.asyncio
    async def test_connect_timeout(self, adapter, guild):
        """Should map a connect timeout to JoinError."""
        guild.channels[VOICE_A].connect.side_effect = TimeoutError()

        with pytest.raises(JoinError, match="Timed out"):
            await adapter.join(GUILD_A, VOICE_A)

    @pytest.mark.asyncio
    async def test_connect_forbidden(self, adapter, guild):
        """Should map missing permissions to JoinError."""
        guild.channels[VOICE_A].connect.side_effect = discord.Forbidden(MagicMock(), "Missing Access")

        with pytest.raises(JoinError, match="No permission"):
            await adapter.join(GUILD_A, VOICE_A)

    @pytest.mark.asyncio
    async def test_connect_client_exception(self, adapter, guild):
        """Should map discord client errors to JoinError."""
        guild.channels[VOICE_A].connect.side_effect = discord.ClientException("Already connecting")

        with pytest.raises(JoinError, match="Already connecting"):
            await adapter.join(GUILD_A, VOICE_A)


# =============================================================================
# Transport Tests
# =============================================================================


class TestVoiceHandleTransport:
    """Sending packets over a joined connection."""

    @pytest.mark.asyncio
    async def test_packets_sent_in_order_and_paced(self, adapter, guild):
        """Should send pre-encoded packets in order at roughly 20 ms each."""
        guild.voice_client = _voice_client(VOICE_A)
        handle = await adapter.join(GUILD_A, VOICE_A)
        loop = asyncio.get_running_loop()
        packets = [bytes([i]) * 8 for i in range(5)]

        started = loop.time()
        for packet in packets:
            await handle.send(packet)
        await handle.drain()
        elapsed = loop.time() - started

        vc = guild.voice_client
        sent = [c.args[0] for c in vc.send_audio_packet.call_args_list]
        assert sent == packets
        assert all(c.kwargs == {"encode": False} for c in vc.send_audio_packet.call_args_list)
        assert elapsed >= FRAME_DURATION * (len(packets) - 1) * 0.9
        assert handle.packets_sent == 5
        await handle.close()

    @pytest.mark.asyncio
    async def test_speaking_toggled(self, adapter, guild):
        """Should speak while sending and stop after draining."""
        guild.voice_client = _voice_client(VOICE_A)
        handle = await adapter.join(GUILD_A, VOICE_A)

        await handle.send(b"\x00")
        await handle.drain()

        states = [c.args[0] for c in guild.voice_client.ws.speak.await_args_list]
        assert states == [discord.SpeakingState.voice, discord.SpeakingState.none]
        await handle.close()

    @pytest.mark.asyncio
    async def test_drain_without_packets(self, adapter, guild):
        """Should return immediately when nothing was sent."""
        guild.voice_client = _voice_client(VOICE_A)
        handle = await adapter.join(GUILD_A, VOICE_A)

        await asyncio.wait_for(handle.drain(), timeout=0.5)

    @pytest.mark.asyncio
    async def test_sender_failure_surfaces(self, adapter, guild):
        """Should raise TransportError once the sender task dies."""
        vc = _voice_client(VOICE_A)
        vc.send_audio_packet.side_effect = OSError("socket closed")
        guild.voice_client = vc
        handle = await adapter.join(GUILD_A, VOICE_A)

        with pytest.raises(TransportError, match="socket closed"):
            await handle.send(b"\x00")
            await handle.drain()

    @pytest.mark.asyncio
    async def test_full_buffer_does_not_hang_on_dead_sender(self, bot, guild):
        """Should fail a blocked send when the sender dies."""
        adapter = DiscordVoiceAdapter(bot, packet_buffer_frames=1)
        vc = _voice_client(VOICE_A)
        vc.send_audio_packet.side_effect = OSError("socket closed")
        guild.voice_client = vc
        handle = await adapter.join(GUILD_A, VOICE_A)

        async def send_all() -> None:
            for _ in range(5):
                await handle.send(b"\x00")

        with pytest.raises(TransportError):
            await asyncio.wait_for(send_all(), timeout=1)

    @pytest.mark.asyncio
    async def test_send_after_disconnect(self, adapter, guild):
        """Should refuse packets for a released connection."""
        guild.voice_client = _voice_client(VOICE_A)
        handle = await adapter.join(GUILD_A, VOICE_A)

        await handle.disconnect()

        assert handle.closed is True
        with pytest.raises(TransportError, match="closed"):
            await handle.send(b"\x00")


# =============================================================================
# Disconnect Tests
# =============================================================================


class TestDisconnect:
    """Releasing voice connections."""

    @pytest.mark.asyncio
    async def test_handle_disconnect_releases_client(self, adapter, guild):
        """Should force-disconnect the voice client."""
        vc = _voice_client(VOICE_A)
        guild.voice_client = vc
        handle = await adapter.join(GUILD_A, VOICE_A)

        await handle.disconnect()

        vc.disconnect.assert_awaited_once_with(force=True)
        assert handle.is_connected is False

    @pytest.mark.asyncio
    async def test_replaced_handle_does_not_disconnect(self, adapter, guild):
        """Should only close a handle that is no longer current."""
        guild.voice_client = _voice_client(VOICE_A, connected=False)
        old = await adapter.join(GUILD_A, VOICE_A)
        new_vc = _voice_client(VOICE_A)
        guild.voice_client = new_vc
        current = await adapter.join(GUILD_A, VOICE_A)
        assert current is not old

        await old.disconnect()

        new_vc.disconnect.assert_not_awaited()
        assert old.closed is True
        assert current.closed is False

    @pytest.mark.asyncio
    async def test_disconnect_error_is_contained(self, adapter, guild):
        """Should report failure instead of raising."""
        vc = _voice_client(VOICE_A)
        vc.disconnect.side_effect = RuntimeError("gateway gone")
        guild.voice_client = vc
        await adapter.join(GUILD_A, VOICE_A)

        assert await adapter.disconnect(GUILD_A) is False

    @pytest.mark.asyncio
    async def test_is_connected(self, adapter, guild, bot):
        """Should reflect the guild's voice client."""
        assert adapter.is_connected(GUILD_A) is False

        guild.voice_client = _voice_client(VOICE_A)

        assert adapter.is_connected(GUILD_A) is True
        assert adapter.is_connected(999) is False

    @pytest.mark.asyncio
    async def test_shutdown_disconnects_all(self, adapter, guild):
        """Should release every held connection."""
        vc = _voice_client(VOICE_A)
        guild.voice_client = vc
        await adapter.join(GUILD_A, VOICE_A)

        await adapter.shutdown()

        vc.disconnect.assert_awaited_once_with(force=True)
