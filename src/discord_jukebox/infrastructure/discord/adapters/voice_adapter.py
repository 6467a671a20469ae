"""Discord voice adapter implementing VoiceAdapter for connections and packet transport."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Coroutine
from typing import Any

import discord

from discord_jukebox.application.interfaces.voice_adapter import VoiceAdapter, VoiceHandle
from discord_jukebox.config.settings import PlaybackSettings
from discord_jukebox.domain.shared.exceptions import JoinError, TransportError
from discord_jukebox.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

FRAME_DURATION: float = 0.02
DEFAULT_PACKET_BUFFER: int = 50


class DiscordVoiceHandle(VoiceHandle):
    """Wraps a connected VoiceClient with a bounded outbound packet queue.

    A sender task drains the queue at one packet per 20 ms, so a producer
    calling send() is throttled to real time once the buffer is full.
    """

    def __init__(
        self,
        adapter: DiscordVoiceAdapter,
        voice_client: discord.VoiceClient,
        guild_id: int,
        channel_id: int,
        buffer_frames: int = DEFAULT_PACKET_BUFFER,
    ) -> None:
        self._adapter = adapter
        self._vc = voice_client
        self._guild_id = guild_id
        self._channel_id = channel_id
        self._queue: asyncio.Queue[bytes] = asyncio.Queue(maxsize=buffer_frames)
        self._sender: asyncio.Task[None] | None = None
        self._speaking = False
        self._closed = False
        self._sent = 0

    @property
    def guild_id(self) -> int:
        return self._guild_id

    @property
    def channel_id(self) -> int:
        return self._channel_id

    @property
    def voice_client(self) -> discord.VoiceClient:
        return self._vc

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_connected(self) -> bool:
        return not self._closed and self._vc.is_connected()

    @property
    def packets_sent(self) -> int:
        return self._sent

    def _moved(self, channel_id: int) -> None:
        self._channel_id = channel_id

    def _check_sender(self) -> None:
        if self._closed or not self._vc.is_connected():
            raise TransportError(ErrorMessages.TRANSPORT_CLOSED.format(guild_id=self._guild_id))
        sender = self._sender
        if sender is not None and sender.done() and not sender.cancelled():
            exc = sender.exception()
            if exc is not None:
                raise TransportError(
                    ErrorMessages.TRANSPORT_SENDER_FAILED.format(guild_id=self._guild_id, error=exc)
                ) from exc

    async def send(self, packet: bytes) -> None:
        self._check_sender()
        if self._sender is None or self._sender.done():
            self._sender = asyncio.create_task(
                self._send_loop(), name=f"voice-sender-{self._guild_id}"
            )
        if not self._queue.full():
            self._queue.put_nowait(packet)
            return
        await self._until_sender_or(self._queue.put(packet))
        self._check_sender()

    async def drain(self) -> None:
        if self._sender is None:
            return
        await self._until_sender_or(self._queue.join())
        self._check_sender()
        await self._set_speaking(False)

    async def _until_sender_or(self, aw: Coroutine[Any, Any, None]) -> None:
        """Await ``aw`` unless the sender task finishes first."""
        waiter = asyncio.create_task(aw)
        sender = self._sender
        try:
            if sender is None:
                await waiter
                return
            await asyncio.wait({waiter, sender}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not waiter.done():
                waiter.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await waiter

    async def _send_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        try:
            while True:
                packet = await self._queue.get()
                try:
                    if not self._speaking:
                        await self._set_speaking(True)
                        next_at = loop.time()
                    delay = next_at - loop.time()
                    if delay > 0:
                        await asyncio.sleep(delay)
                    elif delay < -FRAME_DURATION:
                        # Fell behind (e.g. producer stalled); restart the clock.
                        next_at = loop.time()
                    self._vc.send_audio_packet(packet, encode=False)
                    self._sent += 1
                    next_at += FRAME_DURATION
                finally:
                    self._queue.task_done()
        except asyncio.CancelledError:
            logger.debug(LogTemplates.VOICE_SENDER_STOPPED, self._guild_id, self._sent)
            raise
        except Exception:
            logger.exception(LogTemplates.VOICE_SENDER_FAILED, self._guild_id)
            raise

    async def _set_speaking(self, speaking: bool) -> None:
        if self._speaking == speaking:
            return
        self._speaking = speaking
        state = discord.SpeakingState.voice if speaking else discord.SpeakingState.none
        try:
            await self._vc.ws.speak(state)
        except Exception as exc:
            logger.debug(LogTemplates.VOICE_SPEAKING_FAILED, self._guild_id, exc)

    async def close(self) -> None:
        """Stop the sender and drop pending packets without disconnecting."""
        self._closed = True
        sender, self._sender = self._sender, None
        if sender is not None and not sender.done():
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await sender
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
        self._speaking = False

    async def disconnect(self) -> None:
        await self._adapter.release(self)


class DiscordVoiceAdapter(VoiceAdapter):
    def __init__(
        self,
        bot: discord.Client,
        settings: PlaybackSettings | None = None,
        packet_buffer_frames: int = DEFAULT_PACKET_BUFFER,
    ) -> None:
        self._bot = bot
        self._settings = settings or PlaybackSettings()
        self._packet_buffer_frames = packet_buffer_frames
        self._handles: dict[int, DiscordVoiceHandle] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def _lock(self, guild_id: int) -> asyncio.Lock:
        return self._locks.setdefault(guild_id, asyncio.Lock())

    def _get_voice_client(self, guild_id: int) -> discord.VoiceClient | None:
        guild = self._bot.get_guild(guild_id)
        if not guild:
            return None

        vc = guild.voice_client
        return vc if isinstance(vc, discord.VoiceClient) else None

    def _get_voice_channel(
        self, guild_id: int, channel_id: int
    ) -> tuple[discord.Guild, discord.VoiceChannel | discord.StageChannel]:
        guild = self._bot.get_guild(guild_id)
        if not guild:
            raise JoinError(
                guild_id, channel_id, ErrorMessages.GUILD_NOT_FOUND.format(guild_id=guild_id)
            )

        channel = guild.get_channel(channel_id)
        if not isinstance(channel, discord.VoiceChannel | discord.StageChannel):
            raise JoinError(
                guild_id, channel_id, ErrorMessages.CHANNEL_NOT_VOICE.format(channel_id=channel_id)
            )
        return guild, channel

    async def join(self, guild_id: int, channel_id: int) -> DiscordVoiceHandle:
        async with self._lock(guild_id):
            vc = self._get_voice_client(guild_id)

            if vc and not vc.is_connected():
                logger.warning(LogTemplates.VOICE_STALE_CLEANUP, guild_id)
                await self._drop(guild_id, vc)
                vc = None

            if vc and vc.channel:
                if vc.channel.id != channel_id:
                    await self._move(vc, guild_id, channel_id)
                else:
                    logger.debug(LogTemplates.VOICE_REUSED, channel_id, guild_id)
                return self._handle_for(vc, guild_id, channel_id)

            vc = await self._connect(guild_id, channel_id)
            return self._handle_for(vc, guild_id, channel_id)

    def _handle_for(
        self, vc: discord.VoiceClient, guild_id: int, channel_id: int
    ) -> DiscordVoiceHandle:
        handle = self._handles.get(guild_id)
        if handle is not None and handle.voice_client is vc and not handle.closed:
            handle._moved(channel_id)
            return handle

        handle = DiscordVoiceHandle(
            self, vc, guild_id, channel_id, buffer_frames=self._packet_buffer_frames
        )
        self._handles[guild_id] = handle
        return handle

    async def _connect(self, guild_id: int, channel_id: int) -> discord.VoiceClient:
        guild, channel = self._get_voice_channel(guild_id, channel_id)
        timeout = self._settings.connect_timeout_seconds

        try:
            async with asyncio.timeout(timeout):
                vc = await channel.connect(self_deaf=True, timeout=timeout)
        except TimeoutError as e:
            raise JoinError(
                guild_id, channel_id, ErrorMessages.VOICE_CONNECT_TIMEOUT.format(channel_id=channel_id)
            ) from e
        except discord.Forbidden as e:
            raise JoinError(
                guild_id, channel_id, ErrorMessages.VOICE_NO_PERMISSION.format(channel_id=channel_id)
            ) from e
        except discord.ClientException as e:
            raise JoinError(
                guild_id,
                channel_id,
                ErrorMessages.VOICE_CLIENT_ERROR.format(channel_id=channel_id, error=e),
            ) from e

        await self._ensure_self_deaf(guild, channel)
        logger.info(LogTemplates.VOICE_CONNECTED, channel.name, guild.name)
        return vc

    async def _move(self, vc: discord.VoiceClient, guild_id: int, channel_id: int) -> None:
        guild, channel = self._get_voice_channel(guild_id, channel_id)

        try:
            async with asyncio.timeout(self._settings.connect_timeout_seconds):
                await vc.move_to(channel)
        except TimeoutError as e:
            logger.error(LogTemplates.VOICE_MOVE_TIMEOUT, channel_id)
            raise JoinError(
                guild_id, channel_id, ErrorMessages.VOICE_CONNECT_TIMEOUT.format(channel_id=channel_id)
            ) from e
        await self._ensure_self_deaf(guild, channel)
        logger.info(LogTemplates.VOICE_MOVED, channel.name)

    async def _ensure_self_deaf(
        self,
        guild: discord.Guild,
        channel: discord.VoiceChannel | discord.StageChannel,
    ) -> None:
        """Ensure the bot is self-deafened in the guild's current voice connection."""
        try:
            await guild.change_voice_state(channel=channel, self_deaf=True)
        except Exception as exc:
            logger.debug(LogTemplates.VOICE_SELF_DEAFEN_FAILED, guild.id, exc)

    async def _drop(self, guild_id: int, vc: discord.VoiceClient | None) -> None:
        handle = self._handles.pop(guild_id, None)
        if handle is not None:
            await handle.close()
        if vc is not None:
            await vc.disconnect(force=True)

    async def release(self, handle: DiscordVoiceHandle) -> None:
        """Disconnect the guild if this handle is still its current connection."""
        async with self._lock(handle.guild_id):
            if self._handles.get(handle.guild_id) is not handle:
                await handle.close()
                return
            await self._disconnect(handle.guild_id)

    async def disconnect(self, guild_id: int) -> bool:
        async with self._lock(guild_id):
            return await self._disconnect(guild_id)

    async def _disconnect(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        try:
            await self._drop(guild_id, vc)
        except Exception:
            logger.exception(LogTemplates.VOICE_CLEANUP_ERROR, guild_id)
            return False
        if vc is not None:
            logger.info(LogTemplates.VOICE_DISCONNECTED, guild_id)
        return True

    def is_connected(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        return vc is not None and vc.is_connected()

    async def shutdown(self) -> None:
        """Disconnect every guild this adapter holds a connection for."""
        for guild_id in list(self._handles):
            await self.disconnect(guild_id)
