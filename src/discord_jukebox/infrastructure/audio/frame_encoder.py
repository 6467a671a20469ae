"""
Frame Encoder

Splits a raw PCM byte stream into fixed-duration frames and encodes each
frame into an Opus packet for the voice transport.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from abc import ABC, abstractmethod
from array import array
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Final

import discord

from discord_jukebox.application.interfaces.audio_source import PacketEncoder
from discord_jukebox.domain.shared.exceptions import TranscodeError, TransportError
from discord_jukebox.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

SAMPLE_RATE: Final[int] = 48000
CHANNELS: Final[int] = 2
SAMPLE_WIDTH: Final[int] = 2  # signed 16-bit little-endian
FRAME_SIZE: Final[int] = 960  # samples per channel, 20 ms at 48 kHz
FRAME_BYTES: Final[int] = FRAME_SIZE * CHANNELS * SAMPLE_WIDTH
MAX_PACKET_BYTES: Final[int] = FRAME_BYTES * 3 // 2


async def frames(reader: asyncio.StreamReader) -> AsyncIterator[bytes]:
    """Yield FRAME_BYTES chunks; the last one may be shorter. Stops at EOF."""
    while True:
        try:
            yield await reader.readexactly(FRAME_BYTES)
        except asyncio.IncompleteReadError as e:
            if e.partial:
                logger.debug(LogTemplates.ENCODER_SHORT_FRAME, len(e.partial), FRAME_BYTES)
                yield e.partial
            return


def decode_pcm(frame: bytes) -> array:
    """Convert little-endian 16-bit PCM bytes to native signed samples.

    A trailing odd byte cannot form a sample and is dropped.
    """
    samples = array("h")
    samples.frombytes(frame[: len(frame) - len(frame) % SAMPLE_WIDTH])
    if sys.byteorder == "big":
        samples.byteswap()
    return samples


class PacketCodec(ABC):
    """Encodes one frame of interleaved samples into a voice packet."""

    @abstractmethod
    def encode(self, samples: array, frame_size: int, max_bytes: int) -> bytes: ...


class OpusCodec(PacketCodec):
    """Opus codec backed by discord.py's libopus bindings."""

    def __init__(self) -> None:
        self._encoder: discord.opus.Encoder | None = None

    def _get_encoder(self) -> discord.opus.Encoder:
        # Created lazily so libopus is only required once audio is encoded.
        if self._encoder is None:
            self._encoder = discord.opus.Encoder(application=discord.opus.APPLICATION_AUDIO)
            logger.info(LogTemplates.OPUS_ENCODER_CREATED, SAMPLE_RATE, CHANNELS)
        return self._encoder

    def encode(self, samples: array, frame_size: int, max_bytes: int) -> bytes:
        expected = frame_size * CHANNELS
        if len(samples) < expected:
            # The codec needs full frames; the tail is padded with silence.
            samples = samples + array("h", bytes(SAMPLE_WIDTH * (expected - len(samples))))
        packet = self._get_encoder().encode(_to_le_bytes(samples), frame_size)
        if len(packet) > max_bytes:
            raise ValueError(ErrorMessages.PACKET_TOO_LARGE.format(size=len(packet), limit=max_bytes))
        return packet


def _to_le_bytes(samples: array) -> bytes:
    if sys.byteorder == "big":
        samples = array("h", samples)
        samples.byteswap()
    return samples.tobytes()


class FrameEncoder(PacketEncoder):
    """Turns a PCM stream into an ordered, finite sequence of packets.

    Packets are produced lazily, so a slow ``send`` throttles reading and
    encoding instead of buffering the whole track in memory.
    """

    def __init__(self, codec: PacketCodec | None = None) -> None:
        self._codec = codec or OpusCodec()

    async def packets(self, reader: asyncio.StreamReader) -> AsyncIterator[bytes]:
        index = 0
        stream = frames(reader)
        while True:
            try:
                frame = await anext(stream)
            except StopAsyncIteration:
                return
            except (OSError, ValueError) as e:
                raise TranscodeError(ErrorMessages.TRANSCODE_READ_FAILED.format(error=e)) from e

            try:
                packet = self._codec.encode(decode_pcm(frame), FRAME_SIZE, MAX_PACKET_BYTES)
            except Exception as e:
                raise TranscodeError(ErrorMessages.ENCODE_FAILED.format(index=index, error=e)) from e

            yield packet
            index += 1

    async def stream(
        self,
        reader: asyncio.StreamReader,
        send: Callable[[bytes], Awaitable[None]],
    ) -> int:
        sent = 0
        async for packet in self.packets(reader):
            try:
                await send(packet)
            except TransportError:
                raise
            except Exception as e:
                raise TransportError(ErrorMessages.SEND_FAILED.format(index=sent, error=e)) from e
            sent += 1
        return sent
