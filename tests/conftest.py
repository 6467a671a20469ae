import asyncio
import contextlib
from pathlib import Path

import pytest

from discord_jukebox.application.interfaces.audio_source import AudioSource, PacketEncoder
from discord_jukebox.application.interfaces.notifier import Notifier
from discord_jukebox.application.interfaces.voice_adapter import VoiceAdapter, VoiceHandle
from discord_jukebox.domain.music.entities import QueueEntry
from discord_jukebox.domain.shared.exceptions import DownloadError, JoinError

GUILD_A = 111111111111111111
GUILD_B = 222222222222222222
VOICE_A = 333333333333333333
VOICE_B = 444444444444444444


# ============================================================================
# Port Fakes
# ============================================================================


class FakeVoiceHandle(VoiceHandle):
    """In-memory voice connection recording every packet it receives."""

    def __init__(self, guild_id: int, channel_id: int) -> None:
        self._guild_id = guild_id
        self._channel_id = channel_id
        self.connected = True
        self.packets: list[bytes] = []
        self.drain_count = 0
        self.disconnect_count = 0

    @property
    def guild_id(self) -> int:
        return self._guild_id

    @property
    def channel_id(self) -> int:
        return self._channel_id

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def send(self, packet: bytes) -> None:
        self.packets.append(packet)

    async def drain(self) -> None:
        self.drain_count += 1

    async def disconnect(self) -> None:
        self.disconnect_count += 1
        self.connected = False


class FakeVoiceAdapter(VoiceAdapter):
    """Reuses a connected handle per guild, like the real adapter."""

    def __init__(self) -> None:
        self.handles: dict[int, FakeVoiceHandle] = {}
        self.join_calls: list[tuple[int, int]] = []
        self.fail_guilds: set[int] = set()
        self.connects = 0

    async def join(self, guild_id: int, channel_id: int) -> FakeVoiceHandle:
        self.join_calls.append((guild_id, channel_id))
        if guild_id in self.fail_guilds:
            raise JoinError(guild_id, channel_id)

        handle = self.handles.get(guild_id)
        if handle is None or not handle.connected:
            handle = FakeVoiceHandle(guild_id, channel_id)
            self.handles[guild_id] = handle
            self.connects += 1
        return handle

    async def disconnect(self, guild_id: int) -> bool:
        handle = self.handles.get(guild_id)
        if handle is not None:
            await handle.disconnect()
        return True

    def is_connected(self, guild_id: int) -> bool:
        handle = self.handles.get(guild_id)
        return handle is not None and handle.connected


class FakeAudioSource(AudioSource):
    """Serves canned PCM bytes per locator; locators in ``bad`` fail to download."""

    def __init__(self, tmp_path: Path, pcm: bytes = b"\x01\x00" * 1920) -> None:
        self.artifact = tmp_path / "audio.mp3"
        self.pcm = pcm
        self.bad: set[str] = set()
        self.downloads: list[str] = []
        self.removed = 0
        self.download_gate: asyncio.Event | None = None

    async def download(self, locator: str) -> Path:
        self.downloads.append(locator)
        if self.download_gate is not None:
            await self.download_gate.wait()
        if locator in self.bad:
            raise DownloadError("no such video", locator=locator)
        self.artifact.write_bytes(b"mp3")
        return self.artifact

    @contextlib.asynccontextmanager
    async def stream(self, artifact: Path):
        reader = asyncio.StreamReader()
        reader.feed_data(self.pcm)
        reader.feed_eof()
        yield reader

    def remove_artifact(self) -> None:
        self.removed += 1
        self.artifact.unlink(missing_ok=True)


class ChunkEncoder(PacketEncoder):
    """Packs the PCM stream into fixed-size chunks without a codec."""

    def __init__(self, chunk: int = 3840) -> None:
        self.chunk = chunk

    async def stream(self, reader, send) -> int:
        sent = 0
        while data := await reader.read(self.chunk):
            await send(data)
            sent += 1
        return sent


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.bound: dict[int, int] = {}
        self.now_playing: list[tuple[int, str]] = []
        self.queued: list[tuple[int, str]] = []

    def bind_channel(self, guild_id: int, text_channel_id: int) -> None:
        self.bound[guild_id] = text_channel_id

    async def notify_now_playing(self, guild_id: int, text: str) -> None:
        self.now_playing.append((guild_id, text))

    async def notify_queued(self, guild_id: int, text: str) -> None:
        self.queued.append((guild_id, text))


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def voice_adapter():
    return FakeVoiceAdapter()


@pytest.fixture
def audio_source(tmp_path):
    return FakeAudioSource(tmp_path)


@pytest.fixture
def packet_encoder():
    return ChunkEncoder()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_entry():
    """Factory for queue entries targeting guild A by default."""

    def _make(locator: str, guild_id: int = GUILD_A, channel_id: int = VOICE_A) -> QueueEntry:
        return QueueEntry(guild_id=guild_id, voice_channel_id=channel_id, media_locator=locator)

    return _make
