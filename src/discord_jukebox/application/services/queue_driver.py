"""Queue driver - pulls entries off the song queue and plays them one at a time."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ...domain.shared.exceptions import PlaybackError
from ...domain.shared.messages import LogTemplates
from .disconnect_timer import DisconnectTimer
from .playback_session import PlaybackSession
from .queue_models import EnqueueResult
from .song_queue import SongQueue

if TYPE_CHECKING:
    from ...config.settings import PlaybackSettings
    from ...domain.music.entities import QueueEntry
    from ..interfaces.audio_source import AudioSource, PacketEncoder
    from ..interfaces.notifier import Notifier
    from ..interfaces.voice_adapter import VoiceAdapter, VoiceHandle

logger = logging.getLogger(__name__)

SHARED_SCOPE = "shared"
DEFAULT_FAILURE_ALERT_THRESHOLD = 5

SessionFactory = Callable[..., PlaybackSession]


class QueueDriver:
    """Owns one song queue, one disconnect timer and at most one active session.

    Whenever the queue is non-empty and nothing is playing, a single driver
    task is started. It runs sessions in an explicit loop until the queue is
    drained, then leaves the voice connection idle for the disconnect timer.
    A failing entry is logged and discarded; the loop moves on to the next.
    """

    def __init__(
        self,
        *,
        voice_adapter: VoiceAdapter,
        audio_source: AudioSource,
        packet_encoder: PacketEncoder,
        notifier: Notifier,
        timer: DisconnectTimer | None = None,
        song_queue: SongQueue | None = None,
        scope: str = SHARED_SCOPE,
        failure_alert_threshold: int = DEFAULT_FAILURE_ALERT_THRESHOLD,
        session_factory: SessionFactory = PlaybackSession,
    ) -> None:
        self._voice_adapter = voice_adapter
        self._audio_source = audio_source
        self._packet_encoder = packet_encoder
        self._notifier = notifier
        self._timer = timer or DisconnectTimer()
        self._queue = song_queue or SongQueue()
        self._scope = scope
        self._failure_alert_threshold = failure_alert_threshold
        self._session_factory = session_factory

        self._task: asyncio.Task[None] | None = None
        self._active_session: PlaybackSession | None = None
        self._handle: VoiceHandle | None = None
        self._consecutive_failures = 0

    @property
    def scope(self) -> str:
        return self._scope

    @property
    def audio_source(self) -> AudioSource:
        return self._audio_source

    @property
    def queue(self) -> SongQueue:
        return self._queue

    @property
    def timer(self) -> DisconnectTimer:
        return self._timer

    @property
    def active_session(self) -> PlaybackSession | None:
        return self._active_session

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def enqueue(self, entry: QueueEntry) -> EnqueueResult:
        """Append an entry and start draining if idle. Never waits on playback."""
        position = await self._queue.append(entry)
        started = await self.run_if_idle()
        # Only an empty queue lets the new entry be the one claimed.
        return EnqueueResult(position=position, started=started and position == 0)

    async def run_if_idle(self) -> bool:
        """Start the driver task if nothing is playing and the queue is non-empty."""
        entry = await self._queue.claim_if_idle()
        if entry is None:
            return False

        logger.debug(LogTemplates.QUEUE_DRIVER_STARTED, self._scope)
        self._task = asyncio.create_task(self._drive(entry), name=f"queue-driver-{self._scope}")
        return True

    async def wait_until_idle(self) -> None:
        """Wait for the current driver task, if any, to drain the queue."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    async def _drive(self, entry: QueueEntry) -> None:
        current: QueueEntry | None = entry
        try:
            while current is not None:
                await self._play(current)
                current = await self._queue.claim_next()
        except BaseException:
            await self._queue.release()
            raise
        logger.info(LogTemplates.QUEUE_DRAINED)

    async def _play(self, entry: QueueEntry) -> None:
        # A new cycle beats the idle timer of the previous one.
        self._timer.cancel()
        await self._release_foreign_handle(entry)

        session = self._session_factory(
            entry,
            voice_adapter=self._voice_adapter,
            audio_source=self._audio_source,
            packet_encoder=self._packet_encoder,
            notifier=self._notifier,
            timer=self._timer,
        )
        self._active_session = session
        try:
            await session.run()
            self._consecutive_failures = 0
        except PlaybackError as exc:
            logger.warning(LogTemplates.QUEUE_ENTRY_DISCARDED, entry.media_locator, exc)
            self._record_failure(entry)
        except Exception:
            logger.exception(LogTemplates.QUEUE_ENTRY_CRASHED, entry.media_locator)
            self._record_failure(entry)
        finally:
            self._active_session = None
            if session.handle is not None:
                self._handle = session.handle

    def _record_failure(self, entry: QueueEntry) -> None:
        self._consecutive_failures += 1
        if self._consecutive_failures % self._failure_alert_threshold == 0:
            logger.error(
                LogTemplates.QUEUE_REPEATED_FAILURES,
                self._consecutive_failures,
                entry.media_locator,
            )

    async def _release_foreign_handle(self, entry: QueueEntry) -> None:
        """Drop an idle connection held in another guild before playing here.

        Only reachable when guilds share a driver: the single timer slot can
        track one connection, so the old one is released now.
        """
        handle = self._handle
        if handle is None or handle.guild_id == entry.guild_id:
            return

        self._handle = None
        if not handle.is_connected:
            return

        logger.info(LogTemplates.VOICE_RELEASED_OTHER_GUILD, handle.guild_id, entry.guild_id)
        try:
            await handle.disconnect()
        except Exception:
            logger.exception(LogTemplates.VOICE_CLEANUP_ERROR, handle.guild_id)

    async def shutdown(self) -> None:
        """Stop the driver task and the timer, and release the voice connection."""
        self._timer.cancel()

        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None

        handle, self._handle = self._handle, None
        if handle is not None and handle.is_connected:
            try:
                await handle.disconnect()
            except Exception:
                logger.exception(LogTemplates.VOICE_CLEANUP_ERROR, handle.guild_id)

        logger.info(LogTemplates.QUEUE_DRIVER_SHUTDOWN, self._scope)


class DriverRegistry:
    """Maps guilds to queue drivers.

    With ``per_guild`` off every guild shares one driver, hence one queue,
    one playing flag and one disconnect timer for the whole process. With it
    on, each guild gets an independent driver.
    """

    def __init__(
        self,
        driver_factory: Callable[[str], QueueDriver],
        *,
        per_guild: bool = False,
    ) -> None:
        self._driver_factory = driver_factory
        self._per_guild = per_guild
        self._drivers: dict[str, QueueDriver] = {}

    @classmethod
    def from_settings(
        cls,
        settings: PlaybackSettings,
        *,
        voice_adapter: VoiceAdapter,
        audio_source_for: Callable[[str], AudioSource],
        packet_encoder: PacketEncoder,
        notifier: Notifier,
    ) -> DriverRegistry:
        """Build drivers from settings.

        ``audio_source_for`` is called once per scope, so drivers that play
        concurrently never share a temporary artifact.
        """

        def factory(scope: str) -> QueueDriver:
            return QueueDriver(
                voice_adapter=voice_adapter,
                audio_source=audio_source_for(scope),
                packet_encoder=packet_encoder,
                notifier=notifier,
                timer=DisconnectTimer(settings.idle_disconnect_seconds),
                scope=scope,
                failure_alert_threshold=settings.failure_alert_threshold,
            )

        return cls(factory, per_guild=settings.per_guild_playback)

    @property
    def per_guild(self) -> bool:
        return self._per_guild

    def scope_for(self, guild_id: int) -> str:
        return f"guild:{guild_id}" if self._per_guild else SHARED_SCOPE

    def driver_for(self, guild_id: int) -> QueueDriver:
        scope = self.scope_for(guild_id)
        driver = self._drivers.get(scope)
        if driver is None:
            driver = self._driver_factory(scope)
            self._drivers[scope] = driver
        return driver

    async def enqueue(self, entry: QueueEntry) -> EnqueueResult:
        return await self.driver_for(entry.guild_id).enqueue(entry)

    async def shuffle(self, guild_id: int) -> int:
        return await self.driver_for(guild_id).queue.shuffle()

    async def pending(self, guild_id: int) -> list[QueueEntry]:
        """Pending entries targeting this guild, in play order."""
        entries = await self.driver_for(guild_id).queue.snapshot()
        return [e for e in entries if e.guild_id == guild_id]

    async def shutdown(self) -> None:
        drivers = list(self._drivers.values())
        self._drivers.clear()
        for driver in drivers:
            await driver.shutdown()
