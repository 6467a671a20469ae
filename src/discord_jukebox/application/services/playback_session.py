"""One play cycle: join voice, download, stream, then go idle."""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING

from ...domain.music.value_objects import SESSION_TRANSITIONS, SessionState
from ...domain.shared.exceptions import (
    DownloadError,
    InvalidOperationError,
    JoinError,
    PlaybackError,
    TranscodeError,
    TransportError,
)
from ...domain.shared.messages import DiscordUIMessages, LogTemplates

if TYPE_CHECKING:
    from pathlib import Path

    from ...domain.music.entities import QueueEntry
    from ..interfaces.audio_source import AudioSource, PacketEncoder
    from ..interfaces.notifier import Notifier
    from ..interfaces.voice_adapter import VoiceAdapter, VoiceHandle
    from .disconnect_timer import DisconnectTimer

logger = logging.getLogger(__name__)

_session_ids = itertools.count(1)


class PlaybackSession:
    """Drives a single queue entry through the play-cycle state machine.

    ``JOINING -> DOWNLOADING -> STREAMING -> IDLE`` on success, ``FAILED``
    from any of the first three. From ``IDLE`` (or ``FAILED`` with a live
    connection) the disconnect timer eventually calls :meth:`close`, which
    goes through ``DISCONNECTING`` to ``CLOSED``.

    The temporary artifact is removed on every exit from run(), and the
    audio source guarantees its child processes are dead by then.
    """

    def __init__(
        self,
        entry: QueueEntry,
        *,
        voice_adapter: VoiceAdapter,
        audio_source: AudioSource,
        packet_encoder: PacketEncoder,
        notifier: Notifier,
        timer: DisconnectTimer,
    ) -> None:
        self._entry = entry
        self._voice_adapter = voice_adapter
        self._audio_source = audio_source
        self._packet_encoder = packet_encoder
        self._notifier = notifier
        self._timer = timer

        self.session_id = next(_session_ids)
        self._state = SessionState.JOINING
        self._history: list[SessionState] = [SessionState.JOINING]
        self._handle: VoiceHandle | None = None
        self._error: PlaybackError | None = None
        self._packets_sent = 0

    @property
    def entry(self) -> QueueEntry:
        return self._entry

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def history(self) -> list[SessionState]:
        return list(self._history)

    @property
    def handle(self) -> VoiceHandle | None:
        return self._handle

    @property
    def error(self) -> PlaybackError | None:
        return self._error

    @property
    def packets_sent(self) -> int:
        return self._packets_sent

    def _transition(self, new_state: SessionState) -> None:
        if new_state not in SESSION_TRANSITIONS[self._state]:
            raise InvalidOperationError(new_state.value, self._state.value)
        logger.debug(
            LogTemplates.SESSION_STATE,
            self.session_id,
            self._entry.media_locator,
            self._state.value,
            new_state.value,
        )
        self._state = new_state
        self._history.append(new_state)

    async def run(self) -> VoiceHandle:
        """Play the entry to completion and return the voice connection used.

        Raises a PlaybackError subclass after moving to ``FAILED``.
        """
        try:
            handle = await self._join()
            self._transition(SessionState.DOWNLOADING)
            artifact = await self._download()

            await self._notifier.notify_now_playing(
                self._entry.guild_id,
                DiscordUIMessages.NOW_PLAYING.format(locator=self._entry.media_locator),
            )

            self._transition(SessionState.STREAMING)
            await self._stream(handle, artifact)
        except PlaybackError as exc:
            self._fail(exc)
            raise
        finally:
            self._audio_source.remove_artifact()

        self._transition(SessionState.IDLE)
        self._timer.arm(self.close)
        logger.info(LogTemplates.SESSION_IDLE, self._entry.guild_id, self._timer.delay)
        return handle

    async def _join(self) -> VoiceHandle:
        entry = self._entry
        try:
            handle = await self._voice_adapter.join(entry.guild_id, entry.voice_channel_id)
        except JoinError:
            raise
        except Exception as exc:
            raise JoinError(entry.guild_id, entry.voice_channel_id, str(exc)) from exc

        self._handle = handle
        logger.debug(LogTemplates.SESSION_JOINED, entry.voice_channel_id, entry.guild_id)
        return handle

    async def _download(self) -> Path:
        locator = self._entry.media_locator
        logger.info(LogTemplates.SESSION_DOWNLOADING, locator)
        try:
            return await self._audio_source.download(locator)
        except PlaybackError:
            raise
        except Exception as exc:
            raise DownloadError(str(exc), locator=locator) from exc

    async def _stream(self, handle: VoiceHandle, artifact: Path) -> None:
        locator = self._entry.media_locator
        logger.info(LogTemplates.SESSION_STREAMING, locator)
        try:
            async with self._audio_source.stream(artifact) as pcm:
                self._packets_sent = await self._packet_encoder.stream(pcm, handle.send)
        except PlaybackError:
            raise
        except Exception as exc:
            raise TranscodeError(str(exc), locator=locator) from exc

        try:
            await handle.drain()
        except PlaybackError:
            raise
        except Exception as exc:
            raise TransportError(str(exc), locator=locator) from exc

        logger.info(LogTemplates.SESSION_STREAMED, self._packets_sent, locator)

    def _fail(self, exc: PlaybackError) -> None:
        if exc.locator is None:
            exc.locator = self._entry.media_locator
        self._error = exc
        self._transition(SessionState.FAILED)
        logger.warning(
            LogTemplates.SESSION_FAILED, self._entry.media_locator, self._entry.guild_id, exc
        )

        # The failure itself never disconnects; a joined connection idles out.
        if self._handle is not None and self._handle.is_connected:
            self._timer.arm(self.close)

    async def close(self) -> None:
        """Release the voice connection after the idle window."""
        if self._state not in (SessionState.IDLE, SessionState.FAILED):
            return

        self._transition(SessionState.DISCONNECTING)
        try:
            if self._handle is not None:
                await self._handle.disconnect()
            logger.info(LogTemplates.SESSION_CLOSED, self._entry.guild_id)
        except Exception:
            logger.exception(LogTemplates.SESSION_CLOSE_FAILED, self._entry.guild_id)
        finally:
            self._transition(SessionState.CLOSED)
