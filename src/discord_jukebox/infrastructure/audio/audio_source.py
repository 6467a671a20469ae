"""
PCM Audio Source

Infrastructure component that downloads a media locator with yt-dlp and
resamples the result with FFmpeg into a raw PCM pipe.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from pathlib import Path

from discord_jukebox.application.interfaces.audio_source import AudioSource
from discord_jukebox.config.settings import AudioSettings
from discord_jukebox.domain.shared.exceptions import DownloadError, TranscodeError
from discord_jukebox.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

SAMPLE_RATE = 48000
CHANNELS = 2
STDERR_TAIL = 500


class PcmAudioSource(AudioSource):
    """Two-stage audio pipeline backed by external executables.

    Stage one writes the locator's audio track to a fixed-name artifact;
    stage two streams that artifact as s16le 48 kHz stereo PCM on stdout.
    The artifact is shared by every cycle, so only one download may be in
    flight per work directory. Drivers that play concurrently each get a
    source of their own through :meth:`for_scope`.
    """

    def __init__(self, settings: AudioSettings | None = None) -> None:
        self._settings = settings or AudioSettings()

    @classmethod
    def for_scope(cls, settings: AudioSettings, scope: str) -> PcmAudioSource:
        """Build a source whose artifact lives in the scope's own subdirectory."""
        return cls(settings.for_scope(scope))

    @property
    def artifact_path(self) -> Path:
        return self._settings.artifact_path

    def download_command(self, locator: str) -> list[str]:
        path = self.artifact_path
        return [
            self._settings.ytdlp_binary,
            "-x",
            "--audio-format",
            path.suffix.lstrip("."),
            "--no-playlist",
            "--force-overwrites",
            "-o",
            str(path.with_suffix(".%(ext)s")),
            locator,
        ]

    def transcode_command(self, artifact: Path) -> list[str]:
        return [
            self._settings.ffmpeg_binary,
            "-nostdin",
            "-loglevel",
            "error",
            "-i",
            str(artifact),
            "-f",
            "s16le",
            "-ar",
            str(SAMPLE_RATE),
            "-ac",
            str(CHANNELS),
            "pipe:1",
        ]

    async def download(self, locator: str) -> Path:
        path = self.artifact_path
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            process = await asyncio.create_subprocess_exec(
                *self.download_command(locator),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise DownloadError(
                ErrorMessages.DOWNLOADER_NOT_FOUND.format(binary=self._settings.ytdlp_binary),
                locator=locator,
            ) from exc
        logger.debug(LogTemplates.PROCESS_STARTED, self._settings.ytdlp_binary, process.pid)

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self._settings.download_timeout_seconds
            )
        except TimeoutError as exc:
            await self._terminate(process, self._settings.ytdlp_binary)
            self.remove_artifact()
            raise DownloadError(
                ErrorMessages.DOWNLOAD_TIMED_OUT.format(
                    timeout=self._settings.download_timeout_seconds
                ),
                locator=locator,
            ) from exc
        except BaseException:
            await self._terminate(process, self._settings.ytdlp_binary)
            self.remove_artifact()
            raise

        if process.returncode != 0:
            logger.warning(
                LogTemplates.DOWNLOAD_FAILED,
                locator,
                process.returncode,
                _stderr_tail(stderr),
            )
            self.remove_artifact()
            raise DownloadError(
                ErrorMessages.DOWNLOAD_FAILED.format(code=process.returncode), locator=locator
            )

        if not path.is_file():
            raise DownloadError(
                ErrorMessages.DOWNLOAD_NO_ARTIFACT.format(path=path), locator=locator
            )
        return path

    @contextlib.asynccontextmanager
    async def stream(self, artifact: Path) -> AsyncIterator[asyncio.StreamReader]:
        binary = self._settings.ffmpeg_binary
        try:
            process = await asyncio.create_subprocess_exec(
                *self.transcode_command(artifact),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise TranscodeError(ErrorMessages.TRANSCODER_NOT_FOUND.format(binary=binary)) from exc
        logger.debug(LogTemplates.PROCESS_STARTED, binary, process.pid)

        assert process.stdout is not None
        try:
            yield process.stdout
        except BaseException:
            await self._terminate(process, binary)
            raise

        if not process.stdout.at_eof():
            await self._terminate(process, binary)
            return

        stderr = await process.stderr.read() if process.stderr is not None else b""
        returncode = await process.wait()
        if returncode != 0:
            raise TranscodeError(
                ErrorMessages.TRANSCODE_FAILED.format(code=returncode)
                + (f": {_stderr_tail(stderr)}" if stderr else "")
            )

    def remove_artifact(self) -> None:
        """Delete the artifact along with yt-dlp's partial and pre-conversion files."""
        path = self.artifact_path
        if not path.parent.is_dir():
            return

        for leftover in path.parent.glob(f"{path.stem}.*"):
            try:
                leftover.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(LogTemplates.ARTIFACT_REMOVE_FAILED, leftover, e)
                continue
            logger.debug(LogTemplates.ARTIFACT_REMOVED, leftover)

    @staticmethod
    async def _terminate(process: asyncio.subprocess.Process, name: str) -> None:
        """Kill the process if it is still running and reap it."""
        if process.returncode is None:
            try:
                process.kill()
                logger.debug(LogTemplates.PROCESS_KILLED, name, process.pid)
            except ProcessLookupError:
                pass
            except Exception as e:
                logger.debug(LogTemplates.PROCESS_CLEANUP_ERROR, name, e)
        try:
            await process.wait()
        except Exception as e:
            logger.debug(LogTemplates.PROCESS_CLEANUP_ERROR, name, e)


def _stderr_tail(stderr: bytes | None) -> str:
    if not stderr:
        return ""
    return stderr.decode("utf-8", errors="replace").strip()[-STDERR_TAIL:]
