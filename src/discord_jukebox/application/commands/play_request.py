"""Command and handler for queueing a search result or a whole playlist."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator

from discord_jukebox.domain.music.entities import QueueEntry
from discord_jukebox.domain.shared.exceptions import ResolutionError
from discord_jukebox.domain.shared.messages import DiscordUIMessages, LogTemplates
from discord_jukebox.domain.shared.types import DiscordSnowflake, NonEmptyStr, NonNegativeInt

if TYPE_CHECKING:
    from ..interfaces.audio_resolver import AudioResolver
    from ..interfaces.notifier import Notifier
    from ..services.queue_driver import DriverRegistry
    from ..services.queue_models import EnqueueResult

logger = logging.getLogger(__name__)


class PlayRequestStatus(Enum):
    """Status codes for play request results."""

    QUEUED = "queued"
    NOT_FOUND = "not_found"
    EMPTY_PLAYLIST = "empty_playlist"


class PlayRequest(BaseModel):
    """Request to resolve a query or playlist URL and queue the result."""

    model_config = ConfigDict(frozen=True, strict=True)

    guild_id: DiscordSnowflake
    voice_channel_id: DiscordSnowflake
    query: NonEmptyStr

    @field_validator("query", mode="before")
    @classmethod
    def _strip_query(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class PlayRequestResult(BaseModel):
    """Result of a play request."""

    model_config = ConfigDict(frozen=True, strict=True)

    status: PlayRequestStatus
    message: str
    queued: NonNegativeInt = 0
    first_position: NonNegativeInt | None = None
    started: bool = False
    partial: bool = False

    @property
    def is_success(self) -> bool:
        return self.status is PlayRequestStatus.QUEUED

    @classmethod
    def error(cls, status: PlayRequestStatus, message: str) -> PlayRequestResult:
        return cls(status=status, message=message)


class PlayRequestHandler:
    """Resolves a query to locators and enqueues one entry per locator."""

    def __init__(
        self,
        *,
        audio_resolver: AudioResolver,
        drivers: DriverRegistry,
        notifier: Notifier,
    ) -> None:
        self._audio_resolver = audio_resolver
        self._drivers = drivers
        self._notifier = notifier

    async def handle(self, request: PlayRequest) -> PlayRequestResult:
        try:
            if self._audio_resolver.is_playlist(request.query):
                result = await self._enqueue_playlist(request)
            else:
                result = await self._enqueue_search(request)
        except ResolutionError as exc:
            logger.warning(LogTemplates.RESOLUTION_FAILED, request.query, exc)
            return PlayRequestResult.error(
                PlayRequestStatus.NOT_FOUND,
                DiscordUIMessages.ERROR_NOT_FOUND.format(error=exc.message),
            )

        if result.is_success:
            logger.info(
                LogTemplates.PLAY_REQUEST_QUEUED, result.queued, request.guild_id, request.query
            )
            await self._notifier.notify_queued(request.guild_id, result.message)
        return result

    async def _enqueue_search(self, request: PlayRequest) -> PlayRequestResult:
        locator = await self._audio_resolver.resolve_search(request.query)
        outcome = await self._drivers.enqueue(self._entry(request, locator))
        if outcome.started:
            message = DiscordUIMessages.STARTED_ONE.format(locator=locator)
        else:
            message = DiscordUIMessages.QUEUED_ONE.format(
                locator=locator, position=outcome.position + 1
            )
        return PlayRequestResult(
            status=PlayRequestStatus.QUEUED,
            message=message,
            queued=1,
            first_position=outcome.position,
            started=outcome.started,
        )

    async def _enqueue_playlist(self, request: PlayRequest) -> PlayRequestResult:
        # Entries are enqueued as pages arrive, so playback can start early.
        queued = 0
        first: EnqueueResult | None = None
        partial = False
        try:
            async for locator in self._audio_resolver.resolve_playlist(request.query):
                outcome = await self._drivers.enqueue(self._entry(request, locator))
                if first is None:
                    first = outcome
                queued += 1
        except ResolutionError as exc:
            # Entries from earlier pages are already queued and may be playing.
            if queued == 0:
                raise
            logger.warning(LogTemplates.PLAYLIST_PARTIAL, request.query, queued, exc)
            partial = True

        if first is None:
            return PlayRequestResult.error(
                PlayRequestStatus.EMPTY_PLAYLIST, DiscordUIMessages.ERROR_PLAYLIST_EMPTY
            )

        template = DiscordUIMessages.QUEUED_PARTIAL if partial else DiscordUIMessages.QUEUED_MANY
        return PlayRequestResult(
            status=PlayRequestStatus.QUEUED,
            message=template.format(count=queued),
            queued=queued,
            first_position=first.position,
            started=first.started,
            partial=partial,
        )

    @staticmethod
    def _entry(request: PlayRequest, locator: str) -> QueueEntry:
        return QueueEntry(
            guild_id=request.guild_id,
            voice_channel_id=request.voice_channel_id,
            media_locator=locator,
        )
