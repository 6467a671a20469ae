"""AudioResolver implementation using yt-dlp for search and playlist listing."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator
from typing import Any, Final, cast
from urllib.parse import parse_qs, urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from yt_dlp import YoutubeDL

from discord_jukebox.application.interfaces.audio_resolver import AudioResolver
from discord_jukebox.config.settings import AudioSettings
from discord_jukebox.domain.shared.exceptions import ResolutionError
from discord_jukebox.domain.shared.messages import ErrorMessages, LogTemplates
from discord_jukebox.domain.shared.types import NonEmptyStr, PositiveInt

logger = logging.getLogger(__name__)

WATCH_URL: Final[str] = "https://www.youtube.com/watch?v={video_id}"
PLAYLIST_URL: Final[str] = "https://www.youtube.com/playlist?list={playlist_id}"
DEFAULT_RETRIES: Final[int] = 3
DEFAULT_SOCKET_TIMEOUT: Final[int] = 10

PLAYLIST_PATTERN: Final[re.Pattern[str]] = re.compile(r"[?&]list=")
VIDEO_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9_-]{11}$")


# ── Pydantic models for yt-dlp data ────────────────────────────────────


class FlatEntry(BaseModel):
    """One entry of a flat (metadata-only) yt-dlp extraction."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: NonEmptyStr | None = None
    ie_key: NonEmptyStr | None = None
    type: NonEmptyStr | None = Field(default=None, alias="_type")

    @field_validator("id", "ie_key", "type", mode="before")
    @classmethod
    def _coerce_empty_to_none(cls, v: Any) -> str | None:
        """Convert empty / non-string values to None."""
        if not isinstance(v, str) or not v.strip():
            return None
        return v

    @property
    def is_video(self) -> bool:
        if self.id is None or not VIDEO_ID_PATTERN.match(self.id):
            return False
        # Flat search results carry ie_key "Youtube"; channels and playlists do not.
        return self.ie_key in (None, "Youtube") and self.type in (None, "url", "video")

    @property
    def watch_url(self) -> str:
        return WATCH_URL.format(video_id=self.id)


class YtDlpOpts(BaseModel):
    """Typed yt-dlp configuration options passed to YoutubeDL."""

    model_config = ConfigDict(frozen=True)

    quiet: bool = True
    noprogress: bool = True
    no_warnings: bool = True
    skip_download: bool = True
    extract_flat: NonEmptyStr | bool = True
    noplaylist: bool = True
    retries: PositiveInt = DEFAULT_RETRIES
    socket_timeout: PositiveInt = DEFAULT_SOCKET_TIMEOUT
    playliststart: PositiveInt | None = None
    playlistend: PositiveInt | None = None

    def to_params(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def playlist_id_from_url(url: str) -> str:
    """Return the ``list`` query parameter of a playlist URL."""
    values = parse_qs(urlparse(url.strip()).query).get("list", [])
    playlist_id = values[0].strip() if values else ""
    if not playlist_id:
        raise ResolutionError(ErrorMessages.INVALID_PLAYLIST_URL.format(url=url), query=url)
    return playlist_id


class YtDlpResolver(AudioResolver):
    """Resolves search text to the first video and playlists to their items."""

    def __init__(self, settings: AudioSettings | None = None) -> None:
        self._settings = settings or AudioSettings()
        self._base_opts = YtDlpOpts()

    def _get_opts(self, **overrides: Any) -> YtDlpOpts:
        if overrides:
            return self._base_opts.model_copy(update=overrides)
        return self._base_opts

    def _extract_entries(self, target: str, opts: YtDlpOpts) -> list[FlatEntry]:
        with YoutubeDL(params=cast(Any, opts.to_params())) as ydl:
            data = ydl.extract_info(target, download=False)

        if not isinstance(data, dict):
            return []
        entries = data.get("entries") or []
        return [FlatEntry.model_validate(dict(e)) for e in entries if isinstance(e, dict)]

    def _search_sync(self, query: str) -> list[FlatEntry]:
        return self._extract_entries(
            f"ytsearch{self._settings.search_limit}:{query}", self._get_opts()
        )

    def _playlist_page_sync(self, playlist_id: str, start: int, end: int) -> list[FlatEntry]:
        opts = self._get_opts(
            noplaylist=False,
            extract_flat="in_playlist",
            playliststart=start,
            playlistend=end,
        )
        return self._extract_entries(PLAYLIST_URL.format(playlist_id=playlist_id), opts)

    async def resolve_search(self, query: str) -> str:
        logger.debug(LogTemplates.YTDLP_SEARCH, query)
        try:
            results = await asyncio.to_thread(self._search_sync, query)
        except Exception as e:
            logger.exception(LogTemplates.YTDLP_SEARCH_FAILED, query)
            raise ResolutionError(
                ErrorMessages.SEARCH_FAILED.format(query=query, error=e), query=query
            ) from e

        if not results:
            raise ResolutionError(ErrorMessages.NO_SEARCH_RESULTS.format(query=query), query=query)

        first = results[0]
        if not first.is_video:
            raise ResolutionError(
                ErrorMessages.FIRST_RESULT_NOT_VIDEO.format(query=query), query=query
            )
        return first.watch_url

    async def resolve_playlist(self, url: str) -> AsyncIterator[str]:
        playlist_id = playlist_id_from_url(url)
        page_size = self._settings.playlist_page_size

        page = 0
        while True:
            start = page * page_size + 1
            try:
                entries = await asyncio.to_thread(
                    self._playlist_page_sync, playlist_id, start, start + page_size - 1
                )
            except Exception as e:
                logger.exception(LogTemplates.YTDLP_PLAYLIST_FAILED, page + 1, playlist_id)
                raise ResolutionError(
                    ErrorMessages.PLAYLIST_PAGE_FAILED.format(
                        page=page + 1, playlist_id=playlist_id, error=e
                    ),
                    query=url,
                ) from e

            logger.debug(LogTemplates.YTDLP_PLAYLIST_PAGE, page + 1, playlist_id, len(entries))
            for entry in entries:
                if entry.id is not None:
                    yield entry.watch_url

            if len(entries) < page_size:
                return
            page += 1

    def is_playlist(self, query: str) -> bool:
        return PLAYLIST_PATTERN.search(query) is not None
