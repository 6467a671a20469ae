"""Utility functions for formatting Discord messages."""

from __future__ import annotations

from collections.abc import Sequence
from functools import cache
from typing import TYPE_CHECKING

from discord_jukebox.domain.shared.messages import DiscordUIMessages

if TYPE_CHECKING:
    from discord_jukebox.domain.music.entities import QueueEntry

DISCORD_MESSAGE_LIMIT = 2000


@cache
def truncate(text: str, max_length: int = 90) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 1] + "…"


def format_queue_listing(entries: Sequence[QueueEntry], limit: int = 10) -> str:
    """Render pending entries as a numbered list, capped at ``limit`` lines."""
    if not entries:
        return DiscordUIMessages.QUEUE_EMPTY

    lines = [DiscordUIMessages.QUEUE_HEADER.format(count=len(entries))]
    for index, entry in enumerate(entries[:limit], start=1):
        lines.append(f"{index}. {truncate(entry.media_locator)}")

    hidden = len(entries) - limit
    if hidden > 0:
        lines.append(DiscordUIMessages.QUEUE_MORE.format(count=hidden))

    return "\n".join(lines)[:DISCORD_MESSAGE_LIMIT]
