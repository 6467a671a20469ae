"""
Application Commands (Write Side)

Command objects and their handlers for write operations.
Commands represent intent to change the system state.
"""

from discord_jukebox.application.commands.play_request import (
    PlayRequest,
    PlayRequestHandler,
    PlayRequestResult,
    PlayRequestStatus,
)

__all__ = [
    "PlayRequest",
    "PlayRequestHandler",
    "PlayRequestResult",
    "PlayRequestStatus",
]
