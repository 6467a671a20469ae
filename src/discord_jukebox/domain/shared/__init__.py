"""
Shared Domain Kernel

Contains constrained types, messages and exceptions shared across the package.
"""

from discord_jukebox.domain.shared.exceptions import (
    DomainError,
    DownloadError,
    InvalidOperationError,
    JoinError,
    PlaybackError,
    ResolutionError,
    TranscodeError,
    TransportError,
)

__all__ = [
    "DomainError",
    "InvalidOperationError",
    "PlaybackError",
    "ResolutionError",
    "JoinError",
    "DownloadError",
    "TranscodeError",
    "TransportError",
]
