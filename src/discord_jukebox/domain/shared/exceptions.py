"""Exception hierarchy for domain and playback pipeline errors."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__



class PlaybackError(DomainError):
    """Base class for failures that end a single play cycle.

    These never escape the queue driver: the entry is logged, discarded and
    the queue advances.
    """

    def __init__(self, message: str, locator: str | None = None, code: str | None = None) -> None:
        super().__init__(message, code=code)
        self.locator = locator


class ResolutionError(PlaybackError):
    """No match for a search, or an invalid playlist reference."""

    def __init__(self, message: str, query: str | None = None) -> None:
        super().__init__(message, code="RESOLUTION_ERROR")
        self.query = query


class JoinError(PlaybackError):
    """The voice connection is unavailable."""

    def __init__(self, guild_id: int, channel_id: int, message: str | None = None) -> None:
        msg = message or f"Could not join voice channel {channel_id} in guild {guild_id}"
        super().__init__(msg, code="JOIN_ERROR")
        self.guild_id = guild_id
        self.channel_id = channel_id


class DownloadError(PlaybackError):
    """The fetch tool failed or produced no artifact."""

    def __init__(self, message: str, locator: str | None = None) -> None:
        super().__init__(message, locator=locator, code="DOWNLOAD_ERROR")


class TranscodeError(PlaybackError):
    """The resample tool failed, or reading/encoding its output failed."""

    def __init__(self, message: str, locator: str | None = None) -> None:
        super().__init__(message, locator=locator, code="TRANSCODE_ERROR")


class TransportError(PlaybackError):
    """Handing a packet to the voice transport failed."""

    def __init__(self, message: str, locator: str | None = None) -> None:
        super().__init__(message, locator=locator, code="TRANSPORT_ERROR")


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state
