"""Immutable value objects for the music bounded context."""

from __future__ import annotations

from enum import Enum


class SessionState(Enum):
    """Lifecycle states of a single play cycle."""

    JOINING = "joining"
    DOWNLOADING = "downloading"
    STREAMING = "streaming"
    IDLE = "idle"
    DISCONNECTING = "disconnecting"
    CLOSED = "closed"
    FAILED = "failed"


# Legal transitions; anything else is a programming error.
SESSION_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.JOINING: frozenset({SessionState.DOWNLOADING, SessionState.FAILED}),
    SessionState.DOWNLOADING: frozenset({SessionState.STREAMING, SessionState.FAILED}),
    SessionState.STREAMING: frozenset({SessionState.IDLE, SessionState.FAILED}),
    SessionState.IDLE: frozenset({SessionState.DISCONNECTING}),
    SessionState.DISCONNECTING: frozenset({SessionState.CLOSED}),
    SessionState.CLOSED: frozenset(),
    SessionState.FAILED: frozenset({SessionState.DISCONNECTING}),
}
