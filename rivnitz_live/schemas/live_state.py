"""Enums shared by the live-session schemas and the go-live domain."""

from enum import Enum


class LivePhase(str, Enum):
    """Broadcaster-side phases of the go-live flow.

    SETUP → PREVIEW → LIVE → ENDING → SETUP

    - SETUP: title and channel name being edited, no capture held.
    - PREVIEW: camera captured and rendered locally, not yet joined.
    - LIVE: joined, publishing, session record live, waiting room subscribed.
    - ENDING: teardown in progress; always returns to SETUP.
    """

    SETUP = "setup"
    PREVIEW = "preview"
    LIVE = "live"
    ENDING = "ending"

    def __str__(self) -> str:
        return self.value


class LiveSessionStatus(str, Enum):
    LIVE = "live"
    ENDED = "ended"

    def __str__(self) -> str:
        return self.value


class WaitingStatus(str, Enum):
    """Waiting-room entry states.

    waiting → in-session → done, or waiting → left. Entries are never re-admitted.
    """

    WAITING = "waiting"
    IN_SESSION = "in-session"
    DONE = "done"
    LEFT = "left"

    def __str__(self) -> str:
        return self.value


__all__ = ["LivePhase", "LiveSessionStatus", "WaitingStatus"]
