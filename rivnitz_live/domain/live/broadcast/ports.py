"""Narrow interfaces the orchestrator drives.

Vendor SDK types stay behind these: the LiveKit transport and the Mongo store
implement them, and tests use fakes.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import Protocol

from rivnitz_live.schemas.live_state import WaitingStatus

from .models import LiveSessionCreate, TokenGrant, WaitingEntry


class TrackKind(str, Enum):
    CAMERA = "camera"
    MICROPHONE = "microphone"


class TransportEvent(str, Enum):
    USER_JOINED = "user-joined"
    USER_LEFT = "user-left"


class LocalTrack(Protocol):
    kind: TrackKind

    async def set_enabled(self, enabled: bool) -> None: ...

    def play(self, target: str) -> None: ...

    def stop(self) -> None: ...

    def close(self) -> None: ...


class MediaTransport(Protocol):
    async def create_camera_track(self) -> LocalTrack: ...

    async def create_microphone_track(self) -> LocalTrack: ...

    async def join(self, channel: str, token: str, uid: int) -> None: ...

    async def publish(self, tracks: Sequence[LocalTrack]) -> None: ...

    async def leave(self) -> None: ...

    def on(self, event: TransportEvent, callback: Callable[[str], None]) -> None: ...

    def off(self, event: TransportEvent, callback: Callable[[str], None]) -> None: ...


class TokenIssuer(Protocol):
    async def issue(self, channel: str, uid: int) -> TokenGrant: ...


WaitingRoomListener = Callable[[list[WaitingEntry]], None]
SubscriptionErrorHandler = Callable[[Exception], None]


class Subscription(Protocol):
    async def cancel(self) -> None: ...


class SessionStore(Protocol):
    async def create_session(self, params: LiveSessionCreate) -> str: ...

    async def end_session(self, session_id: str) -> None: ...

    async def set_in_consultation(self, session_id: str, in_consultation: bool) -> None: ...

    async def set_entry_status(
        self, session_id: str, entry_id: str, status: WaitingStatus
    ) -> None: ...

    async def list_waiting_room(self, session_id: str) -> list[WaitingEntry]: ...

    async def subscribe_waiting_room(
        self,
        session_id: str,
        listener: WaitingRoomListener,
        on_error: SubscriptionErrorHandler | None = None,
    ) -> Subscription:
        """Deliver full snapshots to ``listener``; ``on_error`` hears about failed updates."""
        ...


LiveNotifier = Callable[[str, str], Awaitable[object]]
