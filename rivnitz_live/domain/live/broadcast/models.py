"""Value types of the go-live domain."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from rivnitz_live.schemas.live_state import LivePhase, LiveSessionStatus, WaitingStatus


class WaitingEntry(BaseModel):
    """A waiting-room entry as delivered by a store snapshot."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    user_name: str
    status: WaitingStatus
    joined_at: datetime | None = None


class WaitingRoomView(BaseModel):
    """Projection of one waiting-room snapshot."""

    model_config = ConfigDict(frozen=True)

    active: tuple[WaitingEntry, ...] = ()
    current: WaitingEntry | None = None
    waiting: tuple[WaitingEntry, ...] = ()
    completed: tuple[WaitingEntry, ...] = ()


class TokenGrant(BaseModel):
    """Transport credential as returned by the token issuer."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    uid: int
    channel_name: str = Field(alias="channelName")
    expires_at: int = Field(alias="expiresAt")


class LiveSessionCreate(BaseModel):
    """Fields of a new live session record."""

    title: str
    channel: str
    host_uid: int
    token: str


class LiveSessionRecord(BaseModel):
    """A session record as held by a store."""

    id: str
    title: str
    status: LiveSessionStatus
    viewer_count: int = 0
    host_uid: int
    channel: str
    token: str
    in_consultation: bool = False
    created_at: datetime
    started_at: datetime
    ended_at: datetime | None = None


class WaitingEntryOut(BaseModel):
    id: str
    user_id: str
    user_name: str
    status: WaitingStatus
    joined_at: datetime | None = None
    joined_ago: str = ""


class OrchestratorState(BaseModel):
    """Everything the console needs to render the go-live page."""

    phase: LivePhase
    title: str
    channel_name: str
    session_id: str | None = None
    viewer_count: int = 0
    elapsed_seconds: int = 0
    elapsed_display: str = "00:00"
    mic_muted: bool = False
    camera_off: bool = False
    pending_command: str | None = None
    error: str | None = None
    notice: str | None = None

    queue: list[WaitingEntryOut] = Field(default_factory=list)
    current: WaitingEntryOut | None = None
    waiting_count: int = 0
    completed_count: int = 0
