"""Live session ODM schemas.

Field names on disk are the camelCase names the mobile app reads
(``agoraChannel``/``agoraToken`` are kept for compatibility with it).
"""

from datetime import datetime

from beanie import Document
from pydantic import ConfigDict, Field
from pymongo import ASCENDING, IndexModel

from .live_state import LiveSessionStatus, WaitingStatus


class LiveSession(Document):
    """One broadcast instance."""

    title: str
    status: LiveSessionStatus = LiveSessionStatus.LIVE
    viewer_count: int = Field(default=0, ge=0, alias="viewerCount")
    host_uid: int = Field(alias="hostUid")
    channel: str = Field(alias="agoraChannel")
    token: str = Field(alias="agoraToken")
    in_consultation: bool = Field(default=False, alias="inConsultation")

    created_at: datetime = Field(alias="createdAt")
    started_at: datetime = Field(alias="startedAt")
    ended_at: datetime | None = Field(default=None, alias="endedAt")

    model_config = ConfigDict(populate_by_name=True)

    class Settings:
        name = "live_sessions"


class WaitingRoomEntry(Document):
    """One audience member queued for a private consultation."""

    session_id: str = Field(alias="sessionId")
    user_id: str = Field(alias="userId")
    user_name: str = Field(alias="userName")
    status: WaitingStatus = WaitingStatus.WAITING
    joined_at: datetime | None = Field(default=None, alias="joinedAt")

    model_config = ConfigDict(populate_by_name=True)

    class Settings:
        name = "waiting_room"
        indexes = [
            IndexModel([("sessionId", ASCENDING), ("joinedAt", ASCENDING)]),
        ]


class AppUser(Document):
    """Community app user, read here only for push delivery."""

    push_enabled: bool = Field(default=False, alias="pushEnabled")
    expo_push_token: str | None = Field(default=None, alias="expoPushToken")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    class Settings:
        name = "users"
