"""Beanie ODM schemas for MongoDB collections."""

from .init import BEANIE_MODELS, init_beanie_odm
from .live_session import AppUser, LiveSession, WaitingRoomEntry
from .live_state import LivePhase, LiveSessionStatus, WaitingStatus

__all__ = [
    "AppUser",
    "BEANIE_MODELS",
    "LivePhase",
    "LiveSession",
    "LiveSessionStatus",
    "WaitingRoomEntry",
    "WaitingStatus",
    "init_beanie_odm",
]
