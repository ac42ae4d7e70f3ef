"""Waiting-room projection.

The store delivers the full entry list on every change, so the projection is
a pure function of the latest snapshot: applying the same snapshot twice
yields an equal view.
"""

from collections.abc import Iterable
from datetime import datetime, timezone

from loguru import logger

from rivnitz_live.schemas.live_state import WaitingStatus

from .models import WaitingEntry, WaitingRoomView

_PENDING_TIMESTAMP = datetime.max.replace(tzinfo=timezone.utc)


def join_order(entry: WaitingEntry) -> tuple[datetime, str]:
    # Entries whose join timestamp is not yet set sort after everyone else
    joined_at = entry.joined_at
    if joined_at is None:
        joined_at = _PENDING_TIMESTAMP
    elif joined_at.tzinfo is None:
        joined_at = joined_at.replace(tzinfo=timezone.utc)
    return joined_at, entry.id


def project_waiting_room(entries: Iterable[WaitingEntry]) -> WaitingRoomView:
    ordered = sorted(entries, key=join_order)

    active = tuple(e for e in ordered if e.status != WaitingStatus.LEFT)

    in_session = [e for e in ordered if e.status == WaitingStatus.IN_SESSION]
    if len(in_session) > 1:
        logger.warning(
            f"Waiting room snapshot has {len(in_session)} entries in session: "
            f"{[e.id for e in in_session]}"
        )

    return WaitingRoomView(
        active=active,
        current=in_session[0] if in_session else None,
        waiting=tuple(e for e in active if e.status == WaitingStatus.WAITING),
        completed=tuple(e for e in ordered if e.status == WaitingStatus.DONE),
    )


EMPTY_WAITING_ROOM = WaitingRoomView()


class WaitingEntryMachine:
    """Entry status transitions: waiting -> in-session -> done, waiting -> left."""

    TRANSITIONS: dict[WaitingStatus, set[WaitingStatus]] = {
        WaitingStatus.WAITING: {WaitingStatus.IN_SESSION, WaitingStatus.LEFT},
        WaitingStatus.IN_SESSION: {WaitingStatus.DONE},
        WaitingStatus.DONE: set(),
        WaitingStatus.LEFT: set(),
    }

    @classmethod
    def can_transition(cls, current: WaitingStatus, new: WaitingStatus) -> bool:
        # Rewriting the same status is an idempotent retry
        return current == new or new in cls.TRANSITIONS.get(current, set())
