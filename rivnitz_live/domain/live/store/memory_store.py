"""In-process session store used in demo mode and by tests.

Same contract as the Mongo store: records are rejected for writes once
ended, entry status changes follow the waiting-room transitions, and every
waiting-room change is pushed to subscribers as a full ordered snapshot.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from loguru import logger

from rivnitz_live.domain.live.broadcast.errors import PersistenceError, SessionEnded
from rivnitz_live.domain.live.broadcast.models import (
    LiveSessionCreate,
    LiveSessionRecord,
    WaitingEntry,
)
from rivnitz_live.domain.live.broadcast.ports import SubscriptionErrorHandler, WaitingRoomListener
from rivnitz_live.domain.live.broadcast.waiting_room import WaitingEntryMachine, join_order
from rivnitz_live.schemas.live_state import LiveSessionStatus, WaitingStatus


class InMemorySubscription:
    def __init__(self, store: InMemorySessionStore, session_id: str, listener: WaitingRoomListener):
        self._store = store
        self._session_id = session_id
        self._listener = listener
        self.cancelled = False

    async def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._store._remove_listener(self._session_id, self._listener)


class InMemorySessionStore:
    def __init__(self) -> None:
        self._sessions: dict[str, LiveSessionRecord] = {}
        self._entries: dict[str, dict[str, WaitingEntry]] = {}
        self._listeners: dict[str, list[WaitingRoomListener]] = {}

    # ==================== SESSIONS ====================

    async def create_session(self, params: LiveSessionCreate) -> str:
        now = datetime.now(UTC)
        session_id = uuid4().hex
        self._sessions[session_id] = LiveSessionRecord(
            id=session_id,
            title=params.title,
            status=LiveSessionStatus.LIVE,
            host_uid=params.host_uid,
            channel=params.channel,
            token=params.token,
            created_at=now,
            started_at=now,
        )
        self._entries[session_id] = {}
        logger.info(f"Created live session {session_id} on channel {params.channel}")
        return session_id

    async def get_session(self, session_id: str) -> LiveSessionRecord | None:
        return self._sessions.get(session_id)

    def _live_session(self, session_id: str) -> LiveSessionRecord:
        record = self._sessions.get(session_id)
        if record is None:
            raise PersistenceError(f"Live session {session_id} not found")
        if record.status == LiveSessionStatus.ENDED:
            raise SessionEnded(f"Live session {session_id} has ended")
        return record

    async def end_session(self, session_id: str) -> None:
        record = self._live_session(session_id)
        self._sessions[session_id] = record.model_copy(
            update={"status": LiveSessionStatus.ENDED, "ended_at": datetime.now(UTC)}
        )
        logger.info(f"Ended live session {session_id}")

    async def set_in_consultation(self, session_id: str, in_consultation: bool) -> None:
        record = self._live_session(session_id)
        self._sessions[session_id] = record.model_copy(
            update={"in_consultation": in_consultation}
        )

    # ==================== WAITING ROOM ====================

    async def add_waiting_entry(
        self,
        session_id: str,
        user_id: str,
        user_name: str,
        joined_at: datetime | None = None,
    ) -> WaitingEntry:
        """Queue an audience member, as the mobile client does."""
        self._live_session(session_id)
        entry = WaitingEntry(
            id=uuid4().hex,
            user_id=user_id,
            user_name=user_name,
            status=WaitingStatus.WAITING,
            joined_at=joined_at or datetime.now(UTC),
        )
        self._entries[session_id][entry.id] = entry
        self._publish(session_id)
        return entry

    async def leave_waiting_room(self, session_id: str, entry_id: str) -> None:
        await self.set_entry_status(session_id, entry_id, WaitingStatus.LEFT)

    async def set_entry_status(
        self, session_id: str, entry_id: str, status: WaitingStatus
    ) -> None:
        self._live_session(session_id)
        entry = self._entries[session_id].get(entry_id)
        if entry is None:
            raise PersistenceError(f"Waiting room entry {entry_id} not found")
        if not WaitingEntryMachine.can_transition(entry.status, status):
            raise PersistenceError(
                f"Waiting room entry {entry_id} cannot move from {entry.status} to {status}"
            )

        self._entries[session_id][entry_id] = entry.model_copy(update={"status": status})
        self._publish(session_id)

    async def list_waiting_room(self, session_id: str) -> list[WaitingEntry]:
        return sorted(self._entries.get(session_id, {}).values(), key=join_order)

    async def subscribe_waiting_room(
        self,
        session_id: str,
        listener: WaitingRoomListener,
        on_error: SubscriptionErrorHandler | None = None,
    ) -> InMemorySubscription:
        """Register ``listener`` and deliver the current snapshot immediately.

        Delivery is synchronous, so a failing listener fails the write that
        triggered it and ``on_error`` is never called.
        """
        if session_id not in self._sessions:
            raise PersistenceError(f"Live session {session_id} not found")

        self._listeners.setdefault(session_id, []).append(listener)
        listener(await self.list_waiting_room(session_id))
        return InMemorySubscription(self, session_id, listener)

    def _remove_listener(self, session_id: str, listener: WaitingRoomListener) -> None:
        listeners = self._listeners.get(session_id, [])
        if listener in listeners:
            listeners.remove(listener)

    def _publish(self, session_id: str) -> None:
        snapshot = sorted(self._entries[session_id].values(), key=join_order)
        for listener in list(self._listeners.get(session_id, [])):
            listener(list(snapshot))
