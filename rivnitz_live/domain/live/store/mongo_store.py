"""MongoDB session store (Beanie documents, Motor change streams).

Conditional updates keep the store's invariants without a lock: a session
write only matches while the record is live, and an entry status write only
matches while the entry still holds the status it was read with.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import UTC, datetime

from beanie import PydanticObjectId
from bson.errors import InvalidId
from loguru import logger
from pymongo.errors import PyMongoError

from rivnitz_live.domain.live.broadcast.errors import PersistenceError, SessionEnded
from rivnitz_live.domain.live.broadcast.models import (
    LiveSessionCreate,
    LiveSessionRecord,
    WaitingEntry,
)
from rivnitz_live.domain.live.broadcast.ports import SubscriptionErrorHandler, WaitingRoomListener
from rivnitz_live.domain.live.broadcast.waiting_room import WaitingEntryMachine
from rivnitz_live.schemas.live_session import LiveSession, WaitingRoomEntry
from rivnitz_live.schemas.live_state import LiveSessionStatus, WaitingStatus


def _object_id(value: str, what: str) -> PydanticObjectId:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError) as e:
        raise PersistenceError(f"Invalid {what} id: {value}") from e


def _to_entry(doc: WaitingRoomEntry) -> WaitingEntry:
    return WaitingEntry(
        id=str(doc.id),
        user_id=doc.user_id,
        user_name=doc.user_name,
        status=doc.status,
        joined_at=doc.joined_at,
    )


def _to_record(doc: LiveSession) -> LiveSessionRecord:
    return LiveSessionRecord(
        id=str(doc.id),
        title=doc.title,
        status=doc.status,
        viewer_count=doc.viewer_count,
        host_uid=doc.host_uid,
        channel=doc.channel,
        token=doc.token,
        in_consultation=doc.in_consultation,
        created_at=doc.created_at,
        started_at=doc.started_at,
        ended_at=doc.ended_at,
    )


class MongoSubscription:
    """Change-stream watcher delivering full waiting-room snapshots.

    A failed re-read or listener call is reported to ``on_error`` and the
    watch continues; a broken change stream ends it.
    """

    def __init__(
        self,
        store: MongoSessionStore,
        session_id: str,
        listener: WaitingRoomListener,
        on_error: SubscriptionErrorHandler | None = None,
    ):
        self._store = store
        self._session_id = session_id
        self._listener = listener
        self._on_error = on_error
        self._stream = None
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        collection = WaitingRoomEntry.get_motor_collection()
        self._stream = collection.watch(
            [{"$match": {"fullDocument.sessionId": self._session_id}}],
            full_document="updateLookup",
            max_await_time_ms=500,
        )
        # Opens the cursor so no change between here and the first snapshot is lost
        await self._stream.try_next()

        self._listener(await self._store.list_waiting_room(self._session_id))
        self._task = asyncio.create_task(self._watch())

    def _report(self, error: Exception) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception as e:
            logger.opt(exception=e).error("Waiting room error handler failed")

    async def _watch(self) -> None:
        while self._stream is not None and self._stream.alive:
            try:
                change = await self._stream.try_next()
            except PyMongoError as e:
                logger.error(
                    f"Waiting room change stream for session {self._session_id} failed: {e!s}"
                )
                self._report(PersistenceError(f"Waiting room updates stopped: {e!s}"))
                return

            if change is None:
                continue
            logger.debug(
                f"Waiting room change for session {self._session_id}: "
                f"{change.get('operationType')}"
            )
            try:
                self._listener(await self._store.list_waiting_room(self._session_id))
            except Exception as e:
                logger.opt(exception=e).error(
                    f"Waiting room snapshot for session {self._session_id} failed"
                )
                self._report(e)

    async def cancel(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        stream, self._stream = self._stream, None
        if stream is not None:
            await stream.close()


class MongoSessionStore:
    """Session store over the ``live_sessions`` and ``waiting_room`` collections.

    Requires Beanie to be initialized; waiting-room subscriptions require a
    replica set (change streams).
    """

    # ==================== SESSIONS ====================

    async def create_session(self, params: LiveSessionCreate) -> str:
        now = datetime.now(UTC)
        doc = LiveSession(
            title=params.title,
            status=LiveSessionStatus.LIVE,
            viewer_count=0,
            host_uid=params.host_uid,
            channel=params.channel,
            token=params.token,
            in_consultation=False,
            created_at=now,
            started_at=now,
        )
        try:
            await doc.insert()
        except PyMongoError as e:
            raise PersistenceError(f"Failed to create live session: {e!s}") from e

        logger.info(f"Created live session {doc.id} on channel {params.channel}")
        return str(doc.id)

    async def get_session(self, session_id: str) -> LiveSessionRecord | None:
        doc = await LiveSession.get(_object_id(session_id, "session"))
        return _to_record(doc) if doc else None

    async def _update_live_session(self, session_id: str, fields: dict) -> None:
        oid = _object_id(session_id, "session")
        try:
            result = await LiveSession.get_motor_collection().update_one(
                {"_id": oid, "status": LiveSessionStatus.LIVE.value},
                {"$set": fields},
            )
            if result.matched_count:
                return
            exists = await LiveSession.get_motor_collection().count_documents({"_id": oid})
        except PyMongoError as e:
            raise PersistenceError(f"Failed to update live session {session_id}: {e!s}") from e

        if exists:
            raise SessionEnded(f"Live session {session_id} has ended")
        raise PersistenceError(f"Live session {session_id} not found")

    async def end_session(self, session_id: str) -> None:
        await self._update_live_session(
            session_id,
            {"status": LiveSessionStatus.ENDED.value, "endedAt": datetime.now(UTC)},
        )
        logger.info(f"Ended live session {session_id}")

    async def set_in_consultation(self, session_id: str, in_consultation: bool) -> None:
        await self._update_live_session(session_id, {"inConsultation": in_consultation})

    async def _require_live(self, session_id: str) -> None:
        doc = await LiveSession.get(_object_id(session_id, "session"))
        if doc is None:
            raise PersistenceError(f"Live session {session_id} not found")
        if doc.status == LiveSessionStatus.ENDED:
            raise SessionEnded(f"Live session {session_id} has ended")

    # ==================== WAITING ROOM ====================

    async def add_waiting_entry(
        self,
        session_id: str,
        user_id: str,
        user_name: str,
        joined_at: datetime | None = None,
    ) -> WaitingEntry:
        await self._require_live(session_id)
        doc = WaitingRoomEntry(
            session_id=session_id,
            user_id=user_id,
            user_name=user_name,
            status=WaitingStatus.WAITING,
            joined_at=joined_at or datetime.now(UTC),
        )
        try:
            await doc.insert()
        except PyMongoError as e:
            raise PersistenceError(f"Failed to add waiting room entry: {e!s}") from e
        return _to_entry(doc)

    async def leave_waiting_room(self, session_id: str, entry_id: str) -> None:
        await self.set_entry_status(session_id, entry_id, WaitingStatus.LEFT)

    async def set_entry_status(
        self, session_id: str, entry_id: str, status: WaitingStatus
    ) -> None:
        await self._require_live(session_id)
        oid = _object_id(entry_id, "entry")

        try:
            doc = await WaitingRoomEntry.get(oid)
            if doc is None or doc.session_id != session_id:
                raise PersistenceError(f"Waiting room entry {entry_id} not found")
            if not WaitingEntryMachine.can_transition(doc.status, status):
                raise PersistenceError(
                    f"Waiting room entry {entry_id} cannot move from {doc.status} to {status}"
                )

            result = await WaitingRoomEntry.get_motor_collection().update_one(
                {"_id": oid, "status": doc.status.value},
                {"$set": {"status": status.value}},
            )
        except PyMongoError as e:
            raise PersistenceError(f"Failed to update waiting room entry {entry_id}: {e!s}") from e

        if not result.matched_count:
            raise PersistenceError(f"Waiting room entry {entry_id} changed concurrently")

    async def list_waiting_room(self, session_id: str) -> list[WaitingEntry]:
        try:
            docs = (
                await WaitingRoomEntry.find({"sessionId": session_id})
                .sort([("joinedAt", 1), ("_id", 1)])
                .to_list()
            )
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read waiting room of {session_id}: {e!s}") from e
        return [_to_entry(doc) for doc in docs]

    async def subscribe_waiting_room(
        self,
        session_id: str,
        listener: WaitingRoomListener,
        on_error: SubscriptionErrorHandler | None = None,
    ) -> MongoSubscription:
        subscription = MongoSubscription(self, session_id, listener, on_error)
        try:
            await subscription.start()
        except Exception as e:
            with contextlib.suppress(PyMongoError):
                await subscription.cancel()
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError(
                f"Failed to subscribe to waiting room of {session_id}: {e!s}"
            ) from e
        return subscription
