"""Live session orchestrator.

Drives the broadcaster from camera setup through a live broadcast with a
single-admission consultation queue, to teardown. Runs on one event loop;
every vendor call is awaited in sequence inside its command.

Usage:
    orchestrator = LiveSessionOrchestrator.from_config(
        get_app_environ_config(),
        transport=livekit_transport,
        store=session_store,
        token_issuer=token_client,
    )
    await orchestrator.start_preview(title="Evening shiur", channel_name="rivnitz-live-1")
    orchestrator.mount_display(MediaCoordinator.PREVIEW_TARGET)
    await orchestrator.go_live()
    await orchestrator.admit(entry_id)
    await orchestrator.end_session()
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from loguru import logger

from rivnitz_live.app_config import AppEnvironConfig
from rivnitz_live.schemas.live_state import LivePhase, WaitingStatus

from .errors import (
    CaptureDenied,
    CommandInFlight,
    InvalidAdmission,
    InvalidPhaseTransition,
    LiveSessionError,
    PersistenceError,
    SetupIncomplete,
    TokenIssuanceFailed,
    TransportError,
)
from .formatting import format_duration, time_ago
from .media import MediaCoordinator
from .models import (
    LiveSessionCreate,
    OrchestratorState,
    WaitingEntry,
    WaitingEntryOut,
    WaitingRoomView,
)
from .phase_state_machine import LivePhaseMachine
from .ports import (
    LiveNotifier,
    MediaTransport,
    SessionStore,
    Subscription,
    TokenIssuer,
    TransportEvent,
)
from .steps import bounded_step
from .waiting_room import EMPTY_WAITING_ROOM, project_waiting_room

StateListener = Callable[[OrchestratorState], None]


class LiveSessionOrchestrator:
    """Single-operator go-live state machine.

    Holds only a transient projection: the session store owns the session
    record and the waiting room, and the projection is refreshed from the
    store's snapshots. At most one mutating command runs at a time.
    """

    def __init__(
        self,
        *,
        transport: MediaTransport,
        store: SessionStore,
        token_issuer: TokenIssuer,
        notifier: LiveNotifier | None = None,
        host_uid: int = 1,
        default_title: str = "",
        channel_prefix: str = "rivnitz-live",
        capture_timeout: float | None = None,
        token_timeout: float | None = None,
        join_timeout: float | None = None,
        publish_timeout: float | None = None,
        store_timeout: float | None = None,
        tick_seconds: float = 1.0,
    ) -> None:
        self._transport = transport
        self._store = store
        self._token_issuer = token_issuer
        self._notifier = notifier
        self._host_uid = host_uid
        self._channel_prefix = channel_prefix
        self._token_timeout = token_timeout
        self._toggle_timeout = capture_timeout
        self._store_timeout = store_timeout
        self._tick_seconds = tick_seconds

        self._media = MediaCoordinator(
            transport,
            capture_timeout=capture_timeout,
            join_timeout=join_timeout,
            publish_timeout=publish_timeout,
        )

        self._phase = LivePhase.SETUP
        self._title = default_title
        self._channel_name = self.new_channel_name()

        self._session_id: str | None = None
        self._subscription: Subscription | None = None
        self._waiting_room: WaitingRoomView = EMPTY_WAITING_ROOM
        self._viewer_count = 0
        self._elapsed = 0
        self._mic_muted = False
        self._camera_off = False

        self._pending: str | None = None
        self._idle = asyncio.Event()
        self._idle.set()
        self._error: str | None = None
        self._notice: str | None = None

        self._timer_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[None]] = set()
        self._listeners: list[StateListener] = []

        transport.on(TransportEvent.USER_JOINED, self._on_viewer_joined)
        transport.on(TransportEvent.USER_LEFT, self._on_viewer_left)

    @classmethod
    def from_config(
        cls,
        cfg: AppEnvironConfig,
        *,
        transport: MediaTransport,
        store: SessionStore,
        token_issuer: TokenIssuer,
        notifier: LiveNotifier | None = None,
    ) -> LiveSessionOrchestrator:
        return cls(
            transport=transport,
            store=store,
            token_issuer=token_issuer,
            notifier=notifier if cfg.NOTIFY_ON_GO_LIVE else None,
            host_uid=cfg.LIVE_HOST_UID,
            default_title=cfg.LIVE_DEFAULT_TITLE,
            channel_prefix=cfg.LIVE_CHANNEL_PREFIX,
            capture_timeout=cfg.LIVE_CAPTURE_TIMEOUT_SECONDS,
            token_timeout=cfg.LIVE_TOKEN_TIMEOUT_SECONDS,
            join_timeout=cfg.LIVE_JOIN_TIMEOUT_SECONDS,
            publish_timeout=cfg.LIVE_PUBLISH_TIMEOUT_SECONDS,
            store_timeout=cfg.LIVE_STORE_TIMEOUT_SECONDS,
            tick_seconds=cfg.LIVE_ELAPSED_TICK_SECONDS,
        )

    # ==================== STATE ====================

    @property
    def phase(self) -> LivePhase:
        return self._phase

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def channel_name(self) -> str:
        return self._channel_name

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed

    @property
    def viewer_count(self) -> int:
        return self._viewer_count

    @property
    def waiting_room(self) -> WaitingRoomView:
        return self._waiting_room

    @property
    def media(self) -> MediaCoordinator:
        return self._media

    def new_channel_name(self) -> str:
        return f"{self._channel_prefix}-{uuid4().hex[:12]}"

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    def snapshot(self) -> OrchestratorState:
        view = self._waiting_room
        return OrchestratorState(
            phase=self._phase,
            title=self._title,
            channel_name=self._channel_name,
            session_id=self._session_id,
            viewer_count=self._viewer_count,
            elapsed_seconds=self._elapsed,
            elapsed_display=format_duration(self._elapsed),
            mic_muted=self._mic_muted,
            camera_off=self._camera_off,
            pending_command=self._pending,
            error=self._error,
            notice=self._notice,
            queue=[self._entry_out(e) for e in view.active],
            current=self._entry_out(view.current) if view.current else None,
            waiting_count=len(view.waiting),
            completed_count=len(view.completed),
        )

    @staticmethod
    def _entry_out(entry: WaitingEntry) -> WaitingEntryOut:
        return WaitingEntryOut(
            **entry.model_dump(),
            joined_ago=time_ago(entry.joined_at),
        )

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.opt(exception=e).error(f"State listener {listener!r} failed")

    def _set_phase(self, new_phase: LivePhase) -> None:
        if not LivePhaseMachine.can_transition(self._phase, new_phase):
            raise InvalidPhaseTransition(
                f"Invalid phase transition: {self._phase} -> {new_phase}"
            )
        logger.info(f"Go-live phase {self._phase} -> {new_phase}")
        self._phase = new_phase
        self._notify()

    def _require_phase(self, phase: LivePhase, action: str) -> None:
        if self._phase != phase:
            raise InvalidPhaseTransition(f"Cannot {action} while {self._phase}")

    @asynccontextmanager
    async def _command(self, name: str) -> AsyncIterator[None]:
        """Single-flight guard around a mutating command.

        Failures are recorded as the operator-facing error and re-raised.
        """
        if self._pending is not None:
            raise CommandInFlight(f"Cannot {name} while {self._pending} is in progress")

        self._pending = name
        self._idle.clear()
        self._error = None
        self._notice = None
        self._notify()
        try:
            yield
        except LiveSessionError as e:
            self._error = e.errmesg
            logger.warning(f"{name} failed: {e.errcode} {e.errmesg}")
            raise
        finally:
            self._pending = None
            self._idle.set()
            self._notify()

    # ==================== SETUP / PREVIEW ====================

    async def start_preview(
        self,
        title: str | None = None,
        channel_name: str | None = None,
    ) -> OrchestratorState:
        """Capture the camera and move to PREVIEW.

        Raises:
            SetupIncomplete: If title or channel name is blank
            CaptureDenied: If the camera cannot be captured; the phase stays SETUP
        """
        async with self._command("start_preview"):
            self._require_phase(LivePhase.SETUP, "test the camera")
            if title is not None:
                self._title = title
            if channel_name is not None:
                self._channel_name = channel_name

            if not self._title.strip() or not self._channel_name.strip():
                raise SetupIncomplete("Session title and channel name are required")

            await self._media.acquire_camera()
            self._set_phase(LivePhase.PREVIEW)
            self._media.render(MediaCoordinator.PREVIEW_TARGET)

        return self.snapshot()

    async def cancel_preview(self) -> OrchestratorState:
        async with self._command("cancel_preview"):
            self._require_phase(LivePhase.PREVIEW, "cancel the preview")
            self._media.release_camera()
            self._set_phase(LivePhase.SETUP)

        return self.snapshot()

    def mount_display(self, name: str) -> None:
        """Signal that the display surface ``name`` exists and can be drawn into."""
        self._media.mount_display(name)

    def unmount_display(self, name: str) -> None:
        self._media.unmount_display(name)

    # ==================== GO LIVE ====================

    async def go_live(self) -> OrchestratorState:
        """Join the channel, publish, create the session record and open the waiting room.

        On any failure everything acquired by this command is released, the phase
        stays PREVIEW and the failing step's error is raised.
        """
        async with self._command("go_live"):
            self._require_phase(LivePhase.PREVIEW, "go live")
            if self._session_id is not None:
                raise InvalidPhaseTransition(f"Session {self._session_id} is already live")
            if self._media.camera is None:
                raise CaptureDenied("Camera capture is not available; test the camera again")

            title = self._title
            channel = self._channel_name
            session_id: str | None = None

            try:
                grant = await bounded_step(
                    self._token_issuer.issue(channel, self._host_uid),
                    step="Token request",
                    timeout=self._token_timeout,
                    error=TokenIssuanceFailed,
                )

                await self._media.join(channel, grant.token, self._host_uid)
                await self._media.acquire_microphone()
                await self._media.publish()

                session_id = await bounded_step(
                    self._store.create_session(
                        LiveSessionCreate(
                            title=title,
                            channel=channel,
                            host_uid=self._host_uid,
                            token=grant.token,
                        )
                    ),
                    step="Session record creation",
                    timeout=self._store_timeout,
                    error=PersistenceError,
                )
                self._session_id = session_id

                self._subscription = await bounded_step(
                    self._store.subscribe_waiting_room(
                        session_id,
                        lambda entries: self._apply_snapshot(session_id, entries),
                        on_error=lambda e: self._on_subscription_error(session_id, e),
                    ),
                    step="Waiting room subscription",
                    timeout=self._store_timeout,
                    error=PersistenceError,
                )
            except (Exception, asyncio.CancelledError):
                await self._rollback_go_live(session_id)
                raise

            self._viewer_count = 0
            self._elapsed = 0
            self._set_phase(LivePhase.LIVE)
            self._timer_task = asyncio.create_task(self._run_elapsed_timer())
            self._media.render(MediaCoordinator.LIVE_TARGET)
            self._notice = "You are live!"
            logger.info(f"Session {session_id} is live on channel {channel}")

            if self._notifier is not None:
                self._spawn(self._notify_live(title, session_id))

        return self.snapshot()

    async def _rollback_go_live(self, session_id: str | None) -> None:
        logger.info(f"Rolling back go-live (session={session_id})")
        self._media.release_microphone()
        await self._media.leave()

        if session_id is not None:
            try:
                await bounded_step(
                    self._store.end_session(session_id),
                    step="Session record rollback",
                    timeout=self._store_timeout,
                    error=PersistenceError,
                )
            except PersistenceError as e:
                logger.warning(f"Failed to end session {session_id} during rollback: {e.errmesg}")

        self._session_id = None
        self._subscription = None
        self._waiting_room = EMPTY_WAITING_ROOM

    async def _notify_live(self, title: str, session_id: str) -> None:
        try:
            await self._notifier(title, session_id)  # type: ignore[misc]
        except Exception as e:
            logger.warning(f"Live notification failed for session {session_id}: {e!s}")

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ==================== LIVE ====================

    async def _run_elapsed_timer(self) -> None:
        while True:
            await asyncio.sleep(self._tick_seconds)
            if self._phase != LivePhase.LIVE:
                return
            self._elapsed += 1
            self._notify()

    def _cancel_timer(self) -> None:
        if self._timer_task and not self._timer_task.done():
            self._timer_task.cancel()
        self._timer_task = None

    def _on_viewer_joined(self, uid: str) -> None:
        if self._phase != LivePhase.LIVE:
            return
        self._viewer_count += 1
        self._notify()

    def _on_viewer_left(self, uid: str) -> None:
        if self._phase != LivePhase.LIVE:
            return
        self._viewer_count = max(0, self._viewer_count - 1)
        self._notify()

    def _apply_snapshot(self, session_id: str, entries: list[WaitingEntry]) -> None:
        if session_id != self._session_id:
            logger.debug(f"Ignoring waiting room snapshot for stale session {session_id}")
            return
        self._waiting_room = project_waiting_room(entries)
        self._notify()

    def _on_subscription_error(self, session_id: str, error: Exception) -> None:
        if session_id != self._session_id:
            return
        self._error = getattr(error, "errmesg", None) or str(error) or type(error).__name__
        logger.warning(f"Waiting room updates for session {session_id} failed: {self._error}")
        self._notify()

    async def _write(self, awaitable, step: str) -> None:
        await bounded_step(
            awaitable,
            step=step,
            timeout=self._store_timeout,
            error=PersistenceError,
        )

    async def _refresh_waiting_room(self, session_id: str) -> WaitingRoomView:
        """Read the room from the store; snapshots may lag behind our own writes."""
        entries = await bounded_step(
            self._store.list_waiting_room(session_id),
            step="Reading the waiting room",
            timeout=self._store_timeout,
            error=PersistenceError,
        )
        self._apply_snapshot(session_id, entries)
        return project_waiting_room(entries)

    async def admit(self, entry_id: str) -> OrchestratorState:
        """Admit a waiting entry, finishing the current consultation first.

        Raises:
            InvalidAdmission: If the entry is not currently waiting
            PersistenceError: If a store write fails; nothing is rolled back locally,
                the next snapshot reflects what the store holds
        """
        async with self._command("admit"):
            self._require_phase(LivePhase.LIVE, "admit")
            session_id = self._session_id
            view = await self._refresh_waiting_room(session_id)

            target = next((e for e in view.active if e.id == entry_id), None)
            if target is None or target.status != WaitingStatus.WAITING:
                raise InvalidAdmission(f"Waiting room entry {entry_id} is not waiting")

            for current in view.active:
                if current.status != WaitingStatus.IN_SESSION or current.id == target.id:
                    continue
                await self._write(
                    self._store.set_entry_status(session_id, current.id, WaitingStatus.DONE),
                    f"Finishing consultation with {current.user_name}",
                )

            await self._write(
                self._store.set_entry_status(session_id, target.id, WaitingStatus.IN_SESSION),
                f"Admitting {target.user_name}",
            )
            await self._write(
                self._store.set_in_consultation(session_id, True),
                "Marking session in consultation",
            )
            await self._refresh_waiting_room(session_id)
            self._notice = f"Admitted {target.user_name} to consultation"
            logger.info(f"Session {session_id}: admitted {target.id} ({target.user_name})")

        return self.snapshot()

    async def end_consultation(self) -> OrchestratorState:
        """Finish the current consultation. No-op when nobody is in session."""
        if self._phase == LivePhase.LIVE and self._pending is None:
            view = await self._refresh_waiting_room(self._session_id)
            if view.current is None:
                logger.debug("end_consultation without a current consultation, skipping")
                return self.snapshot()

        async with self._command("end_consultation"):
            self._require_phase(LivePhase.LIVE, "end a consultation")
            session_id = self._session_id
            view = await self._refresh_waiting_room(session_id)
            in_session = [e for e in view.active if e.status == WaitingStatus.IN_SESSION]
            if not in_session:
                return self.snapshot()

            for current in in_session:
                await self._write(
                    self._store.set_entry_status(session_id, current.id, WaitingStatus.DONE),
                    f"Finishing consultation with {current.user_name}",
                )
            await self._write(
                self._store.set_in_consultation(session_id, False),
                "Clearing session consultation flag",
            )
            await self._refresh_waiting_room(session_id)
            self._notice = "Consultation ended"
            logger.info(f"Session {session_id}: consultation ended")

        return self.snapshot()

    async def toggle_mic(self) -> OrchestratorState:
        async with self._command("toggle_mic"):
            self._require_phase(LivePhase.LIVE, "toggle the microphone")
            track = self._media.microphone
            if track is not None:
                await bounded_step(
                    track.set_enabled(self._mic_muted),
                    step="Microphone toggle",
                    timeout=self._toggle_timeout,
                    error=TransportError,
                )
                self._mic_muted = not self._mic_muted

        return self.snapshot()

    async def toggle_camera(self) -> OrchestratorState:
        async with self._command("toggle_camera"):
            self._require_phase(LivePhase.LIVE, "toggle the camera")
            track = self._media.camera
            if track is not None:
                await bounded_step(
                    track.set_enabled(self._camera_off),
                    step="Camera toggle",
                    timeout=self._toggle_timeout,
                    error=TransportError,
                )
                self._camera_off = not self._camera_off

        return self.snapshot()

    # ==================== TEARDOWN ====================

    async def end_session(self) -> OrchestratorState:
        """Tear the broadcast down and return to SETUP.

        Local teardown always completes. If the session record could not be
        marked ended, PersistenceError is raised after reaching SETUP.
        """
        async with self._command("end_session"):
            await self._end_session()

        return self.snapshot()

    async def _end_session(self) -> None:
        self._require_phase(LivePhase.LIVE, "end the session")
        session_id = self._session_id

        self._cancel_timer()
        self._elapsed = 0
        self._set_phase(LivePhase.ENDING)

        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            try:
                await subscription.cancel()
            except Exception as e:
                logger.warning(f"Failed to cancel waiting room subscription: {e!s}")

        persist_error: PersistenceError | None = None
        if session_id is not None:
            try:
                await self._write(self._store.end_session(session_id), "Ending session record")
            except PersistenceError as e:
                persist_error = e

        self._media.release_all()
        await self._media.leave()

        self._session_id = None
        self._viewer_count = 0
        self._waiting_room = EMPTY_WAITING_ROOM
        self._mic_muted = False
        self._camera_off = False
        self._channel_name = self.new_channel_name()
        self._set_phase(LivePhase.SETUP)
        self._notice = "Session ended"
        logger.info(f"Session {session_id} ended")

        if persist_error is not None:
            raise persist_error

    async def sign_out(self) -> OrchestratorState:
        """Operator sign-out: ends a live session, drops a preview."""
        if self._phase == LivePhase.LIVE:
            return await self.end_session()
        if self._phase == LivePhase.PREVIEW:
            return await self.cancel_preview()
        return self.snapshot()

    async def aclose(self) -> None:
        """Release everything on shutdown, whatever the phase.

        A pending command gets up to the store deadline to finish; a session
        still live after that has its record ended directly.
        """
        if self._pending is not None:
            logger.info(f"Shutdown waiting for {self._pending} to finish")
            try:
                await asyncio.wait_for(self._idle.wait(), self._store_timeout)
            except TimeoutError:
                logger.warning(f"{self._pending} still running at shutdown")

        if self._phase == LivePhase.LIVE and self._pending is None:
            try:
                await self._end_session()
            except LiveSessionError as e:
                logger.warning(f"Session teardown on shutdown incomplete: {e.errmesg}")
        elif self._phase == LivePhase.LIVE and self._session_id is not None:
            try:
                await self._write(
                    self._store.end_session(self._session_id), "Ending session record on shutdown"
                )
            except PersistenceError as e:
                logger.warning(f"Session record left live on shutdown: {e.errmesg}")

        self._cancel_timer()
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            with contextlib.suppress(Exception):
                await subscription.cancel()

        await self._media.aclose()

        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

        self._transport.off(TransportEvent.USER_JOINED, self._on_viewer_joined)
        self._transport.off(TransportEvent.USER_LEFT, self._on_viewer_left)
