"""LiveKit real-time transport for the broadcaster.

Wraps `livekit.rtc` behind the orchestrator's ``MediaTransport`` interface:
local camera/microphone tracks, channel (room) join with a token, publish,
leave, and ``user-joined`` / ``user-left`` events for remote participants.

Camera frames are fed into the track's ``rtc.VideoSource`` by whatever owns
the capture device (``LivekitLocalTrack.capture_frame``); this module only
checks that the configured device is present and accessible.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Sequence

from livekit import rtc
from loguru import logger

from rivnitz_live.app_config import AppEnvironConfig, get_app_environ_config
from rivnitz_live.domain.live.broadcast.errors import (
    CaptureDenied,
    ChannelJoinFailed,
    PublishFailed,
)
from rivnitz_live.domain.live.broadcast.ports import TrackKind, TransportEvent

AUDIO_SAMPLE_RATE = 48000
AUDIO_CHANNELS = 1


class LivekitLocalTrack:
    """A local camera or microphone track backed by an rtc media source."""

    _closing: set[asyncio.Task[None]] = set()

    def __init__(
        self,
        kind: TrackKind,
        track: rtc.LocalVideoTrack | rtc.LocalAudioTrack | None = None,
        source: rtc.VideoSource | rtc.AudioSource | None = None,
    ) -> None:
        self.kind = kind
        self.rtc_track = track
        self._source = source
        self.enabled = True
        self.played_into: str | None = None
        self.stopped = False
        self.closed = False
        self.close_task: asyncio.Task[None] | None = None

    @property
    def publish_source(self) -> rtc.TrackSource.ValueType:
        if self.kind == TrackKind.CAMERA:
            return rtc.TrackSource.SOURCE_CAMERA
        return rtc.TrackSource.SOURCE_MICROPHONE

    def capture_frame(self, frame: rtc.VideoFrame) -> None:
        if self.stopped or not isinstance(self._source, rtc.VideoSource):
            return
        self._source.capture_frame(frame)

    async def set_enabled(self, enabled: bool) -> None:
        if self.rtc_track is not None:
            if enabled:
                self.rtc_track.unmute()
            else:
                self.rtc_track.mute()
        self.enabled = enabled
        logger.debug(f"{self.kind} track {'enabled' if enabled else 'disabled'}")

    def play(self, target: str) -> None:
        # The console draws the local preview; record which surface shows it
        self.played_into = target
        logger.debug(f"{self.kind} track playing into {target}")

    def stop(self) -> None:
        self.stopped = True

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        source, self._source = self._source, None
        if source is not None:
            self.close_task = asyncio.get_running_loop().create_task(source.aclose())
            self._closing.add(self.close_task)
            self.close_task.add_done_callback(self._log_close_failure)

    def _log_close_failure(self, task: asyncio.Task[None]) -> None:
        self._closing.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Closing {self.kind} media source failed: {error!s}")


class LivekitTransport:
    """Broadcaster-side LiveKit room connection.

    In DEMO_MODE no connection is made: tracks are source-less stubs, join and
    publish succeed locally, and ``emit`` can be used to simulate viewers.
    """

    def __init__(self, cfg: AppEnvironConfig | None = None) -> None:
        self._cfg = cfg or get_app_environ_config()
        self._demo_mode = bool(getattr(self._cfg, "DEMO_MODE", True))
        self._room: rtc.Room | None = None
        self._handlers: dict[TransportEvent, list[Callable[[str], None]]] = {
            event: [] for event in TransportEvent
        }
        logger.info("LivekitTransport initialized")

    # ==================== EVENTS ====================

    def on(self, event: TransportEvent, callback: Callable[[str], None]) -> None:
        self._handlers[TransportEvent(event)].append(callback)

    def off(self, event: TransportEvent, callback: Callable[[str], None]) -> None:
        handlers = self._handlers[TransportEvent(event)]
        if callback in handlers:
            handlers.remove(callback)

    def emit(self, event: TransportEvent, uid: str) -> None:
        for callback in list(self._handlers[TransportEvent(event)]):
            callback(uid)

    # ==================== CAPTURE ====================

    def _check_device(self, device: str) -> None:
        if not os.path.exists(device):
            raise CaptureDenied(f"Requested device not found: {device}")
        if not os.access(device, os.R_OK):
            raise CaptureDenied(f"Permission denied: {device}")

    async def create_camera_track(self) -> LivekitLocalTrack:
        if self._demo_mode:
            logger.info("LivekitTransport DEMO_MODE=true: camera track is a stub")
            return LivekitLocalTrack(TrackKind.CAMERA)

        self._check_device(self._cfg.CAMERA_DEVICE)
        source = rtc.VideoSource(self._cfg.CAMERA_WIDTH, self._cfg.CAMERA_HEIGHT)
        track = rtc.LocalVideoTrack.create_video_track("camera", source)
        logger.info(f"Camera track created from {self._cfg.CAMERA_DEVICE}")
        return LivekitLocalTrack(TrackKind.CAMERA, track, source)

    async def create_microphone_track(self) -> LivekitLocalTrack:
        if self._demo_mode:
            logger.info("LivekitTransport DEMO_MODE=true: microphone track is a stub")
            return LivekitLocalTrack(TrackKind.MICROPHONE)

        source = rtc.AudioSource(AUDIO_SAMPLE_RATE, AUDIO_CHANNELS)
        track = rtc.LocalAudioTrack.create_audio_track("microphone", source)
        logger.info("Microphone track created")
        return LivekitLocalTrack(TrackKind.MICROPHONE, track, source)

    # ==================== CHANNEL ====================

    async def join(self, channel: str, token: str, uid: int) -> None:
        """Connect to ``channel``; the identity ``uid`` is carried by ``token``."""
        if self._demo_mode:
            logger.info(f"LivekitTransport DEMO_MODE=true: join {channel} as uid={uid} (stub)")
            return

        url = self._cfg.LIVEKIT_URL
        if not url:
            logger.error("LIVEKIT_URL not configured")
            raise ChannelJoinFailed(
                "RTC provider URL must be configured. Set it in env.local or environment variables."
            )

        room = rtc.Room()
        room.on(
            "participant_connected",
            lambda p: self.emit(TransportEvent.USER_JOINED, p.identity),
        )
        room.on(
            "participant_disconnected",
            lambda p: self.emit(TransportEvent.USER_LEFT, p.identity),
        )

        logger.info(f"Connecting to LiveKit room {channel} as uid={uid}")
        await room.connect(url, token)
        self._room = room

    async def publish(self, tracks: Sequence[LivekitLocalTrack]) -> None:
        if self._demo_mode:
            logger.info(f"LivekitTransport DEMO_MODE=true: publish {len(tracks)} tracks (stub)")
            return

        if self._room is None:
            raise PublishFailed("Not connected to a channel")

        for track in tracks:
            if track.rtc_track is None:
                raise PublishFailed(f"{track.kind} track has no media source")
            await self._room.local_participant.publish_track(
                track.rtc_track,
                rtc.TrackPublishOptions(source=track.publish_source),
            )
            logger.debug(f"Published {track.kind} track")

    async def leave(self) -> None:
        room, self._room = self._room, None
        if room is None:
            return
        await room.disconnect()
        logger.info("Disconnected from LiveKit room")
