"""Local media lifecycle: capture, render, publish, release."""

from __future__ import annotations

import asyncio
import contextlib

from loguru import logger

from .errors import CaptureDenied, ChannelJoinFailed, PublishFailed
from .ports import LocalTrack, MediaTransport
from .steps import bounded_step


class DisplayTarget:
    """A named display surface with a mounted signal.

    Rendering into a target waits for ``mount()``; nothing is ever drawn into a
    surface that does not exist yet.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._mounted = asyncio.Event()

    @property
    def mounted(self) -> bool:
        return self._mounted.is_set()

    def mount(self) -> None:
        self._mounted.set()

    def unmount(self) -> None:
        self._mounted.clear()

    async def wait_mounted(self) -> None:
        await self._mounted.wait()


class MediaCoordinator:
    """Owns the camera and microphone tracks and the channel membership.

    The camera captured for the preview is the instance that gets published;
    it is never re-created on going live. Releasing a track is idempotent.
    """

    PREVIEW_TARGET = "preview-container"
    LIVE_TARGET = "live-container"

    def __init__(
        self,
        transport: MediaTransport,
        *,
        capture_timeout: float | None = None,
        join_timeout: float | None = None,
        publish_timeout: float | None = None,
    ) -> None:
        self._transport = transport
        self._capture_timeout = capture_timeout
        self._join_timeout = join_timeout
        self._publish_timeout = publish_timeout

        self._camera: LocalTrack | None = None
        self._microphone: LocalTrack | None = None
        self._joined = False
        self._targets: dict[str, DisplayTarget] = {}
        self._render_task: asyncio.Task[None] | None = None
        self.rendered_target: str | None = None

    @property
    def camera(self) -> LocalTrack | None:
        return self._camera

    @property
    def microphone(self) -> LocalTrack | None:
        return self._microphone

    @property
    def joined(self) -> bool:
        return self._joined

    # ==================== DISPLAY ====================

    def display(self, name: str) -> DisplayTarget:
        target = self._targets.get(name)
        if target is None:
            target = self._targets[name] = DisplayTarget(name)
        return target

    def mount_display(self, name: str) -> None:
        self.display(name).mount()
        logger.debug(f"Display target mounted: {name}")

    def unmount_display(self, name: str) -> None:
        self.display(name).unmount()

    def render(self, target_name: str) -> asyncio.Task[None] | None:
        """Render the camera into ``target_name`` once that target is mounted."""
        self.cancel_render()
        if self._camera is None:
            return None

        self._render_task = asyncio.create_task(
            self._render_when_mounted(self._camera, self.display(target_name))
        )
        return self._render_task

    def cancel_render(self) -> None:
        if self._render_task and not self._render_task.done():
            self._render_task.cancel()
        self._render_task = None

    async def _render_when_mounted(self, track: LocalTrack, target: DisplayTarget) -> None:
        await target.wait_mounted()
        if track is not self._camera:
            return
        track.play(target.name)
        self.rendered_target = target.name
        logger.debug(f"Camera rendered into {target.name}")

    # ==================== CAPTURE ====================

    async def acquire_camera(self) -> LocalTrack:
        if self._camera is not None:
            return self._camera

        self._camera = await bounded_step(
            self._transport.create_camera_track(),
            step="Camera capture",
            timeout=self._capture_timeout,
            error=CaptureDenied,
        )
        logger.info("Camera capture acquired")
        return self._camera

    async def acquire_microphone(self) -> LocalTrack:
        if self._microphone is not None:
            return self._microphone

        self._microphone = await bounded_step(
            self._transport.create_microphone_track(),
            step="Microphone capture",
            timeout=self._capture_timeout,
            error=CaptureDenied,
        )
        logger.info("Microphone capture acquired")
        return self._microphone

    def release_camera(self) -> None:
        self.cancel_render()
        track, self._camera = self._camera, None
        if track is not None:
            self._stop_track(track)
            self.rendered_target = None

    def release_microphone(self) -> None:
        track, self._microphone = self._microphone, None
        if track is not None:
            self._stop_track(track)

    def release_all(self) -> None:
        self.release_microphone()
        self.release_camera()

    @staticmethod
    def _stop_track(track: LocalTrack) -> None:
        track.stop()
        track.close()
        logger.info(f"Released {track.kind} track")

    # ==================== CHANNEL ====================

    async def join(self, channel: str, token: str, uid: int) -> None:
        await bounded_step(
            self._transport.join(channel, token, uid),
            step="Channel join",
            timeout=self._join_timeout,
            error=ChannelJoinFailed,
        )
        self._joined = True
        logger.info(f"Joined channel {channel} as uid={uid}")

    async def publish(self) -> None:
        """Publish microphone and camera; leaves the channel if the publish fails."""
        if not self._joined:
            raise PublishFailed("Cannot publish before joining the channel")
        if self._camera is None or self._microphone is None:
            raise PublishFailed("Cannot publish without camera and microphone captures")

        try:
            await bounded_step(
                self._transport.publish([self._microphone, self._camera]),
                step="Track publish",
                timeout=self._publish_timeout,
                error=PublishFailed,
            )
        except PublishFailed:
            await self.leave()
            raise
        logger.info("Published microphone and camera tracks")

    async def leave(self) -> None:
        if not self._joined:
            return
        self._joined = False
        try:
            await self._transport.leave()
        except Exception as e:
            logger.warning(f"Failed to leave channel cleanly: {e!s}")
        else:
            logger.info("Left channel")

    async def aclose(self) -> None:
        task = self._render_task
        self.release_all()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.leave()
