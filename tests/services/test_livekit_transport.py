"""Tests for LivekitTransport (demo mode and device checks only)."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from rivnitz_live.app_config import AppEnvironConfig
from rivnitz_live.domain.live.broadcast.errors import CaptureDenied, ChannelJoinFailed
from rivnitz_live.domain.live.broadcast.ports import TrackKind, TransportEvent
from rivnitz_live.services.integrations.livekit_transport import LivekitLocalTrack, LivekitTransport


class TestDemoMode:
    async def test_tracks_are_stubs(self):
        transport = LivekitTransport(AppEnvironConfig(DEMO_MODE=True))

        camera = await transport.create_camera_track()
        microphone = await transport.create_microphone_track()

        assert camera.kind == TrackKind.CAMERA
        assert microphone.kind == TrackKind.MICROPHONE
        assert camera.rtc_track is None

    async def test_track_lifecycle(self):
        """Should record playback, toggles and close without a media source."""
        transport = LivekitTransport(AppEnvironConfig(DEMO_MODE=True))
        camera = await transport.create_camera_track()

        camera.play("camera-preview")
        await camera.set_enabled(False)
        camera.stop()
        camera.close()
        camera.close()

        assert camera.played_into == "camera-preview"
        assert camera.enabled is False
        assert camera.stopped is True
        assert camera.closed is True

    async def test_join_publish_leave(self):
        transport = LivekitTransport(AppEnvironConfig(DEMO_MODE=True))
        camera = await transport.create_camera_track()

        await transport.join("test-live-1", "tok", 1)
        await transport.publish([camera])
        await transport.leave()

    def test_events_reach_registered_handlers(self):
        transport = LivekitTransport(AppEnvironConfig(DEMO_MODE=True))
        seen = []
        transport.on(TransportEvent.USER_JOINED, seen.append)

        transport.emit(TransportEvent.USER_JOINED, "viewer-1")
        transport.off(TransportEvent.USER_JOINED, seen.append)
        transport.emit(TransportEvent.USER_JOINED, "viewer-2")

        assert seen == ["viewer-1"]


class TestLiveMode:
    async def test_missing_camera_device(self, tmp_path):
        """Should deny capture when the configured device does not exist."""
        transport = LivekitTransport(
            AppEnvironConfig(DEMO_MODE=False, CAMERA_DEVICE=str(tmp_path / "video9"))
        )

        with pytest.raises(CaptureDenied) as exc_info:
            await transport.create_camera_track()

        assert "not found" in exc_info.value.errmesg

    async def test_join_without_url(self):
        transport = LivekitTransport(AppEnvironConfig(DEMO_MODE=False, LIVEKIT_URL=None))

        with pytest.raises(ChannelJoinFailed):
            await transport.join("test-live-1", "tok", 1)


class TestTrackClose:
    """Tests for releasing a track's media source."""

    async def test_source_closed_once(self):
        """Should close the source in the background exactly once."""
        source = AsyncMock()
        track = LivekitLocalTrack(TrackKind.MICROPHONE, source=source)

        track.close()
        track.close()
        await track.close_task
        await asyncio.sleep(0)

        source.aclose.assert_awaited_once()
        assert track.close_task not in LivekitLocalTrack._closing

    async def test_source_close_failure_collected(self):
        """Should collect a failing source close instead of leaving it unretrieved."""
        # Arrange
        source = AsyncMock()
        source.aclose.side_effect = RuntimeError("audio device gone")
        track = LivekitLocalTrack(TrackKind.MICROPHONE, source=source)

        # Act
        track.close()
        results = await asyncio.gather(track.close_task, return_exceptions=True)
        await asyncio.sleep(0)

        # Assert
        assert isinstance(results[0], RuntimeError)
        assert track.closed is True
        assert track.close_task.done()
        assert track.close_task not in LivekitLocalTrack._closing
