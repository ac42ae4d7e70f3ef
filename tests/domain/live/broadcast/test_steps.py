"""Tests for bounded_step deadlines and error mapping."""

import asyncio

import pytest

from rivnitz_live.domain.live.broadcast.errors import (
    ChannelJoinFailed,
    PersistenceError,
    PublishFailed,
)
from rivnitz_live.domain.live.broadcast.steps import bounded_step


async def _raise(exc: BaseException):
    raise exc


async def _sleep(seconds: float) -> str:
    await asyncio.sleep(seconds)
    return "done"


class TestBoundedStep:
    """Tests for bounded_step."""

    async def test_returns_result(self):
        """Should hand back the awaited value when the step finishes in time."""
        result = await bounded_step(
            _sleep(0), step="Channel join", timeout=1, error=ChannelJoinFailed
        )

        assert result == "done"

    async def test_deadline_exceeded(self):
        """Should raise the step error naming the deadline."""
        with pytest.raises(ChannelJoinFailed) as exc_info:
            await bounded_step(
                _sleep(1), step="Channel join", timeout=0.01, error=ChannelJoinFailed
            )

        assert exc_info.value.errmesg == "Channel join timed out after 0.01s"

    async def test_vendor_timeout_without_deadline(self):
        """Should keep the SDK's own timeout message when no deadline is set."""
        with pytest.raises(ChannelJoinFailed) as exc_info:
            await bounded_step(
                _raise(TimeoutError("handshake timed out")),
                step="Channel join",
                timeout=None,
                error=ChannelJoinFailed,
            )

        assert exc_info.value.errmesg == "handshake timed out"

    async def test_bare_vendor_timeout_without_deadline(self):
        """Should fall back to the step name when the SDK timeout has no message."""
        with pytest.raises(PublishFailed) as exc_info:
            await bounded_step(
                _raise(TimeoutError()), step="Track publish", timeout=None, error=PublishFailed
            )

        assert exc_info.value.errmesg == "Track publish timed out"

    async def test_live_errors_pass_through(self):
        """Should not rewrap errors already in the live taxonomy."""
        original = PersistenceError("Session record missing")

        with pytest.raises(PersistenceError) as exc_info:
            await bounded_step(
                _raise(original), step="Channel join", timeout=1, error=ChannelJoinFailed
            )

        assert exc_info.value is original

    async def test_other_errors_wrapped(self):
        """Should map a vendor error to the step error with its message."""
        with pytest.raises(ChannelJoinFailed) as exc_info:
            await bounded_step(
                _raise(ConnectionError("connection refused")),
                step="Channel join",
                timeout=1,
                error=ChannelJoinFailed,
            )

        assert exc_info.value.errmesg == "connection refused"
        assert isinstance(exc_info.value.__cause__, ConnectionError)
