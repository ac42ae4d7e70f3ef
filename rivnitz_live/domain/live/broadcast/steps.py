"""Deadline wrapper for the suspension points of the go-live flow."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from .errors import LiveSessionError

T = TypeVar("T")


async def bounded_step(
    awaitable: Awaitable[T],
    *,
    step: str,
    timeout: float | None,
    error: type[LiveSessionError],
) -> T:
    """Await one step with a deadline, mapping any failure to ``error``.

    A timeout cancels the pending call. Errors already in the live taxonomy pass
    through unchanged; anything else becomes ``error`` with the original message.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except TimeoutError as exc:
        if timeout is None:
            # Raised by the call itself, not by the deadline
            raise error(str(exc) or f"{step} timed out") from exc
        raise error(f"{step} timed out after {timeout:g}s") from exc
    except LiveSessionError:
        raise
    except Exception as exc:
        raise error(str(exc) or f"{step} failed ({type(exc).__name__})") from exc
