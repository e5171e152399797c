"""Deadline wrapper for store operations."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from shortlinks.exceptions import DeadlineExceededError

__all__ = ["bounded"]

T = TypeVar("T")


async def bounded(operation: Awaitable[T], timeout: float) -> T:
    """Await ``operation`` for at most ``timeout`` seconds.

    On expiry the operation is cancelled and ``DeadlineExceededError`` is
    raised. A query already sent to the database may still complete there.
    """
    assert timeout > 0, f"timeout must be positive, got {timeout!r}"
    try:
        return await asyncio.wait_for(operation, timeout)
    except asyncio.TimeoutError as exc:
        raise DeadlineExceededError() from exc
