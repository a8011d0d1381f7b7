from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Hashable, List, Sequence, Tuple

from pathshala.common.errors import PartialFailure

logger = logging.getLogger("common.utils")

Step = Tuple[str, Callable[[], Awaitable[Any]]]


def current_timestamp() -> datetime:
    """Get current UTC timestamp"""
    return datetime.now(timezone.utc)


class KeyedLocks:
    """One ``asyncio.Lock`` per key, dropped again once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: Dict[Hashable, Tuple[asyncio.Lock, int]] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock, users = self._locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[key] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)


def display_name_for(email: str | None, fallback: str = "ব্যবহারকারী") -> str:
    """Local part of an email address, used when a profile has no display name."""
    if not email:
        return fallback
    return email.split("@", 1)[0] or fallback


async def run_steps(
    operation: str,
    steps: Sequence[Step],
    *,
    attempts: int = 3,
    backoff: float = 0.2,
) -> List[str]:
    """Run independent remote calls in order, retrying each step.

    There is no rollback. When a step still fails after ``attempts`` tries a
    ``PartialFailure`` lists what completed and what did not.
    """
    completed: List[str] = []
    for index, (name, call) in enumerate(steps):
        last_exc: BaseException | None = None
        for attempt in range(1, max(1, attempts) + 1):
            try:
                await call()
                last_exc = None
                break
            except Exception as exc:  # noqa: BLE001
                last_exc = exc
                logger.warning(
                    "steps.retry operation=%s step=%s attempt=%d error=%s", operation, name, attempt, exc
                )
                if attempt < attempts and backoff > 0:
                    await asyncio.sleep(backoff * attempt)
        if last_exc is not None:
            remaining = [n for n, _ in steps[index:]]
            logger.error(
                "steps.partial_failure operation=%s completed=%s remaining=%s", operation, completed, remaining
            )
            raise PartialFailure(operation, completed, remaining, cause=last_exc) from last_exc
        completed.append(name)
    return completed
