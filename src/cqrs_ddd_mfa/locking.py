"""InMemoryEnrollmentLock: single-process implementation of IEnrollmentLock."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import EnrollmentLockTimeoutError
from .ports import IEnrollmentLock

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@dataclass
class _LockEntry:
    """Lock for one user plus the number of tasks holding or awaiting it."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    ref_count: int = 0


class InMemoryEnrollmentLock(IEnrollmentLock):
    """
    Keyed asyncio lock, one per user id.

    Entries are dropped as soon as nobody holds or waits for them, so the
    map only grows with the number of users being served concurrently.
    Waiters are served in arrival order (``asyncio.Lock`` is fair).
    """

    def __init__(self, *, timeout: float = 10.0) -> None:
        self.timeout = timeout
        self._entries: dict[str, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        entry = self._entries.get(user_id)
        if entry is None:
            entry = self._entries[user_id] = _LockEntry()
        entry.ref_count += 1
        try:
            try:
                await asyncio.wait_for(entry.lock.acquire(), timeout=self.timeout)
            except asyncio.TimeoutError as err:
                logger.warning(
                    "Enrollment lock timed out after %.1fs for user %s",
                    self.timeout,
                    user_id,
                )
                raise EnrollmentLockTimeoutError(user_id, self.timeout) from err
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.ref_count -= 1
            if entry.ref_count == 0:
                self._entries.pop(user_id, None)

    def is_held(self, user_id: str) -> bool:
        entry = self._entries.get(user_id)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._entries)


__all__: list[str] = ["InMemoryEnrollmentLock"]
