"""
Generation Lock Manager

Per-key singleflight coordination. The first caller for a key becomes the
leader and runs the pipeline; concurrent callers for the same key become
followers and wait on the leader's future. The entry is removed as soon as
the leader settles, so later requests start fresh.

Follower policy: a follower receives exactly what the leader produced. If
the leader fails, every follower re-raises the leader's exception; followers
never start their own generation.
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional, Union

from overlay_packs.core.exceptions import LockTimeoutError
from overlay_packs.models.overlay import OverlayPack
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class _Entry:
    future: "asyncio.Future[OverlayPack]"
    followers: int = 0


class LeaderHandle:
    """Handle held by the single caller that runs the pipeline for a key."""

    is_leader = True

    def __init__(self, manager: "GenerationLockManager", key: str, entry: _Entry):
        self._manager = manager
        self._entry = entry
        self.key = key

    @property
    def settled(self) -> bool:
        return self._entry.future.done()

    @property
    def follower_count(self) -> int:
        return self._entry.followers

    async def publish(self, pack: OverlayPack) -> None:
        """Deliver the pack to every follower and release the key."""
        if not self._entry.future.done():
            self._entry.future.set_result(pack)
        await self._manager._release(self.key, self._entry)

    async def fail(self, error: BaseException) -> None:
        """Deliver the error to every follower and release the key."""
        future = self._entry.future
        if not future.done():
            future.set_exception(error)
            # Mark retrieved so a leader without followers does not trigger
            # "exception was never retrieved" warnings.
            future.exception()
        await self._manager._release(self.key, self._entry)


class FollowerHandle:
    """Handle held by a caller that joined an in-flight generation."""

    is_leader = False

    def __init__(self, key: str, entry: _Entry):
        self._entry = entry
        self.key = key

    async def wait(self, timeout: Optional[float] = None) -> OverlayPack:
        """
        Wait for the leader's result.

        Args:
            timeout: Seconds to wait before giving up

        Returns:
            The pack published by the leader.

        Raises:
            The leader's exception if it failed, or LockTimeoutError if the
            wait itself exceeds ``timeout``.
        """
        try:
            return await asyncio.wait_for(
                asyncio.shield(self._entry.future),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise LockTimeoutError(
                f"Timed out waiting for in-flight generation of {self.key}",
                cache_key=self.key,
                deadline_seconds=timeout,
            ) from e


Handle = Union[LeaderHandle, FollowerHandle]


class GenerationLockManager:
    """
    Map of in-flight generation futures guarded by one asyncio.Lock.

    Owned by an orchestrator instance; nothing here is module-level state.
    """

    def __init__(self):
        self._entries: Dict[str, _Entry] = {}
        self._lock = asyncio.Lock()

    async def acquire_or_join(self, key: str) -> Handle:
        """
        Become the leader for ``key`` or join the current leader.

        Exactly one of any number of concurrent callers receives a
        LeaderHandle; the rest receive FollowerHandles bound to the same
        future.
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.future.done():
                entry.followers += 1
                logger.info(
                    "overlay.lock.joined",
                    cache_key=key,
                    followers=entry.followers,
                )
                return FollowerHandle(key, entry)

            entry = _Entry(future=asyncio.get_running_loop().create_future())
            self._entries[key] = entry
            logger.debug("overlay.lock.acquired", cache_key=key)
            return LeaderHandle(self, key, entry)

    async def _release(self, key: str, entry: _Entry) -> None:
        async with self._lock:
            if self._entries.get(key) is entry:
                del self._entries[key]
        logger.debug("overlay.lock.released", cache_key=key, followers=entry.followers)

    def in_flight(self, key: str) -> bool:
        """Whether a generation for ``key`` is currently running."""
        entry = self._entries.get(key)
        return entry is not None and not entry.future.done()

    def __len__(self) -> int:
        return len(self._entries)
