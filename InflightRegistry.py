import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Dict

logger = logging.getLogger(__name__)


# IN-FLIGHT REQUEST DEDUPLICATION
class InflightRegistry:
    """Collapses concurrent requests for the same key into one execution.

    A key counts as present only while its operation has not settled. Every
    caller that asks for the key during that window gets the same future,
    and therefore the same result or the same exception. Once the future
    settles the key is free and the next call starts fresh.

    Only use this for idempotent reads: joiners share whatever the first
    caller's operation did.

    Single event loop only. ``acquire_or_join`` must be called from a
    coroutine running on the loop that owns the pending futures; calls from
    a thread without a running loop, or from another loop, raise
    ``RuntimeError``. The lock only keeps ``size``/``stats`` consistent for
    readers on other threads.
    """

    def __init__(self):
        self.active_requests: Dict[str, asyncio.Future] = {}
        self.lock = threading.RLock()
        self.started = 0
        self.joined = 0

    def acquire_or_join(self, key: str, start: Callable[[], Awaitable[Any]]) -> asyncio.Future:
        """Return the pending future for ``key``, starting it if needed.

        Must stay free of ``await``: the lookup and the insert below have to
        happen without a suspension point between them.
        """
        loop = asyncio.get_running_loop()
        with self.lock:
            existing = self.active_requests.get(key)
            # A finished future whose cleanup callback has not run yet is stale.
            if existing is not None and not existing.done():
                if existing.get_loop() is not loop:
                    raise RuntimeError(f"in-flight request {key!r} belongs to another event loop")
                self.joined += 1
                logger.debug("[DEDUP] Joining in-flight request: %s", key)
                return existing

            future = asyncio.ensure_future(start(), loop=loop)
            self.active_requests[key] = future
            self.started += 1
            # Registered first, so it runs before any awaiting caller resumes.
            future.add_done_callback(lambda settled: self._settle(key, settled))

        logger.debug("[DEDUP] Started new request: %s", key)
        return future

    async def get_or_execute(self, key: str, coro_func, *args, **kwargs):
        future = self.acquire_or_join(key, lambda: coro_func(*args, **kwargs))
        # A cancelled caller must not cancel the execution other joiners wait on.
        return await asyncio.shield(future)

    def _settle(self, key: str, future: asyncio.Future):
        with self.lock:
            if self.active_requests.get(key) is future:
                del self.active_requests[key]
        if future.cancelled():
            logger.debug("[DEDUP] Request cancelled: %s", key)
        elif future.exception() is not None:
            logger.debug("[DEDUP] Request failed: %s (%r)", key, future.exception())
        else:
            logger.debug("[DEDUP] Request completed: %s", key)

    def _pending_count(self) -> int:
        return sum(1 for future in self.active_requests.values() if not future.done())

    def size(self) -> int:
        with self.lock:
            return self._pending_count()

    def stats(self) -> Dict[str, int]:
        with self.lock:
            return {
                "in_flight": self._pending_count(),
                "started": self.started,
                "joined": self.joined,
            }
