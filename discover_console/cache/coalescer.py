"""
Request coalescing to prevent duplicate backend calls.

When several consumers ask for the same key while a fetch is running,
only one backend call is made and every caller shares its outcome.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable

logger = logging.getLogger("cache.coalescer")


class RequestCoalescer:
    """
    Single-flight deduplication keyed by cache key.

    Pattern:
    - First caller for a key wraps the loader in a Task and registers it
    - Later callers for the same key get that same Task
    - The Task's done-callback drops the registration on success,
      failure or cancellation, so a crashed fetch never blocks a retry
    - Every caller awaiting the Task sees the same value or exception

    Registration happens synchronously, between awaits, so two callers on
    one event loop can never both see "nothing in flight".

    A fetch detached by ``forget`` keeps running. The next fetch for its
    key waits for it to settle before calling the loader, so at most one
    loader call per key is ever unresolved.

    Usage:
        coalescer = RequestCoalescer()
        result = await coalescer.get_or_fetch(
            key,
            lambda: loader.load(key),
        )
    """

    def __init__(self):
        self._in_flight: Dict[Hashable, asyncio.Task] = {}
        self._detached: Dict[Hashable, asyncio.Task] = {}
        self._stats = {
            "started": 0,
            "coalesced": 0,
            "queued": 0,
            "failed": 0,
        }

    def run(
        self,
        key: Hashable,
        loader_fn: Callable[[], Awaitable[Any]],
    ) -> asyncio.Task:
        """
        Join the in-flight fetch for ``key`` or start a new one.

        Must be called from a running event loop.

        Returns:
            The Task shared by every caller for this key
        """
        task = self._in_flight.get(key)
        if task is not None and not task.done():
            self._stats["coalesced"] += 1
            logger.debug(f"Coalescing request for {key}")
            return task

        previous = self._detached.get(key)
        if previous is not None and not previous.done():
            task = asyncio.ensure_future(self._after(previous, loader_fn))
            self._stats["queued"] += 1
            logger.debug(f"Queueing fetch for {key} behind a detached fetch")
        else:
            task = asyncio.ensure_future(loader_fn())
            logger.debug(f"Initiating fetch for {key}")
        self._in_flight[key] = task
        self._stats["started"] += 1
        task.add_done_callback(lambda t: self._finished(key, t))
        return task

    @staticmethod
    async def _after(previous: asyncio.Task, loader_fn: Callable[[], Awaitable[Any]]) -> Any:
        # wait() never raises the previous fetch's error and never cancels it
        await asyncio.wait([previous])
        return await loader_fn()

    async def get_or_fetch(
        self,
        key: Hashable,
        loader_fn: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Either join an existing in-flight fetch or initiate a new one.

        The shared Task is shielded: cancelling one caller never cancels
        the fetch other callers are waiting on.

        Raises:
            Exception: Any error from loader_fn is propagated to every caller
        """
        return await asyncio.shield(self.run(key, loader_fn))

    def _finished(self, key: Hashable, task: asyncio.Task) -> None:
        """Drop the in-flight marker and record failures."""
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if self._detached.get(key) is task:
            del self._detached[key]

        if task.cancelled():
            logger.debug(f"Fetch cancelled for {key}")
            return

        # Retrieving the exception here also keeps fire-and-forget fetches
        # from warning about unretrieved exceptions.
        error = task.exception()
        if error is not None:
            self._stats["failed"] += 1
            logger.warning(f"Fetch failed for {key}: {error}")

    def forget(self, predicate: Callable[[Hashable], bool]) -> int:
        """
        Detach in-flight fetches whose key matches ``predicate``.

        The fetches keep running and their current waiters still get the
        result. The next caller for those keys starts a new fetch, which
        calls its loader only after the detached one has settled.

        Returns:
            Number of fetches detached
        """
        detached = [k for k, t in self._in_flight.items() if predicate(k) and not t.done()]
        for key in detached:
            self._detached[key] = self._in_flight.pop(key)
        if detached:
            logger.debug(f"Detached {len(detached)} in-flight fetches")
        return len(detached)

    def is_in_flight(self, key: Hashable) -> bool:
        task = self._in_flight.get(key)
        return task is not None and not task.done()

    @property
    def active_requests(self) -> int:
        """Number of currently in-flight fetches."""
        return sum(1 for task in self._in_flight.values() if not task.done())

    def get_stats(self) -> Dict[str, Any]:
        """Get coalescer statistics."""
        return {
            "active_requests": self.active_requests,
            "active_keys": [str(k) for k, t in self._in_flight.items() if not t.done()],
            "detached_requests": sum(1 for t in self._detached.values() if not t.done()),
            **self._stats,
        }
