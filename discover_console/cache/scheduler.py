"""
Background warm-up of the preload cache shortly after startup.
"""
import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, List, Optional

from discover_console.errors import FetchError

if TYPE_CHECKING:
    from .manager import PreloadCache

logger = logging.getLogger("cache.scheduler")


class PreloadScheduler:
    """
    One-shot, delayed warm-up of a fixed set of keys.

    Order:
    1. popularity taxonomy (awaited, it enumerates the other types)
    2. popular games for the default type (awaited)
    3. top torrents, plus popular games for the first few other types,
       concurrently

    Every warm goes through the cache's accessors, so it is coalesced with
    any consumer asking for the same key. Failures are logged and absorbed.
    """

    def __init__(
        self,
        cache: "PreloadCache",
        delay_seconds: float = 1.0,
        default_type_id: int = 2,
        extra_type_count: int = 3,
    ):
        self._cache = cache
        self.delay_seconds = delay_seconds
        self.default_type_id = default_type_id
        self.extra_type_count = extra_type_count
        self._task: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        """
        Queue the warm-up on the running event loop.

        Calling start() again returns the task already queued.
        """
        if self._task is None:
            self._task = asyncio.ensure_future(self._run())
            logger.info(f"Background preload scheduled in {self.delay_seconds}s")
        return self._task

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    async def cancel(self) -> None:
        """Cancel the warm-up if it is still pending. Fetches already running complete."""
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Background preload cancelled")

    async def _run(self) -> None:
        await asyncio.sleep(self.delay_seconds)

        cache = self._cache
        types = await self._warm("popularity types", cache.popularity_types.get_or_fetch())
        await self._warm(
            f"popular games (type {self.default_type_id})",
            cache.popular_games.get_or_fetch(self.default_type_id),
        )

        pending: List[Awaitable[Any]] = [
            self._warm("top torrents", cache.top_torrents.get_or_fetch()),
        ]
        for popularity_type in (types or [])[:self.extra_type_count]:
            if popularity_type.id != self.default_type_id:
                pending.append(self._warm(
                    f"popular games (type {popularity_type.id})",
                    cache.popular_games.get_or_fetch(popularity_type.id),
                ))

        await asyncio.gather(*pending)
        logger.info("Background preload finished")

    async def _warm(self, label: str, fetch: Awaitable[Any]) -> Any:
        """Await one warm-up fetch, logging and absorbing any failure."""
        try:
            return await fetch
        except FetchError as e:
            logger.warning(f"Preload {label} failed: {e}")
        except Exception as e:
            logger.exception(f"Preload {label} failed unexpectedly: {e}")
        return None
