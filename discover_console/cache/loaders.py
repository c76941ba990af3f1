"""
Loaders: one per resource family.

A loader performs exactly one backend call for a key and, on success,
writes the value into the store with a fresh timestamp. It knows nothing
about TTLs or coalescing.
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Tuple

from discover_console.api_client import ConsoleApiClient
from discover_console.models import PopularityType, PopularGame, TorrentRelease
from .core import CacheKey, CacheStore, ResourceFamily

logger = logging.getLogger("cache.loaders")


class Loader(ABC):
    """Base class for resource loaders."""

    family: ResourceFamily

    def __init__(
        self,
        api: ConsoleApiClient,
        store: CacheStore,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._api = api
        self._store = store
        self._clock = clock

    @abstractmethod
    def key_for(self, *args: Any, **kwargs: Any) -> CacheKey:
        """Build the cache key for a consumer's arguments, applying family defaults."""

    @abstractmethod
    def _fetch(self, key: CacheKey) -> Any:
        """Blocking backend call for ``key``."""

    async def load(self, key: CacheKey) -> Tuple[Any, bool]:
        """
        Fetch ``key`` from the backend and store it.

        The blocking HTTP call runs in a worker thread; the store write
        happens back on the event loop in one synchronous step. A result
        whose key was invalidated mid-flight is returned but not stored.

        Returns:
            Tuple of (value, stored)

        Raises:
            FetchError: If the backend call fails. The store is untouched.
        """
        if key.family != self.family:
            raise ValueError(f"{type(self).__name__} cannot load {key}")

        generation = self._store.generation(key)
        logger.info(f"Fetching {key}")
        value = await asyncio.to_thread(self._fetch, key)
        if self._store.set(key, value, self._clock(), generation=generation) is None:
            logger.info(f"Discarding {key}: invalidated while fetching")
            return value, False
        return value, True


class PopularityTypesLoader(Loader):
    """Loads the popularity taxonomy (singleton key)."""

    family = ResourceFamily.POPULARITY_TYPES

    def key_for(self) -> CacheKey:
        return CacheKey(self.family)

    def _fetch(self, key: CacheKey) -> List[PopularityType]:
        return self._api.get_popularity_types()


class PopularGamesLoader(Loader):
    """Loads games ranked by one popularity type."""

    family = ResourceFamily.POPULAR_GAMES

    def __init__(
        self,
        api: ConsoleApiClient,
        store: CacheStore,
        clock: Callable[[], float] = time.monotonic,
        limit: int = 50,
    ):
        super().__init__(api, store, clock)
        self.default_limit = limit

    def key_for(self, type_id: int, limit: Optional[int] = None) -> CacheKey:
        return CacheKey(self.family, (int(type_id), limit or self.default_limit))

    def _fetch(self, key: CacheKey) -> List[PopularGame]:
        type_id, limit = key.params
        return self._api.get_popular_games(type_id, limit)


class TopTorrentsLoader(Loader):
    """Loads the most seeded releases for a query and recency window."""

    family = ResourceFamily.TOP_TORRENTS

    def __init__(
        self,
        api: ConsoleApiClient,
        store: CacheStore,
        clock: Callable[[], float] = time.monotonic,
        query: str = "game",
        limit: int = 50,
        max_age_days: int = 30,
    ):
        super().__init__(api, store, clock)
        self.default_query = query
        self.default_limit = limit
        self.default_max_age_days = max_age_days

    def key_for(
        self,
        query: Optional[str] = None,
        limit: Optional[int] = None,
        max_age_days: Optional[int] = None,
    ) -> CacheKey:
        return CacheKey(
            self.family,
            (
                query or self.default_query,
                limit or self.default_limit,
                max_age_days or self.default_max_age_days,
            ),
        )

    def _fetch(self, key: CacheKey) -> List[TorrentRelease]:
        query, limit, max_age_days = key.params
        return self._api.get_top_torrents(query, limit, max_age_days)
