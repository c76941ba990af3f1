"""
Preload cache service: composes the store, coalescer, loaders, accessors
and the startup scheduler into one instance.
"""
import logging
import time
from typing import Any, Callable, Dict, Optional

from discover_console.api_client import ConsoleApiClient
from config.settings import Settings, settings as default_settings
from .core import CacheStore, ResourceFamily
from .coalescer import RequestCoalescer
from .loaders import PopularityTypesLoader, PopularGamesLoader, TopTorrentsLoader
from .accessor import ResourceAccessor
from .scheduler import PreloadScheduler
from .ttl_policies import get_ttl_for_family

logger = logging.getLogger("cache.manager")


class PreloadCache:
    """
    Client-resident cache of discover data.

    - popularity_types: the popularity taxonomy
    - popular_games: ranked games per popularity type
    - top_torrents: most seeded releases per (query, limit, max age)

    Build one with ``PreloadCache.create()`` at application start and pass
    it to whatever needs it. Instances share nothing, so tests can create
    as many as they like.
    """

    def __init__(
        self,
        api: ConsoleApiClient,
        config: Settings,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._api = api
        self._config = config
        self._clock = clock
        self.store = CacheStore()
        self.coalescer = RequestCoalescer()

        self._stats: Dict[str, int] = {
            "hits": 0,
            "hits_stale": 0,
            "misses": 0,
            "fetches": 0,
        }

        self.popularity_types = self._accessor(
            PopularityTypesLoader(api, self.store, clock),
        )
        self.popular_games = self._accessor(
            PopularGamesLoader(api, self.store, clock, limit=config.popular_games_limit),
        )
        self.top_torrents = self._accessor(
            TopTorrentsLoader(
                api,
                self.store,
                clock,
                query=config.top_torrents_query,
                limit=config.top_torrents_limit,
                max_age_days=config.top_torrents_max_age_days,
            ),
        )

        self.scheduler = PreloadScheduler(
            self,
            delay_seconds=config.preload_delay_seconds,
            default_type_id=config.preload_default_popularity_type,
            extra_type_count=config.preload_extra_types,
        )

    @property
    def config(self) -> Settings:
        return self._config

    @classmethod
    def create(
        cls,
        config: Optional[Settings] = None,
        api: Optional[ConsoleApiClient] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> "PreloadCache":
        """
        Create an isolated cache instance.

        Args:
            config: Settings (defaults to the environment-loaded settings)
            api: Backend client (defaults to one built from ``config``)
            clock: Monotonic clock in seconds, injectable for tests
        """
        config = config or default_settings
        api = api or ConsoleApiClient(config=config)
        cache = cls(api, config, clock or time.monotonic)
        logger.info(f"Preload cache created (ttl={config.cache_ttl_seconds}s)")
        return cache

    def _accessor(self, loader) -> ResourceAccessor:
        ttl = get_ttl_for_family(loader.family, self._config.cache_ttl_seconds)
        return ResourceAccessor(
            loader,
            self.store,
            self.coalescer,
            ttl_seconds=ttl,
            clock=self._clock,
            stats=self._stats,
        )

    def accessor(self, family: ResourceFamily) -> ResourceAccessor:
        """Look up the accessor for a resource family."""
        return {
            ResourceFamily.POPULARITY_TYPES: self.popularity_types,
            ResourceFamily.POPULAR_GAMES: self.popular_games,
            ResourceFamily.TOP_TORRENTS: self.top_torrents,
        }[family]

    def start_preload(self):
        """Queue the background warm-up. Must be called from a running event loop."""
        return self.scheduler.start()

    def invalidate_popular_games(self, type_id: Optional[int] = None) -> int:
        """
        Drop cached popular games, e.g. after a game was added to the library.

        Returns:
            Number of entries removed
        """
        if type_id is None:
            return self.popular_games.invalidate()
        return self.popular_games.invalidate(type_id)

    def invalidate_all(self) -> int:
        """
        Drop every cached entry.

        Returns:
            Number of entries removed
        """
        return sum(
            self.accessor(family).invalidate() for family in ResourceFamily
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total_hits = self._stats["hits"] + self._stats["hits_stale"]
        total_requests = total_hits + self._stats["misses"]
        hit_rate = (total_hits / total_requests * 100) if total_requests > 0 else 0

        return {
            "entries": len(self.store),
            "keys": [str(k) for k in self.store.keys()],
            **self._stats,
            "hit_rate_percent": round(hit_rate, 1),
            "coalescer": self.coalescer.get_stats(),
            "preload": {
                "started": self.scheduler.started,
                "done": self.scheduler.done,
            },
        }

    async def aclose(self) -> None:
        """Cancel a pending warm-up and release the HTTP session."""
        await self.scheduler.cancel()
        self._api.close()
