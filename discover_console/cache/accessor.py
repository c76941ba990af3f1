"""
Consumer-facing access to one resource family.

UI code talks to the cache only through ResourceAccessor:
- get_current(): whatever is cached right now, for instant render
- get_or_fetch(): the authoritative value, fetching if stale or absent
- is_cached_and_valid(): freshness predicate
- invalidate(): drop entries after a local mutation
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from .core import CacheKey, CacheStore, ResourceState
from .coalescer import RequestCoalescer
from .loaders import Loader
from .ttl_policies import is_valid, classify

logger = logging.getLogger("cache.accessor")

Listener = Callable[[CacheKey], None]


class ResourceAccessor:
    """
    Read/fetch/invalidate surface for one resource family.

    Arguments to every method are the family's parameters, e.g.
    ``popular_games.get_or_fetch(2)`` or ``top_torrents.get_current("doom")``.
    Missing parameters fall back to the loader's defaults.
    """

    def __init__(
        self,
        loader: Loader,
        store: CacheStore,
        coalescer: RequestCoalescer,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        stats: Optional[Dict[str, int]] = None,
    ):
        self._loader = loader
        self._store = store
        self._coalescer = coalescer
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._listeners: List[Listener] = []
        self._stats = stats if stats is not None else {}

    @property
    def family(self):
        return self._loader.family

    def key(self, *args: Any, **kwargs: Any) -> CacheKey:
        """Cache key for the given parameters."""
        return self._loader.key_for(*args, **kwargs)

    # ----- reads -----

    def get_current(self, *args: Any, **kwargs: Any) -> Optional[Any]:
        """Current cached value (possibly stale), or None if never populated."""
        return self._store.get(self.key(*args, **kwargs)).value

    def is_cached_and_valid(self, *args: Any, **kwargs: Any) -> bool:
        """True if a value is cached and within its TTL."""
        entry = self._store.get(self.key(*args, **kwargs))
        return is_valid(entry, self.ttl_seconds, self._clock())

    def state(self, *args: Any, **kwargs: Any) -> ResourceState:
        """Where this key sits in the Empty/Fetching/Valid/Stale cycle."""
        key = self.key(*args, **kwargs)
        return classify(
            self._store.get(key),
            self.ttl_seconds,
            self._clock(),
            in_flight=self._coalescer.is_in_flight(key),
        )

    async def get_or_fetch(self, *args: Any, **kwargs: Any) -> Any:
        """
        Get the cached value if valid, otherwise fetch it.

        Concurrent calls for the same key share one backend call.

        Raises:
            FetchError: If the fetch fails. Any previously cached value is kept.
        """
        key = self.key(*args, **kwargs)
        entry = self._store.get(key)
        if is_valid(entry, self.ttl_seconds, self._clock()):
            logger.debug(f"CACHE HIT (fresh): {key}")
            self._bump("hits")
            return entry.value

        logger.info(f"CACHE {'MISS' if entry.is_empty else 'EXPIRED'}: {key}")
        self._bump("misses")
        return await self._coalescer.get_or_fetch(key, lambda: self._load(key))

    def get_or_revalidate(self, *args: Any, **kwargs: Any) -> Optional[Any]:
        """
        Stale-while-revalidate read.

        Returns the current value immediately. If it is stale or absent, a
        coalesced background refresh is started; its failure is logged by
        the coalescer and never raised here.
        """
        key = self.key(*args, **kwargs)
        entry = self._store.get(key)
        if is_valid(entry, self.ttl_seconds, self._clock()):
            self._bump("hits")
            return entry.value

        if entry.is_empty:
            self._bump("misses")
        else:
            logger.info(f"CACHE HIT (stale, revalidating): {key}")
            self._bump("hits_stale")
        self._coalescer.run(key, lambda: self._load(key))
        return entry.value

    async def _load(self, key: CacheKey) -> Any:
        value, stored = await self._loader.load(key)
        if stored:
            self._bump("fetches")
            self._notify(key)
        return value

    # ----- invalidation -----

    def invalidate(self, *params: Any) -> int:
        """
        Drop cached entries for this family.

        With no arguments every entry of the family is dropped; otherwise
        every entry whose parameters start with ``params`` (so
        ``popular_games.invalidate(2)`` drops type 2 at every limit).
        Fetches already running for those keys are detached and their
        results are not stored. The next read goes to the backend once the
        detached fetch has settled.

        Returns:
            Number of entries removed
        """
        prefix = tuple(params)
        removed = self._store.clear_namespace(self.family, prefix)
        self._coalescer.forget(lambda k: isinstance(k, CacheKey) and k.matches(self.family, prefix))
        if removed:
            logger.info(f"Invalidated {len(removed)} {self.family.value} entries")
        for key in removed:
            self._notify(key)
        return len(removed)

    # ----- reactive state -----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback invoked with the key after each fetch or invalidation.

        Returns:
            A function that unregisters the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, key: CacheKey) -> None:
        for listener in list(self._listeners):
            try:
                listener(key)
            except Exception as e:
                logger.exception(f"Cache listener failed for {key}: {e}")

    def _bump(self, stat: str) -> None:
        self._stats[stat] = self._stats.get(stat, 0) + 1
