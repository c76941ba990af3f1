"""
Core cache data structures.
"""
from dataclasses import dataclass
from typing import Any, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar
from enum import Enum

T = TypeVar("T")


class ResourceFamily(Enum):
    """Resource families held by the preload cache."""
    POPULARITY_TYPES = "popularity_types"   # singleton taxonomy
    POPULAR_GAMES = "popular_games"         # keyed by (type_id, limit)
    TOP_TORRENTS = "top_torrents"           # keyed by (query, limit, max_age_days)


class ResourceState(Enum):
    """Lifecycle state of one cache key, as seen by a consumer."""
    EMPTY = "empty"
    FETCHING = "fetching"
    VALID = "valid"
    STALE = "stale"


@dataclass(frozen=True)
class CacheKey:
    """
    Identifies one cached resource.

    ``params`` holds every parameter that affects the response, so two
    requests that differ in any of them never share a slot.
    """
    family: ResourceFamily
    params: Tuple[Any, ...] = ()

    def matches(self, family: ResourceFamily, params_prefix: Tuple[Any, ...] = ()) -> bool:
        """True if this key is in ``family`` and its params start with ``params_prefix``."""
        return (
            self.family == family
            and self.params[:len(params_prefix)] == tuple(params_prefix)
        )

    def __str__(self) -> str:
        if not self.params:
            return self.family.value
        return ":".join([self.family.value] + [str(p) for p in self.params])


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """
    The last successfully fetched value for a key and when it was fetched.

    ``value is None and fetched_at is None`` means never populated.
    """
    value: Optional[T] = None
    fetched_at: Optional[float] = None  # monotonic seconds

    @property
    def is_empty(self) -> bool:
        return self.fetched_at is None

    def age_seconds(self, now: float) -> Optional[float]:
        """Seconds since the value was fetched, or None if never populated."""
        if self.fetched_at is None:
            return None
        return now - self.fetched_at


EMPTY_ENTRY: CacheEntry = CacheEntry()


class CacheStore:
    """
    Per-key storage of the last fetched value.

    Pure data: no network, no TTL, no coalescing. Every method is
    synchronous so a read-modify-write never spans an await.

    Each key carries an invalidation generation. A writer reads it with
    ``generation(key)`` before fetching and passes it to ``set``; if the
    key was cleared in between, the write is dropped, so a fetch started
    before an invalidation cannot resurrect pre-invalidation data. Keys
    whose generation was read are tracked even while nothing is stored
    for them, so clearing a prefix also reaches fetches still in flight.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._generations: Dict[CacheKey, int] = {}

    def get(self, key: CacheKey) -> CacheEntry:
        """Get the entry for ``key`` (an empty entry if never populated)."""
        return self._entries.get(key, EMPTY_ENTRY)

    def generation(self, key: CacheKey) -> int:
        """Invalidation counter for ``key``."""
        return self._generations.setdefault(key, 0)

    def set(
        self,
        key: CacheKey,
        value: Any,
        now: float,
        generation: Optional[int] = None,
    ) -> Optional[CacheEntry]:
        """
        Overwrite value and timestamp together.

        ``fetched_at`` never moves backwards.

        Returns:
            The stored entry, or None if ``generation`` is outdated
        """
        if generation is not None and generation != self._generations.get(key, 0):
            return None
        previous = self._entries.get(key)
        fetched_at = now
        if previous is not None and previous.fetched_at is not None:
            fetched_at = max(previous.fetched_at, now)
        entry = CacheEntry(value=value, fetched_at=fetched_at)
        self._entries[key] = entry
        return entry

    def _invalidate(self, keys: List[CacheKey]) -> None:
        for key in keys:
            self._generations[key] = self._generations.get(key, 0) + 1

    def clear(self, key: CacheKey) -> bool:
        """
        Remove one entry.

        Returns:
            True if the entry existed
        """
        self._invalidate([key])
        return self._entries.pop(key, None) is not None

    def clear_namespace(
        self,
        family: ResourceFamily,
        params_prefix: Tuple[Any, ...] = (),
    ) -> List[CacheKey]:
        """Remove every entry of ``family`` whose params start with ``params_prefix``."""
        self._invalidate([k for k in self._generations if k.matches(family, params_prefix)])
        removed = [k for k in self._entries if k.matches(family, params_prefix)]
        for key in removed:
            del self._entries[key]
        return removed

    def clear_all(self) -> int:
        """
        Remove all entries.

        Returns:
            Number of entries cleared
        """
        self._invalidate(list(self._generations))
        count = len(self._entries)
        self._entries.clear()
        return count

    def keys(self) -> List[CacheKey]:
        return list(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[CacheKey]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class CacheMeta:
    """
    Metadata about a cache access, included in API responses.
    """
    cache_source: str  # "fresh", "stale", or "upstream"
    key: Optional[str] = None
    ttl_seconds: Optional[int] = None
    age_seconds: Optional[float] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON response."""
        result = {"cacheSource": self.cache_source}
        if self.key:
            result["_debug"] = {
                "key": self.key,
                "ttl": self.ttl_seconds,
                "age": round(self.age_seconds, 1) if self.age_seconds is not None else None,
            }
        return result
