"""
Preload cache with per-key TTL, request coalescing and background warm-up.
"""
from .core import CacheEntry, CacheKey, CacheMeta, CacheStore, ResourceFamily, ResourceState
from .ttl_policies import TTL_CONFIG, get_ttl_for_family, is_valid, classify
from .coalescer import RequestCoalescer
from .loaders import Loader, PopularityTypesLoader, PopularGamesLoader, TopTorrentsLoader
from .accessor import ResourceAccessor
from .scheduler import PreloadScheduler
from .manager import PreloadCache

__all__ = [
    # Core types
    "CacheEntry",
    "CacheKey",
    "CacheMeta",
    "CacheStore",
    "ResourceFamily",
    "ResourceState",
    # Freshness policy
    "TTL_CONFIG",
    "get_ttl_for_family",
    "is_valid",
    "classify",
    # Coalescing
    "RequestCoalescer",
    # Loaders
    "Loader",
    "PopularityTypesLoader",
    "PopularGamesLoader",
    "TopTorrentsLoader",
    # Consumer surface
    "ResourceAccessor",
    "PreloadScheduler",
    "PreloadCache",
]
