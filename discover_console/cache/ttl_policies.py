"""
Freshness policy and TTL configuration.
"""
from typing import Dict, Optional

from .core import CacheEntry, ResourceFamily, ResourceState


# 5 minutes for every family unless overridden
DEFAULT_TTL_SECONDS = 300

# Per-family overrides (in seconds). Empty means every family uses the
# configured default.
TTL_CONFIG: Dict[ResourceFamily, int] = {}


def is_valid(entry: CacheEntry, ttl_seconds: float, now: float) -> bool:
    """
    Check whether a cached entry may still be served as authoritative.

    Args:
        entry: The cache entry
        ttl_seconds: Time-to-live for the entry's family
        now: Current time on the same clock as ``entry.fetched_at``

    Returns:
        False if the entry was never populated, else ``now - fetched_at < ttl``
    """
    if entry.fetched_at is None:
        return False
    return now - entry.fetched_at < ttl_seconds


def get_ttl_for_family(
    family: ResourceFamily,
    default: Optional[int] = None,
) -> int:
    """
    Get the TTL for a resource family.

    Args:
        family: The resource family
        default: Configured TTL used when the family has no override

    Returns:
        TTL in seconds
    """
    if family in TTL_CONFIG:
        return TTL_CONFIG[family]
    return default if default is not None else DEFAULT_TTL_SECONDS


def classify(entry: CacheEntry, ttl_seconds: float, now: float, in_flight: bool = False) -> ResourceState:
    """
    Map an entry onto the consumer-facing state machine.

    Empty -> Fetching -> Valid -> Stale -> Fetching -> ...
    """
    if in_flight:
        return ResourceState.FETCHING
    if entry.fetched_at is None:
        return ResourceState.EMPTY
    if is_valid(entry, ttl_seconds, now):
        return ResourceState.VALID
    return ResourceState.STALE
