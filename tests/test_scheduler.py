"""
Tests for the background preload scheduler.
"""
import asyncio

import pytest

from discover_console.cache import PreloadCache
from discover_console.errors import FetchError
from config.settings import Settings


@pytest.mark.asyncio
async def test_preload_warms_keys_in_order(cache, fake_api):
    await cache.start_preload()

    names = [name for name, _ in fake_api.history]
    assert names[:2] == ["get_popularity_types", "get_popular_games"]
    assert fake_api.history[1] == ("get_popular_games", (2, 50))

    # Torrents and extra types run concurrently after the default type
    assert set(fake_api.history[2:]) == {
        ("get_top_torrents", ("game", 50, 30)),
        ("get_popular_games", (1, 50)),
        ("get_popular_games", (3, 50)),
    }


@pytest.mark.asyncio
async def test_preload_populates_cache(cache):
    await cache.start_preload()

    assert cache.popularity_types.is_cached_and_valid()
    assert cache.popular_games.is_cached_and_valid(2)
    assert cache.popular_games.is_cached_and_valid(1)
    assert cache.popular_games.is_cached_and_valid(3)
    assert cache.top_torrents.is_cached_and_valid()
    # Only the first three types are considered
    assert cache.popular_games.get_current(4) is None
    assert cache.scheduler.done


@pytest.mark.asyncio
async def test_extra_type_count_is_configurable(fake_api, clock):
    config = Settings(preload_enabled=False, preload_delay_seconds=0.0, preload_extra_types=5)
    cache = PreloadCache.create(config, api=fake_api, clock=clock)

    await cache.start_preload()

    assert fake_api.calls["get_popular_games"] == 5


@pytest.mark.asyncio
async def test_preload_failures_are_absorbed(cache, fake_api):
    fake_api.failures["get_popularity_types"] = FetchError("down")
    fake_api.failures["get_top_torrents"] = FetchError("down")

    await cache.start_preload()

    # Without a taxonomy only the default type is warmed
    assert fake_api.calls["get_popular_games"] == 1
    assert cache.popular_games.is_cached_and_valid(2)
    assert cache.popularity_types.get_current() is None
    assert cache.scheduler.done


@pytest.mark.asyncio
async def test_preload_skips_keys_already_valid(cache, fake_api):
    await cache.popularity_types.get_or_fetch()
    await cache.popular_games.get_or_fetch(2)

    await cache.start_preload()

    assert fake_api.calls["get_popularity_types"] == 1
    assert fake_api.history.count(("get_popular_games", (2, 50))) == 1


@pytest.mark.asyncio
async def test_preload_joins_consumer_fetch(cache, fake_api):
    consumer = asyncio.ensure_future(cache.popularity_types.get_or_fetch())
    await asyncio.gather(cache.start_preload(), consumer)

    assert fake_api.calls["get_popularity_types"] == 1


@pytest.mark.asyncio
async def test_start_is_one_shot(cache):
    first = cache.start_preload()
    second = cache.start_preload()
    assert first is second
    await first


@pytest.mark.asyncio
async def test_cancel_before_delay_elapses(fake_api, clock):
    config = Settings(preload_enabled=False, preload_delay_seconds=30.0)
    cache = PreloadCache.create(config, api=fake_api, clock=clock)

    cache.start_preload()
    await asyncio.sleep(0)
    await cache.scheduler.cancel()

    assert cache.scheduler.done
    assert sum(fake_api.calls.values()) == 0
