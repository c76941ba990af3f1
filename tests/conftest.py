"""
Shared fixtures: a fake backend API and a controllable clock.
"""
import threading
from collections import Counter
from typing import Dict, List, Optional, Tuple

import pytest

from discover_console.cache import PreloadCache
from discover_console.models import GameSummary, PopularityType, PopularGame, TorrentRelease
from config.settings import Settings


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeApi:
    """
    Stand-in for ConsoleApiClient.

    - calls: number of backend requests per method
    - history: (method, args) in call order
    - max_active: most concurrent unresolved requests per (method, *args)
    - failures: method name -> exception to raise
    - gate: when set to a threading.Event, requests block until it is set
    - library: igdb ids reported as already in the library
    """

    def __init__(self):
        self.calls: Counter = Counter()
        self.active: Counter = Counter()
        self.max_active: Counter = Counter()
        self.history: List[Tuple[str, tuple]] = []
        self.failures: Dict[str, Exception] = {}
        self.gate: Optional[threading.Event] = None
        self.library = set()
        self.closed = False
        self.types = [
            PopularityType(id=1, name="IGDB Visits", popularity_source=121),
            PopularityType(id=2, name="Want to Play", popularity_source=121),
            PopularityType(id=3, name="Playing", popularity_source=121),
            PopularityType(id=4, name="Played", popularity_source=121),
            PopularityType(id=5, name="Steam 24hr Peak Players", popularity_source=1),
        ]
        self._lock = threading.Lock()

    def _enter(self, name: str, *args) -> None:
        call = (name,) + args
        with self._lock:
            self.calls[name] += 1
            self.history.append((name, args))
            self.active[call] += 1
            self.max_active[call] = max(self.max_active[call], self.active[call])
        try:
            if self.gate is not None:
                self.gate.wait(timeout=5)
            error = self.failures.get(name)
            if error is not None:
                raise error
        finally:
            with self._lock:
                self.active[call] -= 1

    def get_popularity_types(self) -> List[PopularityType]:
        self._enter("get_popularity_types")
        return list(self.types)

    def get_popular_games(self, type_id: int, limit: int) -> List[PopularGame]:
        self._enter("get_popular_games", type_id, limit)
        return [
            PopularGame(
                game=GameSummary(igdb_id=100 + i, title=f"Game {i}"),
                popularity_value=1.0 - i * 0.1,
                popularity_type=type_id,
                rank=i + 1,
                in_library=(100 + i) in self.library,
            )
            for i in range(min(limit, 3))
        ]

    def get_top_torrents(self, query: str, limit: int, max_age_days: int) -> List[TorrentRelease]:
        self._enter("get_top_torrents", query, limit, max_age_days)
        return [
            TorrentRelease(
                title=f"{query} release {i}",
                indexer="fake",
                size=1024,
                seeders=100 - i,
                leechers=i,
                published_at="2026-10-01T00:00:00Z",
            )
            for i in range(min(limit, 2))
        ]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_api():
    api = FakeApi()
    yield api
    # Never leave a worker thread blocked
    if api.gate is not None:
        api.gate.set()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return Settings(
        cache_ttl_seconds=300,
        preload_enabled=False,
        preload_delay_seconds=0.0,
    )


@pytest.fixture
def cache(config, fake_api, clock):
    return PreloadCache.create(config, api=fake_api, clock=clock)
