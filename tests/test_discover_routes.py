"""
Discover endpoints served from the preload cache
"""
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from discover_console.cache import PreloadCache
from discover_console.errors import FetchError
from discover_console.main import app


@pytest.fixture
def app_cache(config, fake_api, clock):
    return PreloadCache.create(config, api=fake_api, clock=clock)


@pytest.fixture
def client(app_cache):
    app.state.cache = app_cache
    with TestClient(app) as test_client:
        yield test_client


def test_popular_games_first_upstream_then_fresh(client, fake_api):
    first = client.get("/api/discover/popular?type=2")
    second = client.get("/api/discover/popular?type=2")

    assert first.status_code == 200
    assert first.json()["meta"]["cacheSource"] == "upstream"
    assert second.json()["meta"]["cacheSource"] == "fresh"
    assert second.json()["data"][0]["game"]["igdbId"] == 100
    assert fake_api.calls["get_popular_games"] == 1


def test_popularity_types_endpoint(client):
    response = client.get("/api/discover/popularity-types")
    data = response.json()
    assert response.status_code == 200
    assert data["success"] is True
    assert data["meta"]["totalResults"] == 5
    assert data["data"][1] == {"id": 2, "name": "Want to Play", "popularity_source": 121}


def test_torrents_endpoint_passes_parameters(client, fake_api):
    response = client.get("/api/discover/torrents?query=doom&limit=5&maxAge=7")
    assert response.status_code == 200
    assert fake_api.history == [("get_top_torrents", ("doom", 5, 7))]
    assert response.json()["data"][0]["title"] == "doom release 0"


def test_invalid_popularity_type_rejected(client):
    response = client.get("/api/discover/popular?type=9")
    assert response.status_code == 422


def test_stale_value_served_when_refresh_fails(client, fake_api, clock):
    client.get("/api/discover/popularity-types")
    clock.advance(301)
    fake_api.failures["get_popularity_types"] = FetchError("backend down")

    response = client.get("/api/discover/popularity-types")

    assert response.status_code == 200
    assert response.json()["meta"]["cacheSource"] == "stale"
    assert len(response.json()["data"]) == 5


def test_failure_with_nothing_cached_returns_502(client, fake_api):
    fake_api.failures["get_top_torrents"] = FetchError("indexers unreachable")

    response = client.get("/api/discover/torrents")

    assert response.status_code == 502


def test_invalidate_popular_games_by_type(client, fake_api):
    client.get("/api/discover/popular?type=2")
    client.get("/api/discover/popular?type=3")

    response = client.post("/api/discover/cache/invalidate", json={"family": "popular_games", "type_id": 2})
    assert response.json() == {"success": True, "removed": 1}

    client.get("/api/discover/popular?type=2")
    assert fake_api.calls["get_popular_games"] == 3


def test_invalidate_everything(client):
    client.get("/api/discover/popularity-types")
    client.get("/api/discover/torrents")

    response = client.post("/api/discover/cache/invalidate", json={})
    assert response.json()["removed"] == 2


def test_cache_stats(client):
    client.get("/api/discover/popularity-types")
    stats = client.get("/cache/stats").json()
    assert stats["entries"] == 1
    assert stats["preload"]["started"] is False


def test_shutdown_closes_cache(app_cache, fake_api):
    app.state.cache = app_cache
    with TestClient(app):
        pass
    assert fake_api.closed is True


def test_startup_configures_logging(app_cache, config):
    app.state.cache = app_cache
    with patch("discover_console.main.logging.basicConfig") as basic_config:
        with TestClient(app):
            pass
    basic_config.assert_called_once_with(level=config.log_level)
