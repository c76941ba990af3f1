"""
Discover Console - Main FastAPI Application
Serves discover listings to the UI from the in-process preload cache.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request

from discover_console.cache import CacheMeta, PreloadCache, ResourceAccessor, ResourceFamily
from discover_console.errors import FetchError
from discover_console.schemas import DiscoverResponse, InvalidateRequest, InvalidateResponse
from config.settings import settings

logger = logging.getLogger("discover_console")

# Version tracking
APP_VERSION = "v0.3.0"
APP_NAME = "Discover Console"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, create the preload cache and queue the warm-up."""
    cache = getattr(app.state, "cache", None)
    if cache is None:
        cache = PreloadCache.create(settings)
        app.state.cache = cache
    logging.basicConfig(level=cache.config.log_level)
    if cache.config.preload_enabled:
        cache.start_preload()
    try:
        yield
    finally:
        await cache.aclose()
        app.state.cache = None


app = FastAPI(
    title=APP_NAME,
    description="Discover listings with background preload",
    version=APP_VERSION,
    lifespan=lifespan,
)


def get_cache(request: Request) -> PreloadCache:
    """The cache owned by this application instance."""
    return request.app.state.cache


async def serve_listing(accessor: ResourceAccessor, *params: Any) -> DiscoverResponse:
    """
    Read a listing through the cache.

    On a failed fetch the last known value is served as stale; with nothing
    cached the failure becomes a 502.
    """
    key = accessor.key(*params)
    was_valid = accessor.is_cached_and_valid(*params)
    try:
        items = await accessor.get_or_fetch(*params)
        source = "fresh" if was_valid else "upstream"
    except FetchError as e:
        items = accessor.get_current(*params)
        if items is None:
            logger.error(f"Fetch failed for {key} with nothing cached: {e}")
            raise HTTPException(status_code=502, detail=str(e))
        logger.warning(f"Serving stale {key} after failed fetch: {e}")
        source = "stale"

    meta = CacheMeta(cache_source=source, key=str(key), ttl_seconds=int(accessor.ttl_seconds))
    return DiscoverResponse(
        data=[item.to_dict() for item in items],
        meta={**meta.to_dict(), "totalResults": len(items)},
    )


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/version")
def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
    }


@app.get("/cache/stats")
async def cache_stats(request: Request):
    """Get cache statistics."""
    return get_cache(request).get_stats()


# ===== DISCOVER =====

@app.get("/api/discover/popularity-types", response_model=DiscoverResponse)
async def popularity_types(request: Request):
    """Get the popularity taxonomy."""
    return await serve_listing(get_cache(request).popularity_types)


@app.get("/api/discover/popular", response_model=DiscoverResponse)
async def popular_games(
    request: Request,
    type: int = Query(default=settings.preload_default_popularity_type, ge=1, le=8, description="Popularity type ID"),
    limit: int = Query(default=settings.popular_games_limit, ge=1, le=100),
):
    """Get games ranked by one popularity type."""
    return await serve_listing(get_cache(request).popular_games, type, limit)


@app.get("/api/discover/torrents", response_model=DiscoverResponse)
async def top_torrents(
    request: Request,
    query: str = Query(default=settings.top_torrents_query, min_length=1),
    limit: int = Query(default=settings.top_torrents_limit, ge=1, le=100),
    max_age: int = Query(default=settings.top_torrents_max_age_days, ge=1, alias="maxAge", description="Recency window in days"),
):
    """Get the most seeded releases for a query."""
    return await serve_listing(get_cache(request).top_torrents, query, limit, max_age)


@app.post("/api/discover/cache/invalidate", response_model=InvalidateResponse)
async def invalidate_cache(body: InvalidateRequest, request: Request):
    """
    Drop cached discover data after a local change the backend won't push,
    e.g. a game added to the library.
    """
    cache = get_cache(request)
    if body.family is None:
        removed = cache.invalidate_all()
    elif body.family == ResourceFamily.POPULAR_GAMES:
        removed = cache.invalidate_popular_games(body.type_id)
    else:
        removed = cache.accessor(body.family).invalidate()
    return InvalidateResponse(removed=removed)
