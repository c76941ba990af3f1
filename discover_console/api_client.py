"""
Backend API client for the discover endpoints.
Every call is a single blocking read; caching lives in discover_console.cache.
"""
import logging
from typing import Optional, List, Dict, Any, Callable, TypeVar

import requests

from discover_console.errors import FetchError
from discover_console.models import PopularityType, PopularGame, TorrentRelease
from config.settings import Settings, settings as default_settings

logger = logging.getLogger("api_client")

T = TypeVar("T")


class ConsoleApiClient:
    """
    Thin wrapper over the backend's JSON envelope API.

    Responses look like ``{"success": bool, "data": ..., "error": str}``.
    Any transport error, non-2xx status, undecodable body, unsuccessful
    envelope or unparseable item is raised as FetchError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self.base_url = (base_url or config.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.request_timeout_seconds
        self._api_key = api_key if api_key is not None else config.api_key
        self._session = session or requests.Session()

    def _get_headers(self) -> dict:
        """Get request headers."""
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["X-Api-Key"] = self._api_key
        return headers

    def _request(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """
        Make one GET request and unwrap the envelope.

        Returns:
            The envelope's ``data`` field

        Raises:
            FetchError: On any failure
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug(f"GET {url} params={params}")

        try:
            response = self._session.get(
                url,
                headers=self._get_headers(),
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise FetchError(f"request failed: {e}", endpoint=endpoint) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.ok:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise FetchError(
                message or f"HTTP {response.status_code}",
                endpoint=endpoint,
                status_code=response.status_code,
            )

        if payload is None:
            raise FetchError(
                "response is not valid JSON",
                endpoint=endpoint,
                status_code=response.status_code,
            )

        if not isinstance(payload, dict) or not payload.get("success"):
            message = payload.get("error") if isinstance(payload, dict) else None
            raise FetchError(
                message or "unsuccessful response",
                endpoint=endpoint,
                status_code=response.status_code,
            )

        if payload.get("data") is None:
            raise FetchError("response has no data", endpoint=endpoint, status_code=response.status_code)

        return payload["data"]

    def _parse_list(
        self,
        endpoint: str,
        data: Any,
        parse: Callable[[Dict[str, Any]], T],
    ) -> List[T]:
        """Parse a list payload into models, mapping bad items to FetchError."""
        if not isinstance(data, list):
            raise FetchError(f"expected a list, got {type(data).__name__}", endpoint=endpoint)
        try:
            return [parse(item) for item in data]
        except (ValueError, TypeError, AttributeError) as e:
            raise FetchError(f"unexpected payload: {e}", endpoint=endpoint) from e

    def get_popularity_types(self) -> List[PopularityType]:
        """Get the popularity taxonomy."""
        endpoint = "discover/popularity-types"
        data = self._request(endpoint)
        return self._parse_list(endpoint, data, PopularityType.from_raw)

    def get_popular_games(self, type_id: int, limit: int) -> List[PopularGame]:
        """Get games ranked by one popularity type."""
        endpoint = "discover/popular"
        data = self._request(endpoint, {"type": type_id, "limit": limit})
        return self._parse_list(endpoint, data, PopularGame.from_raw)

    def get_top_torrents(self, query: str, limit: int, max_age_days: int) -> List[TorrentRelease]:
        """Get the most seeded releases matching a query within a recency window."""
        endpoint = "indexers/torrents"
        data = self._request(
            endpoint,
            {"query": query, "limit": limit, "maxAge": max_age_days},
        )
        return self._parse_list(endpoint, data, TorrentRelease.from_raw)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()
