"""
tvdb_client.py

Async TVDB v4 client used by the metadata proxy.
- Login token lives in an injected TokenCache with an expiry, never in module state.
- Only allow-listed read paths are proxied.
- A 401 on a proxied call drops the cached token and logs in once more.
"""

import logging
import re
import time
from typing import Any, Callable, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class TvdbAPIError(Exception):
    """Base exception for TVDB API errors."""
    status_code = 500

class TvdbAuthError(TvdbAPIError):
    """Raised when the API key is missing or the TVDB login is rejected."""
    pass

class TvdbUnavailableError(TvdbAPIError):
    """Raised when TVDB cannot be reached."""
    status_code = 502

class TvdbResponseError(TvdbAPIError):
    """Raised when TVDB answers a proxied call with a non-2xx status."""

    def __init__(self, status_code: int):
        super().__init__(f"TVDB API error: {status_code}")
        self.status_code = status_code


ALLOWED_PATH_PATTERNS = [
    re.compile(r"^/search\?"),
    re.compile(r"^/series/\d+"),
    re.compile(r"^/episodes/\d+"),
    re.compile(r"^/series/filter\?"),
]


def is_allowed_path(path: Optional[str]) -> bool:
    if not path or not isinstance(path, str):
        return False
    return any(p.search(path) for p in ALLOWED_PATH_PATTERNS)


class TokenCache:
    """Single bearer token with an absolute expiry. The clock is injectable for tests."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0.0

    def get(self) -> Optional[str]:
        if self._token is not None and self._clock() < self._expires_at:
            return self._token
        return None

    def set(self, token: str) -> None:
        self._token = token
        self._expires_at = self._clock() + self.ttl_seconds

    def clear(self) -> None:
        self._token = None
        self._expires_at = 0.0


class TvdbClient:
    def __init__(
        self,
        api_key: Optional[str],
        token_cache: TokenCache,
        base_url: str = settings.tvdb_base_url,
        timeout: float = settings.tvdb_timeout_seconds,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.token_cache = token_cache
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def _login(self, client: httpx.AsyncClient) -> str:
        if not self.api_key:
            logger.error("TVDB api key is missing (TVDB_API_KEY not configured)")
            raise TvdbAuthError("TVDB_API_KEY not configured")
        resp = await client.post("/login", json={"apikey": self.api_key})
        if resp.status_code >= 400:
            logger.error(f"TVDB login failed with status {resp.status_code}")
            raise TvdbAuthError("TVDB authentication failed")
        try:
            token = resp.json()["data"]["token"]
        except (ValueError, KeyError, TypeError) as e:
            raise TvdbAuthError("TVDB authentication failed") from e
        self.token_cache.set(token)
        return token

    async def _token(self, client: httpx.AsyncClient) -> str:
        token = self.token_cache.get()
        if token:
            return token
        return await self._login(client)

    async def get(self, path: str) -> Any:
        """GET an allow-listed path; returns the `data` member of the TVDB response."""
        if not is_allowed_path(path):
            raise ValueError("Invalid API path")

        logger.info(f"TVDB proxy request: {path}")
        try:
            async with self._client() as client:
                token = await self._token(client)
                resp = await client.get(path, headers={"Authorization": f"Bearer {token}", "Accept": "application/json"})
                if resp.status_code == 401:
                    self.token_cache.clear()
                    token = await self._login(client)
                    resp = await client.get(path, headers={"Authorization": f"Bearer {token}", "Accept": "application/json"})
        except httpx.HTTPError as e:
            raise TvdbUnavailableError(f"TVDB request failed: {e}") from e

        if resp.status_code >= 400:
            logger.error(f"TVDB API error: {resp.status_code}")
            raise TvdbResponseError(resp.status_code)
        return resp.json().get("data")

