"""Base adapter: HTTP calls mapped onto the fetch failure taxonomy."""

from __future__ import annotations

import json
import logging
from email.utils import parsedate_to_datetime
from datetime import datetime, timezone
from typing import Any

import httpx

from ..engine import FetchEngine, NetworkFn, get_engine
from ..errors import MalformedResponse, NetworkFailure, RateLimited
from ..registry import SourceConfig

logger = logging.getLogger(__name__)

UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"


def parse_retry_after(value: str | None) -> float | None:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP date)."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class FeedSource:
    """One upstream API. Subclasses build network functions and call ``_fetch``."""

    name: str = "base"

    def __init__(
        self,
        engine: FetchEngine | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._engine = engine
        self._client = client

    @property
    def engine(self) -> FetchEngine:
        if self._engine is None:
            self._engine = get_engine()
        return self._engine

    @property
    def config(self) -> SourceConfig:
        return self.engine.config(self.name)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout_s,
                headers={"User-Agent": UA, "Accept": "application/json"},
                follow_redirects=True,
            )
        return self._client

    async def _request(self, url: str, params: dict | None = None) -> httpx.Response:
        client = await self._get_client()
        try:
            resp = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise NetworkFailure(f"{self.name}: timeout for {url}") from e
        except httpx.HTTPError as e:
            raise NetworkFailure(f"{self.name}: {type(e).__name__}: {e}") from e

        if resp.status_code in self.config.retryable_status_codes:
            raise RateLimited(
                f"{self.name}: HTTP {resp.status_code}",
                retry_after=parse_retry_after(resp.headers.get("Retry-After")),
            )
        if not resp.is_success:
            raise NetworkFailure(f"{self.name}: HTTP {resp.status_code}")
        return resp

    async def _get_text(self, url: str, params: dict | None = None) -> str:
        resp = await self._request(url, params)
        return resp.text

    async def _get_json(
        self,
        url: str,
        params: dict | None = None,
        expect: type | tuple[type, ...] = (dict, list),
    ) -> Any:
        text = (await self._get_text(url, params)).lstrip()
        # Error pages come back as HTML/plain text with a 200.
        if not text.startswith(("{", "[")):
            raise MalformedResponse(f"{self.name}: non-JSON response: {text[:80]!r}")
        try:
            data = json.loads(text)
        except ValueError as e:
            raise MalformedResponse(f"{self.name}: invalid JSON: {e}") from e
        if not isinstance(data, expect):
            raise MalformedResponse(f"{self.name}: unexpected payload type {type(data).__name__}")
        return data

    def _fallback_for(self, build) -> NetworkFn | None:
        """Network fn against ``fallback_url`` when the source has one configured."""
        fallback_url = self.config.fallback_url
        if not fallback_url:
            return None
        return lambda: build(fallback_url)

    async def _fetch(self, key: str, build) -> Any:
        """Fetch ``key`` via the engine; ``build(base_url)`` returns the payload coroutine."""
        return await self.engine.fetch(
            self.name,
            key,
            lambda: build(self.config.base_url),
            fallback_fn=self._fallback_for(build),
        )

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()
