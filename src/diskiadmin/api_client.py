"""Async HTTP client for the API-Football v3 REST API.

Wraps ``httpx.AsyncClient`` with the two credential headers the API
requires, request pacing through RateLimiter, and tenacity retries for
transient failures (429, 5xx, transport errors). Non-transient failures
(other 4xx, API-level ``errors`` payloads) raise immediately.

API-Football answers almost every request with HTTP 200 and an envelope::

    {"get": "fixtures", "parameters": {...}, "errors": [] | {...},
     "results": 1, "paging": {...}, "response": [...]}

Request problems (bad key, quota exceeded, bad parameter) show up in the
``errors`` field rather than in the status code, so the envelope is
checked as well.

Usage::

    async with FootballApiClient(config) as client:
        fixtures = await client.get_upcoming_fixtures(league_id=39, count=20)
        detail = await client.get_fixture(1035037)
"""

import logging
from typing import Any

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from diskiadmin.config import AdminConfig
from diskiadmin.exceptions import (
    ConfigError,
    FixtureNotFound,
    RateLimited,
    RemoteSourceError,
)
from diskiadmin.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class TransientRemoteError(RemoteSourceError):
    """5xx or transport failure; retried by the client."""

    pass


class FootballApiClient:
    """Client for the API-Football fixtures, teams and leagues endpoints.

    ``transport`` may be any ``httpx.AsyncBaseTransport``; tests pass an
    ``httpx.MockTransport`` so no network is touched.
    """

    def __init__(
        self,
        config: AdminConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if config is None:
            config = AdminConfig()
        if not config.api_key:
            raise ConfigError(
                "API-Football key is not configured "
                "(set DISKIADMIN_API_KEY)"
            )

        self._config = config
        self.rate_limiter = RateLimiter(config)
        self._client = httpx.AsyncClient(
            base_url=config.api_base_url,
            headers={
                "x-rapidapi-key": config.api_key,
                "x-rapidapi-host": config.api_host,
                "accept": "application/json",
            },
            timeout=config.http_timeout,
            transport=transport,
        )

        self._request_count = 0
        self._success_count = 0
        self._rate_limited_count = 0

        self._patch_retry()

    # ------------------------------------------------------------------
    # Low-level request
    # ------------------------------------------------------------------

    @retry(
        retry=retry_if_exception_type((RateLimited, TransientRemoteError)),
        wait=wait_exponential_jitter(initial=1, max=30, jitter=1),
        stop=stop_after_attempt(3),  # overridden in _patch_retry
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def get(self, path: str, params: dict[str, Any] | None = None) -> list:
        """GET an endpoint and return the envelope's ``response`` list.

        Raises:
            RateLimited: HTTP 429 (after retries are exhausted).
            TransientRemoteError: 5xx or transport failure (after retries).
            RemoteSourceError: Any other non-success status, a non-JSON
                body, or a non-empty ``errors`` field.
        """
        await self.rate_limiter.wait()
        self._request_count += 1
        url = f"{self._config.api_base_url}{path}"

        try:
            response = await self._client.get(path, params=params)
        except httpx.TransportError as exc:
            raise TransientRemoteError(
                f"Network error fetching {url}: {exc}", url=url
            ) from exc

        status = response.status_code
        if status == 429:
            self._rate_limited_count += 1
            self.rate_limiter.backoff()
            raise RateLimited(
                f"Rate limited by API-Football on {url}",
                url=url, status_code=status,
            )
        if status >= 500:
            raise TransientRemoteError(
                f"API-Football returned {status} for {url}",
                url=url, status_code=status,
            )
        if status != 200:
            raise RemoteSourceError(
                f"API-Football returned {status} for {url}: "
                f"{response.text[:200]}",
                url=url, status_code=status,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteSourceError(
                f"Malformed JSON from {url}", url=url, status_code=status
            ) from exc

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            # Quota exhaustion is reported as {"rateLimit": "..."} with 200.
            if isinstance(errors, dict) and "rateLimit" in errors:
                self._rate_limited_count += 1
                self.rate_limiter.backoff()
                raise RateLimited(
                    f"API-Football quota exceeded on {url}: {errors['rateLimit']}",
                    url=url, status_code=status,
                )
            raise RemoteSourceError(
                f"API-Football reported errors for {url}: {errors}",
                url=url, status_code=status,
            )

        self._success_count += 1
        self.rate_limiter.recover()
        result = payload.get("response") if isinstance(payload, dict) else None
        return result or []

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_upcoming_fixtures(self, league_id: int, count: int = 20) -> list[dict]:
        """Return the next ``count`` fixtures of a league (summary form)."""
        return await self.get("/fixtures", {"league": league_id, "next": count})

    async def get_fixture(self, fixture_id: int | str) -> dict:
        """Return one fixture in full, including lineups and events.

        Raises:
            FixtureNotFound: The API returned an empty response list.
        """
        rows = await self.get("/fixtures", {"id": fixture_id})
        if not rows:
            raise FixtureNotFound(
                f"Fixture {fixture_id} not found",
                url=f"{self._config.api_base_url}/fixtures?id={fixture_id}",
            )
        return rows[0]

    async def get_teams(self, league_id: int, season: int) -> list[dict]:
        """Return ``{"team": ..., "venue": ...}`` rows for a league season."""
        return await self.get("/teams", {"league": league_id, "season": season})

    async def get_league(self, league_id: int) -> dict | None:
        """Return the ``{"league", "country", "seasons"}`` row for a league."""
        rows = await self.get("/leagues", {"id": league_id})
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "FootballApiClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def stats(self) -> dict:
        """Return current client statistics."""
        total = self._request_count
        return {
            "requests": total,
            "successes": self._success_count,
            "rate_limited": self._rate_limited_count,
            "success_rate": (self._success_count / total) if total > 0 else 0.0,
            "current_delay": self.rate_limiter.current_delay,
        }

    def _patch_retry(self) -> None:
        """Patch tenacity stop condition to use config.max_retries."""
        self.get.retry.stop = stop_after_attempt(max(1, self._config.max_retries))
