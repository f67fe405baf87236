"""Async GitHub client — raw file content plus REST API with retries."""

from __future__ import annotations

import asyncio
import os
import time
from typing import Any

import httpx
import structlog

log = structlog.get_logger("freshmap.engine")

RAW_BASE_URL = "https://raw.githubusercontent.com"
API_BASE_URL = "https://api.github.com"

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 0.5  # seconds


class RateLimitError(Exception):
    """Raised when the GitHub API rate limit is exhausted."""

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"rate limit exceeded, retry after {retry_after}s")


class GitHubClient:
    """Thin async wrapper around raw.githubusercontent.com and the REST API.

    Raw content requests never use a cache: every call must observe the
    current upstream state.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        resolved_token = token or os.environ.get("GITHUB_TOKEN")
        api_headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "Cache-Control": "no-cache",
        }
        if resolved_token:
            api_headers["Authorization"] = f"token {resolved_token}"
        self._api = httpx.AsyncClient(
            base_url=API_BASE_URL,
            headers=api_headers,
            timeout=timeout,
            transport=transport,
        )
        self._raw = httpx.AsyncClient(
            base_url=RAW_BASE_URL,
            headers={"Cache-Control": "no-cache", "Pragma": "no-cache"},
            timeout=timeout,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._raw.aclose()
        await self._api.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    @staticmethod
    def raw_url(owner: str, repo: str, branch: str, path: str) -> str:
        """Absolute raw-content URL for *path* on *branch*."""
        return f"{RAW_BASE_URL}/{owner}/{repo}/{branch}/{path}"

    async def get_raw_file(self, owner: str, repo: str, branch: str, path: str) -> httpx.Response:
        """GET a file's raw content on *branch*.

        The response is returned whatever its status; the caller decides
        how to treat 404 versus other failures.  Transport errors propagate
        as ``httpx.HTTPError``.
        """
        return await self._raw.get(f"/{owner}/{repo}/{branch}/{path}")

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Single REST API GET, returns parsed JSON."""
        response = await self._request_with_retry(path, params)
        return response.json()

    # ── internal ───────────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """GET with exponential backoff on 5xx and timeout errors.

        A rate-limited 403 raises :class:`RateLimitError` straight away
        rather than sleeping until the window resets.
        """
        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES):
            try:
                resp = await self._api.get(url, params=params)

                if resp.status_code == 403 and self._is_rate_limited(resp):
                    wait = self._get_rate_limit_wait(resp)
                    log.warning("github.rate_limit", url=url, wait_seconds=wait)
                    raise RateLimitError(wait)

                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp

                log.warning(
                    "github.server_error",
                    url=url,
                    status=resp.status_code,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = httpx.HTTPStatusError(
                    f"{resp.status_code}", request=resp.request, response=resp
                )
            except httpx.TimeoutException as exc:
                log.warning(
                    "github.timeout",
                    url=url,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_exc = exc

            if attempt < _MAX_RETRIES - 1:
                delay = _RETRY_BASE_DELAY * (2**attempt)
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        """Check if a 403 response is due to rate limiting."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None:
            try:
                return int(remaining) == 0
            except (ValueError, TypeError):
                pass
        return "Retry-After" in response.headers

    @staticmethod
    def _get_rate_limit_wait(response: httpx.Response) -> int:
        """Seconds until the rate-limit window resets, from response headers."""
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return max(int(retry_after), 1)
            except (ValueError, TypeError):
                pass
        reset_ts = response.headers.get("X-RateLimit-Reset")
        if reset_ts is not None:
            try:
                return max(int(reset_ts) - int(time.time()), 1)
            except (ValueError, TypeError):
                pass
        return 60
