"""Dependency injection — refresher and scheduler singletons."""

from __future__ import annotations

from freshmap.core.config import Settings
from freshmap.engines.manifest_fetcher.client import GitHubClient
from freshmap.scheduler import GraphRefresher, RefreshLoop, Scheduler, create_scheduler

# ---------------------------------------------------------------------------
# Singletons (initialised by app lifespan)
# ---------------------------------------------------------------------------
_client: GitHubClient | None = None
_refresher: GraphRefresher | None = None
_scheduler: Scheduler | None = None


def init_refresher(settings: Settings) -> Scheduler:
    """Create the GitHub client, refresher and scheduler. Called once at startup."""
    global _client, _refresher, _scheduler  # noqa: PLW0603
    _client = GitHubClient(settings.github_token, timeout=settings.fetch_timeout)
    _refresher = GraphRefresher(settings, _client)
    _scheduler = create_scheduler(_refresher, settings.refresh_interval)
    return _scheduler


async def dispose_refresher() -> None:
    """Stop the scheduler and close the GitHub client."""
    global _client, _refresher, _scheduler  # noqa: PLW0603
    if _scheduler is not None:
        await _scheduler.stop()
    if _client is not None:
        await _client.close()
    _client = _refresher = _scheduler = None


# ---------------------------------------------------------------------------
# Getters (for Depends())
# ---------------------------------------------------------------------------


def get_refresher() -> GraphRefresher:
    if _refresher is None:
        raise RuntimeError("call init_refresher() before handling requests")
    return _refresher


def get_refresh_loop() -> RefreshLoop:
    if _scheduler is None:
        raise RuntimeError("call init_refresher() before handling requests")
    return _scheduler.loops[0]
