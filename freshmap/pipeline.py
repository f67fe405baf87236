"""Pipeline — resolve → fetch (barrier) → registry → classify → assemble."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import structlog

from freshmap.core.config import Settings
from freshmap.core.github import InvalidSource, resolve_source
from freshmap.engines.manifest_fetcher.client import GitHubClient
from freshmap.engines.manifest_fetcher.fetcher import fetch_all
from freshmap.engines.manifest_fetcher.models import ManifestResult, RepoSource
from freshmap.engines.staleness.classifier import DependencyMode
from freshmap.engines.staleness.registry import VersionRegistry, build_registry
from freshmap.exceptions import PipelineError
from freshmap.graph.assembler import Entry, assemble, status_counts
from freshmap.graph.categories import build_category_table
from freshmap.graph.models import GraphData

log = structlog.get_logger("freshmap.pipeline")


@dataclass(frozen=True)
class FetchedBatch:
    """Everything the fetch barrier produced for one run, in input order."""

    entries: tuple[Entry, ...]
    registry: VersionRegistry


async def fetch_batch(
    urls: Sequence[str],
    client: GitHubClient,
    settings: Settings,
    *,
    cancel: asyncio.Event | None = None,
) -> FetchedBatch:
    """Resolve and fetch every URL, wait for all of them, then freeze the registry."""
    resolved = [resolve_source(url) for url in urls]
    sources = [s for s in resolved if isinstance(s, RepoSource)]
    invalid = len(resolved) - len(sources)
    if invalid:
        log.warning("pipeline.invalid_identifiers", count=invalid)

    try:
        results = await fetch_all(
            client,
            sources,
            branches=settings.branches,
            timeout=settings.fetch_timeout,
            max_concurrency=settings.max_concurrency,
            cancel=cancel,
        )
    except Exception as exc:
        raise PipelineError(f"fetch barrier failed: {type(exc).__name__}: {exc}") from exc

    if len(results) != len(sources):
        raise PipelineError(
            f"fetch barrier returned {len(results)} results for {len(sources)} sources"
        )

    return FetchedBatch(entries=tuple(_merge(resolved, results)), registry=build_registry(results))


def assemble_batch(
    batch: FetchedBatch,
    mode: DependencyMode | str,
    categories: Mapping[str, str],
) -> GraphData:
    """Classify and assemble a fetched batch; pure, no I/O."""
    return assemble(batch.entries, batch.registry, DependencyMode(mode), categories)


async def build_graph(
    urls: Sequence[str],
    mode: DependencyMode | str = DependencyMode.ALL,
    *,
    client: GitHubClient | None = None,
    settings: Settings | None = None,
    categories: Mapping[str, str] | None = None,
    cancel: asyncio.Event | None = None,
) -> GraphData:
    """Run one full pipeline over *urls* and return the assembled graph.

    Every node-level failure ends up on its node; only a failure of the
    orchestration itself raises :class:`PipelineError`.  When *client* is
    omitted a short-lived one is created and closed here.
    """
    settings = settings or Settings()
    mode = DependencyMode(mode)
    if categories is None:
        categories = build_category_table(settings.category_overrides)

    started = time.monotonic()
    own_client = client is None
    if client is None:
        client = GitHubClient(settings.github_token, timeout=settings.fetch_timeout)
    try:
        batch = await fetch_batch(urls, client, settings, cancel=cancel)
    finally:
        if own_client:
            await client.close()

    graph = assemble_batch(batch, mode, categories)
    log.info(
        "pipeline.built",
        repos=len(urls),
        tracked=len(batch.registry),
        edges=len(graph.edges),
        mode=mode.value,
        statuses=status_counts(graph),
        elapsed_ms=int((time.monotonic() - started) * 1000),
    )
    return graph


def _merge(
    resolved: Sequence[RepoSource | InvalidSource],
    results: Sequence[ManifestResult],
) -> list[Entry]:
    """Put fetch results back in input order alongside the invalid identifiers."""
    fetched = iter(results)
    return [item if isinstance(item, InvalidSource) else next(fetched) for item in resolved]
