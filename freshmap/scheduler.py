"""Scheduler — periodic, single-flight refresh of the dependency graph."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog

from freshmap.core.config import Settings
from freshmap.engines.manifest_fetcher.client import GitHubClient
from freshmap.engines.staleness.classifier import DependencyMode
from freshmap.graph.categories import build_category_table
from freshmap.graph.models import GraphData
from freshmap.pipeline import assemble_batch, fetch_batch

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GraphDiff:
    """Node-level changes between two consecutive graphs."""

    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    changed: tuple[str, ...] = ()
    edges_changed: bool = False

    @property
    def empty(self) -> bool:
        return not (self.added or self.removed or self.changed or self.edges_changed)

    @property
    def size(self) -> int:
        return len(self.added) + len(self.removed) + len(self.changed)


def diff_graphs(previous: GraphData | None, current: GraphData) -> GraphDiff:
    """Compare *current* against *previous* (everything is new when there is none)."""
    if previous is None:
        return GraphDiff(
            added=tuple(node.id for node in current.nodes),
            edges_changed=bool(current.edges),
        )
    before = {node.id: node for node in previous.nodes}
    after = {node.id: node for node in current.nodes}
    return GraphDiff(
        added=tuple(i for i in after if i not in before),
        removed=tuple(i for i in before if i not in after),
        changed=tuple(i for i in after if i in before and after[i] != before[i]),
        edges_changed=previous.edges != current.edges,
    )


@dataclass(frozen=True)
class GraphSnapshot:
    graph: GraphData
    diff: GraphDiff
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RefreshLoop:
    """Scheduling loop with trigger/timeout wake and a single-flight guard."""

    def __init__(
        self,
        name: str,
        run_fn: Callable[[], Awaitable[int]],
        interval: float,
    ) -> None:
        self.name = name
        self.run_fn = run_fn
        self.interval = interval
        self.trigger = asyncio.Event()
        self._in_flight = False
        self._last_error: str | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def last_error(self) -> str | None:
        """Failure of the most recent completed cycle, cleared by the next success."""
        return self._last_error

    async def run_once(self) -> bool:
        """Run one cycle unless one is already running.

        Returns False when the cycle was skipped.  Errors are logged, never
        raised, so the loop keeps going.
        """
        if self._in_flight:
            logger.info("refresh.skipped", loop=self.name, reason="cycle in flight")
            return False
        self._in_flight = True
        try:
            changed = await self.run_fn()
            self._last_error = None
            logger.info("refresh.cycle", loop=self.name, changed=changed)
        except Exception as exc:
            self._last_error = f"{type(exc).__name__}: {exc}"
            logger.exception("refresh.error", loop=self.name)
        finally:
            self._in_flight = False
        return True

    async def loop(self) -> None:
        """Run forever, waking on trigger or interval timeout."""
        while True:
            try:
                await asyncio.wait_for(self.trigger.wait(), timeout=self.interval)
                self.trigger.clear()
            except asyncio.TimeoutError:
                pass
            await self.run_once()


class Scheduler:
    """Manages lifecycle of RefreshLoop tasks."""

    def __init__(self, loops: list[RefreshLoop]) -> None:
        self._loops = loops
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def loops(self) -> list[RefreshLoop]:
        return list(self._loops)

    async def start(self) -> None:
        """Start all loops as asyncio tasks and kick off a first cycle."""
        self._tasks = [
            asyncio.create_task(loop.loop(), name=f"refresh-{loop.name}") for loop in self._loops
        ]
        for loop in self._loops:
            loop.trigger.set()
        logger.info("scheduler.started", loops=[loop.name for loop in self._loops])

    async def stop(self) -> None:
        """Cancel all loops and wait for them to exit."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("scheduler.stopped")


class GraphRefresher:
    """Fetches once per cycle and keeps the latest graph for every mode.

    The pipeline itself stays stateless; this is the only place a
    previous graph is kept, for diffing.
    """

    def __init__(self, settings: Settings, client: GitHubClient) -> None:
        self._settings = settings
        self._client = client
        self._categories = build_category_table(settings.category_overrides)
        self._snapshots: dict[DependencyMode, GraphSnapshot] = {}

    @property
    def urls(self) -> tuple[str, ...]:
        return self._settings.repo_urls

    @property
    def default_mode(self) -> DependencyMode:
        return DependencyMode(self._settings.dependency_mode)

    @property
    def categories(self) -> dict[str, str]:
        return dict(self._categories)

    def snapshot(self, mode: DependencyMode | str) -> GraphSnapshot | None:
        return self._snapshots.get(DependencyMode(mode))

    async def refresh(self) -> int:
        """One cycle: fetch all repositories, rebuild every mode, diff.

        Returns the number of nodes added, removed or changed across modes.
        """
        batch = await fetch_batch(self._settings.repo_urls, self._client, self._settings)
        changed = 0
        for mode in DependencyMode:
            graph = assemble_batch(batch, mode, self._categories)
            previous = self._snapshots.get(mode)
            diff = diff_graphs(previous.graph if previous else None, graph)
            self._snapshots[mode] = GraphSnapshot(graph=graph, diff=diff)
            changed += diff.size
            if not diff.empty:
                logger.info(
                    "refresh.graph_changed",
                    mode=mode.value,
                    added=list(diff.added),
                    removed=list(diff.removed),
                    changed=list(diff.changed),
                    edges_changed=diff.edges_changed,
                )
        return changed


def create_scheduler(refresher: GraphRefresher, interval: float) -> Scheduler:
    """Build a Scheduler driving *refresher* every *interval* seconds."""
    return Scheduler([RefreshLoop("graph", refresher.refresh, interval)])
