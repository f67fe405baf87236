"""Manifest fetcher engine — branch fallback, validation, batch barrier.

Pure I/O: nothing here touches the registry or classification.  Every
per-repository failure is folded into a :class:`ManifestResult` so that
one repository never aborts the batch.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping, Sequence
from typing import Any, TypeVar

import httpx
import structlog

from freshmap.core.config import DEFAULT_BRANCHES
from freshmap.engines.manifest_fetcher.client import GitHubClient, RateLimitError
from freshmap.engines.manifest_fetcher.models import ManifestResult, RepoSource
from freshmap.exceptions import (
    FetchCanceledError,
    ManifestError,
    ManifestFetchError,
    ManifestIncompleteError,
    ManifestNotFoundError,
    ManifestParseError,
)

log = structlog.get_logger("freshmap.engine")

T = TypeVar("T")

MANIFEST_FILE = "package.json"
MISSING_NAME_OR_VERSION = "manifest missing name or version"


async def fetch_manifest(
    client: GitHubClient,
    owner: str,
    repo: str,
    branches: Sequence[str] = DEFAULT_BRANCHES,
) -> tuple[dict[str, Any], str]:
    """Fetch and parse ``package.json``, trying *branches* in order.

    Returns ``(manifest, branch)``.  A 404 moves on to the next branch;
    any other failure status stops immediately.  A malformed body (or a
    transport error) only surfaces when it happens on the last branch.

    Raises a :class:`ManifestError` subclass on failure.
    """
    for index, branch in enumerate(branches):
        is_last = index == len(branches) - 1
        try:
            response = await client.get_raw_file(owner, repo, branch, MANIFEST_FILE)
        except httpx.HTTPError as exc:
            log.warning(
                "fetcher.transport_error",
                repo=f"{owner}/{repo}",
                branch=branch,
                error=f"{type(exc).__name__}: {exc}",
            )
            if is_last:
                raise ManifestFetchError(
                    f"{type(exc).__name__} fetching package.json from {branch}: {exc}"
                ) from exc
            continue

        if response.status_code == 404:
            log.debug("fetcher.branch_missing", repo=f"{owner}/{repo}", branch=branch)
            continue

        if not response.is_success:
            raise ManifestFetchError(
                f"Failed to fetch package.json from {branch} (status: {response.status_code})"
            )

        try:
            data = response.json()
        except ValueError as exc:
            log.warning(
                "fetcher.malformed_manifest",
                repo=f"{owner}/{repo}",
                branch=branch,
                error=str(exc),
            )
            if is_last:
                raise ManifestParseError(f"malformed package.json on {branch}: {exc}") from exc
            continue

        if not isinstance(data, dict):
            if is_last:
                raise ManifestParseError(
                    f"malformed package.json on {branch}: expected an object, "
                    f"got {type(data).__name__}"
                )
            continue

        return data, branch

    raise ManifestNotFoundError(
        f"package.json not found in any candidate branch ({', '.join(branches)})"
    )


async def fetch_last_updated(
    client: GitHubClient,
    owner: str,
    repo: str,
    *,
    timeout: float | None = None,
) -> str | None:
    """Committer timestamp of the latest commit touching ``package.json``.

    Best effort: every failure (transport, rate limit, empty history,
    unexpected payload, timeout) yields ``None``.
    """
    params = {"path": MANIFEST_FILE, "page": 1, "per_page": 1}
    try:
        data = await asyncio.wait_for(
            client.get_json(f"/repos/{owner}/{repo}/commits", params), timeout
        )
        return data[0]["commit"]["committer"]["date"]
    except (
        httpx.HTTPError,
        RateLimitError,
        asyncio.TimeoutError,
        ValueError,
        LookupError,
        TypeError,
    ) as exc:
        log.debug(
            "fetcher.timestamp_unavailable",
            repo=f"{owner}/{repo}",
            error=f"{type(exc).__name__}: {exc}",
        )
        return None


async def fetch_repo(
    client: GitHubClient,
    source: RepoSource,
    *,
    branches: Sequence[str] = DEFAULT_BRANCHES,
    timeout: float | None = None,
    cancel: asyncio.Event | None = None,
) -> ManifestResult:
    """Fetch one repository's manifest and fold any failure into the result.

    *timeout* bounds the manifest retrieval; expiry is reported as a
    ``fetch_failed`` error.  Setting *cancel* resolves the fetch to a
    ``canceled`` error instead.
    """
    owner, repo = source.owner, source.repo_name
    try:
        data, branch = await _bounded(
            fetch_manifest(client, owner, repo, branches), timeout, cancel
        )
    except ManifestError as exc:
        log.info(
            "fetcher.failed",
            repo=source.full_name,
            kind=exc.kind,
            error=str(exc),
        )
        return failed_result(source, exc)

    raw_url = client.raw_url(owner, repo, branch, MANIFEST_FILE)
    last_updated = await fetch_last_updated(client, owner, repo, timeout=timeout)

    name = data.get("name")
    version = data.get("version")
    if not _non_empty_str(name) or not _non_empty_str(version):
        exc = ManifestIncompleteError(MISSING_NAME_OR_VERSION)
        return ManifestResult(
            source=source,
            raw_manifest_url=raw_url,
            branch=branch,
            last_updated=last_updated,
            error=str(exc),
            error_kind=exc.kind,
        )

    log.debug("fetcher.ok", repo=source.full_name, package=name, version=version, branch=branch)
    return ManifestResult(
        source=source,
        package_name=name,
        package_version=version,
        dependencies=_dependency_map(data.get("dependencies")),
        dev_dependencies=_dependency_map(data.get("devDependencies")),
        peer_dependencies=_dependency_map(data.get("peerDependencies")),
        raw_manifest_url=raw_url,
        branch=branch,
        last_updated=last_updated,
    )


async def fetch_all(
    client: GitHubClient,
    sources: Sequence[RepoSource],
    *,
    branches: Sequence[str] = DEFAULT_BRANCHES,
    timeout: float | None = None,
    max_concurrency: int = 8,
    cancel: asyncio.Event | None = None,
) -> list[ManifestResult]:
    """Fetch every source concurrently and wait for all of them to settle.

    Results come back in input order, one per source.  This is the join
    barrier: nothing downstream may run on a partial result set.
    """
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _one(source: RepoSource) -> ManifestResult:
        async with semaphore:
            return await fetch_repo(
                client, source, branches=branches, timeout=timeout, cancel=cancel
            )

    settled = await asyncio.gather(*(_one(s) for s in sources), return_exceptions=True)

    results: list[ManifestResult] = []
    for source, outcome in zip(sources, settled, strict=True):
        if isinstance(outcome, asyncio.CancelledError):
            outcome = failed_result(source, FetchCanceledError("fetch canceled"))
        elif isinstance(outcome, BaseException):
            log.error(
                "fetcher.unexpected_error",
                repo=source.full_name,
                error=f"{type(outcome).__name__}: {outcome}",
            )
            outcome = failed_result(
                source, ManifestFetchError(f"{type(outcome).__name__}: {outcome}")
            )
        results.append(outcome)
    return results


def failed_result(source: RepoSource, exc: ManifestError) -> ManifestResult:
    return ManifestResult(source=source, error=str(exc), error_kind=exc.kind)


# ── helpers ──────────────────────────────────────────────────────────────


async def _bounded(
    coro: Awaitable[T],
    timeout: float | None,
    cancel: asyncio.Event | None,
) -> T:
    """Await *coro*, racing it against *timeout* and the *cancel* event."""
    task = asyncio.ensure_future(coro)
    waiters: set[asyncio.Future[Any]] = {task}
    cancel_waiter: asyncio.Future[Any] | None = None
    if cancel is not None:
        cancel_waiter = asyncio.ensure_future(cancel.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        pending = [w for w in waiters if not w.done()]
        for waiter in pending:
            waiter.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    if task in done:
        return task.result()
    if cancel_waiter is not None and cancel_waiter in done:
        raise FetchCanceledError("fetch canceled")
    raise ManifestFetchError(f"timed out after {timeout:g}s")


def _non_empty_str(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _dependency_map(raw: object) -> dict[str, str]:
    """Keep string ranges only, in declaration order."""
    if not isinstance(raw, Mapping):
        return {}
    return {name: expr for name, expr in raw.items() if isinstance(expr, str)}
