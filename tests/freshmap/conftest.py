"""Shared fixtures for freshmap tests (no network required)."""

from __future__ import annotations

import httpx
import pytest

from freshmap.engines.manifest_fetcher.client import GitHubClient
from freshmap.engines.manifest_fetcher.models import ManifestResult, RepoSource


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_result():
    """Factory for successful (or failed) ManifestResult instances."""

    def _make(
        name: str | None = "pkg",
        version: str | None = "1.0.0",
        *,
        deps: dict[str, str] | None = None,
        dev: dict[str, str] | None = None,
        peer: dict[str, str] | None = None,
        repo: str | None = None,
        owner: str = "acme",
        error: str | None = None,
        error_kind: str | None = None,
    ) -> ManifestResult:
        repo_name = repo or (name or "unnamed").split("/")[-1]
        return ManifestResult(
            source=RepoSource(
                url=f"https://github.com/{owner}/{repo_name}",
                owner=owner,
                repo_name=repo_name,
            ),
            package_name=name,
            package_version=version,
            dependencies=deps or {},
            dev_dependencies=dev or {},
            peer_dependencies=peer or {},
            raw_manifest_url=(
                None
                if error
                else f"https://raw.githubusercontent.com/{owner}/{repo_name}/main/package.json"
            ),
            branch=None if error else "main",
            error=error,
            error_kind=error_kind,
        )

    return _make


@pytest.fixture
def github_server():
    """Factory for a GitHubClient backed by an in-memory route table.

    Routes map ``host + path`` to ``(status, body)``; anything else is 404.
    A body that is an exception instance is raised instead.  Every
    requested key is appended to ``client.calls``.
    """

    def _make(routes: dict[str, tuple[int, object]]) -> GitHubClient:
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            key = f"{request.url.host}{request.url.path}"
            calls.append(key)
            if key not in routes:
                return httpx.Response(404, text="404: Not Found")
            status, body = routes[key]
            if isinstance(body, Exception):
                raise body
            if isinstance(body, (dict, list)):
                return httpx.Response(status, json=body)
            return httpx.Response(status, text=str(body))

        client = GitHubClient(token="test-token", transport=httpx.MockTransport(handler))
        client.calls = calls  # type: ignore[attr-defined]
        return client

    return _make
