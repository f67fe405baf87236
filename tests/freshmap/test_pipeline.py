"""End-to-end pipeline tests against an in-memory GitHub."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from freshmap.core.config import Settings
from freshmap.exceptions import PipelineError
from freshmap.graph.models import NodeStatus
from freshmap.pipeline import assemble_batch, build_graph, fetch_batch

URLS = [
    "https://github.com/acme/core",
    "https://github.com/acme/viewer",
    "https://github.com/acme/legacy",
    "https://gitlab.com/acme/elsewhere",
    "https://github.com/acme/gone",
]

ROUTES = {
    "raw.githubusercontent.com/acme/core/main/package.json": (
        200,
        {"name": "@acme/core", "version": "2.1.0"},
    ),
    "raw.githubusercontent.com/acme/viewer/main/package.json": (
        200,
        {
            "name": "@acme/viewer",
            "version": "0.4.0",
            "dependencies": {"@acme/core": "^2.0.0"},
            "devDependencies": {"@acme/legacy": "^1.0.0"},
        },
    ),
    "raw.githubusercontent.com/acme/legacy/master/package.json": (
        200,
        {"name": "@acme/legacy", "version": "2.0.0", "dependencies": {"@acme/core": "~2.1.0"}},
    ),
    "api.github.com/repos/acme/core/commits": (
        200,
        [{"commit": {"committer": {"date": "2026-02-02T00:00:00Z"}}}],
    ),
}


class TestBuildGraph:
    @pytest.mark.asyncio
    async def test_full_run(self, github_server):
        client = github_server(ROUTES)
        graph = await build_graph(URLS, "all", client=client)

        by_id = {n.id: n for n in graph.nodes}
        assert list(by_id) == [
            "@acme/core",
            "@acme/viewer",
            "@acme/legacy",
            "https://gitlab.com/acme/elsewhere",
            "acme/gone",
        ]
        assert by_id["@acme/core"].status is NodeStatus.UP_TO_DATE
        assert by_id["@acme/core"].last_updated_timestamp == "2026-02-02T00:00:00Z"
        assert by_id["@acme/viewer"].status is NodeStatus.STALE_DEPENDENCY
        assert by_id["@acme/legacy"].status is NodeStatus.UP_TO_DATE
        assert by_id["@acme/legacy"].raw_manifest_url.endswith("/master/package.json")
        assert by_id["https://gitlab.com/acme/elsewhere"].status is NodeStatus.ERROR
        assert by_id["acme/gone"].status is NodeStatus.ERROR
        assert "not found in any candidate branch" in by_id["acme/gone"].error

        edges = {e.id: e for e in graph.edges}
        assert set(edges) == {
            "e:@acme/core->@acme/viewer",
            "e:@acme/legacy->@acme/viewer",
            "e:@acme/core->@acme/legacy",
        }
        assert edges["e:@acme/legacy->@acme/viewer"].color == "#ef4444"
        assert edges["e:@acme/core->@acme/viewer"].animated is True
        assert edges["e:@acme/core->@acme/legacy"].label == "~2.1.0"
        assert edges["e:@acme/core->@acme/legacy"].animated is False

    @pytest.mark.asyncio
    async def test_peer_mode_ignores_dev_dependencies(self, github_server):
        client = github_server(ROUTES)
        graph = await build_graph(URLS, "peer", client=client)
        by_id = {n.id: n for n in graph.nodes}
        assert by_id["@acme/viewer"].status is NodeStatus.UP_TO_DATE
        assert "e:@acme/legacy->@acme/viewer" not in {e.id for e in graph.edges}

    @pytest.mark.asyncio
    async def test_repeatable(self, github_server):
        first = await build_graph(URLS, client=github_server(ROUTES))
        second = await build_graph(URLS, client=github_server(ROUTES))
        assert first == second

    @pytest.mark.asyncio
    async def test_empty_input(self, github_server):
        graph = await build_graph([], client=github_server({}))
        assert graph.nodes == [] and graph.edges == []

    @pytest.mark.asyncio
    async def test_orchestration_failure_raises(self, github_server):
        with patch(
            "freshmap.pipeline.fetch_all",
            new_callable=AsyncMock,
            side_effect=RuntimeError("barrier broke"),
        ):
            with pytest.raises(PipelineError, match="barrier broke"):
                await build_graph(URLS, client=github_server({}))

    @pytest.mark.asyncio
    async def test_short_result_set_raises(self, github_server):
        with patch("freshmap.pipeline.fetch_all", new_callable=AsyncMock, return_value=[]):
            with pytest.raises(PipelineError, match="returned 0 results"):
                await build_graph(URLS, client=github_server({}))

    @pytest.mark.asyncio
    async def test_owns_client_when_none_given(self):
        with patch("freshmap.pipeline.GitHubClient") as client_cls:
            client_cls.return_value.close = AsyncMock()
            graph = await build_graph(["nope"], settings=Settings(github_token="tok"))
        client_cls.assert_called_once_with("tok", timeout=15.0)
        client_cls.return_value.close.assert_awaited_once()
        assert graph.nodes[0].status is NodeStatus.ERROR


class TestFetchBatch:
    @pytest.mark.asyncio
    async def test_batch_is_reusable_across_modes(self, github_server):
        batch = await fetch_batch(URLS, github_server(ROUTES), Settings())
        assert dict(batch.registry) == {
            "@acme/core": "2.1.0",
            "@acme/viewer": "0.4.0",
            "@acme/legacy": "2.0.0",
        }
        assert len(batch.entries) == len(URLS)
        peer = assemble_batch(batch, "peer", {})
        full = assemble_batch(batch, "all", {})
        assert len(full.edges) == len(peer.edges) + 1
        assert {n.category for n in full.nodes} == {"Downstream"}
