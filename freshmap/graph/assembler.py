"""Graph assembler — per-repository results → one node/edge collection."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence

from freshmap.core.github import InvalidSource, resolve_source
from freshmap.engines.manifest_fetcher.models import ManifestResult
from freshmap.engines.staleness.classifier import DependencyMode, classify
from freshmap.engines.staleness.edges import annotate_edges
from freshmap.engines.staleness.registry import VersionRegistry, registry_owners
from freshmap.graph.categories import PACKAGE_CATEGORY_MAP, category_for_package
from freshmap.graph.models import GraphData, GraphEdge, GraphNode, NodeStatus

Entry = ManifestResult | InvalidSource

NO_VERSION = "N/A"


def node_id_for(package_name: str | None, owner: str, repo_name: str) -> str:
    """The id of a node: package name when known, else ``owner/repo``.

    An unresolvable input has no owner and uses its raw string.
    """
    if package_name:
        return package_name
    if owner:
        return f"{owner}/{repo_name}"
    return repo_name


class _IdAllocator:
    """Hands out unique node ids, falling back to suffixed ids on collision."""

    def __init__(self) -> None:
        self._taken: set[str] = set()

    def reserve(self, node_id: str) -> None:
        self._taken.add(node_id)

    def allocate(self, *candidates: str) -> str:
        for candidate in candidates:
            if candidate not in self._taken:
                self._taken.add(candidate)
                return candidate
        base = candidates[-1]
        n = 2
        while f"{base}#{n}" in self._taken:
            n += 1
        self._taken.add(f"{base}#{n}")
        return f"{base}#{n}"


def assemble(
    entries: Sequence[Entry],
    registry: VersionRegistry,
    mode: DependencyMode = DependencyMode.ALL,
    categories: Mapping[str, str] = PACKAGE_CATEGORY_MAP,
) -> GraphData:
    """Build the graph: exactly one node per entry, edges between successful nodes.

    The result that supplied a registry entry owns that package name as
    its id; any other node claiming the same name falls back to its
    ``owner/repo`` id.
    """
    results = [e for e in entries if isinstance(e, ManifestResult)]
    owners = registry_owners(results)

    ids = _IdAllocator()
    for name in owners:
        ids.reserve(name)
    source_ids = {name: name for name in owners}

    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    for entry in entries:
        if isinstance(entry, InvalidSource):
            node_id = ids.allocate(node_id_for(None, "", entry.url))
            nodes.append(_invalid_node(node_id, entry, categories))
            continue

        src = entry.source
        if entry.ok and owners.get(entry.package_name) is entry:  # type: ignore[arg-type]
            node_id = entry.package_name  # type: ignore[assignment]
        else:
            node_id = ids.allocate(
                node_id_for(entry.package_name, src.owner, src.repo_name),
                node_id_for(None, src.owner, src.repo_name),
            )

        classification = classify(entry, registry, mode)
        nodes.append(
            GraphNode(
                id=node_id,
                label=entry.package_name or src.repo_name,
                version=entry.package_version or NO_VERSION,
                status=classification.status,
                url=src.url,
                raw_manifest_url=entry.raw_manifest_url,
                error=classification.error,
                repo_name=src.repo_name,
                last_updated_timestamp=entry.last_updated,
                category=category_for_package(entry.package_name, src.repo_name, categories),
            )
        )
        edges.extend(
            annotate_edges(entry, node_id, classification.status, registry, source_ids, mode)
        )

    return GraphData(nodes=nodes, edges=edges)


def placeholder_graph(
    urls: Sequence[str],
    categories: Mapping[str, str] = PACKAGE_CATEGORY_MAP,
) -> GraphData:
    """One LOADING node per URL, shown before the first build completes."""
    ids = _IdAllocator()
    nodes: list[GraphNode] = []
    for url in urls:
        source = resolve_source(url)
        if isinstance(source, InvalidSource):
            owner, repo_name = "", url
        else:
            owner, repo_name = source.owner, source.repo_name
        nodes.append(
            GraphNode(
                id=ids.allocate(node_id_for(None, owner, repo_name)),
                label=repo_name,
                version=NO_VERSION,
                status=NodeStatus.LOADING,
                url=url,
                repo_name=repo_name,
                category=category_for_package(None, repo_name, categories),
            )
        )
    return GraphData(nodes=nodes, edges=[])


def status_counts(graph: GraphData) -> dict[str, int]:
    """Node count per status, with every status present."""
    counts = Counter(node.status for node in graph.nodes)
    return {status.value: counts.get(status, 0) for status in NodeStatus}


def _invalid_node(node_id: str, entry: InvalidSource, categories: Mapping[str, str]) -> GraphNode:
    return GraphNode(
        id=node_id,
        label=entry.url,
        version=NO_VERSION,
        status=NodeStatus.ERROR,
        url=entry.url,
        error=entry.error,
        repo_name=entry.url,
        category=category_for_package(None, entry.url, categories),
    )
