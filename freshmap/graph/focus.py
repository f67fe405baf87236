"""Focus queries over an assembled graph."""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Collection, Iterable
from enum import Enum

from freshmap.graph.models import GraphData, GraphEdge


class ConnectivityMode(str, Enum):
    """How far a focus reaches from the selected node.

    TRANSITIVE walks every edge in either direction (breadth-first) and
    returns the whole connected component.  DIRECT stops at immediate
    neighbours.
    """

    TRANSITIVE = "transitive"
    DIRECT = "direct"


def connected_node_ids(
    start_id: str,
    edges: Iterable[GraphEdge],
    mode: ConnectivityMode = ConnectivityMode.TRANSITIVE,
) -> set[str]:
    """Ids connected to *start_id*, always including *start_id* itself.

    Edge direction is ignored.
    """
    adjacency: dict[str, set[str]] = defaultdict(set)
    for edge in edges:
        adjacency[edge.source].add(edge.target)
        adjacency[edge.target].add(edge.source)

    if mode is ConnectivityMode.DIRECT:
        return {start_id} | adjacency.get(start_id, set())

    seen = {start_id}
    queue = deque([start_id])
    while queue:
        current = queue.popleft()
        for neighbour in adjacency.get(current, ()):
            if neighbour not in seen:
                seen.add(neighbour)
                queue.append(neighbour)
    return seen


def visible_subgraph(graph: GraphData, categories: Collection[str]) -> GraphData:
    """Nodes in *categories*, and the edges whose two ends are both visible."""
    nodes = [node for node in graph.nodes if node.category in categories]
    visible_ids = {node.id for node in nodes}
    edges = [
        edge
        for edge in graph.edges
        if edge.source in visible_ids and edge.target in visible_ids
    ]
    return GraphData(nodes=nodes, edges=edges)
