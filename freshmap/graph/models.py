"""Graph data handed to the rendering layer."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class NodeStatus(str, Enum):
    UP_TO_DATE = "UP_TO_DATE"
    STALE_DEPENDENCY = "STALE_DEPENDENCY"
    ERROR = "ERROR"
    LOADING = "LOADING"


class DriftSeverity(str, Enum):
    """Distance between a declared range's minimum and the latest version."""

    CURRENT = "current"
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"

    @property
    def color(self) -> str:
        return DRIFT_COLORS[self]


DRIFT_COLORS: dict[DriftSeverity, str] = {
    DriftSeverity.CURRENT: "#3b82f6",  # blue
    DriftSeverity.MINOR: "#9ca3af",  # gray
    DriftSeverity.MODERATE: "#eab308",  # yellow/orange
    DriftSeverity.MAJOR: "#ef4444",  # red
}


class GraphNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    version: str
    status: NodeStatus
    url: str
    raw_manifest_url: str | None = None
    error: str | None = None
    repo_name: str
    last_updated_timestamp: str | None = None
    category: str


class GraphEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    source: str  # the dependency's node id
    target: str  # the dependent's node id
    label: str
    color: str
    severity: DriftSeverity
    animated: bool = False


class GraphData(BaseModel):
    model_config = ConfigDict(frozen=True)

    nodes: list[GraphNode]
    edges: list[GraphEdge]

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}
