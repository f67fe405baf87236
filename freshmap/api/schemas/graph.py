"""Graph request/response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from freshmap.graph.models import GraphEdge, GraphNode


class GraphResponse(BaseModel):
    mode: str
    loading: bool
    built_at: datetime | None
    nodes: list[GraphNode]
    edges: list[GraphEdge]


class StatusResponse(BaseModel):
    mode: str
    built_at: datetime | None
    in_flight: bool
    last_error: str | None = None
    counts: dict[str, int] = {}
    added: list[str] = []
    removed: list[str] = []
    changed: list[str] = []


class FocusResponse(BaseModel):
    node_id: str
    connectivity: str
    connected: list[str]


class RefreshResponse(BaseModel):
    accepted: bool
    in_flight: bool
