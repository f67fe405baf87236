"""Graph router — latest snapshot, focus queries, manual refresh."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response

from freshmap.api.deps import get_refresh_loop, get_refresher
from freshmap.api.errors import NotFoundError, UnavailableError
from freshmap.api.middleware.request_context import GRAPH_BUILT_AT_HEADER, GRAPH_MODE_HEADER
from freshmap.api.schemas.graph import (
    FocusResponse,
    GraphResponse,
    RefreshResponse,
    StatusResponse,
)
from freshmap.engines.staleness.classifier import DependencyMode
from freshmap.graph.assembler import placeholder_graph, status_counts
from freshmap.graph.focus import ConnectivityMode, connected_node_ids, visible_subgraph
from freshmap.scheduler import GraphRefresher, RefreshLoop

router = APIRouter()


def _stamp(response: Response, mode: DependencyMode, built_at: datetime | None) -> None:
    response.headers[GRAPH_MODE_HEADER] = mode.value
    if built_at is not None:
        response.headers[GRAPH_BUILT_AT_HEADER] = built_at.isoformat()


@router.get("/", response_model=GraphResponse)
async def get_graph(
    response: Response,
    mode: DependencyMode | None = Query(None),
    category: list[str] | None = Query(None),
    refresher: GraphRefresher = Depends(get_refresher),
) -> GraphResponse:
    mode = mode or refresher.default_mode
    snapshot = refresher.snapshot(mode)
    if snapshot is None:
        graph = placeholder_graph(refresher.urls, refresher.categories)
        built_at = None
    else:
        graph, built_at = snapshot.graph, snapshot.built_at
    _stamp(response, mode, built_at)
    if category:
        graph = visible_subgraph(graph, category)
    return GraphResponse(
        mode=mode.value,
        loading=snapshot is None,
        built_at=built_at,
        nodes=graph.nodes,
        edges=graph.edges,
    )


@router.get("/status", response_model=StatusResponse)
async def get_status(
    response: Response,
    mode: DependencyMode | None = Query(None),
    refresher: GraphRefresher = Depends(get_refresher),
    loop: RefreshLoop = Depends(get_refresh_loop),
) -> StatusResponse:
    mode = mode or refresher.default_mode
    snapshot = refresher.snapshot(mode)
    _stamp(response, mode, snapshot.built_at if snapshot else None)
    if snapshot is None:
        return StatusResponse(
            mode=mode.value,
            built_at=None,
            in_flight=loop.in_flight,
            last_error=loop.last_error,
        )
    return StatusResponse(
        mode=mode.value,
        built_at=snapshot.built_at,
        in_flight=loop.in_flight,
        last_error=loop.last_error,
        counts=status_counts(snapshot.graph),
        added=list(snapshot.diff.added),
        removed=list(snapshot.diff.removed),
        changed=list(snapshot.diff.changed),
    )


@router.get("/focus/{node_id:path}", response_model=FocusResponse)
async def focus(
    node_id: str,
    response: Response,
    connectivity: ConnectivityMode = Query(ConnectivityMode.TRANSITIVE),
    mode: DependencyMode | None = Query(None),
    refresher: GraphRefresher = Depends(get_refresher),
) -> FocusResponse:
    mode = mode or refresher.default_mode
    snapshot = refresher.snapshot(mode)
    if snapshot is None:
        raise UnavailableError("graph has not been built yet")
    _stamp(response, mode, snapshot.built_at)
    if node_id not in snapshot.graph.node_ids():
        raise NotFoundError(f"node {node_id!r} not found")
    connected = connected_node_ids(node_id, snapshot.graph.edges, connectivity)
    return FocusResponse(
        node_id=node_id,
        connectivity=connectivity.value,
        connected=sorted(connected),
    )


@router.post("/refresh", response_model=RefreshResponse, status_code=202)
async def refresh(loop: RefreshLoop = Depends(get_refresh_loop)) -> RefreshResponse:
    """Wake the refresh loop.  A request made while a cycle runs is dropped, not queued."""
    in_flight = loop.in_flight
    if not in_flight:
        loop.trigger.set()
    return RefreshResponse(accepted=not in_flight, in_flight=in_flight)
