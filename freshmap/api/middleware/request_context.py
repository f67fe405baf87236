"""Per-request logging context for the graph API.

Every request gets an ``X-Request-ID`` (a caller-supplied UUID is kept).
Graph routes stamp ``X-Graph-Mode`` / ``X-Graph-Built-At`` on their
responses; those are copied into the completion log line so a slow or
failing poll can be matched to the snapshot it was served from.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Iterable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

log = structlog.get_logger("freshmap.api")

REQUEST_ID_HEADER = "X-Request-ID"
GRAPH_MODE_HEADER = "X-Graph-Mode"
GRAPH_BUILT_AT_HEADER = "X-Graph-Built-At"


def request_id_from(raw: str | None) -> str:
    """Keep *raw* when it is a UUID, otherwise mint a fresh one."""
    if raw:
        try:
            return str(uuid.UUID(raw))
        except ValueError:
            pass
    return str(uuid.uuid4())


def _level_for(status_code: int, quiet: bool) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.DEBUG if quiet else logging.INFO


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request_id to structlog contextvars and log one line per request.

    Successful requests to *quiet_paths* (health probes) are logged at DEBUG.
    """

    def __init__(self, app: ASGIApp, quiet_paths: Iterable[str] = ("/health",)) -> None:
        super().__init__(app)
        self.quiet_paths = frozenset(quiet_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request_id_from(request.headers.get(REQUEST_ID_HEADER))
        path = request.url.path
        tokens = structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception(
                "api.request_failed",
                method=request.method,
                path=path,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
            )
            raise
        else:
            log.log(
                _level_for(response.status_code, path in self.quiet_paths),
                "api.request",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
                graph_mode=response.headers.get(GRAPH_MODE_HEADER),
                graph_built_at=response.headers.get(GRAPH_BUILT_AT_HEADER),
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            structlog.contextvars.reset_contextvars(**tokens)
