from __future__ import annotations

import time
from collections.abc import Callable, Iterable

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

REQUEST_COUNTER = Counter(
    "postdesk_request_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "postdesk_request_duration_seconds",
    "HTTP request latency",
    ["method", "path"],
)
PROCEDURE_COUNTER = Counter(
    "postdesk_procedure_calls_total",
    "Remote procedure calls by procedure name and outcome",
    ["procedure", "outcome"],
)


def _path_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for each request.

    ``procedures`` names the known remote procedures; any other name under
    ``/rpc/`` is counted as ``unknown``.
    """

    def __init__(self, app: ASGIApp, procedures: Iterable[str] = ()) -> None:
        super().__init__(app)
        self.procedures = frozenset(procedures)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._record(request, 500, time.perf_counter() - start)
            raise
        self._record(request, response.status_code, time.perf_counter() - start)
        return response

    def _record(self, request: Request, status_code: int, duration: float) -> None:
        path_template = _path_template(request)
        REQUEST_COUNTER.labels(request.method, path_template, status_code).inc()
        REQUEST_LATENCY.labels(request.method, path_template).observe(duration)

        # One label per procedure rather than the shared /rpc/{name} template
        procedure = request.path_params.get("name")
        if path_template.startswith("/rpc/") and procedure:
            if procedure not in self.procedures:
                procedure = "unknown"
            outcome = "ok" if status_code < 400 else "error"
            PROCEDURE_COUNTER.labels(procedure, outcome).inc()


def metrics_response() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
