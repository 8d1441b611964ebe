"""Prometheus middleware: count, time and track in-flight HTTP requests.

Portal paths embed the link code (``/v1/portal/<code>/answer``).  Using
the raw path as the ``endpoint`` label would create one time series per
code, so the code segment is replaced with ``{code}`` before labelling.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from crewfit.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION
from crewfit.middleware.request_context import link_code_from_path


def endpoint_label(path: str) -> str:
    code = link_code_from_path(path)
    if code is None:
        return path
    return path.replace(f"/v1/portal/{code}", "/v1/portal/{code}", 1)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Scrapes are not traffic.
        if request.url.path == "/metrics":
            return await call_next(request)

        endpoint = endpoint_label(request.url.path)
        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            ACTIVE_REQUESTS.dec()
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()
            REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(
                time.monotonic() - start
            )

        return response
