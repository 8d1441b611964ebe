"""Request context middleware.

Every request gets an id (the client's ``X-Request-ID`` or a fresh UUID)
stored in a ``ContextVar``; the logging filter copies it onto every
record emitted while the request is handled.  Portal requests also carry
the link code taken from the path, which lets one respondent's session
be followed across requests:

  INFO  [req-abc] Opened portal code=onboarding-pt mode=landing
  INFO  [req-def] Session started assignment=assignment-ana-onboarding

ContextVars rather than thread-locals: concurrent async requests share a
thread but each task sees its own copy.

Autosave callbacks run from the event loop outside any request, so their
records show the default ``-`` request id and rely on the
``assignment_id`` extra instead.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from crewfit.core.logging import link_code_var, request_id_var

logger = logging.getLogger(__name__)

_PORTAL_PREFIX = "/v1/portal/"


def link_code_from_path(path: str) -> str | None:
    if not path.startswith(_PORTAL_PREFIX):
        return None
    code = path[len(_PORTAL_PREFIX) :].split("/", 1)[0]
    return code or None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, time the request and log one summary line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        link_code_var.set(link_code_from_path(request.url.path))

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
