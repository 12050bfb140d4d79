"""Request context middleware: a unique ID and a summary line per request.

The ID lives in a ContextVar rather than a thread-local because FastAPI
runs many requests concurrently on one thread; each asyncio task sees its
own copy.  A LogRecord factory copies it onto every record created in the
process, so a failed issuance can be traced from the batch insert down to
the logo fetch that preceded it.  (A filter on the root logger would miss
records propagated from child loggers.)
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

_base_factory = logging.getLogRecordFactory()


def _record_factory(*args, **kwargs) -> logging.LogRecord:
    """Attach the current request_id to every LogRecord."""
    record = _base_factory(*args, **kwargs)
    record.request_id = request_id_var.get()  # type: ignore[attr-defined]
    return record


if getattr(_base_factory, "__name__", "") != "_record_factory":
    logging.setLogRecordFactory(_record_factory)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, and log its completion.

    Honors an incoming X-Request-ID header (the admin UI sets one per
    scan attempt) and echoes the ID back on the response.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
