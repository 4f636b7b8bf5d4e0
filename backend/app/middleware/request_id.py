from __future__ import annotations

import contextvars
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


REQUEST_ID_HEADER = "x-request-id"
ELAPSED_HEADER = "x-elapsed-ms"

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")

log = logging.getLogger("datainsights")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id (the caller's `x-request-id` when sent) and
    writes one access line per request. Both headers are echoed on the response.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = request_id_var.set(rid)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception("http_error method=%s path=%s", request.method, request.url.path)
            raise
        else:
            elapsed = int((time.perf_counter() - started) * 1000)
            level = logging.WARNING if response.status_code >= 500 else logging.INFO
            log.log(level, "http_request method=%s path=%s status=%s ms=%s", request.method, request.url.path, response.status_code, elapsed)
            response.headers[REQUEST_ID_HEADER] = rid
            response.headers[ELAPSED_HEADER] = str(elapsed)
            return response
        finally:
            request_id_var.reset(token)
