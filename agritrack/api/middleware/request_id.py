"""
Request correlation and access logging.

Every request gets an id: the caller's ``X-Request-ID`` when it is a sane
token, otherwise a fresh UUID4. The id is put on ``request.state``, on the
logging context var and on the response.
"""

import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from agritrack.logging_config import get_logger, request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_MS = 1000

_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_request_id(incoming: str | None) -> str:
    """Accept a client-supplied id only if it is safe to echo and log."""
    if incoming and _REQUEST_ID_RE.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log how it went."""

    def __init__(self, app: ASGIApp, slow_request_ms: float = SLOW_REQUEST_MS):
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        ctx_token = request_id_var.set(request_id)

        started = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                # Rendered here, inside CORS, rather than by ServerErrorMiddleware outside it
                logger.exception("Unhandled exception", extra={"path": request.url.path})
                response = JSONResponse(
                    status_code=500,
                    content={"error": "Internal Server Error", "code": "internal_error", "request_id": request_id},
                )
            elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
            response.headers[REQUEST_ID_HEADER] = request_id

            fields = {
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": elapsed_ms,
            }
            if elapsed_ms > self.slow_request_ms:
                logger.warning("Slow request", extra=fields)
            else:
                logger.debug("Request handled", extra=fields)
            return response
        finally:
            request_id_var.reset(ctx_token)
