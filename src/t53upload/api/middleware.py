"""HTTP middleware: error logging and request URL hygiene."""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class HTTPErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to ensure all HTTP errors are logged.

    - 4xx responses: logged at INFO level, rejected uploads are routine
    - 5xx responses: logged at ERROR level
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        extra = {
            "http_status": response.status_code,
            "method": request.method,
            "path": request.url.path,
            "user_agent": request.headers.get("user-agent"),
            "duration_ms": duration_ms,
        }

        if 400 <= response.status_code < 500:
            logger.info("Client error response", extra=extra)
        elif response.status_code >= 500:
            logger.error("Server error response", extra=extra)

        return response


class RejectPortsMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose Host header names an explicit port."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        host = request.headers.get("host", "")
        # Strip an IPv6 literal before looking for the port separator
        if ":" in host.rsplit("]", 1)[-1]:
            return PlainTextResponse(
                "Bad Request", status_code=400, headers={"Connection": "close"}
            )
        return await call_next(request)


class DoubleSlashRewriteMiddleware(BaseHTTPMiddleware):
    """Rewrites request paths starting with ``//`` so they route normally."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.scope.get("path", "")
        if path.startswith("//"):
            request.scope["path"] = path.replace("//", "/")
        return await call_next(request)
