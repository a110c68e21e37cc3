"""Request tracing middleware.

Every HTTP request gets a request id (taken from ``X-Request-ID`` or
generated), a start/finish log line with its duration, and the id echoed
back on the response. WebSocket traffic is not touched.
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

# Probes and docs would drown out real traffic
QUIET_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})


def _completion_level(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "info"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds the request context and logs each request's outcome."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        quiet = request.url.path in QUIET_PATHS
        started = time.perf_counter()

        if not quiet:
            logger.info(
                "Request started",
                extra={
                    "extra_fields": {
                        "query": request.url.query or None,
                        "client_ip": request.client.host if request.client else None,
                    }
                },
            )

        try:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.exception(
                    "Request failed with unhandled exception",
                    extra={
                        "extra_fields": {
                            "error": str(e),
                            "duration_ms": round(
                                (time.perf_counter() - started) * 1000, 2
                            ),
                        }
                    },
                )
                raise

            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            if not quiet:
                getattr(logger, _completion_level(response.status_code))(
                    "Request completed",
                    extra={
                        "extra_fields": {
                            "status_code": response.status_code,
                            "duration_ms": duration_ms,
                        }
                    },
                )
        finally:
            clear_request_context()

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = str(duration_ms)
        return response


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install ``RequestContextMiddleware`` on ``app``."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
    logger.info("Observability middleware initialized")
