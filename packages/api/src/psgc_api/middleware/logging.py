"""Structured access logging for the PSGC API."""

from __future__ import annotations

import time

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from psgc_api.middleware.rate_limit import client_key

logger = structlog.get_logger()


def _route_template(request: Request) -> str | None:
    """The matched path template (/api/v1/regions/{code}); None when nothing matched."""
    route = request.scope.get("route")
    return getattr(route, "path", None)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    One event per request, keyed the same way the rate limiter keys clients.

    4xx and 5xx responses (429 from the rate limiter included) log at
    warning so rejected traffic stands out from normal reads.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.monotonic()
        log = logger.bind(
            method=request.method,
            path=request.url.path,
            query=str(request.url.query) or None,
            client=client_key(request),
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            log.error(
                "request_failed",
                route=_route_template(request),
                error=str(exc),
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise

        emit = log.warning if response.status_code >= 400 else log.info
        emit(
            "request_completed",
            route=_route_template(request),
            status=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        return response
