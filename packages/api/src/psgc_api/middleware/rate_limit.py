"""Per-client fixed-window rate limiting for /api/ routes."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from psgc_shared.config import settings

from psgc_api.responses import error_response

logger = structlog.get_logger()

LIMITED_PREFIX = "/api/"
EXEMPT_PATHS = frozenset({"/api/health"})


def client_key(request: Request) -> str:
    """Address a request is counted against; "unknown" when the server gives none."""
    client = request.client
    return client.host if client else "unknown"


@dataclass
class RateBucket:
    count: int = 0
    window_start: float = 0.0


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    At most *max_requests* per *window_seconds* per client address.

    Defaults come from settings (100 requests / 15 minutes).
    """

    def __init__(
        self,
        app: ASGIApp,
        max_requests: int | None = None,
        window_seconds: int | None = None,
    ) -> None:
        super().__init__(app)
        self._max_requests = max_requests or settings.rate_limit_requests
        self._window = window_seconds or settings.rate_limit_window_seconds
        self._buckets: dict[str, RateBucket] = {}
        self._lock = threading.Lock()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if not path.startswith(LIMITED_PREFIX) or path in EXEMPT_PATHS:
            return await call_next(request)

        key = client_key(request)
        now = time.monotonic()

        with self._lock:
            bucket = self._buckets.setdefault(key, RateBucket(window_start=now))
            if now - bucket.window_start >= self._window:
                bucket.count = 0
                bucket.window_start = now

            reset_in = max(1, int(bucket.window_start + self._window - now))
            if bucket.count >= self._max_requests:
                logger.warning("rate_limited", client=key, path=path, limit=self._max_requests)
                return JSONResponse(
                    status_code=429,
                    content=error_response(
                        429, "Too many requests from this address, please try again later."
                    ),
                    headers={
                        "Retry-After": str(reset_in),
                        "RateLimit-Limit": str(self._max_requests),
                        "RateLimit-Remaining": "0",
                        "RateLimit-Reset": str(reset_in),
                    },
                )

            bucket.count += 1
            remaining = self._max_requests - bucket.count

        response = await call_next(request)
        response.headers["RateLimit-Limit"] = str(self._max_requests)
        response.headers["RateLimit-Remaining"] = str(remaining)
        response.headers["RateLimit-Reset"] = str(reset_in)
        return response
