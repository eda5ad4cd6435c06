"""
RecipeShare Backend — Rate Limiting Middleware
================================================

What:  Per-IP sliding window rate limiter.
How:   Keeps a deque of request timestamps per client IP. Timestamps older
       than the window are dropped on each request; when the remaining count
       reaches the limit the request is answered with 429 and Retry-After.

Algorithm: Sliding Window Log
    1. Pop timestamps older than now - window from the left of the deque
    2. len(deque) >= limit → reject; Retry-After = oldest + window - now (ceil)
    3. Otherwise append now and pass the request on

Single-process only: every uvicorn worker keeps its own counters.
"""

import logging
import math
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from recipeshare.config import settings
from recipeshare.exceptions import RateLimitExceededError
from recipeshare.middleware.request_id import REQUEST_ID_HEADER, new_request_id

logger = logging.getLogger(__name__)

# Forget idle clients once this many requests have been seen since the last sweep
SWEEP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Health checks and the API docs are never limited.

    Behind a reverse proxy every client shares the proxy's IP; run uvicorn
    with --proxy-headers so request.client reflects X-Forwarded-For.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._since_sweep = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = self._clock()
        window_start = now - self.window_seconds

        timestamps = self._requests[client_ip]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= self.max_requests:
            retry_after = max(1, math.ceil(timestamps[0] + self.window_seconds - now))
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                self.window_seconds,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            # RequestIDMiddleware sits inside this one and has not run yet
            rid = request.headers.get(REQUEST_ID_HEADER, "").strip() or new_request_id()
            # Raised errors here would bypass the app's exception handlers
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": {"retry_after": retry_after},
                    "request_id": rid,
                },
                headers={"Retry-After": str(retry_after), REQUEST_ID_HEADER: rid},
            )

        timestamps.append(now)

        self._since_sweep += 1
        if self._since_sweep >= SWEEP_EVERY:
            self._sweep(window_start)

        return await call_next(request)

    def _sweep(self, window_start: float) -> None:
        """Drop clients with no request inside the current window."""
        idle = [ip for ip, ts in self._requests.items() if not ts or ts[-1] <= window_start]
        for ip in idle:
            del self._requests[ip]
        self._since_sweep = 0
        if idle:
            logger.debug("Dropped rate limit state for %d idle clients", len(idle))
