"""
ResiHub Backend — Rate Limiting Middleware
============================================

What:  Per-IP sliding-window request limit.
How:   Keeps the timestamps of each IP's requests inside the window in
       memory. A request arriving when the window is full gets 429 with
       `{message}` and a Retry-After header.

State is per process; with several uvicorn workers each worker enforces its
own budget.
"""

import logging
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from resihub.config import settings
from resihub.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        max_requests: requests allowed per IP inside one window
        window:       window length in seconds

    Health probes and API docs are never limited.
    """

    EXCLUDED_PATHS = {"/", "/api/health", "/docs", "/openapi.json", "/redoc"}

    # Sweep idle IPs after this many recorded requests
    SWEEP_EVERY = 1000

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window: Optional[int] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window = window or settings.rate_limit_window
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._since_sweep = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window_start = now - self.window

        timestamps = self._requests[client_ip]
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                self.window,
            )
            # Handlers registered on the app do not see middleware exceptions
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={"message": exc.message},
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)
        self._since_sweep += 1
        if self._since_sweep >= self.SWEEP_EVERY:
            self._sweep(window_start)

        return await call_next(request)

    def _sweep(self, window_start: float) -> None:
        """Forget IPs with no request inside the current window."""
        self._since_sweep = 0
        idle = [ip for ip, ts in self._requests.items() if not ts or ts[-1] <= window_start]
        for ip in idle:
            del self._requests[ip]
        if idle:
            logger.debug("Cleaned up %d inactive IP entries", len(idle))
