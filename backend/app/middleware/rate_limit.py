"""
X Tracking API — Credential Endpoint Rate Limiting
====================================================

What:  Per-IP sliding window limiter on the endpoints that accept passwords
       (login and registration).
Why:   Slows down credential stuffing and password guessing without
       touching the rest of the API.

Algorithm: Sliding Window Counter
    1. Each IP gets a list of request timestamps
    2. On each request, drop timestamps older than the window
    3. If the remaining count >= limit, reject with 429
    4. Otherwise record the timestamp and pass the request on

In-memory state: correct for a single uvicorn process only. Multi-worker
deployments need a shared store.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, FrozenSet, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import settings
from app.exceptions import RateLimitExceededError
from app.middleware.request_id import request_id_var
from app.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

CREDENTIAL_PATHS: FrozenSet[str] = frozenset({
    "/api/auth/login",
    "/api/auth/register",
})

SWEEP_INTERVAL = 1000


class AuthRateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window limiter scoped to CREDENTIAL_PATHS (POST only).

    Configuration (from settings):
        auth_rate_limit_requests: Max attempts per window per IP
        auth_rate_limit_window:   Window length in seconds
    """

    def __init__(self, app, paths: FrozenSet[str] = CREDENTIAL_PATHS, **kwargs):
        super().__init__(app, **kwargs)
        self.paths = paths
        self._attempts: Dict[str, List[float]] = defaultdict(list)
        self._since_sweep = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method != "POST" or request.url.path.rstrip("/") not in self.paths:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        window = settings.auth_rate_limit_window
        window_start = now - window

        attempts = [ts for ts in self._attempts[client_ip] if ts > window_start]
        self._attempts[client_ip] = attempts

        if len(attempts) >= settings.auth_rate_limit_requests:
            retry_after = int(attempts[0] + window - now) + 1
            exc = RateLimitExceededError(retry_after=retry_after)
            logger.warning(
                "Credential rate limit hit for IP %s on %s: %d attempts in %ds",
                client_ip,
                request.url.path,
                len(attempts),
                window,
            )
            body = ErrorResponse(
                error="rate_limit_exceeded",
                message=exc.message,
                details=exc.context,
                request_id=request_id_var.get(""),
            )
            return JSONResponse(
                status_code=429,
                content=body.model_dump(),
                headers={"Retry-After": str(exc.retry_after)},
            )

        attempts.append(now)

        # Sweep idle IPs once every SWEEP_INTERVAL recorded attempts
        self._since_sweep += 1
        if self._since_sweep >= SWEEP_INTERVAL:
            self._since_sweep = 0
            self._drop_idle_clients(window_start)

        return await call_next(request)

    def _drop_idle_clients(self, window_start: float) -> None:
        idle = [
            ip for ip, timestamps in self._attempts.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in idle:
            del self._attempts[ip]
        if idle:
            logger.debug("Dropped %d idle rate-limit entries", len(idle))
