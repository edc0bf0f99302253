import logging
import math
import time
from typing import Dict, NamedTuple, Optional, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.config.settings import get_settings


class RateLimitDecision(NamedTuple):
    allowed: bool
    remaining: int
    reset_after: float


class FixedWindowRateLimiter:
    """
    Counts requests per client in fixed time windows.

    Counters live in process memory, so each worker process enforces its own
    limit. Expired windows are dropped lazily on the next hit.
    """

    def __init__(self):
        self._windows: Dict[str, Tuple[float, int]] = {}

    def hit(
        self,
        key: str,
        limit: int,
        window_seconds: float,
        now: Optional[float] = None,
    ) -> RateLimitDecision:
        """
        Record one request for `key` and report whether it is within the limit.
        """
        now = time.monotonic() if now is None else now
        self._evict_expired(window_seconds, now)

        window_start, count = self._windows.get(key, (now, 0))
        count += 1
        self._windows[key] = (window_start, count)

        reset_after = max(window_start + window_seconds - now, 0.0)
        return RateLimitDecision(
            allowed=count <= limit,
            remaining=max(limit - count, 0),
            reset_after=reset_after,
        )

    def reset(self) -> None:
        self._windows.clear()

    def _evict_expired(self, window_seconds: float, now: float) -> None:
        expired = [
            key
            for key, (window_start, _) in self._windows.items()
            if now - window_start >= window_seconds
        ]
        for key in expired:
            del self._windows[key]


# Shared by every request handled in this process
rate_limiter = FixedWindowRateLimiter()


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app):
        super().__init__(app)
        self._logger = logging.getLogger(__name__)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        settings = get_settings()
        if not settings.RATE_LIMIT_ENABLED:
            return await call_next(request)

        client_host = request.client.host if request.client else "unknown"
        limit = settings.RATE_LIMIT_MAX_REQUESTS
        window_seconds = settings.RATE_LIMIT_WINDOW_SECONDS
        decision = rate_limiter.hit(client_host, limit, window_seconds)

        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(decision.remaining),
        }

        if not decision.allowed:
            self._logger.warning(f"Rate limit exceeded for {client_host}")
            minutes = math.ceil(window_seconds / 60)
            headers["Retry-After"] = str(math.ceil(decision.reset_after))
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Too many requests",
                    "details": (
                        "Too many requests from this IP, please try again "
                        f"after {minutes} minutes"
                    ),
                },
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
