"""
Rate Limiting Middleware

Fixed-window rate limiting keyed by client IP, applied to every route.
X-Forwarded-For / X-Real-IP are used for the key only when
RATE_LIMIT_TRUST_PROXY_HEADERS is set.

Backends:
---------
- RedisRateLimiter (recall.db.redis): counters shared by every API process
- InMemoryRateLimiter: per-process counters (development, tests)

Both expose the same `hit(key, max_requests, window_seconds)` call.
If the backend errors, the request is let through and the error logged.
"""

import time
from typing import Optional, Protocol

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from recall.core.errors import ErrorKind, PUBLIC_MESSAGES
from recall.core.logging import get_logger

logger = get_logger(__name__)


class RateLimiter(Protocol):
    async def hit(self, key: str, max_requests: int, window_seconds: int) -> tuple[bool, int, int]:
        ...


class InMemoryRateLimiter:
    """
    Fixed-window counters held in a dict.

    Only correct for a single process. Counters of past windows are
    dropped whenever the window rolls over, so the dict holds at most the
    keys seen in the current window.
    """

    def __init__(self):
        self._windows: dict[str, tuple[int, int]] = {}
        self._current_window: Optional[int] = None

    async def hit(self, key: str, max_requests: int, window_seconds: int) -> tuple[bool, int, int]:
        now = time.time()
        window = int(now // window_seconds)
        reset_in = int((window + 1) * window_seconds - now) or 1

        if window != self._current_window:
            self._windows = {k: v for k, v in self._windows.items() if v[0] >= window}
            self._current_window = window

        current_window, count = self._windows.get(key, (window, 0))
        if current_window != window:
            count = 0
        count += 1
        self._windows[key] = (window, count)

        remaining = max(0, max_requests - count)
        return (count <= max_requests, remaining, reset_in)

    def __len__(self) -> int:
        return len(self._windows)

    def reset(self) -> None:
        self._windows.clear()
        self._current_window = None


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware for FastAPI.

    The limiter is read from app.state.services at request time, so the
    middleware can be installed before the lifespan has built the services.
    """

    def __init__(
        self,
        app,
        max_requests: int = 100,
        window_seconds: int = 900,
        enabled: bool = True,
        trust_proxy_headers: bool = False,
    ):
        super().__init__(app)
        self.trust_proxy_headers = trust_proxy_headers
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.enabled = enabled

    def _get_limiter(self, request: Request) -> Optional[RateLimiter]:
        services = getattr(request.app.state, "services", None)
        return getattr(services, "rate_limiter", None)

    async def dispatch(self, request: Request, call_next):
        """Process request with rate limiting."""
        limiter = self._get_limiter(request) if self.enabled else None
        if limiter is None:
            return await call_next(request)

        rate_key = f"ip:{self._get_client_ip(request)}"

        try:
            is_allowed, remaining, reset_in = await limiter.hit(
                rate_key,
                self.max_requests,
                self.window_seconds,
            )
        except Exception as e:
            # Fail open
            logger.error("rate_limit_backend_error", error=str(e))
            return await call_next(request)

        headers = {
            "X-RateLimit-Limit": str(self.max_requests),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(reset_in),
        }

        if not is_allowed:
            logger.warning(
                "rate_limit_exceeded",
                key=rate_key,
                limit=self.max_requests,
                window_seconds=self.window_seconds,
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "error": {
                        "code": ErrorKind.RATE_LIMITED.value,
                        "message": PUBLIC_MESSAGES[ErrorKind.RATE_LIMITED],
                    }
                },
                headers={**headers, "Retry-After": str(reset_in)},
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response

    def _get_client_ip(self, request: Request) -> str:
        """
        Get client IP address.

        X-Forwarded-For / X-Real-IP are read only with trust_proxy_headers.
        """
        if self.trust_proxy_headers:
            # Check X-Forwarded-For header (for proxies/load balancers)
            forwarded_for = request.headers.get("X-Forwarded-For")
            if forwarded_for:
                # Take first IP in chain
                return forwarded_for.split(",")[0].strip()

            # Check X-Real-IP header
            real_ip = request.headers.get("X-Real-IP")
            if real_ip:
                return real_ip.strip()

        # Direct client IP
        if request.client:
            return request.client.host

        return "unknown"
