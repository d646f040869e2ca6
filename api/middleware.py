import time
import logging
from collections import defaultdict, deque
from threading import Lock

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

# in-process sliding window per client IP; limits API callers, not crawl targets
RATE_LIMIT_REQUESTS = 30   # requests allowed per window
RATE_LIMIT_WINDOW = 60     # window in seconds

UNLIMITED_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")


def client_ip(request: Request) -> str:
    # honour X-Forwarded-For if behind a proxy / load balancer
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, requests_per_window: int = RATE_LIMIT_REQUESTS, window_seconds: int = RATE_LIMIT_WINDOW):
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self._hits: dict[str, deque] = defaultdict(deque)
        self._lock = Lock()

    def _retry_after(self, ip: str, now: float) -> int:
        """Seconds until a slot frees up, or 0 if the request is admitted (and counted)."""
        with self._lock:
            hits = self._hits[ip]
            while hits and hits[0] <= now - self.window_seconds:
                hits.popleft()
            if len(hits) >= self.requests_per_window:
                return int(self.window_seconds - (now - hits[0])) + 1
            hits.append(now)
            return 0

    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNLIMITED_PATHS:
            return await call_next(request)

        ip = client_ip(request)
        retry_after = self._retry_after(ip, time.monotonic())
        if retry_after:
            logger.warning("Rate limit hit for IP %s", ip)
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests. Please slow down."},
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "%s %s -> %d (%dms) from %s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            client_ip(request),
        )
        return response
