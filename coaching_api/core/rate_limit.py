"""
In-memory rate limiting for the public auth endpoints.
"""
import logging
import time
from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from coaching_api.config import settings

logger = logging.getLogger(__name__)

RATE_LIMITED_PATHS = (
    "/auth/register",
    "/auth/login",
    "/auth/token",
    "/auth/refresh",
    "/auth/forgot-password",
    "/auth/verify-reset-token",
    "/auth/reset-password",
)


@dataclass
class _Bucket:
    window_start: float
    count: int


class AuthRateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed-window limiter keyed by client IP and path.
    State lives in the process, so each worker counts separately.
    """

    _buckets: dict = {}
    window_seconds: float = 60.0

    @classmethod
    def reset(cls) -> None:
        cls._buckets.clear()

    @classmethod
    def prune(cls, now: float) -> None:
        """Drop buckets whose window has already closed."""
        expired = [key for key, bucket in cls._buckets.items() if now - bucket.window_start >= cls.window_seconds]
        for key in expired:
            del cls._buckets[key]

    def _is_limited_path(self, path: str) -> bool:
        prefix = settings.API_PREFIX.rstrip("/")
        return any(path == f"{prefix}{p}" for p in RATE_LIMITED_PATHS)

    def _client_key(self, request: Request, path: str) -> str:
        ip = ""
        if settings.TRUST_FORWARDED_FOR:
            xff = (request.headers.get("x-forwarded-for") or "").strip()
            ip = xff.split(",")[0].strip()
        if not ip and request.client:
            ip = request.client.host
        return f"{ip or 'unknown'}:{path}"

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if request.method != "POST" or not self._is_limited_path(path):
            return await call_next(request)

        limit = max(1, settings.AUTH_RATE_LIMIT_PER_MINUTE)
        key = self._client_key(request, path)
        now = time.time()
        self.prune(now)

        bucket = self._buckets.get(key)
        if not bucket:
            bucket = _Bucket(window_start=now, count=0)
            self._buckets[key] = bucket

        bucket.count += 1
        if bucket.count > limit:
            retry_after = int(max(1.0, self.window_seconds - (now - bucket.window_start)))
            logger.warning(f"Rate limit exceeded for {key}")
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests, please try again later"},
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)
