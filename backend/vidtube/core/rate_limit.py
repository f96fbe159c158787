"""
Rate Limiting Middleware

Provides rate limiting for API endpoints using Redis.
Protects the API from abuse and ensures fair usage across users.

Two layers:
-----------
1. ``RateLimitMiddleware``: every request, per user (valid access token) or
   per client IP, RATE_LIMIT_AUTHENTICATED / RATE_LIMIT_ANONYMOUS per minute.
2. ``auth_rate_limit``: dependency on login / register / refresh, a stricter
   per-IP budget (RATE_LIMIT_AUTH_ENDPOINTS per minute) against credential
   stuffing.

Both fail open: if Redis is unreachable the request proceeds and the error
is logged.
"""

from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from vidtube.core.auth import ACCESS_COOKIE
from vidtube.core.config import settings
from vidtube.core.errors import TooManyRequestsError
from vidtube.core.logging import get_logger
from vidtube.core.security import decode_access_token
from vidtube.db.redis import RedisRateLimiter, get_redis

logger = get_logger(__name__)

WINDOW_SECONDS = 60
EXEMPT_PATHS = {"/", "/health", "/docs", "/redoc", "/openapi.json"}


def get_client_ip(request: Request) -> str:
    """Get client IP address, handling proxies."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take first IP in chain
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


def get_token_subject(request: Request) -> Optional[str]:
    """
    User id from a valid access token, without touching the database.

    The middleware runs before route dependencies resolve the user, so it
    reads the token itself.
    """
    token = request.cookies.get(ACCESS_COOKIE)
    if not token:
        authorization = request.headers.get("Authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            token = credentials
    if not token:
        return None

    payload = decode_access_token(token)
    return payload["sub"] if payload else None


def _rate_limited_response(max_requests: int, remaining: int) -> JSONResponse:
    error = TooManyRequestsError()
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error.to_envelope(),
        headers={
            "X-RateLimit-Limit": str(max_requests),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(WINDOW_SECONDS),
            "Retry-After": str(WINDOW_SECONDS),
        },
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window rate limiting per user or per IP.

    Uses Redis sliding window algorithm for accurate rate limiting.
    Different limits for authenticated vs unauthenticated users.
    """

    def __init__(self, app, **kwargs):
        super().__init__(app)
        self.rate_limiter: Optional[RedisRateLimiter] = None
        self.anonymous_limit = settings.RATE_LIMIT_ANONYMOUS
        self.authenticated_limit = settings.RATE_LIMIT_AUTHENTICATED

    async def dispatch(self, request: Request, call_next):
        if not settings.RATE_LIMIT_ENABLED or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        if self.rate_limiter is None:
            try:
                self.rate_limiter = RedisRateLimiter(await get_redis())
            except Exception as e:
                logger.error("rate_limit_redis_unavailable", error=str(e))
                return await call_next(request)

        user_id = get_token_subject(request)
        if user_id:
            rate_key = f"user:{user_id}"
            max_requests = self.authenticated_limit
        else:
            rate_key = f"ip:{get_client_ip(request)}"
            max_requests = self.anonymous_limit

        try:
            is_allowed, current_count = await self.rate_limiter.is_allowed(
                rate_key, max_requests, WINDOW_SECONDS
            )
            remaining = max(0, max_requests - current_count)
        except Exception as e:
            logger.error("rate_limit_check_failed", error=str(e), rate_key=rate_key)
            return await call_next(request)

        if not is_allowed:
            logger.warning(
                "rate_limit_exceeded",
                rate_key=rate_key,
                count=current_count,
                limit=max_requests,
                window_seconds=WINDOW_SECONDS,
            )
            return _rate_limited_response(max_requests, 0)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(WINDOW_SECONDS)
        return response


# ========================================
# Endpoint-Specific Rate Limiting
# ========================================

async def check_rate_limit(
    request: Request,
    max_requests: int,
    window_seconds: int = WINDOW_SECONDS,
    key_prefix: str = "endpoint",
) -> None:
    """
    Check a per-IP rate limit for one group of endpoints.

    Raises:
        TooManyRequestsError: limit exceeded
    """
    if not settings.RATE_LIMIT_ENABLED:
        return

    rate_key = f"{key_prefix}:ip:{get_client_ip(request)}"
    try:
        rate_limiter = RedisRateLimiter(await get_redis())
        is_allowed, current_count = await rate_limiter.is_allowed(
            rate_key, max_requests, window_seconds
        )
    except Exception as e:
        logger.error("rate_limit_check_failed", error=str(e), rate_key=rate_key)
        return

    if not is_allowed:
        logger.warning("auth_rate_limit_exceeded", rate_key=rate_key, count=current_count)
        raise TooManyRequestsError(
            "Too many attempts. Please try again later.",
            errors=[{"limit": max_requests, "windowSeconds": window_seconds}],
        )


async def auth_rate_limit(request: Request) -> None:
    """Dependency for login / register / refresh."""
    await check_rate_limit(
        request,
        max_requests=settings.RATE_LIMIT_AUTH_ENDPOINTS,
        key_prefix="auth",
    )
