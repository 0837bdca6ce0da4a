"""
Rate limiting middleware using a Redis fixed window counter
"""

import logging
from typing import Optional, Tuple

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from portal.core.config import settings

logger = logging.getLogger(__name__)

# path prefix -> key namespace
LIMITED_PREFIXES = (
    ("/api/auth/", "auth"),
    ("/api/wallet/withdraw", "withdraw"),
    ("/api/prize-draw/enter", "prize_entry"),
    ("/api/prize-draw/claim", "prize_claim"),
    ("/api/messages/support", "support"),
)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP request limits on sensitive endpoints; a no-op without Redis"""

    def __init__(self, app, redis_client=None):
        super().__init__(app)
        self.redis_client = redis_client
        self.rate_limit_requests = settings.rate_limit_requests
        self.rate_limit_window = settings.rate_limit_window_seconds

    async def dispatch(self, request: Request, call_next):
        if not self.redis_client:
            return await call_next(request)

        rate_limit_key = self._get_rate_limit_key(request)
        if not rate_limit_key:
            return await call_next(request)

        is_allowed, retry_after = await self._check_rate_limit(rate_limit_key)
        if not is_allowed:
            logger.warning(f"Rate limit exceeded for key: {rate_limit_key}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": {"error": "Rate limit exceeded"},
                    "retry_after": retry_after
                },
                headers={"Retry-After": str(retry_after)}
            )

        response = await call_next(request)
        await self._record_request(rate_limit_key)
        return response

    def _get_rate_limit_key(self, request: Request) -> Optional[str]:
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"
        for prefix, namespace in LIMITED_PREFIXES:
            if path.startswith(prefix):
                return f"rate_limit:{namespace}:{client_ip}"
        return None

    async def _check_rate_limit(self, key: str) -> Tuple[bool, int]:
        try:
            request_count = await self.redis_client.get(key)
            request_count = int(request_count) if request_count else 0

            if request_count >= self.rate_limit_requests:
                ttl = await self.redis_client.ttl(key)
                retry_after = max(1, ttl) if ttl > 0 else self.rate_limit_window
                return False, retry_after

            return True, 0
        except Exception as e:
            # fail open
            logger.error(f"Error checking rate limit for key {key}: {e}")
            return True, 0

    async def _record_request(self, key: str):
        try:
            pipe = self.redis_client.pipeline()
            pipe.incr(key)
            pipe.expire(key, self.rate_limit_window)
            await pipe.execute()
        except Exception as e:
            logger.error(f"Error recording request for key {key}: {e}")
