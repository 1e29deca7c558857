# cgshare/middleware/rate_limiter.py
# Per-client rate limiting for entry creation and lookups
# Uses in-memory sliding window counter

import time
import logging
from collections import defaultdict
from typing import Callable, Dict, Tuple
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from cgshare.middleware.error_handler import create_error_response

logger = logging.getLogger(__name__)

LIMITED_METHODS = ("GET", "POST")


class SlidingWindowCounter:
    """
    Sliding window rate limiter implementation.
    More accurate than fixed window, less memory than sliding log.
    """

    def __init__(self, window_size: int = 60, max_requests: int = 60, clock: Callable[[], float] = time.time):
        self.window_size = window_size  # seconds
        self.max_requests = max_requests
        self._clock = clock
        # key -> (prev_count, curr_count, window_start)
        self._counters: Dict[str, Tuple[int, int, float]] = defaultdict(lambda: (0, 0, 0.0))

    def is_allowed(self, key: str) -> Tuple[bool, int]:
        """
        Check if request is allowed for given key.
        Returns (is_allowed, remaining_requests).
        """
        now = self._clock()
        prev_count, curr_count, window_start = self._counters[key]

        current_window = now // self.window_size

        if window_start < current_window - 1:
            # More than one window has passed, reset
            prev_count = 0
            curr_count = 1
            window_start = current_window
        elif window_start < current_window:
            # Previous window, slide
            prev_count = curr_count
            curr_count = 1
            window_start = current_window
        else:
            curr_count += 1

        # Weighted count (sliding window approximation)
        weight = (now % self.window_size) / self.window_size
        weighted_count = prev_count * (1 - weight) + curr_count

        self._counters[key] = (prev_count, curr_count, window_start)

        remaining = max(0, int(self.max_requests - weighted_count))
        return weighted_count <= self.max_requests, remaining

    def cleanup_old_entries(self, max_age: int = 300):
        """Remove entries older than max_age seconds."""
        current_window = self._clock() // self.window_size
        stale = [
            key for key, (_, _, window_start) in self._counters.items()
            if current_window - window_start > max_age // self.window_size
        ]
        for key in stale:
            del self._counters[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Limit GET and POST requests per client. Health checks are exempt."""

    def __init__(self, app, limit: int = 60, window_size: int = 60):
        super().__init__(app)
        self.limiter = SlidingWindowCounter(window_size=window_size, max_requests=limit)
        self._last_cleanup = time.time()

    def _get_client_key(self, request: Request) -> str:
        """Extract client identifier from request."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # Take first IP (original client)
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"

    async def dispatch(self, request: Request, call_next):
        if request.method not in LIMITED_METHODS or request.url.path.startswith("/health"):
            return await call_next(request)

        # Periodic cleanup (every 5 minutes)
        now = time.time()
        if now - self._last_cleanup > 300:
            self.limiter.cleanup_old_entries()
            self._last_cleanup = now

        client_key = self._get_client_key(request)
        is_allowed, remaining = self.limiter.is_allowed(client_key)

        if not is_allowed:
            logger.warning(f"Rate limit exceeded for {client_key} on {request.url.path}")
            response = create_error_response(
                error_code="RATE_LIMIT_EXCEEDED",
                message="Too many requests. Please slow down.",
                status_code=429,
                details={"retry_after": self.limiter.window_size},
            )
            response.headers["Retry-After"] = str(self.limiter.window_size)
            response.headers["X-RateLimit-Remaining"] = "0"
            return response

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Limit"] = str(self.limiter.max_requests)
        return response
