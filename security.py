"""
API key authentication and per-client rate limiting for ``/api`` routes.

Both are router dependencies, so failures go through the same exception
handler as every other API error.
"""
import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request

from errors import RateLimited, Unauthorized

logger = logging.getLogger(__name__)

# api key -> identity attached to request.state.user
API_KEYS: Dict[str, Dict[str, object]] = {
    "demo_key_12345": {"id": 1, "name": "Demo User", "role": "demo"},
    "test_key_67890": {"id": 2, "name": "Test User", "role": "tester"},
    "student_key_abcde": {"id": 3, "name": "Student User", "role": "student"},
    "dev_key_quickstart": {"id": 4, "name": "Developer", "role": "developer"},
}
DEMO_KEY = "demo_key_12345"
PUBLIC_PATHS = ("/", "/health", "/api/docs")


class RateLimiter:
    """Fixed-window request counter keyed by client address."""

    def __init__(self, max_requests: int = 100, window_seconds: int = 15 * 60,
                 clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def hit(self, client: str) -> bool:
        """Count one request; return False once the client is over the limit."""
        now = self._clock()
        with self._lock:
            self._sweep(now)
            started, count = self._windows.get(client, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[client] = (started, count)
            return count <= self.max_requests

    def _sweep(self, now: float) -> None:
        # at most once per window; caller holds the lock
        if now - self._last_sweep < self.window_seconds:
            return
        self._windows = {
            client: (started, count)
            for client, (started, count) in self._windows.items()
            if now - started < self.window_seconds
        }
        self._last_sweep = now

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._windows)

    def remaining(self, client: str) -> int:
        with self._lock:
            started, count = self._windows.get(client, (0.0, 0))
        if self._clock() - started >= self.window_seconds:
            return self.max_requests
        return max(self.max_requests - count, 0)

    @property
    def window_label(self) -> str:
        minutes = self.window_seconds // 60
        if minutes and self.window_seconds % 60 == 0:
            return f"{minutes} minutes"
        return f"{self.window_seconds} seconds"


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def enforce_rate_limit(request: Request) -> None:
    limiter: RateLimiter = request.app.state.rate_limiter
    client = client_address(request)
    if not limiter.hit(client):
        logger.warning("Rate limit exceeded for %s on %s", client, request.url.path)
        raise RateLimited(retry_after=limiter.window_label)


def require_api_key(request: Request) -> None:
    if request.url.path in PUBLIC_PATHS:
        return

    api_key: Optional[str] = request.headers.get("x-api-key") or request.query_params.get("api_key")
    if not api_key:
        raise Unauthorized(
            "API key missing. Include X-API-Key header or api_key query parameter",
            documentation="/api/docs",
            hint=f"Use {DEMO_KEY} for testing",
        )
    if api_key not in API_KEYS:
        raise Unauthorized(
            "The provided API key is not valid",
            error="Invalid API key",
            hint=f"Use {DEMO_KEY} for testing",
        )

    request.state.api_key = api_key
    request.state.user = API_KEYS[api_key]
