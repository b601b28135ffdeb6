"""In-memory sliding-window rate limiting for sync endpoints.

A limiter is a FastAPI dependency. Keyed ``by="user"`` it must be declared
after ``get_current_user`` so the caller is already on ``request.state``:

    push_rate_limit = RateLimiter(max_calls=20, key="sync_push", by="user")

    @router.post("/push")
    async def sync_push(
        current_user: Annotated[User, Depends(get_current_user)],
        _rl: Annotated[None, Depends(push_rate_limit)],
    ):
        ...

Counters live in process memory; each worker limits independently.
"""

import logging
import time
from collections import defaultdict, deque
from threading import Lock

from fastapi import HTTPException, Request, status

from siteguard.core.middleware import client_ip

logger = logging.getLogger(__name__)


class _SlidingWindowCounter:
    def __init__(self) -> None:
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._lock = Lock()

    def is_allowed(self, key: str, max_calls: int, window_seconds: int) -> bool:
        now = time.monotonic()
        with self._lock:
            hits = self._hits[key]
            while hits and hits[0] <= now - window_seconds:
                hits.popleft()
            if len(hits) >= max_calls:
                return False
            hits.append(now)
            return True

    def clear(self) -> None:
        with self._lock:
            self._hits.clear()


_counter = _SlidingWindowCounter()


def reset_rate_limits() -> None:
    """Forget every recorded hit."""
    _counter.clear()


class RateLimiter:
    """Allow ``max_calls`` per ``window_seconds`` per caller.

    ``by`` selects the caller identity: ``"user"`` (falls back to the client
    IP when unauthenticated) or ``"ip"``.
    """

    def __init__(self, max_calls: int, window_seconds: int = 60, key: str = "default", by: str = "ip") -> None:
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self.key = key
        self.by = by

    def _identity(self, request: Request) -> str:
        if self.by == "user":
            user = getattr(request.state, "current_user", None)
            if user is not None:
                return f"user:{user.id}"
        return f"ip:{client_ip(request)}"

    async def __call__(self, request: Request) -> None:
        identity = self._identity(request)
        if _counter.is_allowed(f"{self.key}:{identity}", self.max_calls, self.window_seconds):
            return
        logger.warning("Rate limit hit on %s for %s", self.key, identity)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded. Maximum {self.max_calls} requests per {self.window_seconds} seconds.",
        )
