"""
Per-client request budget over fixed windows.

Each client gets `rate_limit_max_requests` hits per window. The first hit
opens a window of `rate_limit_request_window_sec` seconds and the count
starts over once it has elapsed, the way express-rate-limit counts.

Counters live in Redis when the integration has a client and in process
memory otherwise (or when a Redis call fails).
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Dict

from fastapi import Request

from app.config import settings
from app.core.errors import RateLimitedError
from app.integrations import redis_client as redis_module

logger = logging.getLogger(__name__)


@dataclass
class WindowState:
    hits: int
    reset_at: float

    @property
    def remaining(self) -> int:
        return max(settings.rate_limit_max_requests - self.hits, 0)

    def seconds_left(self, now: float) -> int:
        return max(math.ceil(self.reset_at - now), 0)

    def headers(self, now: float) -> Dict[str, str]:
        return {
            "RateLimit-Limit": str(settings.rate_limit_max_requests),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.seconds_left(now)),
        }


# In-memory windows: {identifier: WindowState}
_windows: Dict[str, WindowState] = {}


def window_key(identifier: str) -> str:
    return f"rate_limit:{identifier}"


def get_client_ip(request: Request) -> str:
    """Client IP as seen behind Cloudflare or a proxy chain, else the socket peer."""
    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip

    x_forwarded = request.headers.get("x-forwarded-for")
    if x_forwarded:
        return x_forwarded.split(",")[0].strip()

    return request.client.host if request.client else "127.0.0.1"


def record_hit(identifier: str) -> WindowState:
    """Count one request for `identifier` and return its current window."""
    rc = redis_module.client
    if rc is not None:
        try:
            hits, ttl = redis_module.count_hit(
                rc, window_key(identifier), settings.rate_limit_request_window_sec
            )
            return WindowState(hits=hits, reset_at=time.time() + ttl)
        except Exception as e:
            logger.error(f"[RATE LIMIT] Redis counter failed for {identifier}, using memory: {e}")
    return _record_hit_memory(identifier, time.time())


def _record_hit_memory(identifier: str, now: float) -> WindowState:
    if len(_windows) > settings.rate_limit_memory_limit:
        _drop_expired_windows(now)

    state = _windows.get(identifier)
    if state is None or now >= state.reset_at:
        state = WindowState(hits=0, reset_at=now + settings.rate_limit_request_window_sec)
        _windows[identifier] = state
    state.hits += 1
    return state


def _drop_expired_windows(now: float) -> None:
    expired = [k for k, state in _windows.items() if now >= state.reset_at]
    for k in expired:
        del _windows[k]
    logger.info(f"[RATE LIMIT] Dropped {len(expired)} expired windows, {len(_windows)} left")


def check_rate_limit(identifier: str) -> WindowState:
    """Record a hit and raise RateLimitedError once the window's budget is spent."""
    state = record_hit(identifier)
    if state.hits > settings.rate_limit_max_requests:
        now = time.time()
        logger.warning(
            f"[RATE LIMIT] {identifier} over budget "
            f"({state.hits}/{settings.rate_limit_max_requests}, resets in {state.seconds_left(now)}s)"
        )
        raise RateLimitedError(retry_after=state.seconds_left(now), headers=state.headers(now))
    return state
