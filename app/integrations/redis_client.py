"""
Upstash Redis integration (per-client request counters).

`client` stays None until `initialize()` runs in the FastAPI lifespan, and
stays None when no credentials are configured. Callers read
`redis_client.client` at call time so tests can swap it out.
"""

import logging
from typing import Optional, Tuple

from upstash_redis import Redis

from app.config import settings

logger = logging.getLogger(__name__)

client: Optional[Redis] = None

# Redis TTL replies for "key has no expiry" and "key does not exist"
NO_EXPIRY = -1
MISSING_KEY = -2


def initialize() -> None:
    global client

    if not (settings.upstash_redis_host and settings.upstash_redis_password):
        logger.warning("[STARTUP] No Upstash credentials; request counters stay in process memory")
        return

    try:
        client = Redis(url=settings.upstash_redis_host, token=settings.upstash_redis_password)
        logger.info(f"[STARTUP] Upstash Redis counters enabled ({settings.upstash_redis_host})")
    except Exception as e:
        logger.error(f"[STARTUP] Upstash Redis unavailable, counting in memory: {e}")


def count_hit(rc, key: str, window_sec: int) -> Tuple[int, int]:
    """
    Add one hit to the window counter at `key`.

    The first hit opens the window by setting its expiry. A counter that lost
    its expiry (e.g. the EXPIRE call failed last time) gets a fresh one so it
    can't grow forever. Returns (hits so far, seconds until the window resets).
    """
    hits = int(rc.incr(key))
    if hits == 1:
        rc.expire(key, window_sec)
        return hits, window_sec

    ttl = rc.ttl(key)
    if ttl is None or ttl in (NO_EXPIRY, MISSING_KEY):
        logger.warning(f"[REDIS] Counter {key} had no expiry; reopening its window")
        rc.expire(key, window_sec)
        return hits, window_sec
    return hits, int(ttl)
