"""Shared helpers for the F1 chat web app: rate limiting and request utilities."""

import os
import time
from collections import defaultdict

from flask import request


# ---------------------------------------------------------------------------
# Rate limiter: Redis-backed with in-memory fallback
#
# When REDIS_URL is set, requests are counted in Redis using INCR + EXPIRE
# so counts are shared across all Gunicorn workers. When REDIS_URL is not
# set (local dev) or Redis is unreachable, the limiter falls back to an
# in-process dict that resets on deploy.
# ---------------------------------------------------------------------------
_rate_buckets: dict[str, list[float]] = defaultdict(list)
_last_sweep = 0.0

RATE_LIMIT_WINDOW = 60        # seconds
RATE_LIMIT_MAX_CHAT = int(os.environ.get("RATE_LIMIT_MAX_CHAT", "30"))      # /api/chat per window
RATE_LIMIT_MAX_SEARCH = int(os.environ.get("RATE_LIMIT_MAX_SEARCH", "30"))  # /api/search per window

# Cached Redis client; None means "not available, use in-memory"
_redis_client = None
_redis_checked = False


def _get_redis_client():
    """Return a connected Redis client, or None if unavailable.

    Result is cached after the first connect attempt so that the socket
    overhead is paid once per process, not per request.
    """
    global _redis_client, _redis_checked
    if _redis_checked:
        return _redis_client

    _redis_checked = True
    redis_url = os.environ.get("REDIS_URL")
    if not redis_url:
        _redis_client = None
        return None

    try:
        import redis as _redis_lib
        client = _redis_lib.from_url(redis_url, socket_connect_timeout=1)
        client.ping()
        _redis_client = client
    except Exception:
        _redis_client = None

    return _redis_client


def check_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """Return True if the request is allowed, False if the rate limit is exceeded.

    Uses Redis INCR + EXPIRE when Redis is available. Falls back to the
    in-memory _rate_buckets dict otherwise.

    Args:
        key: Unique key identifying the rate-limit bucket (e.g. ``"rl:chat:1.2.3.4"``).
        limit: Maximum number of requests allowed in *window_seconds*.
        window_seconds: Length of the time window in seconds.
    """
    client = _get_redis_client()
    if client is not None:
        try:
            pipe = client.pipeline()
            pipe.incr(key)
            pipe.expire(key, window_seconds)
            result = pipe.execute()
            return result[0] <= limit
        except Exception:
            pass  # Redis error, fall through to in-memory

    # In-memory fallback (per-process, resets on deploy)
    now = time.monotonic()
    _sweep_buckets(now, window_seconds)
    bucket = _rate_buckets[key]
    _rate_buckets[key] = [t for t in bucket if now - t < window_seconds]
    if len(_rate_buckets[key]) >= limit:
        return False
    _rate_buckets[key].append(now)
    return True


def _sweep_buckets(now: float, window_seconds: int) -> None:
    """Drop buckets with no hit inside the window. Runs at most once per window."""
    global _last_sweep
    if now - _last_sweep < window_seconds:
        return
    _last_sweep = now
    stale = [k for k, hits in _rate_buckets.items() if not hits or now - hits[-1] >= window_seconds]
    for k in stale:
        del _rate_buckets[k]


def _is_rate_limited(ip: str, max_requests: int, scope: str = "ip") -> bool:
    """Return True if ip has exceeded max_requests in the current window."""
    key = f"rl:{scope}:{ip}"
    return not check_rate_limit(key, max_requests, RATE_LIMIT_WINDOW)


def client_ip() -> str:
    """First hop of X-Forwarded-For, else the socket peer address."""
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "")
    return ip.split(",")[0].strip() if ip else ""
