"""
Per-client request throttling for the public and auth endpoints.

Each limiter is a fixed window: ``limit`` requests per ``window_seconds`` per client IP and
route family. Windows are counted in Redis (INCR + EXPIRE in one pipeline) so every worker shares
them. When Redis is not configured, or stops answering, counting falls back to this process.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional
from urllib.parse import urlsplit

import redis
from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)

_redis: Optional[redis.Redis] = None

# key -> (count, window_ends_at)
_local_windows: dict[str, tuple[int, float]] = {}
_local_lock = Lock()
LOCAL_PRUNE_THRESHOLD = 5000


def redis_configured() -> bool:
    return bool(os.getenv("REDIS_URL") or os.getenv("REDIS_HOST"))


def _describe(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.hostname}:{parts.port or 6379}"


def _connection_options() -> dict:
    return {
        "decode_responses": True,
        "socket_connect_timeout": 5,
        "socket_timeout": 5,
        "retry_on_timeout": True,
        "health_check_interval": 30,
    }


def get_redis_client() -> Optional[redis.Redis]:
    """
    Shared Redis client for throttling and the catalogue cache.
    ``None`` when neither REDIS_URL nor REDIS_HOST is set.
    """
    global _redis

    if _redis is not None or not redis_configured():
        return _redis

    url = os.getenv("REDIS_URL")
    if url:
        logger.info(f"📡 Connecting to Redis at {_describe(url)}")
        client = redis.from_url(url, **_connection_options())
    else:
        host = os.getenv("REDIS_HOST", "localhost")
        port = int(os.getenv("REDIS_PORT", "6379"))
        logger.info(f"📡 Connecting to Redis at {host}:{port}")
        client = redis.Redis(
            host=host,
            port=port,
            password=os.getenv("REDIS_PASSWORD") or None,
            db=int(os.getenv("REDIS_DB", "0")),
            ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
            **_connection_options(),
        )

    try:
        client.ping()
    except redis.RedisError as e:
        logger.error(f"❌ Redis ping failed: {e}")
        raise

    _redis = client
    return _redis


def reset_rate_limits() -> None:
    """Forget every in-process window"""
    with _local_lock:
        _local_windows.clear()


def _hit_local(key: str, window_seconds: int) -> tuple[int, int]:
    now = time.time()
    with _local_lock:
        if len(_local_windows) > LOCAL_PRUNE_THRESHOLD:
            for stale in [k for k, (_, ends) in _local_windows.items() if ends <= now]:
                del _local_windows[stale]

        count, ends = _local_windows.get(key, (0, now + window_seconds))
        if ends <= now:
            count, ends = 0, now + window_seconds
        count += 1
        _local_windows[key] = (count, ends)
    return count, max(1, int(ends - now))


def _hit_redis(client: redis.Redis, key: str, window_seconds: int) -> tuple[int, int]:
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.ttl(key)
    count, ttl = pipe.execute()
    if ttl is None or ttl < 0:
        # first hit of a new window
        client.expire(key, window_seconds)
        ttl = window_seconds
    return int(count), ttl


def record_hit(key: str, window_seconds: int) -> tuple[int, int]:
    """Count one request against ``key``; returns (requests in window, seconds until reset)"""
    try:
        client = get_redis_client()
    except redis.RedisError:
        client = None

    if client is not None:
        try:
            return _hit_redis(client, key, window_seconds)
        except redis.RedisError as e:
            logger.warning(f"⚠️ Redis throttling unavailable, counting locally: {e}")
    return _hit_local(key, window_seconds)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit", use_ip: bool = True):
    """
    Build a FastAPI dependency enforcing ``limit`` requests per ``window_seconds``.

        login_limit = create_rate_limiter(limit=10, window_seconds=900, key_prefix="auth_login")

        @router.post("/login", dependencies=[Depends(login_limit)])
    """

    async def rate_limiter(request: Request) -> None:
        key = f"rl:{key_prefix}:{client_ip(request) if use_ip else 'global'}"
        count, retry_after = record_hit(key, window_seconds)

        if count > limit:
            logger.warning(f"🚫 Throttled {key}: {count}/{limit} in {window_seconds}s")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "message": f"Too many requests. Maximum {limit} requests per {window_seconds} seconds.",
                    "retry_after": retry_after,
                    "limit": limit,
                    "window_seconds": window_seconds,
                },
                headers={"Retry-After": str(retry_after)},
            )

        request.state.rate_limit_remaining = limit - count

    return rate_limiter
