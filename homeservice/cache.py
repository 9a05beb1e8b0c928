"""
Read-through Redis cache for the public catalogue (category listings, counts, subcategories).

Entries are JSON documents stored under ``<namespace>:<suffix>``. Moderation actions that change
what the public sees clear the whole namespace. Without Redis every lookup misses and the
wrapped function runs as normal.
"""
import json
import logging
from functools import wraps
from typing import Any, Callable, Optional

import redis

from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

CATEGORY_CACHE_TTL = 600
CATEGORY_NAMESPACE = "categories"


class NamespaceCache:
    """JSON values under one key namespace"""

    def __init__(self, namespace: str):
        self.namespace = namespace

    def key(self, suffix: str) -> str:
        return f"{self.namespace}:{suffix}"

    @staticmethod
    def _client():
        try:
            return get_redis_client()
        except redis.RedisError as e:
            logger.warning(f"⚠️ Catalogue cache disabled, Redis unreachable: {e}")
            return None

    def read(self, suffix: str) -> Optional[Any]:
        client = self._client()
        if client is None:
            return None
        try:
            raw = client.get(self.key(suffix))
        except redis.RedisError as e:
            logger.error(f"❌ Catalogue cache read failed for {self.key(suffix)}: {e}")
            return None
        return json.loads(raw) if raw else None

    def write(self, suffix: str, value: Any, ttl: int) -> bool:
        client = self._client()
        if client is None:
            return False
        try:
            client.set(self.key(suffix), json.dumps(value, default=str), ex=ttl)
        except redis.RedisError as e:
            logger.error(f"❌ Catalogue cache write failed for {self.key(suffix)}: {e}")
            return False
        return True

    def clear(self) -> int:
        """Drop every entry in the namespace; returns how many keys went"""
        client = self._client()
        if client is None:
            return 0
        try:
            keys = list(client.scan_iter(match=self.key("*"), count=100))
            removed = client.delete(*keys) if keys else 0
        except redis.RedisError as e:
            logger.error(f"❌ Catalogue cache clear failed for {self.namespace}: {e}")
            return 0
        if removed:
            logger.info(f"🧹 Cleared {removed} cached {self.namespace} entries")
        return removed


_namespaces: dict[str, NamespaceCache] = {}


def namespace_cache(namespace: str) -> NamespaceCache:
    if namespace not in _namespaces:
        _namespaces[namespace] = NamespaceCache(namespace)
    return _namespaces[namespace]


def cached(key_prefix: str, ttl: int = CATEGORY_CACHE_TTL, key_builder: Optional[Callable] = None):
    """
    Cache a function's JSON-serialisable result under ``key_prefix``.

    ``key_builder`` receives the call arguments and returns the key suffix; calls without one
    share the ``default`` entry. ``None`` results are never stored.
    """
    store = namespace_cache(key_prefix)

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            suffix = key_builder(*args, **kwargs) if key_builder else "default"
            hit = store.read(suffix)
            if hit is not None:
                return hit

            result = func(*args, **kwargs)
            if result is not None:
                store.write(suffix, result, ttl)
            return result

        return wrapper

    return decorator


def invalidate_category_cache() -> int:
    """A service or provider changed visibility; category listings and counts are stale"""
    return namespace_cache(CATEGORY_NAMESPACE).clear()
