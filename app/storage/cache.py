import json
import hashlib
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import redis

from app.config.settings import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class ViewCache:
    """Computed views keyed by snapshot content and view parameters.

    A changed snapshot hashes to a new key, so entries never go stale; the
    TTL only bounds memory.
    """

    def __init__(self, redis_url: str = settings.redis_url, ttl_seconds: int = settings.cache_ttl_seconds):
        self.redis_client = redis.from_url(redis_url, decode_responses=True)
        self.ttl_seconds = ttl_seconds

    def get(self, key: str) -> Optional[Dict]:
        cached = self.redis_client.get(f"view:{key}")
        if cached:
            return json.loads(cached)
        return None

    def set(self, key: str, view: Dict, ttl_seconds: Optional[int] = None) -> None:
        self.redis_client.setex(
            f"view:{key}",
            ttl_seconds or self.ttl_seconds,
            json.dumps(view, default=str)
        )

    def delete(self, key: str) -> None:
        self.redis_client.delete(f"view:{key}")

    @staticmethod
    def hash_snapshot(snapshot: Dict[str, Any]) -> str:
        """Stable digest of a serialized snapshot."""
        data = json.dumps(snapshot, sort_keys=True, default=str)
        return hashlib.sha256(data.encode()).hexdigest()[:16]

    @staticmethod
    def make_key(kind: str, snapshot_hash: str, **params: Any) -> str:
        suffix = ":".join(f"{k}={params[k]}" for k in sorted(params))
        return f"{kind}:{snapshot_hash}:{suffix}" if suffix else f"{kind}:{snapshot_hash}"

    def health_check(self) -> bool:
        """Check Redis connection."""
        try:
            self.redis_client.ping()
            return True
        except redis.RedisError as exc:
            logger.warning(f"Redis ping failed: {exc}")
            return False


@lru_cache(maxsize=1)
def _shared_cache() -> ViewCache:
    return ViewCache()


def get_cache() -> Optional[ViewCache]:
    """FastAPI dependency; None when caching is disabled."""
    if not settings.cache_enabled:
        return None
    return _shared_cache()
