"""Redis-backed fallback store."""

import json
import logging

import redis

from tripdesk.db.repositories import Document

logger = logging.getLogger(__name__)


class RedisFallbackStore:
    """Fallback store keeping JSON documents under a key prefix."""

    def __init__(self, redis_client: redis.Redis, prefix: str = "itinerary:fallback:") -> None:
        """Initialize fallback store.

        Args:
            redis_client: Redis client
            prefix: Key namespace for cached documents
        """
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Document | None:
        """Get cached document; unreadable entries are treated as missing."""
        raw = self._redis.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding unreadable fallback entry %s", self._key(key))
            self._redis.delete(self._key(key))
            return None

    def put(self, key: str, document: Document) -> None:
        """Cache a document."""
        self._redis.set(self._key(key), json.dumps(document, sort_keys=True))

    def delete(self, key: str) -> None:
        """Drop a cached document."""
        self._redis.delete(self._key(key))
