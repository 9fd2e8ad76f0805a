import logging
from typing import Dict, Optional

import redis
from redis.exceptions import RedisError

from tableside.interfaces.IKeyValueStore import IKeyValueStore

logger = logging.getLogger(__name__)

class RedisKeyValueStore(IKeyValueStore):
    def __init__(self, url: Optional[str], ttl: Optional[int] = None, client: Optional[redis.Redis] = None):
        self.ttl = ttl
        self.redis = client
        self.redis_available = False

        # 1. Primary storage (Redis)
        if self.redis is None and url:
            try:
                self.redis = redis.from_url(
                    url,
                    decode_responses=True,
                    socket_connect_timeout=1  # Fail fast if Redis is down
                )
            except ValueError as e:
                logger.warning("⚠️ RedisKeyValueStore: bad REDIS_URL (%s). Using RAM fallback.", e)
                self.redis = None

        if self.redis is not None:
            try:
                self.redis.ping()
                self.redis_available = True
                logger.info("✅ RedisKeyValueStore: Connected to Redis.")
            except RedisError as e:
                logger.warning("⚠️ RedisKeyValueStore: Redis unreachable (%s). Using RAM fallback.", e)
        else:
            logger.warning("⚠️ RedisKeyValueStore: no REDIS_URL configured. Using RAM fallback.")

        # 2. Fallback storage (RAM), always kept in sync with writes
        self._memory_store: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        if self.redis_available:
            try:
                return self.redis.get(key)
            except RedisError as e:
                self._handle_redis_error(e)

        return self._memory_store.get(key)

    def set(self, key: str, value: str) -> None:
        if self.redis_available:
            try:
                if self.ttl:
                    self.redis.setex(key, self.ttl, value)
                else:
                    self.redis.set(key, value)
            except RedisError as e:
                self._handle_redis_error(e)

        self._memory_store[key] = value

    def remove(self, key: str) -> None:
        if self.redis_available:
            try:
                self.redis.delete(key)
            except RedisError as e:
                self._handle_redis_error(e)

        self._memory_store.pop(key, None)

    def _handle_redis_error(self, e: RedisError):
        """Log and stop trying Redis; RAM keeps serving this process."""
        logger.error("❌ Redis Error: %s. Switching to RAM mode.", e)
        self.redis_available = False
