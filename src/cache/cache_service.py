"""
Redis-backed cache
Disabled (every call is a no-op) when REDIS_URL is unset or Redis is unreachable
"""

import json
import os
from typing import Optional, Any

import redis
import structlog

logger = structlog.get_logger()


class CacheService:
    def __init__(self, redis_url: Optional[str] = None, client: Optional["redis.Redis"] = None):
        self.redis_url = redis_url if redis_url is not None else os.getenv("REDIS_URL")
        self.client = client

        if self.client is not None:
            return
        if self.redis_url:
            try:
                self.client = redis.from_url(self.redis_url, decode_responses=True)
                self.client.ping()
                logger.info("Connected to Redis for caching")
            except redis.RedisError as e:
                logger.warning("Failed to connect to Redis, caching disabled", error=str(e))
                self.client = None
        else:
            logger.info("REDIS_URL not set, caching disabled")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def get(self, key: str) -> Optional[Any]:
        if not self.client:
            return None
        try:
            data = self.client.get(key)
            if data:
                return json.loads(data)
            return None
        except (redis.RedisError, ValueError) as e:
            logger.warning("Redis get error", key=key, error=str(e))
            return None

    def set(self, key: str, value: Any, ttl_seconds: int = 60) -> None:
        if not self.client:
            return
        try:
            if hasattr(value, "model_dump_json"):
                serialized = value.model_dump_json()
            else:
                serialized = json.dumps(value, default=str)
            self.client.setex(key, ttl_seconds, serialized)
        except (redis.RedisError, TypeError) as e:
            logger.warning("Redis set error", key=key, error=str(e))

    def delete(self, key: str) -> None:
        if not self.client:
            return
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.warning("Redis delete error", key=key, error=str(e))

    def delete_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern

        Returns:
            Number of keys removed (0 when disabled)
        """
        if not self.client:
            return 0
        try:
            keys = list(self.client.scan_iter(match=pattern, count=500))
            if not keys:
                return 0
            return self.client.delete(*keys)
        except redis.RedisError as e:
            logger.warning("Redis delete pattern error", pattern=pattern, error=str(e))
            return 0
