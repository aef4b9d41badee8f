"""Redis client module for the affiliate redirect cache"""
import redis.asyncio as redis
from typing import Optional, Any
import json
import logging

logger = logging.getLogger(__name__)


class RedisClient:
    """Async Redis client; every call is a no-op while disconnected"""

    def __init__(self):
        self.redis: Optional[redis.Redis] = None
        self.connected = False

    async def connect(self, url: str) -> bool:
        """Initialize Redis connection"""
        try:
            self.redis = redis.from_url(
                url,
                encoding="utf-8",
                decode_responses=True,
                socket_keepalive=True,
            )
            # Test connection
            await self.redis.ping()
            self.connected = True
            logger.info("Connected to Redis")
            return True
        except Exception as e:
            logger.warning(f"Redis not available, running without cache: {e}")
            self.connected = False
            return False

    async def disconnect(self):
        """Close Redis connection"""
        if self.redis:
            await self.redis.aclose()
            self.connected = False
            logger.info("Redis connection closed")

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        if not self.connected:
            return None
        try:
            value = await self.redis.get(key)
            if value:
                return json.loads(value) if value.startswith('{') else value
            return None
        except Exception as e:
            logger.error(f"Redis get error: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL"""
        if not self.connected:
            return False
        try:
            if isinstance(value, (dict, list)):
                value = json.dumps(value)
            await self.redis.setex(key, ttl, value)
            return True
        except Exception as e:
            logger.error(f"Redis set error: {e}")
            return False

    async def delete(self, *keys: str) -> int:
        """Delete keys from cache"""
        if not self.connected:
            return 0
        try:
            return await self.redis.delete(*keys)
        except Exception as e:
            logger.error(f"Redis delete error: {e}")
            return 0

    async def ping(self) -> bool:
        """Check if Redis is responsive"""
        if not self.connected:
            return False
        try:
            await self.redis.ping()
            return True
        except Exception:
            return False


# Global Redis client instance
redis_client = RedisClient()
