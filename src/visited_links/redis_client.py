"""
Async Redis client used for persisted user configuration.
"""

from typing import Any, Optional

import redis.asyncio as aioredis

from .logging import setup_logger

logger = setup_logger("visited_links.redis")


class RedisClient:
    """Thin async Redis wrapper with context management."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        client: Optional[aioredis.Redis] = None,
    ):
        """Initialize Redis client.

        Args:
            host: Redis host
            port: Redis port
            db: Redis database number
            password: Redis password, if any
            client: Pre-built client (tests pass a fake here)
        """
        self.host = host
        self.port = port
        self.db = db
        self.password = password or None
        self.client = client

    async def __aenter__(self) -> "RedisClient":
        if not self.client:
            logger.debug(f"Connecting to Redis at {self.host}:{self.port}/{self.db}")
            self.client = aioredis.from_url(
                f"redis://{self.host}:{self.port}/{self.db}",
                password=self.password,
                decode_responses=True,
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        if self.client:
            await self.client.aclose()
            self.client = None

    async def health_check(self) -> bool:
        """Return True when Redis answers a ping."""
        try:
            if not self.client:
                return False
            await self.client.ping()
            return True
        except Exception as e:
            logger.error(f"Redis health check failed: {str(e)}")
            return False

    async def get(self, key: str, default: Any = None) -> Any:
        if not self.client:
            raise RuntimeError("Redis client not initialized")
        value = await self.client.get(key)
        return default if value is None else value

    async def set(self, key: str, value: str) -> bool:
        if not self.client:
            raise RuntimeError("Redis client not initialized")
        await self.client.set(key, value)
        return True
