"""
Persistent storage for the user's highlight configuration.
"""

import json
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import ValidationError

from ..config import HighlightConfig, Settings
from ..logging import setup_logger
from ..redis_client import RedisClient

logger = setup_logger("visited_links.config_store")


class ConfigStore(ABC):
    """Abstract base class for configuration backends."""

    @abstractmethod
    async def load(self) -> HighlightConfig:
        """Return the stored configuration, defaults filled in."""
        pass

    @abstractmethod
    async def save(self, config: HighlightConfig) -> None:
        """Persist ``config``."""
        pass

    async def close(self):
        return None


class InMemoryConfigStore(ConfigStore):
    """Configuration held for the lifetime of the process."""

    def __init__(self, config: Optional[HighlightConfig] = None):
        self._config = config or HighlightConfig()

    async def load(self) -> HighlightConfig:
        return self._config.model_copy(deep=True)

    async def save(self, config: HighlightConfig) -> None:
        self._config = config.model_copy(deep=True)


class RedisConfigStore(ConfigStore):
    """Configuration stored as one JSON document in Redis."""

    def __init__(self, redis: RedisClient, key: str = "visited_links:config"):
        self.redis = redis
        self.key = key

    async def load(self) -> HighlightConfig:
        raw = await self.redis.get(self.key)
        if not raw:
            return HighlightConfig()
        try:
            return HighlightConfig.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Stored configuration under {self.key} is unreadable, using defaults: {e}")
            return HighlightConfig()

    async def save(self, config: HighlightConfig) -> None:
        await self.redis.set(self.key, json.dumps(config.to_wire()))
        logger.debug(f"Saved configuration under {self.key}")

    async def close(self):
        await self.redis.close()


async def create_config_store(settings: Settings) -> ConfigStore:
    """Build the configuration backend selected by ``CONFIG_BACKEND``."""
    if settings.CONFIG_BACKEND == "redis":
        redis = RedisClient(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD,
        )
        await redis.__aenter__()
        if not await redis.health_check():
            logger.warning("Redis is not answering; configuration reads will fail until it does")
        return RedisConfigStore(redis, key=settings.CONFIG_KEY)
    if settings.CONFIG_BACKEND != "memory":
        raise ValueError(f"Unknown CONFIG_BACKEND: {settings.CONFIG_BACKEND}")
    return InMemoryConfigStore()
