from typing import Optional

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from ..config import log_error
from ..errors import BackingStoreUnavailable

logger = structlog.get_logger()


class RedisManager:
    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        """Initialize Redis manager with a connection URL, or an existing client."""
        self.redis_url = redis_url
        self.redis: Optional[redis.Redis] = client

    async def connect(self) -> redis.Redis:
        """Establish connection to Redis."""
        try:
            if self.redis is None:
                self.redis = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True
                )
            await self.redis.ping()
            logger.info("redis_connection_established")
        except (RedisError, OSError, ValueError) as e:
            self.redis = None
            error = BackingStoreUnavailable(self.redis_url, str(e))
            log_error(logger, error, event="redis_connection_failed")
            raise error from e
        return self.redis

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("redis_connection_closed")

    async def get_client(self) -> redis.Redis:
        """Return the connected client, connecting on first use."""
        if self.redis is None:
            return await self.connect()
        return self.redis

    async def flush(self) -> None:
        """Remove every key in the current database."""
        client = await self.get_client()
        await client.flushdb()
