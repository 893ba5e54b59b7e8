import json
from typing import Optional

import structlog
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from abreadout.config import get_settings
from abreadout.services.experiments.readout import ReadoutResult

logger = structlog.get_logger()

redis_client: Optional[aioredis.Redis] = None


async def get_redis() -> Optional[aioredis.Redis]:
    """Get Redis client, or None when no REDIS_URL is configured"""
    global redis_client
    settings = get_settings()
    if not settings.REDIS_URL:
        return None
    if redis_client is None:
        redis_client = aioredis.from_url(
            settings.REDIS_URL,
            password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
            encoding="utf-8",
            decode_responses=True,
        )
    return redis_client


async def close_redis():
    """Close Redis connection"""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


class ReadoutCache:
    """Readouts keyed by experiment id. Redis failures behave like a miss."""

    key_prefix = "readout:"

    def __init__(self, redis: aioredis.Redis, ttl_seconds: int = 0):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    def _key(self, experiment_id: str) -> str:
        return f"{self.key_prefix}{experiment_id}"

    async def get(self, experiment_id: str) -> Optional[ReadoutResult]:
        try:
            raw = await self.redis.get(self._key(experiment_id))
        except RedisError as e:
            logger.warning("readout_cache_read_failed", experiment_id=experiment_id, error=str(e))
            return None

        if raw is None:
            return None

        try:
            data = json.loads(raw)
            return ReadoutResult(text=data["text"], source=data["source"])
        except (ValueError, KeyError, TypeError):
            logger.warning("readout_cache_corrupt", experiment_id=experiment_id)
            return None

    async def set(self, experiment_id: str, readout: ReadoutResult) -> None:
        payload = json.dumps({"text": readout.text, "source": readout.source})
        try:
            await self.redis.set(
                self._key(experiment_id), payload, ex=self.ttl_seconds or None
            )
        except RedisError as e:
            logger.warning("readout_cache_write_failed", experiment_id=experiment_id, error=str(e))
