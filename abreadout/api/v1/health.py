from typing import Optional

from fastapi import APIRouter, Depends
from redis import asyncio as aioredis

from abreadout.config import get_settings
from abreadout.core.cache import get_redis

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check"""
    settings = get_settings()
    return {"status": "healthy", "service": "abreadout-api", "llm_provider": settings.LLM_PROVIDER}


@router.get("/health/redis")
async def health_check_redis(redis: Optional[aioredis.Redis] = Depends(get_redis)):
    """Redis health check"""
    if redis is None:
        return {"status": "healthy", "redis": "disabled"}
    try:
        await redis.ping()
        return {"status": "healthy", "redis": "connected"}
    except Exception as e:
        return {"status": "unhealthy", "redis": "disconnected", "error": str(e)}
