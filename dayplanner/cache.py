"""
Day Planner Backend — Redis Client
===================================

What:  The single asyncio redis client shared by the session cache and the
       health check.
How:   redis.asyncio.from_url builds a lazily-connecting client with its own
       connection pool; no I/O happens at import time.
When:  Created at module import; closed in the application lifespan.
"""

from redis.asyncio import Redis

from dayplanner.config import settings

redis_client: Redis = Redis.from_url(
    settings.redis_url,
    decode_responses=True,
    health_check_interval=30,
)


async def close_redis() -> None:
    """Releases pooled redis connections. Called during application shutdown."""
    await redis_client.aclose()
