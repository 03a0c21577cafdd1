"""
Day Planner Backend — Session Cache
====================================

What:  Key-value store of serialized user sessions keyed by user id.
How:   JSON documents in redis with a TTL equal to the refresh token lifetime.
Who:   UserService (login stores, refresh re-stores, logout deletes,
       /me reads) and get_current_user (every authenticated request).

Layout:
    key   = "<user uuid>"
    value = UserPublic.model_dump(mode="json") as a JSON string
    ttl   = settings.session_ttl_seconds (default 7 days)

A token is only honoured while its session key exists, so deleting the key
is how logout revokes still-unexpired tokens.
"""

import json
import logging
from typing import Any, Dict, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from dayplanner.config import settings
from dayplanner.exceptions import CacheError

logger = logging.getLogger(__name__)


class SessionCache:
    """Thin wrapper over an asyncio redis client."""

    def __init__(self, client: Optional[Redis] = None):
        self._client = client

    @property
    def client(self) -> Redis:
        # Deferred so that importing this module never opens a redis pool
        if self._client is None:
            from dayplanner.cache import redis_client
            self._client = redis_client
        return self._client

    async def set(
        self, user_id: Any, session: Dict[str, Any], ttl: Optional[int] = None
    ) -> None:
        ttl = ttl or settings.session_ttl_seconds
        try:
            await self.client.set(str(user_id), json.dumps(session, default=str), ex=ttl)
        except RedisError as e:
            logger.error("Failed to store session for %s: %s", user_id, e)
            raise CacheError(context={"user_id": str(user_id), "op": "set"})

    async def get(self, user_id: Any) -> Optional[Dict[str, Any]]:
        """Returns the cached session, or None when absent or unreadable."""
        try:
            raw = await self.client.get(str(user_id))
        except RedisError as e:
            logger.error("Failed to read session for %s: %s", user_id, e)
            raise CacheError(context={"user_id": str(user_id), "op": "get"})

        if raw is None:
            return None
        try:
            session = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding corrupt session entry for %s", user_id)
            return None
        return session if isinstance(session, dict) else None

    async def delete(self, user_id: Any) -> bool:
        """Returns True when a session was actually removed."""
        try:
            removed = await self.client.delete(str(user_id))
        except RedisError as e:
            logger.error("Failed to delete session for %s: %s", user_id, e)
            raise CacheError(context={"user_id": str(user_id), "op": "delete"})
        return bool(removed)

    async def ping(self) -> bool:
        """Health probe; never raises."""
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as e:
            logger.warning("Session cache ping failed: %s", e)
            return False


session_cache = SessionCache()
