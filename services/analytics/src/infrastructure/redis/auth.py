from typing import Optional

from redis.asyncio import Redis

from shared.constants import RedisKeys


class TokenRepository:
    """Resolves bearer tokens issued by the web app to user ids."""

    def __init__(self, redis: Redis):
        self.r = redis

    async def resolve(self, token: str) -> Optional[str]:
        if not token:
            return None
        return await self.r.get(RedisKeys.token_key(token))
