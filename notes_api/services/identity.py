import hashlib
import logging
import time
from typing import Optional

import jwt
import redis.asyncio as redis
from starlette.concurrency import run_in_threadpool
from supabase import Client

from notes_api.core.exceptions import AuthenticationError
from notes_api.schemas.auth import AuthenticatedUser

logger = logging.getLogger(__name__)

CACHE_PREFIX = "auth_token:"


class IdentityVerifier:
    """Resolves a bearer token to a user through Supabase Auth.

    Successful lookups are cached in Redis for ``cache_ttl`` seconds, keyed by
    a digest of the token so raw credentials never reach the cache. The TTL
    never outlives the token's own ``exp`` claim; a token revoked at the
    provider keeps working until its cache entry expires.
    """

    def __init__(self, client: Client, cache: Optional[redis.Redis] = None, cache_ttl: int = 60):
        self._client = client
        self._cache = cache
        self._cache_ttl = cache_ttl

    @staticmethod
    def _cache_key(token: str) -> str:
        return CACHE_PREFIX + hashlib.sha256(token.encode("utf-8")).hexdigest()

    async def _cached(self, token: str) -> Optional[str]:
        if self._cache is None:
            return None
        try:
            return await self._cache.get(self._cache_key(token))
        except redis.RedisError as e:
            logger.warning(f"Identity cache read failed: {e}")
            return None

    def cache_ttl_for(self, token: str, now: float = None) -> int:
        """Seconds a verification of ``token`` may be reused, 0 for none"""
        try:
            # Signature was checked by the provider; only exp is read here
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError:
            return self._cache_ttl
        exp = claims.get("exp")
        if not isinstance(exp, (int, float)):
            return self._cache_ttl
        remaining = int(exp - (time.time() if now is None else now))
        return max(0, min(self._cache_ttl, remaining))

    async def _remember(self, token: str, user_id: str) -> None:
        if self._cache is None:
            return
        ttl = self.cache_ttl_for(token)
        if ttl <= 0:
            return
        try:
            await self._cache.setex(self._cache_key(token), ttl, user_id)
        except redis.RedisError as e:
            logger.warning(f"Identity cache write failed: {e}")

    async def verify(self, token: str) -> AuthenticatedUser:
        user_id = await self._cached(token)
        if user_id:
            return AuthenticatedUser(id=user_id)

        try:
            response = await run_in_threadpool(self._client.auth.get_user, token)
        except Exception as e:
            # Provider detail stays in the logs
            logger.info(f"Token rejected by identity provider: {e}")
            raise AuthenticationError()

        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise AuthenticationError()

        user_id = str(user.id)
        await self._remember(token, user_id)
        return AuthenticatedUser(id=user_id)
