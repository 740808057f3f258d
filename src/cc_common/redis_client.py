"""Redis client factory — used for the sweep lease only.

Balances, shares and tranche state live in PostgreSQL; Redis only decides
which worker runs a given sweep tick.
"""

import uuid

import redis.asyncio as aioredis

from config.settings import settings

_redis_pool: aioredis.Redis | None = None

# Delete the key only if we still own it
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""

# Push the expiry out only if we still own it
_EXTEND_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('expire', KEYS[1], ARGV[2])
end
return 0
"""


async def get_redis() -> aioredis.Redis:
    """Get or create the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
    return _redis_pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None


async def acquire_lease(redis: aioredis.Redis, key: str, ttl_seconds: int) -> str | None:
    """SET key token NX EX ttl. Returns the owner token, or None if already held."""
    token = uuid.uuid4().hex
    acquired = await redis.set(key, token, nx=True, ex=ttl_seconds)
    return token if acquired else None


async def release_lease(redis: aioredis.Redis, key: str, token: str) -> bool:
    released = await redis.eval(_RELEASE_SCRIPT, 1, key, token)
    return bool(released)


async def extend_lease(
    redis: aioredis.Redis, key: str, token: str, ttl_seconds: int
) -> bool:
    """Reset the TTL of a lease we hold. False means it expired or changed hands."""
    extended = await redis.eval(_EXTEND_SCRIPT, 1, key, token, ttl_seconds)
    return bool(extended)
