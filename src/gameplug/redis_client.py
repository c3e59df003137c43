"""Optional Redis client.

The loyalty engine never needs Redis for correctness. It backs the per-IP rate
limiter and the ``ws:user:{user_id}`` notification fan-out; an empty
``GAMEPLUG_REDIS_URL`` runs the service without either.
"""

import logging

import redis.asyncio as redis

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


async def init_redis(url: str) -> None:
    global _client  # noqa: PLW0603
    if not url:
        logger.info("Redis disabled: rate limiting and live notification pushes are off")
        return
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis_or_none() -> redis.Redis | None:
    """The shared client, or None when Redis is not configured."""
    return _client
