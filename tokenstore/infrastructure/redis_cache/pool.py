from __future__ import annotations

from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from tokenstore.domain.errors import StorageError


async def open_redis(url: str, *, socket_timeout: Optional[float] = None) -> Redis:
    """
    Create a Redis client for `url` and make sure the server answers.
    decode_responses=True -> we get/put str, not bytes.
    """
    try:
        client = Redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
    except ValueError as e:
        raise StorageError(f"invalid redis url: {e}") from e

    try:
        await client.ping()
    except RedisError as e:
        await client.aclose()
        raise StorageError(f"redis unreachable: {e}") from e
    return client
