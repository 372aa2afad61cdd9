# tests/integration/conftest.py
import os
from uuid import uuid4

import pytest
import pytest_asyncio
from redis.asyncio import Redis
from redis.exceptions import RedisError


@pytest.fixture()
def redis_url() -> str:
    return os.environ.get("REDIS_URL", "redis://redis:6379/0")


@pytest_asyncio.fixture
async def redis_client(redis_url):
    r = Redis.from_url(
        redis_url, encoding="utf-8", decode_responses=True, socket_timeout=2
    )
    try:
        await r.ping()
    except RedisError as e:
        await r.aclose()
        pytest.skip(f"redis not reachable: {e}")
    try:
        yield r
    finally:
        await r.aclose()


@pytest.fixture()
def key_prefix():
    return f"pwdless:test:{uuid4().hex[:8]}:"
