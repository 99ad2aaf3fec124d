from __future__ import annotations

import os
import uuid
from collections.abc import Iterator

import pytest
from redis import Redis
from redis.exceptions import RedisError

from fitsync.queue import RedisMutationQueueStore

DEFAULT_TEST_REDIS_URL = "redis://127.0.0.1:6379/0"


@pytest.fixture(scope="session")
def redis_url() -> str:
    """
    Redis connection URL for queue backend tests.

    Set FITSYNC_TEST_REDIS_URL to point at a disposable instance.
    """
    return os.environ.get("FITSYNC_TEST_REDIS_URL", DEFAULT_TEST_REDIS_URL)


@pytest.fixture(scope="session")
def redis_client(redis_url: str) -> Iterator[Redis]:
    """
    Session-scoped Redis client. Redis-backed tests are skipped when the
    server is unreachable; the SQL backend covers the same contract.
    """
    client = Redis.from_url(redis_url, decode_responses=False)
    try:
        client.ping()
    except RedisError as exc:  # pragma: no cover
        client.close()
        pytest.skip(f"Redis test server is not reachable at {redis_url!r}: {exc}")

    yield client

    client.close()


@pytest.fixture
def redis_store(redis_client: Redis) -> Iterator[RedisMutationQueueStore]:
    prefix = f"fitsync_test:{uuid.uuid4().hex[:10]}"
    store = RedisMutationQueueStore(redis_client, key_prefix=prefix)

    yield store

    keys = list(redis_client.scan_iter(match=f"{prefix}:*"))
    if keys:
        redis_client.delete(*keys)


@pytest.fixture(params=["sql", "redis"])
def store(request: pytest.FixtureRequest):
    """Each queue backend in turn; both must honour the same contract."""
    if request.param == "sql":
        return request.getfixturevalue("queue_store")
    return request.getfixturevalue("redis_store")
