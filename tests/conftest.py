"""
Pytest configuration and shared fixtures.
"""

import os
from collections.abc import AsyncGenerator
from typing import Any
from uuid import uuid4

import fakeredis
import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from batchqueue.observability.metrics import MetricsCollector
from batchqueue.queue import BatchQueue
from batchqueue.store.connection import create_test_client
from batchqueue.store.repository import BatchRepository
from batchqueue.store.scripts import create_executor

# Point at a real server (use a dedicated database, it is flushed) to run the
# suite against Redis instead of fakeredis
TEST_REDIS_URL = os.getenv("TEST_REDIS_URL")

TEST_KEY_PREFIX = "batching"


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[Any]:
    """Create a Redis client with an empty database."""
    if TEST_REDIS_URL:
        client = create_test_client(TEST_REDIS_URL)
    else:
        client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())

    await client.flushdb()

    yield client

    await client.flushdb()
    await client.aclose()


@pytest.fixture
def metrics() -> MetricsCollector:
    """Create a metrics collector on its own registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def repo(redis_client: Any) -> BatchRepository:
    """Create a repository instance."""
    return BatchRepository(
        redis_client,
        key_prefix=TEST_KEY_PREFIX,
        executor=create_executor(redis_client, "evalsha"),
    )


@pytest.fixture(params=["evalsha", "eval"])
def queue(request: pytest.FixtureRequest, redis_client: Any, metrics: MetricsCollector) -> BatchQueue:
    """Create a batch queue, once per script mode."""
    return BatchQueue(
        client=redis_client,
        key_prefix=TEST_KEY_PREFIX,
        script_mode=request.param,
        lock_ttl=5,
        pending_ttl=500,
        metrics=metrics,
    )


@pytest.fixture
def batch_name() -> str:
    """Generate a unique batch name."""
    return f"test-batch-{uuid4().hex[:8]}"


@pytest.fixture
def age_pending_job(redis_client: Any):
    """
    Return a helper that pretends a pending job was created earlier.
    Only entries still in the ledger are touched, so a resolved job stays gone.
    """

    async def _age(batch: str, pending_job_id: str, seconds: float) -> None:
        ledger = f"{TEST_KEY_PREFIX}:{batch}:pending_jobs"
        created_at = await redis_client.zscore(ledger, pending_job_id)
        if created_at is None:
            return
        await redis_client.zadd(ledger, {pending_job_id: created_at - seconds}, xx=True)

    return _age
