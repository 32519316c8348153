"""
Redis connection management.
Handles the async Redis client and its connection pool.

Clients are created without response decoding: payloads are opaque and come
back as raw bytes. Names and ids are decoded by the repository.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import redis.asyncio as redis

from batchqueue.config import get_settings

logger = logging.getLogger(__name__)

# Global client instance
_client: redis.Redis | None = None


def get_client() -> redis.Redis:
    """
    Get or create the async Redis client.

    Returns:
        redis.Redis: The shared client instance.
    """
    global _client
    if _client is None:
        settings = get_settings()
        _client = redis.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
        )
    return _client


def create_test_client(redis_url: str) -> redis.Redis:
    """
    Create a standalone client for tests.

    Args:
        redis_url: The Redis URL for testing.

    Returns:
        redis.Redis: A client not shared with the rest of the process.
    """
    return redis.from_url(redis_url)


async def init_redis() -> redis.Redis:
    """
    Initialize the Redis connection and verify it answers.
    Should be called on process startup.
    """
    client = get_client()
    await client.ping()
    logger.info("Redis connection initialized")
    return client


async def close_redis() -> None:
    """
    Close the Redis connection.
    Should be called on process shutdown.
    """
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("Redis connection closed")


@asynccontextmanager
async def get_client_context() -> AsyncGenerator[redis.Redis]:
    """
    Context manager that initializes the client and closes it on exit.
    Useful for scripts and one-shot processes.

    Yields:
        redis.Redis: The shared client instance.
    """
    client = await init_redis()
    try:
        yield client
    finally:
        await close_redis()
