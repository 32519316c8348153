"""
Batch repository for Redis operations.
Implements the core data access patterns for batch management.
"""

import json
import logging
import time
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from batchqueue.config import get_settings
from batchqueue.store.keys import BatchKeys, batches_key, decode_key
from batchqueue.store.ledger import PendingLedger
from batchqueue.store.scripts import (
    ACKNOWLEDGE,
    MERGE_ENQUEUE,
    PLUCK,
    RELIABLE_PLUCK,
    REQUEUE,
    ScriptExecutor,
    create_executor,
)
from batchqueue.types.batch import Message, Payload, PendingJob

logger = logging.getLogger(__name__)

# Returned by the requeue script when the ledger entry was already resolved
ALREADY_RESOLVED = -1


def _flag(value: bool) -> str:
    return "1" if value else "0"


class BatchRepository:
    """
    Repository for batch Redis operations.

    Implements atomic operations for:
    - Enqueue with optional duplicate collapsing
    - Plain and reliable plucks from the queue head
    - Pending job acknowledgement
    - Requeue of expired pending jobs
    """

    def __init__(
        self,
        client: Any,
        key_prefix: str | None = None,
        executor: ScriptExecutor | None = None,
    ):
        """
        Initialize the repository with a Redis client.

        Args:
            client: The redis.asyncio client.
            key_prefix: Namespace for every key. Defaults to settings.
            executor: Script executor. Defaults to one built from settings.
        """
        settings = get_settings()
        self._client = client
        self._prefix = key_prefix or settings.key_prefix
        self._executor = executor or create_executor(client, settings.script_mode)

    @property
    def client(self) -> Any:
        return self._client

    def keys(self, name: str) -> BatchKeys:
        """Derive the keys for a batch."""
        return BatchKeys.for_batch(name, self._prefix)

    def ledger(self, name: str) -> PendingLedger:
        """Get the pending job ledger of a batch."""
        return PendingLedger(self._client, self.keys(name))

    async def push(
        self,
        name: str,
        message: Message,
        remember_unique: bool = False,
    ) -> int:
        """
        Append one message to a batch.

        A plain push is a MULTI/EXEC transaction. A remembering push goes
        through the merge script so an already live payload is collapsed.

        Returns:
            Number of messages appended (0 or 1).
        """
        if remember_unique:
            return await self.push_many(name, [message], remember_unique=True)

        keys = self.keys(name)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.sadd(keys.batches, name)
            pipe.rpush(keys.queue, message)
            await pipe.execute()
        return 1

    async def push_many(
        self,
        name: str,
        messages: Iterable[Message],
        remember_unique: bool = False,
    ) -> int:
        """
        Append messages to a batch in one atomic step.

        With ``remember_unique`` payloads already live in the unique set, and
        repeats within ``messages``, are dropped; survivors keep their order.

        Args:
            name: The batch name.
            messages: Payloads to append.
            remember_unique: Whether to collapse duplicates.

        Returns:
            Number of messages appended.
        """
        keys = self.keys(name)
        appended = await self._executor.run(
            MERGE_ENQUEUE,
            [keys.batches, keys.queue, keys.unique],
            [name, _flag(remember_unique), *messages],
        )
        return int(appended)

    async def pluck(self, name: str, limit: int) -> list[Payload]:
        """
        Remove up to ``limit`` messages from the head of a batch.

        No delivery guarantee: the messages are gone from Redis once this
        returns. Payloads come back as the raw bytes stored.
        """
        keys = self.keys(name)
        return list(await self._executor.run(PLUCK, [keys.queue, keys.unique], [limit]))

    async def reliable_pluck(
        self,
        name: str,
        limit: int,
        now: float | None = None,
    ) -> PendingJob:
        """
        Move up to ``limit`` messages into a new pending job.

        The pending job is recorded in the ledger with the current time. When
        the queue is empty nothing is created and the returned job is empty.

        Args:
            name: The batch name.
            limit: Maximum number of messages to move.
            now: Creation timestamp. Defaults to the current time.

        Returns:
            PendingJob: The pending job key and the moved messages.
        """
        if now is None:
            now = time.time()
        keys = self.keys(name)
        pending_job_id = keys.new_pending_job()
        messages = await self._executor.run(
            RELIABLE_PLUCK,
            [keys.queue, keys.unique, keys.pending, pending_job_id],
            [limit, repr(float(now))],
        )
        return PendingJob(batch=name, pending_job_id=pending_job_id, messages=list(messages))

    async def acknowledge(self, name: str, pending_job_id: str) -> bool:
        """
        Delete a pending job and its ledger entry.

        Returns:
            True if the pending job was in flight, False if it was unknown.
        """
        keys = self.keys(name)
        removed = await self._executor.run(ACKNOWLEDGE, [keys.pending, pending_job_id])
        return int(removed) == 1

    async def requeue(self, name: str, pending_job_id: str, unique: bool = False) -> int:
        """
        Return one pending job's messages to the tail of the queue.

        In unique mode a message whose payload was already live when the
        requeue started is dropped instead of requeued; every other copy,
        repeats within the job included, goes back and is marked live. The
        ledger entry is removed either way.

        Returns:
            Number of messages requeued, or ALREADY_RESOLVED if the pending
            job had already been acknowledged or requeued.
        """
        keys = self.keys(name)
        requeued = await self._executor.run(
            REQUEUE,
            [pending_job_id, keys.queue, keys.pending, keys.unique],
            [_flag(unique)],
        )
        return int(requeued)

    async def requeue_expired(
        self,
        name: str,
        ttl: float,
        unique: bool = False,
        now: float | None = None,
    ) -> dict[str, int]:
        """
        Requeue every pending job older than ``ttl`` seconds.

        Args:
            name: The batch name.
            ttl: Age in seconds after which a pending job is expired.
            unique: Whether to drop payloads that are already live.
            now: Reference time. Defaults to the current time.

        Returns:
            Mapping of processed pending job key -> messages requeued.
        """
        expired = await self.ledger(name).expired(ttl, now=now)
        processed: dict[str, int] = {}
        for pending_job_id in expired:
            requeued = await self.requeue(name, pending_job_id, unique=unique)
            if requeued == ALREADY_RESOLVED:
                logger.debug(
                    "Pending job resolved concurrently",
                    extra={"batch": name, "pending_job_id": pending_job_id},
                )
                continue
            processed[pending_job_id] = requeued
        return processed

    async def size(self, name: str) -> int:
        """Number of messages waiting in the main queue."""
        return await self._client.llen(self.keys(name).queue)

    async def messages(self, name: str) -> list[Payload]:
        """Every message waiting in the main queue, head first."""
        return await self._client.lrange(self.keys(name).queue, 0, -1)

    async def is_live(self, name: str, message: Message) -> bool:
        """Check whether a payload is in the batch's unique set."""
        return bool(await self._client.sismember(self.keys(name).unique, message))

    async def unique_count(self, name: str) -> int:
        """Number of payloads in the batch's unique set."""
        return await self._client.scard(self.keys(name).unique)

    async def batches(self) -> list[str]:
        """All known batch names, sorted."""
        names = await self._client.smembers(batches_key(self._prefix))
        return sorted(decode_key(name) for name in names)

    async def delete(self, name: str) -> None:
        """
        Drop a batch's queue, unique set, last execution time and index entry.

        Pending jobs are left alone, so in-flight pending jobs can still be
        acknowledged or requeued; anything not resolved that way is orphaned.
        """
        keys = self.keys(name)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(keys.last_execution_time)
            pipe.delete(keys.queue)
            pipe.delete(keys.unique)
            pipe.srem(keys.batches, name)
            await pipe.execute()

    async def lock(self, name: str, ttl: int) -> bool:
        """
        Try to take the batch's advisory lock.

        Never blocks; the lock expires on its own after ``ttl`` seconds.
        """
        acquired = await self._client.set(self.keys(name).lock, "true", nx=True, ex=ttl)
        return bool(acquired)

    async def get_last_execution_time(self, name: str) -> float | None:
        """Read the last execution time as Unix seconds."""
        raw = await self._client.get(self.keys(name).last_execution_time)
        if raw is None:
            return None
        return float(json.loads(raw))

    async def set_last_execution_time(self, name: str, when: datetime | float) -> None:
        """Store the last execution time as a JSON number of Unix seconds."""
        if isinstance(when, datetime):
            when = when.timestamp()
        await self._client.set(self.keys(name).last_execution_time, json.dumps(when))

    async def pending_job_messages(self, pending_job_id: str) -> Sequence[Payload]:
        """Messages held by a pending job, in pluck order."""
        return await self._client.lrange(pending_job_id, 0, -1)
