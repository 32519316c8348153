"""
Batch queue facade.

The operation surface used by producers, consumers and the sweeper. Every
call delegates to the repository's atomic operations and adds logging,
metrics and tracing around it.
"""

import logging
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from batchqueue.config import get_settings
from batchqueue.constants import (
    SPAN_ACKNOWLEDGE,
    SPAN_PLUCK,
    SPAN_PUSH,
    SPAN_RELIABLE_PLUCK,
    SPAN_REQUEUE_EXPIRED,
    PendingJobState,
    PluckMode,
)
from batchqueue.observability.metrics import MetricsCollector, get_metrics
from batchqueue.observability.tracing import create_span
from batchqueue.store.connection import get_client
from batchqueue.store.repository import BatchRepository
from batchqueue.store.scripts import create_executor
from batchqueue.types.batch import BatchStats, Message, Payload, PendingJob, PendingJobInfo

logger = logging.getLogger(__name__)


class BatchQueue:
    """
    Reliable, deduplicating batching queue.

    Features:
    - FIFO batches with optional duplicate collapsing on enqueue
    - Plain pluck (at-most-once) and reliable pluck (at-least-once)
    - Pending job ledger with caller-chosen expiry
    - Non-blocking advisory lock and last-run bookkeeping for schedulers
    """

    def __init__(
        self,
        client: Any | None = None,
        key_prefix: str | None = None,
        script_mode: str | None = None,
        lock_ttl: int | None = None,
        pending_ttl: int | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the queue.

        Args:
            client: redis.asyncio client. Defaults to the shared client.
            key_prefix: Namespace for every key.
            script_mode: "evalsha" or "eval"; fixed for the queue's lifetime.
            lock_ttl: Default advisory lock TTL in seconds.
            pending_ttl: Default pending job TTL in seconds for requeues.
            metrics: Metrics collector. Defaults to the global one.
        """
        settings = get_settings()

        if client is None:
            client = get_client()
        executor = create_executor(client, script_mode or settings.script_mode)

        self._repo = BatchRepository(client, key_prefix=key_prefix, executor=executor)
        self.lock_ttl = settings.lock_ttl_seconds if lock_ttl is None else lock_ttl
        self.pending_ttl = settings.pending_ttl_seconds if pending_ttl is None else pending_ttl
        self._metrics = metrics or get_metrics()

    @property
    def repository(self) -> BatchRepository:
        return self._repo

    @contextmanager
    def _timed(self, operation: str) -> Iterator[None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            self._metrics.observe_latency(operation, time.perf_counter() - started)

    async def push(self, name: str, message: Message, remember_unique: bool = False) -> bool:
        """
        Append one message to a batch.

        Args:
            name: The batch name.
            message: Opaque payload.
            remember_unique: Collapse the message if the payload is already live.

        Returns:
            True if the message was appended, False if it was collapsed.
        """
        with (
            create_span(SPAN_PUSH, batch=name, count=1, unique=remember_unique),
            self._timed("push"),
        ):
            appended = await self._repo.push(name, message, remember_unique=remember_unique)

        self._metrics.record_pushed(name, appended)
        return appended == 1

    async def push_many(
        self,
        name: str,
        messages: Iterable[Message],
        remember_unique: bool = False,
    ) -> int:
        """
        Append several messages to a batch in one atomic step.

        Returns:
            Number of messages appended after duplicate collapsing.
        """
        messages = list(messages)
        with (
            create_span(SPAN_PUSH, batch=name, count=len(messages), unique=remember_unique),
            self._timed("push_many"),
        ):
            appended = await self._repo.push_many(name, messages, remember_unique=remember_unique)

        if appended < len(messages):
            logger.debug(
                "Collapsed duplicate messages",
                extra={"batch": name, "dropped": len(messages) - appended},
            )
        self._metrics.record_pushed(name, appended)
        return appended

    async def pluck(self, name: str, limit: int) -> list[Payload]:
        """
        Remove and return up to ``limit`` messages from the head of a batch.

        Messages are lost if the caller crashes before processing them; use
        ``reliable_pluck`` for at-least-once delivery.
        """
        with create_span(SPAN_PLUCK, batch=name, limit=limit), self._timed("pluck"):
            messages = await self._repo.pluck(name, limit)

        if messages:
            logger.info(
                f"Plucked {len(messages)} messages",
                extra={"batch": name, "mode": PluckMode.PLAIN.value},
            )
        self._metrics.record_plucked(name, PluckMode.PLAIN, len(messages))
        return messages

    async def reliable_pluck(self, name: str, limit: int) -> PendingJob:
        """
        Move up to ``limit`` messages into a tracked pending job.

        Call ``acknowledge`` with the returned pending job id once processing
        succeeds. Unacknowledged jobs are returned to the queue by
        ``requeue_expired``. An empty result creates no ledger entry.
        """
        with (
            create_span(SPAN_RELIABLE_PLUCK, batch=name, limit=limit) as span,
            self._timed("reliable_pluck"),
        ):
            job = await self._repo.reliable_pluck(name, limit)
            span.set_attribute("pending_job_id", job.pending_job_id)

        if not job.is_empty:
            logger.info(
                f"Plucked {len(job)} messages into pending job",
                extra={
                    "batch": name,
                    "mode": PluckMode.RELIABLE.value,
                    "pending_job_id": job.pending_job_id,
                    "state": PendingJobState.CREATED.value,
                },
            )
            self._metrics.record_pending_created(name)
        self._metrics.record_plucked(name, PluckMode.RELIABLE, len(job))
        return job

    async def acknowledge(self, name: str, pending_job_id: str) -> bool:
        """
        Mark a pending job as processed, dropping it and its ledger entry.

        Safe to repeat: unknown or already acknowledged ids are ignored.

        Returns:
            True if the pending job was still in flight.
        """
        with (
            create_span(SPAN_ACKNOWLEDGE, batch=name, pending_job_id=pending_job_id),
            self._timed("acknowledge"),
        ):
            removed = await self._repo.acknowledge(name, pending_job_id)

        if removed:
            logger.debug(
                "Acknowledged pending job",
                extra={
                    "batch": name,
                    "pending_job_id": pending_job_id,
                    "state": PendingJobState.ACKNOWLEDGED.value,
                },
            )
            self._metrics.record_pending_acknowledged(name)
        return removed

    async def requeue_expired(
        self,
        name: str,
        unique: bool = False,
        ttl: float | None = None,
    ) -> list[str]:
        """
        Return pending jobs older than ``ttl`` seconds to the queue.

        Args:
            name: The batch name.
            unique: Drop requeued payloads that are already live instead of
                duplicating them. Liveness is judged by payload alone.
            ttl: Expiry age in seconds. Defaults to ``pending_ttl``.

        Returns:
            The expired pending job ids that were processed.
        """
        if ttl is None:
            ttl = self.pending_ttl

        with (
            create_span(SPAN_REQUEUE_EXPIRED, batch=name, ttl=ttl, unique=unique),
            self._timed("requeue_expired"),
        ):
            processed = await self._repo.requeue_expired(name, ttl=ttl, unique=unique)

        if processed:
            requeued = sum(processed.values())
            logger.info(
                f"Requeued {len(processed)} expired pending jobs",
                extra={
                    "batch": name,
                    "messages": requeued,
                    "unique": unique,
                    "state": PendingJobState.EXPIRED_REQUEUED.value,
                },
            )
            self._metrics.record_requeued(name, len(processed), requeued)
        return list(processed)

    async def size(self, name: str) -> int:
        """Number of messages waiting in a batch."""
        depth = await self._repo.size(name)
        self._metrics.update_queue_depth(name, depth)
        return depth

    async def is_live(self, name: str, message: Message) -> bool:
        """Check whether a payload is currently enqueued under the uniqueness policy."""
        return await self._repo.is_live(name, message)

    async def list_batches(self) -> list[str]:
        """All known batch names."""
        return await self._repo.batches()

    async def delete_batch(self, name: str) -> None:
        """
        Delete a batch's queue, metadata and index entry.

        Outstanding pending jobs survive and can still be acknowledged; jobs
        that are never acknowledged stay in the ledger as orphans.
        """
        pending = await self._repo.ledger(name).count()
        await self._repo.delete(name)
        self._metrics.update_queue_depth(name, 0)
        if pending:
            logger.warning(
                "Deleted batch with pending jobs in flight",
                extra={"batch": name, "pending_jobs": pending},
            )
        else:
            logger.info("Deleted batch", extra={"batch": name})

    async def try_lock(self, name: str, ttl: int | None = None) -> bool:
        """
        Try to take a batch's advisory lock without blocking.

        A False result means another process holds it; skip this cycle.

        Args:
            name: The batch name.
            ttl: Seconds until the lock expires. Defaults to ``lock_ttl``.

        Raises:
            ValueError: If ttl is not positive.
        """
        if ttl is None:
            ttl = self.lock_ttl
        if ttl <= 0:
            raise ValueError(f"Lock ttl must be positive, got {ttl}")

        acquired = await self._repo.lock(name, ttl)
        self._metrics.record_lock_attempt(name, acquired)
        return acquired

    async def get_last_run(self, name: str) -> float | None:
        """Last execution time of a batch in Unix seconds, if recorded."""
        return await self._repo.get_last_execution_time(name)

    async def set_last_run(self, name: str, when: datetime | float | None = None) -> None:
        """Record the last execution time of a batch. Defaults to now."""
        if when is None:
            when = time.time()
        await self._repo.set_last_execution_time(name, when)

    async def pending_jobs(self, name: str) -> list[PendingJobInfo]:
        """Pending jobs currently in flight for a batch, oldest first."""
        entries = await self._repo.ledger(name).entries()
        return [
            PendingJobInfo(pending_job_id=pending_job_id, created_at=created_at)
            for pending_job_id, created_at in entries
        ]

    async def stats(self, name: str) -> BatchStats:
        """Point-in-time counters for a batch."""
        return BatchStats(
            name=name,
            size=await self.size(name),
            unique_members=await self._repo.unique_count(name),
            pending_jobs=await self._repo.ledger(name).count(),
            last_run=await self.get_last_run(name),
        )
