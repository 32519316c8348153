"""
Pending job ledger.

A per-batch sorted set mapping each in-flight pending job key to the Unix
timestamp at which it was created. Entries are added by the reliable pluck
script and removed by the acknowledge and requeue scripts; this class only
reads it.
"""

import time
from typing import Any

from batchqueue.store.keys import BatchKeys, decode_key


class PendingLedger:
    """
    Read access to a batch's pending job ledger.

    The TTL is never stored: callers choose it at query time and the ledger
    only compares ``now - ttl`` against creation timestamps.
    """

    def __init__(self, client: Any, keys: BatchKeys):
        self._client = client
        self._keys = keys

    async def expired(self, ttl: float, now: float | None = None) -> list[str]:
        """
        List pending jobs created strictly before ``now - ttl``.

        Args:
            ttl: Age in seconds after which a pending job counts as expired.
            now: Reference time. Defaults to the current time.

        Returns:
            Pending job keys, oldest first.
        """
        if now is None:
            now = time.time()
        expired = await self._client.zrangebyscore(
            self._keys.pending, "-inf", f"({now - ttl}"
        )
        return [decode_key(pending_job_id) for pending_job_id in expired]

    async def entries(self) -> list[tuple[str, float]]:
        """Return every (pending job key, created at) pair, oldest first."""
        entries = await self._client.zrange(self._keys.pending, 0, -1, withscores=True)
        return [(decode_key(pending_job_id), score) for pending_job_id, score in entries]

    async def created_at(self, pending_job_id: str) -> float | None:
        """Return when a pending job was created, or None if it is not tracked."""
        return await self._client.zscore(self._keys.pending, pending_job_id)

    async def contains(self, pending_job_id: str) -> bool:
        """Check whether a pending job is still in flight."""
        return await self.created_at(pending_job_id) is not None

    async def count(self) -> int:
        """Number of pending jobs currently in flight."""
        return await self._client.zcard(self._keys.pending)
