"""
Reliable Batching Queue

A deduplicating batching queue on top of Redis. Producers accumulate messages
under a named batch, consumers pluck bounded slices, and a pending-job ledger
lets expired in-flight slices be returned to the queue.
"""

__version__ = "1.0.0"

from batchqueue.queue import BatchQueue  # noqa: E402

__all__ = ["BatchQueue", "__version__"]
