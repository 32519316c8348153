"""
Type definitions for the batch queue.
"""

from batchqueue.types.batch import (
    BatchStats,
    Message,
    Payload,
    PendingJob,
    PendingJobInfo,
)

__all__ = [
    "Message",
    "Payload",
    "PendingJob",
    "PendingJobInfo",
    "BatchStats",
]
