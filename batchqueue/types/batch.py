"""
Batch-related type definitions for internal use.
"""

import time
from dataclasses import dataclass, field

from pydantic import BaseModel

# Accepted on push; Redis compares payloads byte for byte and str is sent as UTF-8
Message = str | bytes

# Returned by every read: payloads are never decoded
Payload = bytes


@dataclass
class PendingJob:
    """
    Result of a reliable pluck.
    Holds the pending job key to acknowledge and the messages moved into it.
    """

    batch: str
    pending_job_id: str
    messages: list[Payload] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when nothing was moved, so no ledger entry exists."""
        return not self.messages

    def __len__(self) -> int:
        return len(self.messages)


@dataclass
class PendingJobInfo:
    """
    A ledger entry for an in-flight pending job.
    """

    pending_job_id: str
    created_at: float

    @property
    def age_seconds(self) -> float:
        """Seconds elapsed since the pending job was created."""
        return max(0.0, time.time() - self.created_at)

    def is_expired(self, ttl: float, now: float | None = None) -> bool:
        """Check whether the entry is strictly older than ``ttl`` seconds."""
        if now is None:
            now = time.time()
        return self.created_at < now - ttl


class BatchStats(BaseModel):
    """
    Point-in-time counters for one batch.
    Used for observability and reporting.
    """

    name: str
    size: int
    unique_members: int
    pending_jobs: int
    last_run: float | None = None
