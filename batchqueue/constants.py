"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class PendingJobState(StrEnum):
    """
    Pending job lifecycle states.

    State transitions:
    - CREATED -> ACKNOWLEDGED (consumer finished, list and ledger entry deleted)
    - CREATED -> EXPIRED_REQUEUED (ttl elapsed, contents returned to the queue)
    """

    CREATED = "created"
    ACKNOWLEDGED = "acknowledged"
    EXPIRED_REQUEUED = "expired_requeued"


class PluckMode(StrEnum):
    """How messages left the main queue."""

    PLAIN = "plain"
    RELIABLE = "reliable"


# Default values
DEFAULT_KEY_PREFIX = "batching"
DEFAULT_LOCK_TTL_SECONDS = 1
DEFAULT_PENDING_TTL_SECONDS = 3600
PENDING_JOB_SUFFIX_BYTES = 16

# Key suffixes
BATCHES_KEY = "batches"
UNIQUE_MESSAGES_SUFFIX = "unique_messages"
PENDING_JOBS_SUFFIX = "pending_jobs"
LOCK_KEY = "lock"
LAST_EXECUTION_TIME_KEY = "last_execution_time"

# Metrics names
METRIC_QUEUE_DEPTH = "batch_queue_depth"
METRIC_MESSAGES_PUSHED = "batch_messages_pushed_total"
METRIC_MESSAGES_PLUCKED = "batch_messages_plucked_total"
METRIC_MESSAGES_REQUEUED = "batch_messages_requeued_total"
METRIC_PENDING_CREATED = "batch_pending_created_total"
METRIC_PENDING_ACKNOWLEDGED = "batch_pending_acknowledged_total"
METRIC_PENDING_EXPIRED = "batch_pending_expired_total"
METRIC_LOCK_ATTEMPTS = "batch_lock_attempts_total"
METRIC_OPERATION_LATENCY = "batch_operation_latency_seconds"

# Trace span names
SPAN_PUSH = "batch_push"
SPAN_PLUCK = "batch_pluck"
SPAN_RELIABLE_PLUCK = "batch_reliable_pluck"
SPAN_ACKNOWLEDGE = "batch_acknowledge"
SPAN_REQUEUE_EXPIRED = "batch_requeue_expired"
SPAN_SWEEP = "batch_sweep"
