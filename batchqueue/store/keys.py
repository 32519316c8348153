"""
Keyspace derivation for batches.

Maps a logical batch name to the Redis keys it lives under. Pure functions
only; nothing here talks to Redis.
"""

import secrets
from dataclasses import dataclass

from batchqueue.constants import (
    BATCHES_KEY,
    DEFAULT_KEY_PREFIX,
    LAST_EXECUTION_TIME_KEY,
    LOCK_KEY,
    PENDING_JOB_SUFFIX_BYTES,
    PENDING_JOBS_SUFFIX,
    UNIQUE_MESSAGES_SUFFIX,
)


def validate_batch_name(name: str) -> str:
    """
    Check that a batch name can be used as a key component.

    Args:
        name: The batch name.

    Returns:
        The name, unchanged.

    Raises:
        ValueError: If the name is not a non-empty string.
    """
    if not isinstance(name, str) or not name:
        raise ValueError(f"Batch name must be a non-empty string, got {name!r}")
    return name


def batches_key(prefix: str = DEFAULT_KEY_PREFIX) -> str:
    """Key of the set holding every known batch name."""
    return f"{prefix}:{BATCHES_KEY}"


def decode_key(value: bytes | str) -> str:
    """Decode a batch name or pending job key read back from Redis."""
    if isinstance(value, bytes):
        return value.decode()
    return value


@dataclass(frozen=True)
class BatchKeys:
    """
    Redis keys used by a single batch.

    Layout for batch ``N`` under prefix ``P``:
        P:batches                   - SET of known batch names (shared)
        P:N                         - LIST main queue
        P:N:unique_messages         - SET of live unique payloads
        P:N:pending_jobs            - ZSET pending job key -> created at
        P:N:<hex>                   - LIST one per reliable pluck
        P:lock:N                    - STRING advisory lock with TTL
        P:last_execution_time:N     - STRING JSON timestamp
    """

    name: str
    prefix: str
    batches: str
    queue: str
    unique: str
    pending: str
    lock: str
    last_execution_time: str

    @classmethod
    def for_batch(cls, name: str, prefix: str = DEFAULT_KEY_PREFIX) -> "BatchKeys":
        """
        Derive every key for a batch.

        Args:
            name: The batch name, used verbatim.
            prefix: Namespace prefix shared by all keys.

        Returns:
            The derived keys.
        """
        validate_batch_name(name)
        return cls(
            name=name,
            prefix=prefix,
            batches=batches_key(prefix),
            queue=f"{prefix}:{name}",
            unique=f"{prefix}:{name}:{UNIQUE_MESSAGES_SUFFIX}",
            pending=f"{prefix}:{name}:{PENDING_JOBS_SUFFIX}",
            lock=f"{prefix}:{LOCK_KEY}:{name}",
            last_execution_time=f"{prefix}:{LAST_EXECUTION_TIME_KEY}:{name}",
        )

    def new_pending_job(self) -> str:
        """Generate a fresh pending job key for one reliable pluck."""
        return f"{self.queue}:{secrets.token_hex(PENDING_JOB_SUFFIX_BYTES)}"
