"""
Store module.
Contains the Redis connection, keyspace, Lua scripts, ledger and repository.
"""

from batchqueue.store.connection import (
    close_redis,
    create_test_client,
    get_client,
    get_client_context,
    init_redis,
)
from batchqueue.store.keys import BatchKeys, batches_key, decode_key, validate_batch_name
from batchqueue.store.ledger import PendingLedger
from batchqueue.store.repository import BatchRepository
from batchqueue.store.scripts import (
    EvalExecutor,
    EvalShaExecutor,
    ScriptExecutor,
    create_executor,
)

__all__ = [
    "get_client",
    "get_client_context",
    "create_test_client",
    "init_redis",
    "close_redis",
    "BatchKeys",
    "batches_key",
    "decode_key",
    "validate_batch_name",
    "PendingLedger",
    "BatchRepository",
    "ScriptExecutor",
    "EvalShaExecutor",
    "EvalExecutor",
    "create_executor",
]
