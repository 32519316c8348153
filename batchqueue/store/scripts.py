"""
Lua scripts for the atomic batch operations, and the executors that run them.

Every queue mutation that touches more than one key goes through one of these
scripts so Redis applies it as a single indivisible unit:
- merge_enqueue: register the batch and append, optionally collapsing duplicates
- pluck: pop from the head and forget unique members
- reliable_pluck: move from the head into a pending job list and record it
- acknowledge: drop a pending job list and its ledger entry
- requeue: return an expired pending job to the queue, with or without
  unique filtering
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from redis.exceptions import NoScriptError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Script:
    """A named Lua script body."""

    name: str
    source: str


# KEYS: batches index, queue, unique set
# ARGV: batch name, remember flag ('1'/'0'), messages...
MERGE_ENQUEUE = Script(
    name="merge_enqueue",
    source="""
local batches = KEYS[1]
local queue = KEYS[2]
local unique_messages = KEYS[3]
local name = ARGV[1]
local remember_unique = ARGV[2] == '1'

redis.call('sadd', batches, name)

local appended = 0
for i = 3, #ARGV do
  local message = ARGV[i]
  if (not remember_unique) or redis.call('sadd', unique_messages, message) == 1 then
    redis.call('rpush', queue, message)
    appended = appended + 1
  end
end
return appended
""",
)

# KEYS: queue, unique set
# ARGV: limit
PLUCK = Script(
    name="pluck",
    source="""
local queue = KEYS[1]
local unique_messages = KEYS[2]
local limit = tonumber(ARGV[1])

if limit <= 0 then
  return {}
end

local values = redis.call('lrange', queue, 0, limit - 1)
if #values > 0 then
  redis.call('ltrim', queue, #values, -1)
  for i = 1, #values do
    redis.call('srem', unique_messages, values[i])
  end
end
return values
""",
)

# KEYS: queue, unique set, pending ledger, pending job list
# ARGV: limit, current timestamp
RELIABLE_PLUCK = Script(
    name="reliable_pluck",
    source="""
local queue = KEYS[1]
local unique_messages = KEYS[2]
local pending_jobs = KEYS[3]
local this_job = KEYS[4]
local limit = tonumber(ARGV[1])
local current_time = ARGV[2]

local values = {}
local count = math.min(limit, redis.call('llen', queue))
for i = 1, count do
  local value = redis.call('lmove', queue, this_job, 'LEFT', 'RIGHT')
  values[#values + 1] = value
  redis.call('srem', unique_messages, value)
end

if #values > 0 then
  redis.call('zadd', pending_jobs, current_time, this_job)
end
return values
""",
)

# KEYS: pending ledger, pending job list
ACKNOWLEDGE = Script(
    name="acknowledge",
    source="""
local pending_jobs = KEYS[1]
local this_job = KEYS[2]

local removed = redis.call('zrem', pending_jobs, this_job)
if removed == 1 then
  redis.call('del', this_job)
end
return removed
""",
)

# KEYS: pending job list, queue, pending ledger, unique set
# ARGV: unique flag ('1'/'0')
# Returns -1 when the ledger entry was already resolved, otherwise the number
# of messages put back on the queue. In unique mode liveness is read for the
# whole job before any payload is marked live again.
REQUEUE = Script(
    name="requeue",
    source="""
local expired_queue = KEYS[1]
local queue = KEYS[2]
local pending_jobs = KEYS[3]
local unique_messages = KEYS[4]
local unique = ARGV[1] == '1'

if redis.call('zrem', pending_jobs, expired_queue) == 0 then
  return -1
end

local messages = redis.call('lrange', expired_queue, 0, -1)
redis.call('del', expired_queue)

local live = {}
if unique then
  for i = 1, #messages do
    live[i] = redis.call('sismember', unique_messages, messages[i]) == 1
  end
end

local requeued = 0
for i = 1, #messages do
  if not live[i] then
    redis.call('rpush', queue, messages[i])
    if unique then
      redis.call('sadd', unique_messages, messages[i])
    end
    requeued = requeued + 1
  end
end
return requeued
""",
)

SCRIPTS: tuple[Script, ...] = (
    MERGE_ENQUEUE,
    PLUCK,
    RELIABLE_PLUCK,
    ACKNOWLEDGE,
    REQUEUE,
)


class ScriptExecutor(ABC):
    """
    Runs scripts against one Redis client.

    One implementation exists per way of invoking scripts; the choice is made
    once when the executor is created.
    """

    def __init__(self, client: Any):
        self._client = client

    @abstractmethod
    async def run(
        self,
        script: Script,
        keys: Sequence[str],
        args: Sequence[Any] = (),
    ) -> Any:
        """
        Execute a script atomically.

        Args:
            script: The script to run.
            keys: Redis keys the script touches.
            args: Script arguments.

        Returns:
            Whatever the script returns.
        """


class EvalShaExecutor(ScriptExecutor):
    """
    Executor using SCRIPT LOAD + EVALSHA.

    SHAs are cached per executor (so per client) and loaded on first use.
    If Redis no longer knows a SHA, e.g. after a restart or SCRIPT FLUSH,
    the script is reloaded and the call retried once.
    """

    def __init__(self, client: Any):
        super().__init__(client)
        self._shas: dict[str, str] = {}

    async def load(self, script: Script) -> str:
        """Load a script into Redis and cache its SHA."""
        sha = await self._client.script_load(script.source)
        if isinstance(sha, bytes):
            sha = sha.decode()
        self._shas[script.name] = sha
        logger.debug("Loaded Lua script", extra={"script": script.name, "sha": sha})
        return sha

    async def _sha(self, script: Script) -> str:
        sha = self._shas.get(script.name)
        if sha is None:
            sha = await self.load(script)
        return sha

    async def run(
        self,
        script: Script,
        keys: Sequence[str],
        args: Sequence[Any] = (),
    ) -> Any:
        sha = await self._sha(script)
        try:
            return await self._client.evalsha(sha, len(keys), *keys, *args)
        except NoScriptError:
            logger.warning(
                "Script missing on server, reloading",
                extra={"script": script.name},
            )
            self._shas.pop(script.name, None)
            sha = await self.load(script)
            return await self._client.evalsha(sha, len(keys), *keys, *args)


class EvalExecutor(ScriptExecutor):
    """
    Executor sending the full script body with EVAL on every call.

    For servers or proxies that refuse SCRIPT LOAD.
    """

    async def run(
        self,
        script: Script,
        keys: Sequence[str],
        args: Sequence[Any] = (),
    ) -> Any:
        return await self._client.eval(script.source, len(keys), *keys, *args)


EXECUTORS: dict[str, type[ScriptExecutor]] = {
    "evalsha": EvalShaExecutor,
    "eval": EvalExecutor,
}


def create_executor(client: Any, mode: str = "evalsha") -> ScriptExecutor:
    """
    Create the script executor for a client.

    Args:
        client: The redis.asyncio client.
        mode: "evalsha" or "eval".

    Returns:
        ScriptExecutor: The executor bound to the client.

    Raises:
        ValueError: If the mode is unknown.
    """
    try:
        executor_class = EXECUTORS[mode]
    except KeyError:
        raise ValueError(f"Unknown script mode: {mode!r}") from None
    return executor_class(client)
