"""
Unit tests for script executors.
"""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import NoScriptError

from batchqueue.store.scripts import (
    PLUCK,
    REQUEUE,
    SCRIPTS,
    EvalExecutor,
    EvalShaExecutor,
    create_executor,
)


@pytest.fixture
def client() -> AsyncMock:
    """Create a mock Redis client."""
    client = AsyncMock()
    client.script_load.return_value = "sha-1"
    client.evalsha.return_value = ["a"]
    client.eval.return_value = ["b"]
    return client


class TestEvalShaExecutor:
    """Tests for EvalShaExecutor."""

    async def test_loads_lazily_and_caches(self, client: AsyncMock):
        """Test that a script is loaded once and reused."""
        executor = EvalShaExecutor(client)
        client.script_load.assert_not_called()

        await executor.run(PLUCK, ["q", "u"], [10])
        await executor.run(PLUCK, ["q", "u"], [5])

        client.script_load.assert_awaited_once_with(PLUCK.source)
        assert client.evalsha.await_count == 2
        client.evalsha.assert_awaited_with("sha-1", 2, "q", "u", 5)

    async def test_caches_per_script(self, client: AsyncMock):
        """Test that each script gets its own SHA."""
        client.script_load.side_effect = ["sha-pluck", "sha-requeue"]
        executor = EvalShaExecutor(client)

        await executor.run(PLUCK, ["q", "u"], [1])
        await executor.run(REQUEUE, ["p", "q", "l", "u"], ["0"])

        assert client.script_load.await_count == 2
        client.evalsha.assert_awaited_with("sha-requeue", 4, "p", "q", "l", "u", "0")

    async def test_decodes_bytes_sha(self, client: AsyncMock):
        """Test that a bytes SHA from a raw client is decoded."""
        client.script_load.return_value = b"sha-bytes"
        executor = EvalShaExecutor(client)

        await executor.run(PLUCK, ["q", "u"], [1])

        client.evalsha.assert_awaited_with("sha-bytes", 2, "q", "u", 1)

    async def test_reloads_on_noscript(self, client: AsyncMock):
        """Test that a flushed script is reloaded and retried once."""
        client.script_load.side_effect = ["sha-old", "sha-new"]
        client.evalsha.side_effect = [NoScriptError("NOSCRIPT"), ["x"]]
        executor = EvalShaExecutor(client)

        result = await executor.run(PLUCK, ["q", "u"], [1])

        assert result == ["x"]
        assert client.script_load.await_count == 2
        client.evalsha.assert_awaited_with("sha-new", 2, "q", "u", 1)

    async def test_retries_only_once(self, client: AsyncMock):
        """Test that a second NOSCRIPT propagates."""
        client.evalsha.side_effect = NoScriptError("NOSCRIPT")
        executor = EvalShaExecutor(client)

        with pytest.raises(NoScriptError):
            await executor.run(PLUCK, ["q", "u"], [1])

        assert client.evalsha.await_count == 2

    async def test_connection_errors_propagate(self, client: AsyncMock):
        """Test that store failures are not swallowed."""
        client.evalsha.side_effect = ConnectionError("down")
        executor = EvalShaExecutor(client)

        with pytest.raises(ConnectionError):
            await executor.run(PLUCK, ["q", "u"], [1])

        assert client.evalsha.await_count == 1


class TestEvalExecutor:
    """Tests for EvalExecutor."""

    async def test_sends_source(self, client: AsyncMock):
        """Test that the script body is sent on every call."""
        executor = EvalExecutor(client)

        result = await executor.run(PLUCK, ["q", "u"], [3])

        assert result == ["b"]
        client.eval.assert_awaited_once_with(PLUCK.source, 2, "q", "u", 3)
        client.script_load.assert_not_called()
        client.evalsha.assert_not_called()


class TestCreateExecutor:
    """Tests for create_executor."""

    def test_evalsha(self, client: AsyncMock):
        assert isinstance(create_executor(client, "evalsha"), EvalShaExecutor)

    def test_eval(self, client: AsyncMock):
        assert isinstance(create_executor(client, "eval"), EvalExecutor)

    def test_default(self, client: AsyncMock):
        assert isinstance(create_executor(client), EvalShaExecutor)

    def test_unknown_mode(self, client: AsyncMock):
        with pytest.raises(ValueError):
            create_executor(client, "pipeline")


def test_script_names_unique():
    """Test that SHA cache keys cannot collide."""
    names = [script.name for script in SCRIPTS]
    assert len(names) == len(set(names))
