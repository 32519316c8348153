"""
Unit tests for logging setup.
"""

import json
import logging

import pytest
import structlog

from batchqueue.observability.logging import (
    add_trace_context,
    batch_context,
    clear_context,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging():
    """Restore logging configuration after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    clear_context()
    structlog.reset_defaults()
    root.handlers, root.level = handlers, level


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_json_output_carries_extra_and_context(self, capsys: pytest.CaptureFixture):
        """Test that stdlib records come out as JSON with bound context."""
        setup_logging(level="INFO", log_format="json")

        with batch_context("emails"):
            logging.getLogger("batchqueue.test").info(
                "Plucked 2 messages", extra={"mode": "plain"}
            )

        record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert record["event"] == "Plucked 2 messages"
        assert record["batch"] == "emails"
        assert record["mode"] == "plain"
        assert record["level"] == "info"
        assert record["service"] == "batchqueue"

    def test_level_filter(self, capsys: pytest.CaptureFixture):
        setup_logging(level="WARNING", log_format="json")

        logging.getLogger("batchqueue.test").info("hidden")

        assert "hidden" not in capsys.readouterr().out

    def test_context_is_scoped(self, capsys: pytest.CaptureFixture):
        setup_logging(level="INFO", log_format="json")

        with batch_context("emails"):
            pass
        logging.getLogger("batchqueue.test").info("after")

        record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert "batch" not in record


def test_trace_context_without_span():
    """Test that records are untouched outside a recording span."""
    event = {"event": "x"}
    assert add_trace_context(None, "info", event) == {"event": "x"}
