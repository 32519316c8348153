"""
Unit tests for keyspace derivation.
"""

import pytest

from batchqueue.store.keys import BatchKeys, batches_key, decode_key, validate_batch_name


class TestBatchKeys:
    """Tests for BatchKeys."""

    def test_layout(self):
        """Test every key derived for a batch."""
        keys = BatchKeys.for_batch("emails")

        assert keys.batches == "batching:batches"
        assert keys.queue == "batching:emails"
        assert keys.unique == "batching:emails:unique_messages"
        assert keys.pending == "batching:emails:pending_jobs"
        assert keys.lock == "batching:lock:emails"
        assert keys.last_execution_time == "batching:last_execution_time:emails"

    def test_custom_prefix(self):
        """Test that the prefix namespaces every key."""
        keys = BatchKeys.for_batch("emails", prefix="app")

        assert keys.batches == batches_key("app") == "app:batches"
        assert keys.queue == "app:emails"
        assert keys.pending == "app:emails:pending_jobs"

    def test_deterministic(self):
        """Test that the same name always maps to the same keys."""
        assert BatchKeys.for_batch("a") == BatchKeys.for_batch("a")
        assert BatchKeys.for_batch("a") != BatchKeys.for_batch("b")

    def test_name_used_verbatim(self):
        """Test that names are not escaped or normalized."""
        keys = BatchKeys.for_batch("Worker::Class queue")
        assert keys.queue == "batching:Worker::Class queue"

    def test_new_pending_job_unique(self):
        """Test that pending job keys are fresh on every call."""
        keys = BatchKeys.for_batch("emails")

        generated = {keys.new_pending_job() for _ in range(100)}

        assert len(generated) == 100
        for pending_job_id in generated:
            assert pending_job_id.startswith("batching:emails:")
            suffix = pending_job_id.rsplit(":", 1)[1]
            assert len(suffix) == 32
            int(suffix, 16)

    @pytest.mark.parametrize("name", ["", None, 42, b"emails"])
    def test_invalid_names(self, name):
        """Test that empty or non-string names are rejected."""
        with pytest.raises(ValueError):
            BatchKeys.for_batch(name)

        with pytest.raises(ValueError):
            validate_batch_name(name)

    def test_valid_name_returned(self):
        """Test that validation passes names through."""
        assert validate_batch_name("emails") == "emails"


@pytest.mark.parametrize("raw", [b"batching:emails:ab12", "batching:emails:ab12"])
def test_decode_key(raw):
    assert decode_key(raw) == "batching:emails:ab12"
