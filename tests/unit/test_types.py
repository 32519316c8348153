"""
Unit tests for batch types.
"""

import time

from batchqueue.types.batch import BatchStats, PendingJob, PendingJobInfo


class TestPendingJob:
    """Tests for PendingJob."""

    def test_empty(self):
        job = PendingJob(batch="b", pending_job_id="batching:b:abc")
        assert job.is_empty
        assert len(job) == 0

    def test_with_messages(self):
        job = PendingJob(batch="b", pending_job_id="batching:b:abc", messages=["x", "y"])
        assert not job.is_empty
        assert len(job) == 2


class TestPendingJobInfo:
    """Tests for PendingJobInfo."""

    def test_is_expired_strictly_older(self):
        """Test that an entry exactly at the threshold is not expired."""
        info = PendingJobInfo(pending_job_id="p", created_at=1000.0)

        assert info.is_expired(ttl=500, now=1501.0) is True
        assert info.is_expired(ttl=500, now=1500.0) is False
        assert info.is_expired(ttl=500, now=1200.0) is False

    def test_age_seconds(self):
        info = PendingJobInfo(pending_job_id="p", created_at=time.time() - 10)
        assert 9 <= info.age_seconds <= 60

    def test_age_never_negative(self):
        info = PendingJobInfo(pending_job_id="p", created_at=time.time() + 100)
        assert info.age_seconds == 0.0


def test_batch_stats_defaults():
    stats = BatchStats(name="b", size=1, unique_members=0, pending_jobs=2)
    assert stats.last_run is None
    assert stats.model_dump()["pending_jobs"] == 2
