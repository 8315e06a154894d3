"""
Tests for the job queue wrapper.
"""

from unittest.mock import MagicMock, patch

from redis.exceptions import RedisError

from reelreview.jobs.queue import enqueue_job, get_job_status, QUEUE_ARCHIVE


def _double(x):
    return x * 2


def _boom():
    raise RuntimeError("boom")


class TestEnqueue:

    def test_runs_inline_without_redis(self, app_env):
        result = enqueue_job(_double, 21, queue_name=QUEUE_ARCHIVE, job_id="job-1")
        assert result == {"job_id": "job-1", "status": "done", "result": 42}

    def test_inline_failure_reported(self, app_env):
        result = enqueue_job(_boom)
        assert result["status"] == "failed"
        assert result["error"] == "boom"

    def test_falls_back_when_enqueue_fails(self, app_env):
        queue = MagicMock()
        queue.enqueue.side_effect = RedisError("connection refused")
        with patch("reelreview.jobs.queue.get_queue", return_value=queue):
            result = enqueue_job(_double, 2)
        assert result["status"] == "done"
        assert result["result"] == 4

    def test_enqueued_job(self, app_env):
        job = MagicMock()
        job.id = "rq-1"
        job.get_status.return_value = "queued"
        queue = MagicMock()
        queue.enqueue.return_value = job
        with patch("reelreview.jobs.queue.get_queue", return_value=queue):
            result = enqueue_job(_double, 2, queue_name=QUEUE_ARCHIVE)
        assert result["job_id"] == "rq-1"
        assert result["status"] == "queued"
        assert result["queue"] == QUEUE_ARCHIVE

    def test_status_without_redis(self, app_env):
        assert get_job_status("x")["status"] == "unknown"
