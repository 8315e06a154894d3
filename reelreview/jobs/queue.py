"""
Job Queue Management
====================

Redis Queue (RQ) integration for background jobs.

When REDIS_URL is not set, or Redis cannot be reached, jobs run
synchronously in the calling process.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any, Callable

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue, Retry
from rq.exceptions import NoSuchJobError
from rq.job import Job

from ..config import get_settings

logger = logging.getLogger(__name__)

# Queue names
QUEUE_DEFAULT = "default"
QUEUE_ARCHIVE = "archive"


def get_redis_connection() -> Optional[Redis]:
    """Redis connection, or None when REDIS_URL is not configured"""
    redis_url = get_settings().redis_url
    if not redis_url:
        return None
    return Redis.from_url(redis_url)


def get_queue(queue_name: str = QUEUE_DEFAULT) -> Optional[Queue]:
    conn = get_redis_connection()
    if conn is None:
        return None
    return Queue(queue_name, connection=conn)


def enqueue_job(
    func: Callable,
    *args,
    queue_name: str = QUEUE_DEFAULT,
    job_id: str = None,
    timeout: int = 900,
    retry: int = 2,
    meta: Dict[str, Any] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Enqueue a job for async processing.

    Args:
        func: Function to execute
        *args: Positional arguments for function
        queue_name: Queue to use
        job_id: Optional custom job ID
        timeout: Job timeout in seconds
        retry: Number of retries on failure
        meta: Custom metadata for job
        **kwargs: Keyword arguments for function

    Returns:
        Dict with job_id and status (and result when run synchronously)
    """
    def _run_sync(reason: str) -> Dict[str, Any]:
        logger.warning(f"Running job synchronously ({reason})")
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.exception(f"Synchronous job {getattr(func, '__name__', func)} failed")
            return {"job_id": job_id or "sync", "status": "failed", "error": str(e)}
        return {"job_id": job_id or "sync", "status": "done", "result": result}

    queue = get_queue(queue_name)
    if queue is None:
        return _run_sync("REDIS_URL not configured")

    retry_policy = Retry(max=retry, interval=[30, 120]) if retry > 0 else None

    try:
        job = queue.enqueue(
            func,
            *args,
            job_id=job_id,
            job_timeout=timeout,
            retry=retry_policy,
            meta=meta or {},
            **kwargs
        )
    except RedisError as e:
        return _run_sync(f"RQ enqueue failed: {e}")

    return {
        "job_id": job.id,
        "status": job.get_status(),
        "queue": queue_name,
        "enqueued_at": datetime.utcnow().isoformat(),
    }


def get_job_status(job_id: str) -> Dict[str, Any]:
    """Get job status and result."""
    conn = get_redis_connection()
    if conn is None:
        return {"job_id": job_id, "status": "unknown", "error": "REDIS_URL not configured"}

    try:
        job = Job.fetch(job_id, connection=conn)
    except (NoSuchJobError, RedisError) as e:
        return {"job_id": job_id, "status": "not_found", "error": str(e)}

    result = {
        "job_id": job_id,
        "status": job.get_status(),
        "meta": job.meta,
        "enqueued_at": job.enqueued_at.isoformat() if job.enqueued_at else None,
        "started_at": job.started_at.isoformat() if job.started_at else None,
        "ended_at": job.ended_at.isoformat() if job.ended_at else None,
    }
    if job.is_finished:
        result["result"] = job.result
    elif job.is_failed:
        result["error"] = job.meta.get("error_message") or "Job failed"
    return result
