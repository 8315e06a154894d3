"""
Job Queue Package
=================

Background jobs with Redis Queue (RQ).
"""

from .queue import enqueue_job, get_job_status, QUEUE_ARCHIVE
from .tasks import task_archive_submission

__all__ = [
    "enqueue_job", "get_job_status", "QUEUE_ARCHIVE",
    "task_archive_submission",
]
