"""
Job Tasks
=========

Background task implementations.
"""

import logging
from typing import Dict, Any

from rq import get_current_job

from ..archive import ArchiveService
from ..db.session import get_db_session

logger = logging.getLogger(__name__)


def _set_job_error_message(message: str) -> None:
    job = get_current_job()
    if job:
        job.meta["error_message"] = message
        job.save_meta()


def task_archive_submission(submission_id: str, log_prefix: str = "[auto-archive]") -> Dict[str, Any]:
    """
    Archive an approved submission's video to Google Drive.

    Returns the ArchiveResult as a dict. A failed archive is logged and
    reported in the result; it does not raise, so RQ does not retry
    validation failures.
    """
    logger.info(f"{log_prefix} Starting archive for submission {submission_id}")
    with get_db_session() as db:
        result = ArchiveService(db).archive(submission_id, log_prefix=log_prefix)

    if not result.success:
        logger.error(f"{log_prefix} Failed for submission {submission_id}: {result.error}")
        _set_job_error_message(result.error or "Archive failed")
    return result.to_dict()
