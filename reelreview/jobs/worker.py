"""
RQ Worker
=========

Worker process for archive jobs.

    python -m reelreview.jobs.worker --burst
"""

import argparse
import logging

from redis import Redis
from rq import Worker

from ..config import get_settings
from .queue import QUEUE_ARCHIVE, QUEUE_DEFAULT

logger = logging.getLogger(__name__)


def start_worker(queues: list = None, burst: bool = False, logging_level: str = "INFO"):
    """
    Start an RQ worker.

    Args:
        queues: List of queue names to listen to
        burst: Run in burst mode (exit when queues are empty)
        logging_level: Logging level
    """
    logging.basicConfig(
        level=getattr(logging, logging_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    redis_url = get_settings().redis_url
    if not redis_url:
        logger.error("REDIS_URL is not set; jobs run inline in the API process")
        return 1

    if queues is None:
        queues = [QUEUE_ARCHIVE, QUEUE_DEFAULT]

    worker = Worker(queues, connection=Redis.from_url(redis_url), worker_ttl=420)
    logger.info(f"Starting worker on queues: {queues}")
    worker.work(burst=burst)
    return 0


def run_worker_cli():
    """CLI entry point for worker"""
    parser = argparse.ArgumentParser(description="RQ worker for ReelReview")
    parser.add_argument("--queues", "-q", nargs="+", default=[QUEUE_ARCHIVE, QUEUE_DEFAULT],
                        help="Queues to listen to")
    parser.add_argument("--burst", "-b", action="store_true", help="Run in burst mode")
    parser.add_argument("--log-level", "-l", default="INFO", help="Logging level")

    args = parser.parse_args()
    return start_worker(queues=args.queues, burst=args.burst, logging_level=args.log_level)


if __name__ == "__main__":
    raise SystemExit(run_worker_cli())
