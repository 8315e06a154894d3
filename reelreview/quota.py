"""
Temporary storage quota accounting.

Only videos still on temporary storage count: `video_source == firebase` with
a non-empty path. Archived submissions and versions contribute nothing.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .config import get_settings
from .db.models import Submission, Version, VideoSource
from .errors import QuotaExceeded

logger = logging.getLogger(__name__)

GIB = 1024 * 1024 * 1024


def _on_temporary_storage(model):
    return (
        (model.video_source == VideoSource.FIREBASE)
        & (model.firebase_video_path.isnot(None))
        & (model.firebase_video_path != "")
        & (model.firebase_video_size > 0)
    )


def temporary_storage_used(db: Session) -> int:
    """Bytes currently held in temporary storage by submissions and versions."""
    total = 0
    for model in (Submission, Version):
        used = db.query(func.coalesce(func.sum(model.firebase_video_size), 0)).filter(
            _on_temporary_storage(model)
        ).scalar()
        total += int(used or 0)
    return total


def _limit(limit: Optional[int]) -> int:
    return get_settings().temporary_storage_limit_bytes if limit is None else limit


def check_quota(db: Session, new_bytes: int, limit: Optional[int] = None) -> int:
    """
    Raise QuotaExceeded when adding `new_bytes` would pass the limit.

    Returns current usage.
    """
    limit = _limit(limit)
    used = temporary_storage_used(db)
    if used + new_bytes > limit:
        logger.warning(f"Quota exceeded: used={used} new={new_bytes} limit={limit}")
        raise QuotaExceeded(
            f"Temporary storage limit reached ({limit / GIB:.1f} GB). "
            f"Used: {used / GIB:.2f} GB. This upload would exceed the limit.",
            used=used,
            limit=limit,
            requested=new_bytes,
        )
    return used


def format_bytes(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    if num_bytes < GIB:
        return f"{num_bytes / (1024 * 1024):.1f} MB"
    return f"{num_bytes / GIB:.2f} GB"


def percent_used(used: int, limit: int) -> int:
    if limit <= 0:
        return 0
    # half-up rounding
    return min(100, int(used * 100 / limit + 0.5))


def storage_usage(db: Session, limit: Optional[int] = None) -> dict:
    limit = _limit(limit)
    used = temporary_storage_used(db)
    return {
        "used": used,
        "limit": limit,
        "usedFormatted": format_bytes(used),
        "limitFormatted": format_bytes(limit),
        "percentUsed": percent_used(used, limit),
    }
