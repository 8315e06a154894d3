"""
Archive Migration
=================

Moves a submission's video from temporary storage to Google Drive:

1. Validate (Drive configured, submission on temporary storage with a path)
2. Collect every temporary path owned by the submission and its versions
3. Read metadata, download, upload to Drive
4. Point the submission at the Drive copy and commit
5. Delete the temporary files (failures are logged, not fatal)
6. Clear temporary-storage fields on the owned versions

Failures before step 4 leave the database untouched and return a failed
ArchiveResult instead of raising.
"""

import logging
import re
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from .db.models import Submission, Version, VideoSource
from .errors import StorageError
from .storage import get_temporary_storage, get_archive_storage
from .storage.base import TemporaryStorage, ArchiveStorage

logger = logging.getLogger(__name__)

_UNSAFE_TITLE_CHARS = re.compile(r"[^a-zA-Z0-9\-_]")


@dataclass
class ArchiveResult:
    success: bool
    drive_file_id: Optional[str] = None
    drive_url: Optional[str] = None
    embed_url: Optional[str] = None
    firebase_deleted: bool = False
    firebase_files_deleted: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def archive_filename(title: str, submission_id: str, source_name: str) -> str:
    """`<title[:50] with unsafe chars replaced>_<id>.<ext>`, ext from the stored name."""
    safe_title = _UNSAFE_TITLE_CHARS.sub("_", title or "")[:50]
    base = (source_name or "").rsplit("/", 1)[-1]
    extension = base.rsplit(".", 1)[-1] if "." in base else ""
    return f"{safe_title}_{submission_id}.{extension or 'mp4'}"


def owned_versions(db: Session, submission_id: str) -> List[Version]:
    """Versions whose root (or, for legacy rows, whose submission) is `submission_id`."""
    candidates = db.query(Version).filter(
        (Version.root_submission_id == submission_id)
        | ((Version.root_submission_id.is_(None)) & (Version.submission_id == submission_id))
    ).all()
    return [v for v in candidates if v.belongs_to(submission_id)]


def temporary_paths_for(db: Session, submission: Submission) -> List[str]:
    """All temporary-storage paths of a submission and its versions, deduplicated."""
    paths: List[str] = []
    if submission.on_temporary_storage:
        paths.append(submission.firebase_video_path)
    for version in owned_versions(db, submission.id):
        if version.on_temporary_storage and version.firebase_video_path not in paths:
            paths.append(version.firebase_video_path)
    return paths


class ArchiveService:
    def __init__(
        self,
        db: Session,
        temporary: Optional[TemporaryStorage] = None,
        archive: Optional[ArchiveStorage] = None,
    ):
        self.db = db
        self.temporary = temporary or get_temporary_storage()
        self.archive_storage = archive or get_archive_storage()

    def archive(self, submission_id: str, log_prefix: str = "[archive]") -> ArchiveResult:
        if not self.archive_storage.configured:
            return ArchiveResult(success=False, error="Google Drive is not configured")

        submission = self.db.query(Submission).filter(Submission.id == submission_id).first()
        if not submission:
            return ArchiveResult(success=False, error="Submission not found")
        if submission.video_source != VideoSource.FIREBASE:
            return ArchiveResult(success=False, error="Submission is not using temporary storage")
        if not submission.firebase_video_path:
            return ArchiveResult(success=False, error="Temporary video path is missing")

        # Collected before the submission loses its path below
        paths = temporary_paths_for(self.db, submission)
        logger.info(f"{log_prefix} Found {len(paths)} temporary file(s) to delete")

        source_path = submission.firebase_video_path
        try:
            meta = self.temporary.metadata(source_path)
        except StorageError as e:
            logger.error(f"{log_prefix} Metadata lookup failed for {source_path}: {e.message}")
            return ArchiveResult(success=False, error="Could not get video metadata from temporary storage")

        logger.info(f"{log_prefix} Downloading video: {source_path}")
        try:
            data = self.temporary.get(source_path)
        except StorageError as e:
            logger.error(f"{log_prefix} Download failed for {source_path}: {e.message}")
            return ArchiveResult(success=False, error="Failed to download video from temporary storage")

        filename = archive_filename(submission.title, submission.id, meta.name)
        logger.info(f"{log_prefix} Uploading to Google Drive: {filename}")
        try:
            uploaded = self.archive_storage.upload(filename, data, meta.content_type or "video/mp4")
        except StorageError as e:
            logger.error(f"{log_prefix} Upload failed for submission {submission_id}: {e.message}")
            return ArchiveResult(success=False, error=e.message or "Failed to upload to Google Drive")

        logger.info(f"{log_prefix} Updating submission {submission_id}")
        submission.google_drive_url = uploaded.web_view_link or uploaded.embed_url
        submission.embed_url = uploaded.embed_url
        submission.video_source = VideoSource.GOOGLE_DRIVE
        submission.firebase_video_url = None
        submission.firebase_video_path = None
        submission.archived_at = datetime.utcnow()
        self.db.commit()

        deleted = 0
        for path in paths:
            logger.info(f"{log_prefix} Deleting temporary file: {path}")
            try:
                if self.temporary.delete(path):
                    deleted += 1
            except StorageError as e:
                logger.warning(f"{log_prefix} Failed to delete {path}: {e.message}")

        logger.info(f"{log_prefix} Clearing temporary fields on versions")
        for version in owned_versions(self.db, submission_id):
            if version.video_source != VideoSource.FIREBASE:
                continue
            version.video_source = VideoSource.GOOGLE_DRIVE
            version.firebase_video_url = ""
            version.firebase_video_path = ""
            version.firebase_video_size = 0
        self.db.commit()

        logger.info(
            f"{log_prefix} Archive complete for submission {submission_id}. "
            f"Deleted {deleted}/{len(paths)} temporary files."
        )
        return ArchiveResult(
            success=True,
            drive_file_id=uploaded.file_id,
            drive_url=uploaded.web_view_link,
            embed_url=uploaded.embed_url,
            firebase_deleted=deleted > 0,
            firebase_files_deleted=deleted,
        )
