"""
Submission Workflow
===================

Statuses: pending, reviewing, approved, revision_requested. Reviewers and
admins may set any status; resubmission resets a submission to pending.

Resubmission snapshots the live video into an append-only Version before
overwriting the submission with the new upload.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from .auth import AuthContext
from .archive import temporary_paths_for
from .config import get_settings
from .db.models import (
    Submission, SubmissionStatus, Version, VideoSource, Comment, Annotation,
)
from .drive_links import parse_google_drive_url
from .errors import (
    NotFoundError, PermissionDenied, InvalidTransition, StorageError,
)
from .quota import check_quota
from .schemas import SubmissionCreate, ResubmitRequest
from .storage import get_temporary_storage

logger = logging.getLogger(__name__)


class SubmissionService:
    """Submission CRUD, status changes and versioning"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------

    def _load(self, submission_id: str) -> Submission:
        submission = self.db.query(Submission).filter(Submission.id == submission_id).first()
        if not submission:
            raise NotFoundError("Submission not found")
        return submission

    def get_submission(self, auth: AuthContext, submission_id: str) -> Submission:
        submission = self._load(submission_id)
        if not auth.can_view_submission(submission):
            raise PermissionDenied("Access denied")
        return submission

    def list_submissions(self, auth: AuthContext, status: Optional[SubmissionStatus] = None) -> List[Submission]:
        query = self.db.query(Submission)
        if not auth.is_reviewer:
            query = query.filter(Submission.submitter_id == auth.user_id)
        if status:
            query = query.filter(Submission.status == status)
        return query.order_by(Submission.created_at.desc()).all()

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def create_submission(self, auth: AuthContext, payload: SubmissionCreate) -> Submission:
        submission = Submission(
            title=payload.title.strip(),
            description=payload.description or "",
            submitter_id=auth.user_id,
            status=SubmissionStatus.PENDING,
            revision_round=1,
        )

        if payload.video_source == VideoSource.FIREBASE:
            check_quota(self.db, payload.firebase_video_size)
            submission.video_source = VideoSource.FIREBASE
            submission.firebase_video_url = payload.firebase_video_url
            submission.firebase_video_path = payload.firebase_video_path
            submission.firebase_video_size = payload.firebase_video_size
            submission.embed_url = payload.firebase_video_url
        else:
            link = parse_google_drive_url(payload.google_drive_url)
            submission.video_source = VideoSource.GOOGLE_DRIVE
            submission.google_drive_url = payload.google_drive_url.strip()
            submission.embed_url = link.embed_url

        self.db.add(submission)
        self.db.commit()
        self.db.refresh(submission)
        logger.info(f"Submission {submission.id} created by {auth.user_id} ({submission.video_source.value})")
        return submission

    # ------------------------------------------------------------------
    # updates
    # ------------------------------------------------------------------
    def update_submission(
        self,
        auth: AuthContext,
        submission_id: str,
        status: Optional[SubmissionStatus] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Tuple[Submission, bool]:
        """
        Apply a status change and/or a title and description edit.

        Status changes are reviewer or admin only; edits are owner or admin
        only. Every permission is checked before anything changes, and the
        update is committed once. Setting the current status again is a
        no-op. Returns the submission and whether its status changed.
        """
        submission = self._load(submission_id)
        if not auth.can_view_submission(submission):
            raise PermissionDenied("Access denied")
        if status is not None and not auth.is_reviewer:
            raise PermissionDenied("Only reviewers can update status")
        if (title is not None or description is not None) and not auth.can_modify_submission(submission):
            raise PermissionDenied("Only the owner or an admin can edit this submission")

        previous = submission.status
        status_changed = status is not None and status != previous
        if status_changed:
            submission.status = status
            if status == SubmissionStatus.REVISION_REQUESTED:
                submission.revision_requested_at = datetime.utcnow()
        if title is not None:
            submission.title = title.strip()
        if description is not None:
            submission.description = description

        self.db.commit()
        self.db.refresh(submission)
        if status_changed:
            logger.info(f"Submission {submission_id} status {previous.value} -> {status.value} by {auth.user_id}")
        return submission, status_changed

    def update_status(self, auth: AuthContext, submission_id: str, status: SubmissionStatus) -> Submission:
        submission, _ = self.update_submission(auth, submission_id, status=status)
        return submission

    def needs_auto_archive(self, submission: Submission) -> bool:
        return (
            get_settings().auto_archive_enabled
            and submission.status == SubmissionStatus.APPROVED
            and submission.on_temporary_storage
        )

    # ------------------------------------------------------------------
    # versioning
    # ------------------------------------------------------------------

    def resubmit(self, auth: AuthContext, submission_id: str, payload: ResubmitRequest) -> Submission:
        submission = self._load(submission_id)
        if submission.submitter_id != auth.user_id:
            raise PermissionDenied("Only the submission owner can resubmit")
        if submission.status != SubmissionStatus.REVISION_REQUESTED:
            raise InvalidTransition("Can only resubmit when revision has been requested")

        check_quota(self.db, payload.firebase_video_size)

        current_round = submission.revision_round or 1
        self.db.add(Version(
            submission_id=submission.id,
            root_submission_id=submission.id,
            version_number=current_round,
            video_source=submission.video_source,
            embed_url=submission.embed_url,
            google_drive_url=submission.google_drive_url,
            firebase_video_url=submission.firebase_video_url,
            firebase_video_path=submission.firebase_video_path,
            firebase_video_size=submission.firebase_video_size,
        ))

        submission.video_source = VideoSource.FIREBASE
        submission.firebase_video_url = payload.firebase_video_url
        submission.firebase_video_path = payload.firebase_video_path
        submission.firebase_video_size = payload.firebase_video_size
        submission.embed_url = payload.firebase_video_url
        submission.revision_round = current_round + 1
        submission.revision_requested_at = None
        submission.archived_at = None
        submission.status = SubmissionStatus.PENDING

        self.db.commit()
        self.db.refresh(submission)
        logger.info(f"Submission {submission_id} resubmitted (round {submission.revision_round})")
        return submission

    def list_versions(self, auth: AuthContext, submission_id: str) -> List[Version]:
        submission = self.get_submission(auth, submission_id)
        return (
            self.db.query(Version)
            .filter(Version.submission_id == submission.id)
            .order_by(Version.version_number.desc())
            .all()
        )

    # ------------------------------------------------------------------
    # delete
    # ------------------------------------------------------------------

    def delete_submission(self, auth: AuthContext, submission_id: str) -> int:
        """
        Delete a submission with its comments, annotations and versions, then
        remove its temporary files. Returns the number of files removed.
        """
        submission = self._load(submission_id)
        if not auth.can_modify_submission(submission):
            raise PermissionDenied("Only the owner or an admin can delete this submission")

        paths = temporary_paths_for(self.db, submission)

        # Replies first so the self-referencing FK never dangles
        self.db.query(Comment).filter(
            Comment.submission_id == submission_id,
            Comment.parent_comment_id.isnot(None),
        ).update({Comment.parent_comment_id: None}, synchronize_session=False)
        self.db.query(Comment).filter(Comment.submission_id == submission_id).delete(synchronize_session=False)
        self.db.query(Annotation).filter(Annotation.submission_id == submission_id).delete(synchronize_session=False)
        self.db.query(Version).filter(Version.submission_id == submission_id).delete(synchronize_session=False)
        self.db.delete(submission)
        self.db.commit()
        logger.info(f"Submission {submission_id} deleted by {auth.user_id}")

        removed = 0
        if paths:
            storage = get_temporary_storage()
            for path in paths:
                try:
                    if storage.delete(path):
                        removed += 1
                except StorageError as e:
                    logger.warning(f"Failed to delete temporary file {path}: {e.message}")
        return removed
