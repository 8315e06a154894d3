"""
Submission API Endpoints
========================

- GET    /submissions                 - List (submitters see their own)
- POST   /submissions                 - Create (Drive link or temporary upload)
- GET    /submissions/{id}            - Get
- PATCH  /submissions/{id}            - Status change / title + description edit
- DELETE /submissions/{id}            - Delete with comments, annotations, versions
- POST   /submissions/{id}/resubmit   - Upload a new version after revision request
- GET    /submissions/{id}/versions   - Version history, newest first
- POST   /submissions/{id}/archive    - Move video to Google Drive (admin)
- GET    /submissions/{id}/archive-status - Auto-archive job state (admin)
- POST   /submissions/{id}/frame      - Capture a JPEG frame with ffmpeg
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .archive import ArchiveService
from .auth import AuthContext
from .config import get_settings
from .db.models import Submission, SubmissionStatus, VideoSource
from .dependencies import get_auth_context, get_db_dependency, require_admin, raise_http
from .errors import ReviewError
from .frames import extract_frame, video_url_for_capture
from .jobs import enqueue_job, get_job_status, task_archive_submission, QUEUE_ARCHIVE
from .schemas import (
    SubmissionCreate, SubmissionUpdate, SubmissionResponse, ResubmitRequest,
    VersionResponse, ArchiveResponse, FrameRequest, FrameResponse,
)
from .storage import get_archive_storage
from .submissions import SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["submissions"])


def _submission_out(submission: Submission) -> SubmissionResponse:
    out = SubmissionResponse.model_validate(submission)
    out.submitter_email = submission.submitter.email if submission.submitter else None
    return out


def schedule_auto_archive(submission_id: str) -> dict:
    """Queue the archive job; runs inline when no queue is available."""
    return enqueue_job(
        task_archive_submission,
        submission_id,
        "[auto-archive]",
        queue_name=QUEUE_ARCHIVE,
        job_id=f"archive-{submission_id}",
    )


@router.get("", response_model=List[SubmissionResponse])
async def list_submissions(
    status: Optional[SubmissionStatus] = Query(None),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    submissions = SubmissionService(db).list_submissions(auth, status)
    return [_submission_out(s) for s in submissions]


@router.post("", response_model=SubmissionResponse, status_code=201)
async def create_submission(
    payload: SubmissionCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    try:
        submission = SubmissionService(db).create_submission(auth, payload)
    except ReviewError as e:
        raise_http(e)
    return _submission_out(submission)


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    try:
        submission = SubmissionService(db).get_submission(auth, submission_id)
    except ReviewError as e:
        raise_http(e)
    return _submission_out(submission)


@router.patch("/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    submission_id: str,
    payload: SubmissionUpdate,
    background_tasks: BackgroundTasks,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    """
    Change status (reviewer/admin) and/or title and description (owner/admin).

    Approving a submission whose video is still on temporary storage
    schedules the auto-archive job after the response is sent.
    """
    if payload.status is None and payload.title is None and payload.description is None:
        raise HTTPException(status_code=400, detail="Nothing to update")

    service = SubmissionService(db)
    try:
        submission, status_changed = service.update_submission(
            auth, submission_id, payload.status, payload.title, payload.description
        )
    except ReviewError as e:
        raise_http(e)
    if status_changed and service.needs_auto_archive(submission):
        background_tasks.add_task(schedule_auto_archive, submission.id)
    return _submission_out(submission)


@router.delete("/{submission_id}")
async def delete_submission(
    submission_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    try:
        removed = SubmissionService(db).delete_submission(auth, submission_id)
    except ReviewError as e:
        raise_http(e)
    return {"success": True, "firebase_files_deleted": removed}


@router.post("/{submission_id}/resubmit", response_model=SubmissionResponse)
async def resubmit(
    submission_id: str,
    payload: ResubmitRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    try:
        submission = SubmissionService(db).resubmit(auth, submission_id, payload)
    except ReviewError as e:
        raise_http(e)
    return _submission_out(submission)


@router.get("/{submission_id}/versions", response_model=List[VersionResponse])
async def list_versions(
    submission_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    try:
        return SubmissionService(db).list_versions(auth, submission_id)
    except ReviewError as e:
        raise_http(e)


@router.post("/{submission_id}/archive", response_model=ArchiveResponse)
async def archive_submission(
    submission_id: str,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db_dependency),
):
    """Manually archive an approved submission to Google Drive."""
    archive_storage = get_archive_storage()
    if not archive_storage.configured:
        raise HTTPException(
            status_code=500,
            detail="Google Drive is not configured. Please add Google Drive credentials.",
        )

    submission = db.query(Submission).filter(Submission.id == submission_id).first()
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    if submission.video_source != VideoSource.FIREBASE:
        raise HTTPException(status_code=400, detail="This submission is not using temporary storage")
    if submission.status != SubmissionStatus.APPROVED:
        raise HTTPException(status_code=400, detail="Only approved submissions can be archived")
    if not submission.firebase_video_path:
        raise HTTPException(status_code=400, detail="Temporary video path is missing")

    result = ArchiveService(db, archive=archive_storage).archive(submission_id, log_prefix="[manual-archive]")
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error or "Failed to archive submission")

    return ArchiveResponse(
        success=True,
        drive_file_id=result.drive_file_id,
        drive_url=result.drive_url,
        embed_url=result.embed_url,
        firebase_deleted=result.firebase_deleted,
        firebase_files_deleted=result.firebase_files_deleted,
        message="Video archived to Google Drive",
    )


@router.get("/{submission_id}/archive-status")
async def archive_status(
    submission_id: str,
    auth: AuthContext = Depends(require_admin),
):
    """State of the queued auto-archive job for this submission."""
    return get_job_status(f"archive-{submission_id}")


@router.post("/{submission_id}/frame", response_model=FrameResponse)
async def capture_frame(
    submission_id: str,
    payload: FrameRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    if payload.timestamp_seconds is None or payload.timestamp_seconds < 0:
        raise HTTPException(status_code=400, detail="timestamp_seconds (number >= 0) is required")

    settings = get_settings()
    try:
        submission = SubmissionService(db).get_submission(auth, submission_id)
        video_url = video_url_for_capture(submission.embed_url)
        if not video_url:
            raise HTTPException(status_code=400, detail="Could not resolve video URL for frame extraction")
        image = await extract_frame(
            video_url,
            payload.timestamp_seconds,
            binary=settings.ffmpeg_binary,
            timeout=settings.frame_timeout,
        )
    except ReviewError as e:
        raise_http(e)
    return FrameResponse(imageDataUrl=image, timestamp_seconds=payload.timestamp_seconds)
