"""
Comment and Annotation API Endpoints
====================================

- GET    /comments?submission_id=&threaded=  - Comments, flat or as a tree
- POST   /comments                           - Add a comment or reply
- DELETE /comments/{id}                      - Delete a comment and its replies
- GET    /annotations?submission_id=         - Reviewer annotations
- POST   /annotations                        - Add an annotation (reviewer/admin)
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .auth import AuthContext
from .comments import CommentService, email_map, UNKNOWN_EMAIL
from .db.models import Annotation, Submission
from .dependencies import get_auth_context, get_db_dependency, raise_http, require_reviewer
from .errors import ReviewError
from .schemas import CommentCreate, CommentResponse, AnnotationCreate, AnnotationResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["feedback"])


# =============================================================================
# COMMENTS
# =============================================================================

@router.get("/comments", response_model=List[CommentResponse])
async def list_comments(
    submission_id: str = Query(..., min_length=1),
    threaded: bool = Query(False),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    try:
        return CommentService(db).list_comments(auth, submission_id, threaded=threaded)
    except ReviewError as e:
        raise_http(e)


@router.post("/comments", response_model=CommentResponse, status_code=201)
async def create_comment(
    payload: CommentCreate,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    try:
        return CommentService(db).create_comment(auth, payload)
    except ReviewError as e:
        raise_http(e)


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    try:
        deleted = CommentService(db).delete_comment(auth, comment_id)
    except ReviewError as e:
        raise_http(e)
    return {"success": True, "deleted": deleted}


# =============================================================================
# ANNOTATIONS
# =============================================================================

def _annotation_out(annotation: Annotation, emails: dict) -> AnnotationResponse:
    return AnnotationResponse(
        id=annotation.id,
        submission_id=annotation.submission_id,
        reviewer_id=annotation.reviewer_id,
        reviewer_email=emails.get(annotation.reviewer_id) or UNKNOWN_EMAIL,
        timestamp_seconds=annotation.timestamp_seconds,
        note=annotation.note,
        created_at=annotation.created_at,
    )


@router.get("/annotations", response_model=List[AnnotationResponse])
async def list_annotations(
    submission_id: str = Query(..., min_length=1),
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    submission = db.query(Submission).filter(Submission.id == submission_id).first()
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    if not auth.can_view_submission(submission):
        raise HTTPException(status_code=403, detail="Access denied")

    annotations = (
        db.query(Annotation)
        .filter(Annotation.submission_id == submission_id)
        .order_by(Annotation.timestamp_seconds.asc(), Annotation.created_at.asc())
        .all()
    )
    emails = email_map(db, (a.reviewer_id for a in annotations))
    return [_annotation_out(a, emails) for a in annotations]


@router.post("/annotations", response_model=AnnotationResponse, status_code=201)
async def create_annotation(
    payload: AnnotationCreate,
    auth: AuthContext = Depends(require_reviewer),
    db: Session = Depends(get_db_dependency),
):
    submission = db.query(Submission).filter(Submission.id == payload.submission_id).first()
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")

    annotation = Annotation(
        submission_id=submission.id,
        reviewer_id=auth.user_id,
        timestamp_seconds=payload.timestamp_seconds,
        note=payload.note.strip(),
    )
    db.add(annotation)
    db.commit()
    db.refresh(annotation)
    return _annotation_out(annotation, {auth.user_id: auth.email})
