"""
Comment Threading
=================

Comments are stored flat with an optional `parent_comment_id` and rebuilt
into a tree for display. Deleting a comment removes its whole subtree.
"""

import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from .auth import AuthContext
from .db.models import Comment, Submission, User
from .errors import NotFoundError, PermissionDenied, ValidationFailed
from .schemas import CommentCreate

logger = logging.getLogger(__name__)

UNKNOWN_EMAIL = "Unknown"


def email_map(db: Session, user_ids) -> Dict[str, str]:
    ids = {uid for uid in user_ids if uid}
    if not ids:
        return {}
    rows = db.query(User.id, User.email).filter(User.id.in_(ids)).all()
    return {row.id: row.email for row in rows}


def serialize_comment(comment: Comment, emails: Dict[str, str]) -> dict:
    return {
        "id": comment.id,
        "submission_id": comment.submission_id,
        "user_id": comment.user_id,
        "user_email": emails.get(comment.user_id) or UNKNOWN_EMAIL,
        "timestamp_seconds": comment.timestamp_seconds,
        "content": comment.content or "",
        "parent_comment_id": comment.parent_comment_id,
        "attachment_url": comment.attachment_url,
        "attachment_pin_x": comment.attachment_pin_x,
        "attachment_pin_y": comment.attachment_pin_y,
        "attachment_pin_comment": comment.attachment_pin_comment,
        "revision_round": comment.revision_round or 1,
        "created_at": comment.created_at,
        "replies": [],
    }


def build_comment_tree(comments: List[dict]) -> List[dict]:
    """
    Nest serialized comments under their parents.

    Input order is preserved among siblings. Comments whose parent is not in
    the list are promoted to roots.
    """
    by_id = {c["id"]: {**c, "replies": []} for c in comments}
    roots: List[dict] = []
    for comment in comments:
        node = by_id[comment["id"]]
        parent_id = comment.get("parent_comment_id")
        parent = by_id.get(parent_id) if parent_id and parent_id != comment["id"] else None
        if parent is not None:
            parent["replies"].append(node)
        else:
            roots.append(node)
    return roots


def collect_descendants(comment_id: str, children: Dict[str, List[str]]) -> List[str]:
    """Ids of every descendant of `comment_id`, parents before children."""
    ordered: List[str] = []
    seen = {comment_id}
    frontier = [comment_id]
    while frontier:
        next_frontier = []
        for parent_id in frontier:
            for child_id in children.get(parent_id, []):
                if child_id in seen:
                    continue
                seen.add(child_id)
                ordered.append(child_id)
                next_frontier.append(child_id)
        frontier = next_frontier
    return ordered


class CommentService:
    def __init__(self, db: Session):
        self.db = db

    def _submission_for(self, auth: AuthContext, submission_id: str) -> Submission:
        submission = self.db.query(Submission).filter(Submission.id == submission_id).first()
        if not submission:
            raise NotFoundError("Submission not found")
        if not auth.can_view_submission(submission):
            raise PermissionDenied("Access denied")
        return submission

    def list_comments(self, auth: AuthContext, submission_id: str, threaded: bool = False) -> List[dict]:
        self._submission_for(auth, submission_id)
        comments = (
            self.db.query(Comment)
            .filter(Comment.submission_id == submission_id)
            .order_by(Comment.timestamp_seconds.asc(), Comment.created_at.asc())
            .all()
        )
        emails = email_map(self.db, (c.user_id for c in comments))
        serialized = [serialize_comment(c, emails) for c in comments]
        return build_comment_tree(serialized) if threaded else serialized

    def create_comment(self, auth: AuthContext, payload: CommentCreate) -> dict:
        submission = self._submission_for(auth, payload.submission_id)

        if payload.parent_comment_id:
            parent = self.db.query(Comment).filter(Comment.id == payload.parent_comment_id).first()
            if not parent or parent.submission_id != submission.id:
                raise ValidationFailed("Parent comment not found on this submission")

        attachment_url = payload.attachment_url
        if attachment_url and not attachment_url.startswith(("http://", "https://")):
            attachment_url = None

        comment = Comment(
            submission_id=submission.id,
            user_id=auth.user_id,
            timestamp_seconds=payload.timestamp_seconds,
            content=payload.content or "",
            parent_comment_id=payload.parent_comment_id or None,
            attachment_url=attachment_url,
            revision_round=submission.revision_round or 1,
        )
        if attachment_url and payload.attachment_pin_x is not None and payload.attachment_pin_y is not None:
            comment.attachment_pin_x = payload.attachment_pin_x
            comment.attachment_pin_y = payload.attachment_pin_y
            comment.attachment_pin_comment = payload.attachment_pin_comment

        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        return serialize_comment(comment, {auth.user_id: auth.email})

    def delete_comment(self, auth: AuthContext, comment_id: str) -> int:
        """Delete a comment and all of its replies. Returns rows deleted."""
        comment = self.db.query(Comment).filter(Comment.id == comment_id).first()
        if not comment:
            raise NotFoundError("Comment not found")
        if not auth.is_admin and comment.user_id != auth.user_id:
            raise PermissionDenied("You can only delete your own comments")

        children: Dict[str, List[str]] = {}
        for row in self.db.query(Comment.id, Comment.parent_comment_id).filter(
            Comment.submission_id == comment.submission_id,
            Comment.parent_comment_id.isnot(None),
        ).all():
            children.setdefault(row.parent_comment_id, []).append(row.id)

        descendants = collect_descendants(comment_id, children)
        # Deepest first keeps the parent FK valid at every step
        for child_id in reversed(descendants):
            self.db.query(Comment).filter(Comment.id == child_id).delete(synchronize_session=False)
        self.db.delete(comment)
        self.db.commit()

        logger.info(f"Comment {comment_id} deleted by {auth.user_id} with {len(descendants)} replies")
        return len(descendants) + 1
