"""
SQLAlchemy Models for Database
==============================

Schema for the video review workflow:
- Users with a single application role
- Submissions with their live video reference and review status
- Append-only version history written on resubmission
- Threaded comments (flat parent references) and reviewer annotations

Supports both PostgreSQL and SQLite via SQLAlchemy.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Text, Integer, Float, Boolean, DateTime, Enum, ForeignKey,
    BigInteger, Index, CheckConstraint
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, enum.Enum):
    """Application roles"""
    SUBMITTER = "submitter"
    REVIEWER = "reviewer"
    ADMIN = "admin"


class SubmissionStatus(str, enum.Enum):
    """Submission review lifecycle"""
    PENDING = "pending"
    REVIEWING = "reviewing"
    APPROVED = "approved"
    REVISION_REQUESTED = "revision_requested"


class VideoSource(str, enum.Enum):
    """Where the video bytes live"""
    FIREBASE = "firebase"  # temporary storage, counts toward quota
    GOOGLE_DRIVE = "google_drive"  # permanent storage


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """Application user"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    # Subject of the external identity provider; null for credential-only users
    external_identity_id = Column(String(255), nullable=True, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(Enum(UserRole), default=UserRole.SUBMITTER, nullable=False)
    password_hash = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    submissions = relationship("Submission", back_populates="submitter")


# =============================================================================
# SUBMISSIONS
# =============================================================================

class Submission(Base):
    """A video submitted for review"""
    __tablename__ = "submissions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True, default="")
    video_source = Column(Enum(VideoSource), default=VideoSource.GOOGLE_DRIVE, nullable=False)
    google_drive_url = Column(Text, nullable=True)
    embed_url = Column(Text, nullable=False)
    firebase_video_url = Column(Text, nullable=True)
    firebase_video_path = Column(String(1024), nullable=True)
    firebase_video_size = Column(BigInteger, nullable=True)
    submitter_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(Enum(SubmissionStatus), default=SubmissionStatus.PENDING, nullable=False)
    revision_round = Column(Integer, default=1, nullable=False)
    revision_requested_at = Column(DateTime, nullable=True)
    archived_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_submissions_submitter", "submitter_id"),
        Index("ix_submissions_status", "status"),
        Index("ix_submissions_video_source", "video_source"),
    )

    submitter = relationship("User", back_populates="submissions")
    versions = relationship("Version", back_populates="submission", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="submission", cascade="all, delete-orphan")
    annotations = relationship("Annotation", back_populates="submission", cascade="all, delete-orphan")

    @property
    def on_temporary_storage(self) -> bool:
        return self.video_source == VideoSource.FIREBASE and bool(self.firebase_video_path)


class Version(Base):
    """Snapshot of a submission's previous video, written on resubmission"""
    __tablename__ = "versions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    submission_id = Column(String(36), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False)
    # Owner used when deleting temporary files; null on legacy rows
    root_submission_id = Column(String(36), nullable=True)
    version_number = Column(Integer, nullable=False)
    video_source = Column(Enum(VideoSource), nullable=False)
    embed_url = Column(Text, nullable=False)
    google_drive_url = Column(Text, nullable=True)
    firebase_video_url = Column(Text, nullable=True)
    firebase_video_path = Column(String(1024), nullable=True)
    firebase_video_size = Column(BigInteger, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_versions_submission", "submission_id", "version_number"),
    )

    submission = relationship("Submission", back_populates="versions")

    def belongs_to(self, submission_id: str) -> bool:
        if self.root_submission_id:
            return self.root_submission_id == submission_id
        return self.submission_id == submission_id

    @property
    def on_temporary_storage(self) -> bool:
        return self.video_source == VideoSource.FIREBASE and bool(self.firebase_video_path)


# =============================================================================
# FEEDBACK
# =============================================================================

class Comment(Base):
    """Timestamped comment; replies reference their parent"""
    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    submission_id = Column(String(36), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    timestamp_seconds = Column(Float, nullable=False, default=0)
    content = Column(Text, nullable=False, default="")
    parent_comment_id = Column(String(36), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)
    attachment_url = Column(Text, nullable=True)
    attachment_pin_x = Column(Float, nullable=True)
    attachment_pin_y = Column(Float, nullable=True)
    attachment_pin_comment = Column(Text, nullable=True)
    revision_round = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_comments_submission", "submission_id", "timestamp_seconds"),
        CheckConstraint("timestamp_seconds >= 0", name="ck_comment_timestamp"),
    )

    submission = relationship("Submission", back_populates="comments")
    author = relationship("User")


class Annotation(Base):
    """Reviewer-only timestamped note"""
    __tablename__ = "annotations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    submission_id = Column(String(36), ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False)
    reviewer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    timestamp_seconds = Column(Float, nullable=False, default=0)
    note = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_annotations_submission", "submission_id", "timestamp_seconds"),
    )

    submission = relationship("Submission", back_populates="annotations")
    reviewer = relationship("User")
