"""
Database Package - SQLAlchemy
=============================

System of record for users, submissions, versions and feedback.
"""

from .models import (
    Base,
    User, Submission, Version, Comment, Annotation,
    UserRole, SubmissionStatus, VideoSource,
)
from .session import get_db, get_db_session, init_db, get_engine, reset_engine

__all__ = [
    # Base
    "Base",
    # Records
    "User", "Submission", "Version", "Comment", "Annotation",
    # Enums
    "UserRole", "SubmissionStatus", "VideoSource",
    # Session
    "get_db", "get_db_session", "init_db", "get_engine", "reset_engine",
]
