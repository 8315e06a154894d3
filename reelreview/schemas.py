"""
Pydantic Schemas for ReelReview
===============================

Request and response models for the /api/v1 routers.
"""

from typing import List, Optional, Any
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from .db.models import UserRole, SubmissionStatus, VideoSource


# =============================================================================
# COMMON
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Service version")
    database: str = Field(..., description="Database connectivity")
    timestamp: datetime = Field(..., description="Current timestamp")


class ErrorDetail(BaseModel):
    """Structured error detail"""
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(None, description="Optional error details")


class ErrorResponse(BaseModel):
    """Error envelope returned by /api/v1 endpoints"""
    error: ErrorDetail


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# AUTH & USERS
# =============================================================================

class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


class DevLoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    """User record as exposed by the API"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    external_identity_id: Optional[str] = None
    email: str
    role: UserRole
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class UserCreate(BaseModel):
    """Admin: create user"""
    email: EmailStr
    role: UserRole = UserRole.SUBMITTER
    external_identity_id: Optional[str] = Field(None, min_length=1, max_length=255)
    password: Optional[str] = Field(None, min_length=8, max_length=128)


class UserRoleUpdate(BaseModel):
    """Admin: change role"""
    role: UserRole


# =============================================================================
# SUBMISSIONS
# =============================================================================

class SubmissionCreate(BaseModel):
    """
    Create submission request.

    `video_source` selects the backend. Payloads without it are the legacy
    Google Drive form and only need `google_drive_url`.
    """
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    video_source: Optional[VideoSource] = None
    google_drive_url: Optional[str] = None
    firebase_video_url: Optional[str] = None
    firebase_video_path: Optional[str] = None
    firebase_video_size: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def _check_source_fields(self):
        if self.video_source == VideoSource.FIREBASE:
            if not (self.firebase_video_url and self.firebase_video_path and self.firebase_video_size):
                raise ValueError(
                    "firebase_video_url, firebase_video_path and firebase_video_size are required"
                )
        elif not self.google_drive_url:
            raise ValueError("google_drive_url is required")
        return self


class SubmissionUpdate(BaseModel):
    """
    PATCH body. Reviewers change `status`; owners and admins edit the
    title and description.
    """
    status: Optional[SubmissionStatus] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)


class ResubmitRequest(BaseModel):
    firebase_video_url: str = Field(..., min_length=1)
    firebase_video_path: str = Field(..., min_length=1)
    firebase_video_size: int = Field(..., gt=0)


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = ""
    video_source: VideoSource
    google_drive_url: Optional[str] = None
    embed_url: str
    firebase_video_url: Optional[str] = None
    firebase_video_path: Optional[str] = None
    firebase_video_size: Optional[int] = None
    submitter_id: str
    submitter_email: Optional[str] = None
    status: SubmissionStatus
    revision_round: int = 1
    revision_requested_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    submission_id: str
    version_number: int
    video_source: VideoSource
    embed_url: str
    google_drive_url: Optional[str] = None
    firebase_video_url: Optional[str] = None
    firebase_video_path: Optional[str] = None
    firebase_video_size: Optional[int] = None
    created_at: Optional[datetime] = None


class ArchiveResponse(BaseModel):
    success: bool
    drive_file_id: Optional[str] = None
    drive_url: Optional[str] = None
    embed_url: Optional[str] = None
    firebase_deleted: bool = False
    firebase_files_deleted: int = 0
    message: Optional[str] = None


class FrameRequest(BaseModel):
    timestamp_seconds: Optional[float] = None


class FrameResponse(BaseModel):
    imageDataUrl: str = Field(..., description="data:image/jpeg;base64 URL")
    timestamp_seconds: float


# =============================================================================
# COMMENTS & ANNOTATIONS
# =============================================================================

class CommentCreate(BaseModel):
    submission_id: str = Field(..., min_length=1)
    timestamp_seconds: float = Field(..., ge=0)
    content: str = Field("", max_length=2000)
    parent_comment_id: Optional[str] = None
    attachment_url: Optional[str] = None
    attachment_pin_x: Optional[float] = Field(None, ge=0, le=1)
    attachment_pin_y: Optional[float] = Field(None, ge=0, le=1)
    attachment_pin_comment: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _require_body(self):
        if not self.content.strip() and not self.attachment_url:
            raise ValueError("Comment content or an attachment is required")
        return self


class CommentResponse(BaseModel):
    id: str
    submission_id: str
    user_id: str
    user_email: str
    timestamp_seconds: float
    content: str
    parent_comment_id: Optional[str] = None
    attachment_url: Optional[str] = None
    attachment_pin_x: Optional[float] = None
    attachment_pin_y: Optional[float] = None
    attachment_pin_comment: Optional[str] = None
    revision_round: int = 1
    created_at: Optional[datetime] = None
    replies: List["CommentResponse"] = []


CommentResponse.model_rebuild()


class AnnotationCreate(BaseModel):
    submission_id: str = Field(..., min_length=1)
    timestamp_seconds: float = Field(..., ge=0)
    note: str = Field(..., min_length=1, max_length=2000)


class AnnotationResponse(BaseModel):
    id: str
    submission_id: str
    reviewer_id: str
    reviewer_email: str
    timestamp_seconds: float
    note: str
    created_at: Optional[datetime] = None


# =============================================================================
# MEDIA
# =============================================================================

class StorageUsageResponse(BaseModel):
    used: int
    limit: int
    usedFormatted: str
    limitFormatted: str
    percentUsed: int


class UploadRequest(BaseModel):
    dataUrl: str = Field(..., min_length=1, description="base64 data URL")
    filename: Optional[str] = Field(None, max_length=255)


class UploadResponse(BaseModel):
    url: str
    path: str
