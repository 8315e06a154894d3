"""
Shared fixtures: temp SQLite database, local temporary storage and an
in-memory archive backend.
"""

from datetime import datetime, timedelta

import jwt
import pytest
from fastapi.testclient import TestClient

from reelreview.auth import create_access_token, hash_password
from reelreview.config import get_settings
from reelreview.db.models import User, UserRole, Submission, SubmissionStatus, VideoSource
from reelreview.db.session import SessionLocal, init_db, reset_engine
from reelreview.errors import StorageError
from reelreview.storage import LocalStorage, set_storage, reset_storage
from reelreview.storage.base import ArchiveStorage, ArchivedFile

JWT_SECRET = "test-jwt-secret-0123456789abcdef0123456789abcdef"
PROVIDER_SECRET = "test-provider-secret-0123456789abcdef0123456789"


class FakeArchiveStorage(ArchiveStorage):
    """Records uploads instead of calling Google Drive"""

    def __init__(self, configured: bool = True, fail: bool = False):
        self._configured = configured
        self.fail = fail
        self.uploads = []

    @property
    def configured(self) -> bool:
        return self._configured

    def upload(self, filename, data, content_type="video/mp4"):
        if self.fail:
            raise StorageError("Drive upload failed")
        file_id = f"drive{len(self.uploads) + 1}"
        self.uploads.append({"filename": filename, "data": data, "content_type": content_type})
        return ArchivedFile(
            file_id=file_id,
            web_view_link=f"https://drive.google.com/file/d/{file_id}/view",
            embed_url=f"https://drive.google.com/file/d/{file_id}/preview",
        )


@pytest.fixture
def app_env(tmp_path, monkeypatch):
    """Point settings, database and storage at temp locations."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path}/reelreview_test.db")
    monkeypatch.setenv("JWT_SECRET_KEY", JWT_SECRET)
    monkeypatch.setenv("PROVIDER_JWT_SECRET", PROVIDER_SECRET)
    monkeypatch.setenv("DEV_MODE", "false")
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("TEMPORARY_STORAGE_LIMIT_BYTES", raising=False)
    get_settings.cache_clear()
    reset_engine()
    init_db()

    temporary = LocalStorage(str(tmp_path / "storage"), "http://testserver/files")
    archive = FakeArchiveStorage()
    set_storage(temporary, archive)

    yield {"temporary": temporary, "archive": archive, "tmp_path": tmp_path}

    reset_storage()
    reset_engine()
    get_settings.cache_clear()


@pytest.fixture
def temporary_storage(app_env):
    return app_env["temporary"]


@pytest.fixture
def archive_storage(app_env):
    return app_env["archive"]


@pytest.fixture
def db(app_env):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(app_env):
    from reelreview.api import app
    with TestClient(app) as c:
        yield c


def make_user(db, email, role=UserRole.SUBMITTER, password=None, external_identity_id=None, is_active=True):
    user = User(
        email=email,
        role=role,
        external_identity_id=external_identity_id,
        password_hash=hash_password(password) if password else None,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_submission(db, submitter, status=SubmissionStatus.PENDING, firebase_path=None, size=0, title="Cut 1"):
    if firebase_path:
        submission = Submission(
            title=title,
            submitter_id=submitter.id,
            status=status,
            video_source=VideoSource.FIREBASE,
            firebase_video_url=f"http://testserver/files/{firebase_path}",
            firebase_video_path=firebase_path,
            firebase_video_size=size,
            embed_url=f"http://testserver/files/{firebase_path}",
        )
    else:
        submission = Submission(
            title=title,
            submitter_id=submitter.id,
            status=status,
            video_source=VideoSource.GOOGLE_DRIVE,
            google_drive_url="https://drive.google.com/file/d/abc123/view",
            embed_url="https://drive.google.com/file/d/abc123/preview",
        )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission


def auth_headers(user) -> dict:
    token = create_access_token({"sub": user.id, "email": user.email, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


def provider_token(subject, email=None, audience="authenticated", secret=PROVIDER_SECRET) -> str:
    claims = {
        "sub": subject,
        "aud": audience,
        "exp": datetime.utcnow() + timedelta(hours=1),
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def users(db):
    return {
        "admin": make_user(db, "admin@test.com", UserRole.ADMIN),
        "reviewer": make_user(db, "reviewer@test.com", UserRole.REVIEWER),
        "submitter": make_user(db, "submitter@test.com", UserRole.SUBMITTER),
        "other": make_user(db, "other@test.com", UserRole.SUBMITTER),
    }
