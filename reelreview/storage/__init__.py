"""
Storage Package
===============

Backends selected by STORAGE_BACKEND:
- local: files under LOCAL_STORAGE_PATH (development, tests)
- firebase: Firebase Storage bucket via firebase-admin

Archive storage is always Google Drive.
"""

from typing import Optional

from ..config import get_settings
from .base import TemporaryStorage, ArchiveStorage, StoredObject, ArchivedFile
from .local import LocalStorage

_temporary_storage: Optional[TemporaryStorage] = None
_archive_storage: Optional[ArchiveStorage] = None


def get_temporary_storage() -> TemporaryStorage:
    """Storage holding uploaded videos and attachments until archived"""
    global _temporary_storage
    if _temporary_storage is None:
        settings = get_settings()
        if settings.storage_backend.strip().lower() == "firebase":
            from .firebase import FirebaseStorage
            _temporary_storage = FirebaseStorage(settings)
        else:
            _temporary_storage = LocalStorage(settings.local_storage_path, settings.local_storage_base_url)
    return _temporary_storage


def get_archive_storage() -> ArchiveStorage:
    global _archive_storage
    if _archive_storage is None:
        from .google_drive import GoogleDriveStorage
        _archive_storage = GoogleDriveStorage(get_settings())
    return _archive_storage


def set_storage(temporary: Optional[TemporaryStorage] = None, archive: Optional[ArchiveStorage] = None):
    """Override backends (tests, scripts)."""
    global _temporary_storage, _archive_storage
    _temporary_storage = temporary
    _archive_storage = archive


def reset_storage():
    set_storage(None, None)


__all__ = [
    "TemporaryStorage", "ArchiveStorage", "StoredObject", "ArchivedFile", "LocalStorage",
    "get_temporary_storage", "get_archive_storage", "set_storage", "reset_storage",
]
