"""
Media API Endpoints
===================

- GET  /storage/usage          - Temporary storage quota usage
- GET  /proxy-video?fileId=    - Stream a public Google Drive video
- POST /upload                 - Upload a comment attachment (base64 data URL)
"""

import base64
import binascii
import logging
import re
import secrets
import string
import time

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from .auth import AuthContext
from .config import get_settings
from .dependencies import get_auth_context, get_db_dependency
from .drive_links import is_valid_file_id
from .errors import StorageError
from .quota import storage_usage
from .schemas import StorageUsageResponse, UploadRequest, UploadResponse
from .storage import get_temporary_storage
from .video_proxy import open_drive_video

logger = logging.getLogger(__name__)

router = APIRouter(tags=["media"])

_DATA_URL_RE = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.\-]")
_RANDOM_ALPHABET = string.ascii_lowercase + string.digits

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
    "application/pdf": "pdf",
}


@router.get("/storage/usage", response_model=StorageUsageResponse)
async def get_storage_usage(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db_dependency),
):
    return storage_usage(db)


@router.get("/proxy-video")
async def proxy_video(fileId: str = Query(None)):
    """Stream a publicly shared Drive video through the API."""
    if not fileId:
        raise HTTPException(status_code=400, detail="Missing fileId parameter")
    if not is_valid_file_id(fileId):
        raise HTTPException(status_code=400, detail="Invalid fileId format")

    video = await open_drive_video(fileId, timeout=get_settings().proxy_timeout)
    if video is None:
        raise HTTPException(
            status_code=403,
            detail={
                "message": "Video not accessible",
                "details": {"hint": (
                    "This video cannot be streamed directly. Please ensure the Google Drive file "
                    'sharing is set to "Anyone with the link" and downloads are enabled.'
                )},
            },
        )
    return StreamingResponse(video.iter_bytes(), status_code=200, headers=video.headers)


def attachment_key(prefix: str, user_id: str, filename: str, mime_type: str) -> str:
    timestamp = int(time.time() * 1000)
    random_id = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))
    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", filename)[:50] if filename else f"attachment_{timestamp}"
    ext = EXTENSIONS.get(mime_type, "bin")
    return f"{prefix}/{user_id}/{timestamp}_{random_id}_{safe_name}.{ext}"


@router.post("/upload", response_model=UploadResponse)
async def upload_attachment(payload: UploadRequest, auth: AuthContext = Depends(get_auth_context)):
    match = _DATA_URL_RE.match(payload.dataUrl.strip())
    if not match:
        raise HTTPException(status_code=400, detail="Invalid data URL format")

    mime_type = match.group(1)
    try:
        data = base64.b64decode(match.group(2), validate=False)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Invalid base64 data")

    key = attachment_key(get_settings().attachments_prefix, auth.user_id, payload.filename, mime_type)
    storage = get_temporary_storage()
    try:
        storage.put(key, data, mime_type)
    except StorageError as e:
        logger.error(f"Attachment upload failed: {e.message}")
        raise HTTPException(status_code=500, detail="Failed to upload file")

    return UploadResponse(url=storage.public_url(key), path=key)
