"""
Google Drive link helpers and timestamp formatting.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .errors import DriveLinkError

_FILE_PATH_RE = re.compile(r"/file/d/([a-zA-Z0-9_-]+)")
_ID_PARAM_RE = re.compile(r"[?&]id=([a-zA-Z0-9_-]+)")
_FILE_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


@dataclass
class DriveLink:
    file_id: str
    embed_url: str


def embed_url_for(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/preview"


def download_url_for(file_id: str) -> str:
    return f"https://drive.google.com/uc?export=download&id={file_id}"


def is_valid_file_id(file_id: Optional[str]) -> bool:
    return bool(file_id) and bool(_FILE_ID_RE.match(file_id))


def extract_file_id(url: str) -> Optional[str]:
    """Return the Drive file id in `url`, or None."""
    if not url:
        return None
    match = _FILE_PATH_RE.search(url) or _ID_PARAM_RE.search(url)
    return match.group(1) if match else None


def parse_google_drive_url(url: str) -> DriveLink:
    """
    Turn a shared Google Drive file URL into an embeddable link.

    Accepted forms:
        https://drive.google.com/file/d/<id>/view?usp=sharing
        https://drive.google.com/open?id=<id>
        https://drive.google.com/uc?export=download&id=<id>

    Raises:
        DriveLinkError: not a Drive URL, a folder link, or no file id found
    """
    url = (url or "").strip()
    if "drive.google.com" not in url:
        raise DriveLinkError("Invalid Google Drive URL. Please provide a valid Google Drive link.")

    if "/folders/" in url:
        raise DriveLinkError(
            "Folder links are not supported. Please share a link to the video file itself."
        )

    file_id = extract_file_id(url)
    if not file_id:
        raise DriveLinkError("Could not extract a file ID from the Google Drive URL.")

    return DriveLink(file_id=file_id, embed_url=embed_url_for(file_id))


def direct_download_url(embed_url: str) -> str:
    """Direct download URL for a Drive embed/preview URL; other URLs pass through."""
    if embed_url and "drive.google.com" in embed_url:
        file_id = extract_file_id(embed_url)
        if file_id:
            return download_url_for(file_id)
    return embed_url


def format_timestamp(seconds: float) -> str:
    """Format seconds as M:SS, or H:MM:SS from one hour up."""
    total = int(max(seconds or 0, 0))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def parse_timestamp(text: str) -> Optional[float]:
    """Parse MM:SS or HH:MM:SS into seconds. Returns None when malformed."""
    parts = (text or "").strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        return None
    if any(n < 0 for n in numbers):
        return None

    if len(numbers) == 2:
        minutes, secs = numbers
        if secs >= 60:
            return None
        return float(minutes * 60 + secs)

    hours, minutes, secs = numbers
    if minutes >= 60 or secs >= 60:
        return None
    return float(hours * 3600 + minutes * 60 + secs)
