"""
Frame capture with the ffmpeg binary.

ffmpeg reads the video straight from its URL, seeks to the timestamp and
writes one JPEG to stdout.
"""

import asyncio
import base64
import logging
import shutil
from typing import Optional

from .drive_links import direct_download_url
from .errors import ReviewError

logger = logging.getLogger(__name__)


class FrameCaptureUnavailable(ReviewError):
    status_code = 503


class FrameCaptureError(ReviewError):
    status_code = 500


UNAVAILABLE_MESSAGE = (
    "Frame capture requires ffmpeg on the server. Install ffmpeg and ensure it is "
    "in PATH, or enter the timestamp and attach a screenshot."
)


def ffmpeg_available(binary: str = "ffmpeg") -> bool:
    return shutil.which(binary) is not None


def video_url_for_capture(embed_url: str) -> Optional[str]:
    """Drive preview URLs are not media; use the direct download form."""
    if not embed_url:
        return None
    return direct_download_url(embed_url)


def build_ffmpeg_command(binary: str, video_url: str, timestamp_seconds: float) -> list:
    return [
        binary,
        "-hide_banner",
        "-loglevel", "error",
        "-ss", f"{timestamp_seconds:.3f}",
        "-i", video_url,
        "-vframes", "1",
        "-f", "image2pipe",
        "-c:v", "mjpeg",
        "pipe:1",
    ]


async def extract_frame(
    video_url: str,
    timestamp_seconds: float,
    binary: str = "ffmpeg",
    timeout: float = 30.0,
) -> str:
    """
    Capture the frame at `timestamp_seconds` as a `data:image/jpeg;base64,` URL.

    Raises:
        FrameCaptureUnavailable: ffmpeg is not installed
        FrameCaptureError: ffmpeg failed, timed out, or produced no image
    """
    if not ffmpeg_available(binary):
        raise FrameCaptureUnavailable(UNAVAILABLE_MESSAGE)

    cmd = build_ffmpeg_command(binary, video_url, timestamp_seconds)
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
    except FileNotFoundError as e:
        raise FrameCaptureUnavailable(UNAVAILABLE_MESSAGE) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise FrameCaptureError("Frame extraction timed out")

    if process.returncode != 0 or not stdout:
        error_msg = stderr.decode("utf-8", errors="ignore")[:200]
        logger.warning(f"ffmpeg failed at {timestamp_seconds}s: {error_msg}")
        raise FrameCaptureError(f"Frame extraction failed: {error_msg or 'no image produced'}")

    return "data:image/jpeg;base64," + base64.b64encode(stdout).decode("ascii")
