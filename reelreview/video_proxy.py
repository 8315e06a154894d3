"""
Google Drive video proxy.

Public Drive files can often be fetched from one of several URL forms.
Large files answer with an HTML "can't scan for viruses" page carrying a
confirm token; the download is retried with it.
"""

import logging
import re
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
_CONFIRM_RE = re.compile(r'confirm=([^&"]+)')


def candidate_urls(file_id: str) -> List[str]:
    return [
        f"https://lh3.googleusercontent.com/d/{file_id}",
        f"https://drive.google.com/uc?export=download&id={file_id}",
        f"https://drive.google.com/uc?id={file_id}&export=view",
    ]


def confirm_url(file_id: str, token: str) -> str:
    return f"https://drive.google.com/uc?export=download&confirm={token}&id={file_id}"


@dataclass
class ProxiedVideo:
    """An open upstream response whose body is streamed to the client"""
    response: httpx.Response
    client: httpx.AsyncClient

    @property
    def headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": self.response.headers.get("content-type", "video/mp4"),
            "Accept-Ranges": "bytes",
            "Cache-Control": "public, max-age=3600",
        }
        length = self.response.headers.get("content-length")
        if length:
            headers["Content-Length"] = length
        return headers

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self.response.aiter_bytes():
                yield chunk
        finally:
            await self.close()

    async def close(self):
        await self.response.aclose()
        await self.client.aclose()


def _is_video(response: httpx.Response) -> bool:
    return response.status_code == 200 and response.headers.get("content-type", "").startswith("video/")


def _is_html(response: httpx.Response) -> bool:
    return response.status_code == 200 and "text/html" in response.headers.get("content-type", "")


async def open_drive_video(
    file_id: str,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[ProxiedVideo]:
    """
    Try each URL form and return the first response that is a video.

    Returns None when no form yields video content. The caller must consume
    or close the returned ProxiedVideo.
    """
    client = httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    )

    for url in candidate_urls(file_id):
        try:
            request = client.build_request("GET", url, headers={"Accept": "video/*,*/*"})
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.info(f"Proxy attempt failed for {url}: {e.__class__.__name__}")
            continue

        if _is_video(response):
            return ProxiedVideo(response=response, client=client)

        if _is_html(response):
            html = (await response.aread()).decode("utf-8", errors="ignore")
            await response.aclose()
            match = _CONFIRM_RE.search(html)
            if not match:
                continue
            try:
                confirmed = await client.send(
                    client.build_request("GET", confirm_url(file_id, match.group(1))), stream=True
                )
            except httpx.HTTPError as e:
                logger.info(f"Proxy confirm attempt failed for {file_id}: {e.__class__.__name__}")
                continue
            if _is_video(confirmed):
                return ProxiedVideo(response=confirmed, client=client)
            await confirmed.aclose()
            continue

        await response.aclose()

    await client.aclose()
    return None
