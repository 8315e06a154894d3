"""
Google Drive archive storage.

Authenticates as a service account (google-auth) and talks to the Drive v3
REST API with httpx. Files land in a year/month folder under the configured
root folder or shared drive and are made readable by anyone with the link.
Service accounts have no storage quota of their own, so a shared drive or a
folder inside one is required.
"""

import json
import logging
from datetime import datetime
from typing import Optional

import httpx
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from ..drive_links import embed_url_for
from ..errors import StorageError
from .base import ArchiveStorage, ArchivedFile
from .firebase import parse_private_key

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]
FILES_URL = "https://www.googleapis.com/drive/v3/files"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
FOLDER_MIME = "application/vnd.google-apps.folder"


class GoogleDriveStorage(ArchiveStorage):
    def __init__(self, settings, client: Optional[httpx.Client] = None, timeout: float = 300.0):
        self.email = settings.google_service_account_email
        self.private_key = settings.google_private_key
        self.root_folder_id = settings.google_drive_folder_id
        self.shared_drive_id = settings.google_shared_drive_id
        self._client = client
        self._timeout = timeout
        self._credentials = None

    @property
    def configured(self) -> bool:
        return bool(self.email and self.private_key)

    # ------------------------------------------------------------------
    # auth
    # ------------------------------------------------------------------

    def _access_token(self) -> str:
        if self._credentials is None:
            self._credentials = service_account.Credentials.from_service_account_info(
                {
                    "type": "service_account",
                    "client_email": self.email,
                    "private_key": parse_private_key(self.private_key),
                    "token_uri": "https://oauth2.googleapis.com/token",
                },
                scopes=SCOPES,
            )
        if not self._credentials.valid:
            self._credentials.refresh(GoogleAuthRequest())
        return self._credentials.token

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self._access_token()}"}

    @staticmethod
    def _check(response: httpx.Response, action: str) -> httpx.Response:
        if response.status_code >= 400:
            raise StorageError(f"Google Drive {action} failed ({response.status_code}): {response.text[:200]}")
        return response

    # ------------------------------------------------------------------
    # folders
    # ------------------------------------------------------------------

    def _get_or_create_folder(self, name: str, parent_id: Optional[str]) -> str:
        query = f"name='{name}' and mimeType='{FOLDER_MIME}' and trashed=false"
        if parent_id:
            query += f" and '{parent_id}' in parents"
        params = {
            "q": query,
            "fields": "files(id, name)",
            "spaces": "drive",
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        if self.shared_drive_id:
            params.update({"driveId": self.shared_drive_id, "corpora": "drive"})

        found = self._check(self._http().get(FILES_URL, params=params, headers=self._headers()), "folder lookup")
        files = found.json().get("files") or []
        if files:
            return files[0]["id"]

        body = {"name": name, "mimeType": FOLDER_MIME}
        if parent_id:
            body["parents"] = [parent_id]
        created = self._check(
            self._http().post(
                FILES_URL,
                params={"fields": "id", "supportsAllDrives": "true"},
                json=body,
                headers=self._headers(),
            ),
            "folder create",
        )
        return created.json()["id"]

    def _date_folder(self) -> str:
        now = datetime.utcnow()
        year_id = self._get_or_create_folder(str(now.year), self.root_folder_id or self.shared_drive_id)
        return self._get_or_create_folder(f"{now.month:02d}", year_id)

    # ------------------------------------------------------------------
    # upload
    # ------------------------------------------------------------------

    def upload(self, filename, data, content_type="video/mp4"):
        if not self.configured:
            raise StorageError("Google Drive credentials not configured")
        if not (self.shared_drive_id or self.root_folder_id):
            raise StorageError(
                "Google Drive shared drive ID or folder ID not configured. "
                "Service accounts require a shared drive."
            )

        folder_id = self._date_folder()

        # Resumable session: metadata first, then the bytes in one PUT.
        session = self._check(
            self._http().post(
                UPLOAD_URL,
                params={"uploadType": "resumable", "supportsAllDrives": "true", "fields": "id,webViewLink"},
                content=json.dumps({"name": filename, "parents": [folder_id]}),
                headers={
                    **self._headers(),
                    "Content-Type": "application/json; charset=UTF-8",
                    "X-Upload-Content-Type": content_type,
                    "X-Upload-Content-Length": str(len(data)),
                },
            ),
            "upload session",
        )
        location = session.headers.get("location")
        if not location:
            raise StorageError("Google Drive did not return an upload location")

        uploaded = self._check(
            self._http().put(location, content=data, headers={"Content-Type": content_type}),
            "upload",
        ).json()
        file_id = uploaded.get("id")
        if not file_id:
            raise StorageError("Failed to get file ID after upload")

        self._check(
            self._http().post(
                f"{FILES_URL}/{file_id}/permissions",
                params={"supportsAllDrives": "true"},
                json={"role": "reader", "type": "anyone"},
                headers=self._headers(),
            ),
            "share",
        )

        logger.info(f"Uploaded {filename} to Google Drive as {file_id}")
        return ArchivedFile(
            file_id=file_id,
            web_view_link=uploaded.get("webViewLink") or f"https://drive.google.com/file/d/{file_id}/view",
            embed_url=embed_url_for(file_id),
        )
