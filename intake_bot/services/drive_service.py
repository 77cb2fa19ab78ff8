"""Google Drive folders and files for submitted projects."""

from __future__ import annotations

import asyncio
import io
import socket
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence, TypeVar

import google_auth_httplib2
import httplib2
import structlog
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiClientError
from googleapiclient.http import MediaIoBaseUpload

from intake_bot.exceptions import SinkFatalError, SinkSoftError

logger = structlog.get_logger(__name__)

DRIVE_SCOPES = ("https://www.googleapis.com/auth/drive",)
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
PROJECT_SUBFOLDERS = ("Before", "After", "3D", "Drawings")

# Transport and API failures raised from the client library.
DRIVE_ERRORS = (
    GoogleApiClientError,
    httplib2.HttpLib2Error,
    GoogleAuthError,
    OSError,
    KeyError,
    ValueError,
)
DRIVE_TIMEOUTS = (socket.timeout, TimeoutError)
T = TypeVar("T")


@dataclass(frozen=True)
class ProjectFolder:
    """Drive folder created for one submission."""

    folder_id: str
    folder_url: str


def project_folder_name(client_name: str, room_type: str, location: Optional[str] = None) -> str:
    parts = [client_name, room_type]
    if location:
        parts.append(location)
    name = " - ".join(part.strip() for part in parts if part and part.strip())
    # Drive accepts most characters, but slashes read as paths in the UI.
    return name.replace("/", "-") or "Untitled project"


class DriveService:
    """Creates the project folder tree and uploads the summary file."""

    def __init__(
        self,
        parent_folder_id: str,
        *,
        service_account_info: Optional[Mapping[str, Any]] = None,
        link_role: str = "writer",
        subfolders: Sequence[str] = PROJECT_SUBFOLDERS,
        timeout: float = 15.0,
        service_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.parent_folder_id = parent_folder_id
        self.link_role = link_role
        self.subfolders = tuple(subfolders)
        self.timeout = timeout
        self._service_account_info = dict(service_account_info or {})
        self._service_factory = service_factory or self._build_service

    def _build_service(self) -> Any:
        credentials = Credentials.from_service_account_info(
            self._service_account_info,
            scopes=list(DRIVE_SCOPES),
        )
        http = google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http(timeout=self.timeout))
        return build("drive", "v3", http=http, cache_discovery=False)

    async def _run(self, func: Callable[[], T]) -> T:
        # Threads cannot be cancelled; the result reflects what the requests did.
        worker = asyncio.ensure_future(asyncio.to_thread(func))
        try:
            return await asyncio.wait_for(asyncio.shield(worker), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Google Drive call is slow, waiting for it to finish", timeout=self.timeout)
            return await worker

    def _create_folder(self, service: Any, name: str, parent_id: str) -> Mapping[str, Any]:
        return (
            service.files()
            .create(
                body={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
                fields="id, webViewLink",
                supportsAllDrives=True,
            )
            .execute()
        )

    def _create_project_folder_sync(self, name: str) -> ProjectFolder:
        service = self._service_factory()
        folder = self._create_folder(service, name, self.parent_folder_id)
        folder_id = folder["id"]

        for subfolder in self.subfolders:
            self._create_folder(service, subfolder, folder_id)

        service.permissions().create(
            fileId=folder_id,
            body={"type": "anyone", "role": self.link_role},
            supportsAllDrives=True,
        ).execute()

        folder_url = folder.get("webViewLink") or f"https://drive.google.com/drive/folders/{folder_id}"
        return ProjectFolder(folder_id=folder_id, folder_url=folder_url)

    async def create_project_folder(
        self,
        client_name: str,
        room_type: str,
        location: Optional[str] = None,
    ) -> ProjectFolder:
        """Create ``<client> - <room> - <location>`` with its subfolders.

        Raises:
            SinkFatalError: when the folder tree or its link permission fails.
        """
        name = project_folder_name(client_name, room_type, location)
        try:
            folder = await self._run(lambda: self._create_project_folder_sync(name))
        except DRIVE_TIMEOUTS as exc:
            logger.error("Drive folder creation timed out", timeout=self.timeout, name=name)
            raise SinkFatalError(f"Google Drive did not respond within {self.timeout:g}s") from exc
        except DRIVE_ERRORS as exc:
            logger.error("Drive folder creation failed", name=name, error=str(exc), exc_info=True)
            raise SinkFatalError(f"Google Drive error: {exc}") from exc

        logger.info("Drive project folder created", folder_id=folder.folder_id, name=name)
        return folder

    def _upload_text_sync(self, folder_id: str, filename: str, content: str) -> str:
        service = self._service_factory()
        media = MediaIoBaseUpload(io.BytesIO(content.encode("utf-8")), mimetype="text/plain", resumable=False)
        created = (
            service.files()
            .create(
                body={"name": filename, "parents": [folder_id], "mimeType": "text/plain"},
                media_body=media,
                fields="id",
                supportsAllDrives=True,
            )
            .execute()
        )
        return created["id"]

    async def create_supplementary_file(self, folder_id: str, filename: str, content: str) -> str:
        """Upload a plain-text file into ``folder_id``.

        Raises:
            SinkSoftError: on any failure; callers log and continue.
        """
        try:
            file_id = await self._run(lambda: self._upload_text_sync(folder_id, filename, content))
        except DRIVE_TIMEOUTS as exc:
            raise SinkSoftError(f"Drive upload of {filename} timed out") from exc
        except DRIVE_ERRORS as exc:
            raise SinkSoftError(f"Drive upload of {filename} failed: {exc}") from exc

        logger.info("Supplementary file uploaded", folder_id=folder_id, file_id=file_id, filename=filename)
        return file_id
