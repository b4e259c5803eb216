"""
Google Drive API client for backup operations.

Authenticates with a service account and exposes the small set of
folder and file operations the backup engine needs: find/create a
folder, list, upload, update, download and delete files.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import BinaryIO

from google.auth.exceptions import GoogleAuthError, RefreshError, TransportError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload, MediaIoBaseUpload

from vaultsync.exceptions import AuthError, LocalIOError, RemoteError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive"]

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

FILE_FIELDS = "id,name,mimeType,createdTime,size"

# Drive caps pageSize at 1000
MAX_PAGE_SIZE = 1000


def escape_query_value(value: str) -> str:
    """Escape a string for use inside a single-quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class _LocalWriter:
    """Stream wrapper that reports local write failures as LocalIOError."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream

    def write(self, data: bytes) -> int:
        try:
            return self._stream.write(data)
        except OSError as e:
            raise LocalIOError(f"Failed to write downloaded data: {e}") from e


@dataclass
class DriveFile:
    """Represents a file or folder in Google Drive."""

    id: str
    name: str
    mime_type: str
    created_time: datetime | None
    size: int | None = None

    @classmethod
    def from_api_response(cls, data: dict) -> "DriveFile":
        """Create DriveFile from Google API response."""
        created = data.get("createdTime")
        return cls(
            id=data["id"],
            name=data["name"],
            mime_type=data.get("mimeType", ""),
            created_time=datetime.fromisoformat(created.replace("Z", "+00:00"))
            if created
            else None,
            size=int(data["size"]) if "size" in data else None,
        )

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE


class GoogleDriveClient:
    """
    Client for Google Drive API operations.

    Credentials and the API service are created on first use, so
    constructing a client never touches the network.
    """

    def __init__(self, service_account_info: dict):
        """
        Initialize the client.

        Args:
            service_account_info: Parsed service account key JSON
        """
        self.service_account_info = service_account_info
        self._credentials: service_account.Credentials | None = None
        self._service = None

    def _get_credentials(self) -> service_account.Credentials:
        """Get or create service account credentials."""
        if self._credentials is None:
            try:
                self._credentials = service_account.Credentials.from_service_account_info(
                    self.service_account_info, scopes=SCOPES
                )
            except (ValueError, KeyError, GoogleAuthError) as e:
                raise AuthError(f"Invalid service account credentials: {e}") from e
        return self._credentials

    def _get_service(self):
        """Get or create the Drive API service."""
        if self._service is None:
            credentials = self._get_credentials()
            self._service = build(
                "drive", "v3", credentials=credentials, cache_discovery=False
            )
        return self._service

    def _call(self, func, action: str):
        """
        Call a Drive API function, mapping failures to VaultSync errors.

        Raises:
            AuthError: If the credentials are rejected
            RemoteError: For any other API or transport failure
        """
        try:
            return func()
        except RefreshError as e:
            raise AuthError(f"{action} failed: could not authenticate: {e}") from e
        except HttpError as e:
            if e.resp.status == 401:
                raise AuthError(f"{action} failed: unauthorized: {e}") from e
            raise RemoteError(f"{action} failed: {e}") from e
        except (TransportError, OSError) as e:
            raise RemoteError(f"{action} failed: {e}") from e

    def _execute(self, request, action: str):
        """Execute an API request; see _call for error mapping."""
        return self._call(request.execute, action)

    def _download(self, request, stream: BinaryIO, action: str) -> int:
        """
        Run a chunked media download into stream, returning bytes written.

        Raises:
            AuthError: If the credentials are rejected
            RemoteError: If the download fails
            LocalIOError: If writing to stream fails
        """
        downloader = MediaIoBaseDownload(_LocalWriter(stream), request)
        done = False
        bytes_downloaded = 0
        while not done:
            status, done = self._call(downloader.next_chunk, action)
            if status:
                bytes_downloaded = status.resumable_progress
                logger.debug(f"Download progress: {int(status.progress() * 100)}%")
        return bytes_downloaded

    def get_user_info(self) -> dict:
        """
        Get the identity Drive sees for these credentials.

        Returns:
            Dict with email and display_name
        """
        service = self._get_service()
        about = self._execute(service.about().get(fields="user"), "Fetch account info")
        return {
            "email": about["user"].get("emailAddress"),
            "display_name": about["user"].get("displayName"),
        }

    def find_folder(self, name: str) -> str | None:
        """
        Find a folder by name.

        Returns:
            The folder ID, or None if no such folder exists
        """
        service = self._get_service()
        query = (
            f"mimeType='{FOLDER_MIME_TYPE}' and name='{escape_query_value(name)}' "
            "and trashed=false"
        )
        response = self._execute(
            service.files().list(q=query, fields="files(id,name)", pageSize=1),
            f"Look up folder {name}",
        )
        files = response.get("files", [])
        return files[0]["id"] if files else None

    def create_folder(self, name: str) -> str:
        """Create a folder and return its ID."""
        service = self._get_service()
        folder = self._execute(
            service.files().create(
                body={"name": name, "mimeType": FOLDER_MIME_TYPE},
                fields="id",
            ),
            f"Create folder {name}",
        )
        return folder["id"]

    def get_or_create_folder(self, name: str) -> str:
        """Return the ID of the named folder, creating it if needed."""
        folder_id = self.find_folder(name)
        if folder_id:
            logger.info(f"Drive folder '{name}' found")
            return folder_id

        folder_id = self.create_folder(name)
        logger.info(f"Drive folder '{name}' created")
        return folder_id

    def list_files(
        self,
        parent_id: str,
        name: str | None = None,
        mime_type: str | None = None,
        exclude_name: str | None = None,
        exclude_folders: bool = False,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[DriveFile]:
        """
        List files in a folder (non-recursive). Trashed files are skipped.

        Args:
            parent_id: The folder ID
            name: Only files with this exact name
            mime_type: Only files of this MIME type
            exclude_name: Skip files with this exact name
            exclude_folders: Skip sub-folders
            order_by: Drive orderBy clause, e.g. "createdTime desc"
            limit: Stop after this many files

        Returns:
            List of DriveFile objects
        """
        service = self._get_service()

        clauses = [f"'{escape_query_value(parent_id)}' in parents", "trashed=false"]
        if name is not None:
            clauses.append(f"name='{escape_query_value(name)}'")
        if exclude_name is not None:
            clauses.append(f"name!='{escape_query_value(exclude_name)}'")
        if mime_type is not None:
            clauses.append(f"mimeType='{escape_query_value(mime_type)}'")
        if exclude_folders:
            clauses.append(f"mimeType!='{FOLDER_MIME_TYPE}'")

        files: list[DriveFile] = []
        page_token = None

        while True:
            params = {
                "q": " and ".join(clauses),
                "fields": f"nextPageToken,files({FILE_FIELDS})",
                "pageSize": min(limit, MAX_PAGE_SIZE) if limit else MAX_PAGE_SIZE,
            }
            if order_by:
                params["orderBy"] = order_by
            if page_token:
                params["pageToken"] = page_token

            response = self._execute(service.files().list(**params), "List files")

            for file_data in response.get("files", []):
                files.append(DriveFile.from_api_response(file_data))
                if limit and len(files) >= limit:
                    return files

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return files

    def _media(
        self, mime_type: str, path: str | Path | None, content: bytes | None
    ):
        if (path is None) == (content is None):
            raise ValueError("Exactly one of path or content is required")
        if path is not None:
            return MediaFileUpload(str(path), mimetype=mime_type, resumable=True)
        return MediaIoBaseUpload(BytesIO(content), mimetype=mime_type)

    def create_file(
        self,
        parent_id: str,
        name: str,
        mime_type: str,
        path: str | Path | None = None,
        content: bytes | None = None,
    ) -> str:
        """
        Upload a new file into a folder.

        Args:
            parent_id: Destination folder ID
            name: File name in Drive
            mime_type: Content type of the upload
            path: Local file to upload
            content: In-memory bytes to upload (instead of path)

        Returns:
            The new file ID
        """
        service = self._get_service()
        media = self._media(mime_type, path, content)
        created = self._execute(
            service.files().create(
                body={"name": name, "parents": [parent_id]},
                media_body=media,
                fields="id",
            ),
            f"Upload {name}",
        )
        return created["id"]

    def update_file(
        self,
        file_id: str,
        mime_type: str,
        path: str | Path | None = None,
        content: bytes | None = None,
    ) -> None:
        """Replace the content of an existing file."""
        service = self._get_service()
        media = self._media(mime_type, path, content)
        self._execute(
            service.files().update(fileId=file_id, media_body=media, fields="id"),
            f"Update file {file_id}",
        )

    def get_file_content(self, file_id: str) -> bytes:
        """Download a file's content into memory."""
        service = self._get_service()
        buffer = BytesIO()
        self._download(
            service.files().get_media(fileId=file_id), buffer, f"Download file {file_id}"
        )
        return buffer.getvalue()

    def download_file(self, file_id: str, destination: str | Path) -> int:
        """
        Download a file's content to a local path.

        Args:
            file_id: The Google Drive file ID
            destination: Local path to write

        Returns:
            Number of bytes written
        """
        service = self._get_service()
        with open(destination, "wb") as f:
            return self._download(
                service.files().get_media(fileId=file_id), f, f"Download file {file_id}"
            )

    def delete_file(self, file_id: str) -> None:
        """Permanently delete a file."""
        service = self._get_service()
        self._execute(service.files().delete(fileId=file_id), f"Delete file {file_id}")
