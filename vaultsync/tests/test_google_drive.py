"""Tests for Google Drive provider."""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, Mock, mock_open, patch

from django.test import TestCase
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from vaultsync.exceptions import AuthError, LocalIOError, RemoteError
from vaultsync.providers.google_drive import (
    FOLDER_MIME_TYPE,
    DriveFile,
    GoogleDriveClient,
    escape_query_value,
)
from vaultsync.tests.fakes import TEST_SERVICE_ACCOUNT


def http_error(status: int, message: str = "boom") -> HttpError:
    resp = Mock(status=status, reason=message)
    return HttpError(resp, f'{{"error": {{"message": "{message}"}}}}'.encode())


class DriveFileTests(TestCase):
    def test_from_api_response_archive(self):
        data = {
            "id": "file123",
            "name": "backup-2024-01-15T10-30-00.tar.gz",
            "mimeType": "application/gzip",
            "createdTime": "2024-01-15T10:30:00.000Z",
            "size": "12345",
        }

        file = DriveFile.from_api_response(data)

        self.assertEqual(file.id, "file123")
        self.assertEqual(file.name, "backup-2024-01-15T10-30-00.tar.gz")
        self.assertEqual(file.mime_type, "application/gzip")
        self.assertEqual(file.created_time, datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc))
        self.assertEqual(file.size, 12345)
        self.assertFalse(file.is_folder)

    def test_from_api_response_folder(self):
        data = {"id": "folder123", "name": "VaultWarden", "mimeType": FOLDER_MIME_TYPE}

        file = DriveFile.from_api_response(data)

        self.assertTrue(file.is_folder)
        self.assertIsNone(file.size)
        self.assertIsNone(file.created_time)


class EscapeQueryValueTests(TestCase):
    def test_plain(self):
        self.assertEqual(escape_query_value("VaultWarden"), "VaultWarden")

    def test_quotes_and_backslashes(self):
        self.assertEqual(escape_query_value("Bob's \\ data"), "Bob\\'s \\\\ data")


class GoogleDriveClientTests(TestCase):
    def setUp(self):
        self.patcher = patch("vaultsync.providers.google_drive.build")
        self.mock_build = self.patcher.start()
        self.addCleanup(self.patcher.stop)

        self.cred_patcher = patch.object(GoogleDriveClient, "_get_credentials")
        self.cred_patcher.start()
        self.addCleanup(self.cred_patcher.stop)

        self.service = MagicMock()
        self.mock_build.return_value = self.service
        self.files = self.service.files.return_value
        self.client = GoogleDriveClient(TEST_SERVICE_ACCOUNT)

    def test_init_is_lazy(self):
        client = GoogleDriveClient(TEST_SERVICE_ACCOUNT)
        self.assertIsNone(client._credentials)
        self.assertIsNone(client._service)

    def test_get_user_info(self):
        self.service.about.return_value.get.return_value.execute.return_value = {
            "user": {
                "emailAddress": "backup@test-project.iam.gserviceaccount.com",
                "displayName": "Backup Bot",
            }
        }

        info = self.client.get_user_info()

        self.assertEqual(info["email"], "backup@test-project.iam.gserviceaccount.com")
        self.assertEqual(info["display_name"], "Backup Bot")

    def test_find_folder(self):
        self.files.list.return_value.execute.return_value = {
            "files": [{"id": "folder1", "name": "VaultWarden"}]
        }

        self.assertEqual(self.client.find_folder("VaultWarden"), "folder1")

        query = self.files.list.call_args.kwargs["q"]
        self.assertIn(f"mimeType='{FOLDER_MIME_TYPE}'", query)
        self.assertIn("name='VaultWarden'", query)
        self.assertIn("trashed=false", query)

    def test_find_folder_escapes_name(self):
        self.files.list.return_value.execute.return_value = {"files": []}

        self.assertIsNone(self.client.find_folder("Bob's vault"))

        self.assertIn("name='Bob\\'s vault'", self.files.list.call_args.kwargs["q"])

    def test_get_or_create_folder_creates_when_missing(self):
        self.files.list.return_value.execute.return_value = {"files": []}
        self.files.create.return_value.execute.return_value = {"id": "new_folder"}

        folder_id = self.client.get_or_create_folder("VaultWarden")

        self.assertEqual(folder_id, "new_folder")
        self.assertEqual(
            self.files.create.call_args.kwargs["body"],
            {"name": "VaultWarden", "mimeType": FOLDER_MIME_TYPE},
        )

    def test_get_or_create_folder_reuses_existing(self):
        self.files.list.return_value.execute.return_value = {"files": [{"id": "folder1"}]}

        self.assertEqual(self.client.get_or_create_folder("VaultWarden"), "folder1")
        self.files.create.assert_not_called()

    def test_list_files_builds_query(self):
        self.files.list.return_value.execute.return_value = {"files": []}

        self.client.list_files(
            "folder1",
            exclude_name=".last_backup_hash",
            exclude_folders=True,
            order_by="createdTime desc",
        )

        kwargs = self.files.list.call_args.kwargs
        self.assertIn("'folder1' in parents", kwargs["q"])
        self.assertIn("trashed=false", kwargs["q"])
        self.assertIn("name!='.last_backup_hash'", kwargs["q"])
        self.assertIn(f"mimeType!='{FOLDER_MIME_TYPE}'", kwargs["q"])
        self.assertEqual(kwargs["orderBy"], "createdTime desc")
        self.assertNotIn("pageToken", kwargs)

    def test_list_files_follows_pages(self):
        self.files.list.return_value.execute.side_effect = [
            {
                "files": [{"id": "a", "name": "a.tar.gz", "createdTime": "2024-01-02T00:00:00Z"}],
                "nextPageToken": "page2",
            },
            {
                "files": [{"id": "b", "name": "b.tar.gz", "createdTime": "2024-01-01T00:00:00Z"}],
            },
        ]

        files = self.client.list_files("folder1")

        self.assertEqual([f.id for f in files], ["a", "b"])
        self.assertEqual(self.files.list.call_args.kwargs["pageToken"], "page2")

    def test_list_files_limit(self):
        self.files.list.return_value.execute.return_value = {
            "files": [
                {"id": "a", "name": "a"},
                {"id": "b", "name": "b"},
            ],
            "nextPageToken": "more",
        }

        files = self.client.list_files("folder1", mime_type="application/gzip", limit=1)

        self.assertEqual([f.id for f in files], ["a"])
        kwargs = self.files.list.call_args.kwargs
        self.assertEqual(kwargs["pageSize"], 1)
        self.assertIn("mimeType='application/gzip'", kwargs["q"])

    @patch("vaultsync.providers.google_drive.MediaIoBaseUpload")
    def test_create_file_from_content(self, mock_upload):
        self.files.create.return_value.execute.return_value = {"id": "hash1"}

        file_id = self.client.create_file(
            "folder1", ".last_backup_hash", "text/plain", content=b"abc"
        )

        self.assertEqual(file_id, "hash1")
        kwargs = self.files.create.call_args.kwargs
        self.assertEqual(kwargs["body"], {"name": ".last_backup_hash", "parents": ["folder1"]})
        self.assertIs(kwargs["media_body"], mock_upload.return_value)
        self.assertEqual(mock_upload.call_args.kwargs["mimetype"], "text/plain")

    @patch("vaultsync.providers.google_drive.MediaFileUpload")
    def test_create_file_from_path(self, mock_upload):
        self.files.create.return_value.execute.return_value = {"id": "archive1"}

        file_id = self.client.create_file(
            "folder1", "backup.tar.gz", "application/gzip", path="/tmp/backup.tar.gz"
        )

        self.assertEqual(file_id, "archive1")
        mock_upload.assert_called_once_with(
            "/tmp/backup.tar.gz", mimetype="application/gzip", resumable=True
        )

    def test_create_file_requires_one_source(self):
        with self.assertRaises(ValueError):
            self.client.create_file("folder1", "x", "text/plain")
        with self.assertRaises(ValueError):
            self.client.create_file("folder1", "x", "text/plain", path="/tmp/x", content=b"x")

    @patch("vaultsync.providers.google_drive.MediaIoBaseUpload")
    def test_update_file(self, mock_upload):
        self.client.update_file("hash1", "text/plain", content=b"new")

        kwargs = self.files.update.call_args.kwargs
        self.assertEqual(kwargs["fileId"], "hash1")
        self.assertIs(kwargs["media_body"], mock_upload.return_value)

    @patch("vaultsync.providers.google_drive.MediaIoBaseDownload")
    def test_get_file_content(self, mock_download):
        def fake_downloader(stream, request):
            stream.write(b"abc123")
            downloader = MagicMock()
            downloader.next_chunk.return_value = (None, True)
            return downloader

        mock_download.side_effect = fake_downloader

        self.assertEqual(self.client.get_file_content("hash1"), b"abc123")
        self.files.get_media.assert_called_with(fileId="hash1")

    @patch("vaultsync.providers.google_drive.MediaIoBaseDownload")
    def test_download_file(self, mock_download):
        def fake_downloader(stream, request):
            stream.write(b"archive-bytes")
            status = MagicMock(resumable_progress=13)
            status.progress.return_value = 1.0
            downloader = MagicMock()
            downloader.next_chunk.return_value = (status, True)
            return downloader

        mock_download.side_effect = fake_downloader

        with tempfile.TemporaryDirectory() as temp_dir:
            destination = Path(temp_dir) / "temp-backup.tar.gz"
            written = self.client.download_file("archive1", destination)

            self.assertEqual(written, 13)
            self.assertEqual(destination.read_bytes(), b"archive-bytes")

    @patch("vaultsync.providers.google_drive.MediaIoBaseDownload")
    def test_download_error_maps_to_remote_error(self, mock_download):
        mock_download.return_value.next_chunk.side_effect = http_error(404, "File not found")

        with self.assertRaises(RemoteError):
            self.client.get_file_content("missing")

    @patch("vaultsync.providers.google_drive.MediaIoBaseDownload")
    def test_download_unauthorized_maps_to_auth_error(self, mock_download):
        mock_download.return_value.next_chunk.side_effect = http_error(401, "Invalid Credentials")

        with self.assertRaises(AuthError):
            self.client.get_file_content("hash1")

    @patch("vaultsync.providers.google_drive.MediaIoBaseDownload")
    def test_download_connection_error_maps_to_remote_error(self, mock_download):
        mock_download.return_value.next_chunk.side_effect = ConnectionResetError("reset")

        with self.assertRaises(RemoteError):
            self.client.get_file_content("hash1")

    @patch("vaultsync.providers.google_drive.MediaIoBaseDownload")
    def test_download_write_failure_maps_to_local_io_error(self, mock_download):
        def fake_downloader(stream, request):
            def next_chunk():
                stream.write(b"chunk")
                return None, True

            downloader = MagicMock()
            downloader.next_chunk.side_effect = next_chunk
            return downloader

        mock_download.side_effect = fake_downloader
        disk_full = mock_open()
        disk_full.return_value.write.side_effect = OSError(28, "No space left on device")

        with patch("vaultsync.providers.google_drive.open", disk_full, create=True):
            with self.assertRaises(LocalIOError) as ctx:
                self.client.download_file("archive1", "/tmp/temp-backup.tar.gz")

        self.assertNotIsInstance(ctx.exception, RemoteError)
        self.assertIn("No space left", str(ctx.exception))

    def test_delete_file(self):
        self.client.delete_file("old1")
        self.files.delete.assert_called_with(fileId="old1")

    def test_http_error_maps_to_remote_error(self):
        self.files.delete.return_value.execute.side_effect = http_error(500)

        with self.assertRaises(RemoteError) as ctx:
            self.client.delete_file("old1")
        self.assertIn("Delete file old1 failed", str(ctx.exception))
        self.assertNotIsInstance(ctx.exception, AuthError)

    def test_unauthorized_maps_to_auth_error(self):
        self.files.list.return_value.execute.side_effect = http_error(401, "Invalid Credentials")

        with self.assertRaises(AuthError):
            self.client.find_folder("VaultWarden")

    def test_refresh_error_maps_to_auth_error(self):
        self.service.about.return_value.get.return_value.execute.side_effect = RefreshError(
            "invalid_grant"
        )

        with self.assertRaises(AuthError):
            self.client.get_user_info()

    def test_transport_error_maps_to_remote_error(self):
        self.files.list.return_value.execute.side_effect = ConnectionResetError("reset")

        with self.assertRaises(RemoteError):
            self.client.list_files("folder1")


class CredentialsTests(TestCase):
    def test_invalid_service_account_raises_auth_error(self):
        client = GoogleDriveClient({"type": "service_account"})

        with self.assertRaises(AuthError):
            client._get_credentials()

    @patch("vaultsync.providers.google_drive.service_account.Credentials")
    def test_credentials_use_drive_scope(self, mock_credentials):
        client = GoogleDriveClient(TEST_SERVICE_ACCOUNT)

        creds = client._get_credentials()

        self.assertIs(creds, mock_credentials.from_service_account_info.return_value)
        mock_credentials.from_service_account_info.assert_called_once_with(
            TEST_SERVICE_ACCOUNT, scopes=["https://www.googleapis.com/auth/drive"]
        )
