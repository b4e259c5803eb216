"""
Core engine for backup and sync runs.

Backup mode archives the source folder, uploads it and prunes old
archives on every run. Sync mode first restores the latest archive when
the source folder is empty or missing, then uploads a new archive only
when the folder's fingerprint differs from the one recorded in Drive.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterator

from django.utils import timezone as dj_timezone

from vaultsync.archive import (
    ARCHIVE_MIME_TYPE,
    backup_filename,
    create_archive,
    extract_archive,
)
from vaultsync.config import POLICY_FAIL
from vaultsync.exceptions import (
    FingerprintRecordError,
    LocalIOError,
    RemoteError,
    VaultSyncError,
)
from vaultsync.fingerprint import HASH_FILENAME, compute_fingerprint
from vaultsync.models import BackupRun, RunOutcome, RunStatus
from vaultsync.retention import prune_backups

if TYPE_CHECKING:
    from vaultsync.config import BackupConfig
    from vaultsync.providers.google_drive import GoogleDriveClient

logger = logging.getLogger(__name__)

FINGERPRINT_MIME_TYPE = "text/plain"


@dataclass
class RunResult:
    """Result of a backup or sync run."""

    mode: str
    outcome: str = ""
    restored: bool = False
    archive_name: str = ""
    fingerprint: str = ""
    backups_deleted: list[str] = field(default_factory=list)
    error: VaultSyncError | None = None
    failed_step: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RemoteFingerprint:
    """The fingerprint record stored in Drive."""

    file_id: str
    # None when the record exists but could not be read
    value: str | None


class BackupEngine:
    """
    Runs one backup or sync pass against a Drive folder.

    Every step is named; a failure in any step aborts the run and is
    reported on the RunResult rather than raised.
    """

    def __init__(
        self,
        config: BackupConfig,
        client: GoogleDriveClient,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.client = client
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.folder_id: str | None = None
        self.run_record: BackupRun | None = None

    @contextmanager
    def _step(self, name: str) -> Iterator[None]:
        """Tag failures with the step name and map OSError to LocalIOError."""
        logger.debug(f"Step: {name}")
        try:
            yield
        except VaultSyncError as e:
            if e.step is None:
                e.step = name
            raise
        except OSError as e:
            raise LocalIOError(f"{name} failed: {e}", step=name) from e

    def run(self) -> RunResult:
        """
        Execute one run in the configured mode.

        Returns:
            RunResult; check `ok` and `error` for failures
        """
        config = self.config
        result = RunResult(mode=config.mode)

        self.run_record = BackupRun.objects.create(
            mode=config.mode,
            source_dir=str(config.source_dir),
            drive_folder_name=config.drive_folder_name,
        )

        logger.info(f"Starting {config.mode} process...")

        try:
            with self._step("authenticate"):
                identity = self.client.get_user_info()
            logger.info(f"Authenticated to Google Drive as {identity.get('email')}")

            with self._step("locate_folder"):
                self.folder_id = self.client.get_or_create_folder(config.drive_folder_name)

            if config.is_sync:
                self._run_sync(result)
            else:
                self._publish(result)

        except VaultSyncError as e:
            result.outcome = RunOutcome.FAILED
            result.error = e
            result.failed_step = e.step or ""
            logger.error(
                f"{config.mode.capitalize()} failed at step '{result.failed_step}': {e}",
                exc_info=True,
            )
            self._finish(result, RunStatus.FAILED)
            return result

        except Exception as e:
            # Unexpected error, record and let it propagate
            result.outcome = RunOutcome.FAILED
            self.run_record.error_message = str(e)
            self._finish(result, RunStatus.FAILED)
            raise

        self._finish(result, RunStatus.COMPLETED)
        logger.info(f"{config.mode.capitalize()} process completed successfully.")
        return result

    def _finish(self, result: RunResult, status: str) -> None:
        record = self.run_record
        record.status = status
        record.outcome = result.outcome
        record.completed_at = dj_timezone.now()
        record.restored = result.restored
        record.archive_name = result.archive_name
        record.backups_deleted = len(result.backups_deleted)
        record.failed_step = result.failed_step
        if result.error is not None:
            record.error_message = str(result.error)
        record.save()

    def _run_sync(self, result: RunResult) -> None:
        """Restore if needed, then publish only when the folder changed."""
        source_dir = self.config.source_dir

        with self._step("check_empty"):
            needs_restore = not source_dir.exists() or not any(source_dir.iterdir())

        if needs_restore:
            logger.warning("Folder is empty or does not exist. Downloading latest backup...")
            with self._step("restore"):
                result.restored = self._restore()

        with self._step("fingerprint"):
            current = compute_fingerprint(source_dir)
        result.fingerprint = current
        logger.info(f"Current folder hash: {current}")

        with self._step("fetch_fingerprint"):
            record = self._fetch_remote_fingerprint()

        if record is not None and record.value == current:
            result.outcome = RunOutcome.UNCHANGED
            logger.info("No changes detected. Skipping backup.")
            return

        logger.info("Changes detected. Creating new backup...")
        self._publish(result, fingerprint=current, record=record)

    def _restore(self) -> bool:
        """
        Restore the most recent archive into the source folder.

        Returns:
            True if an archive was restored, False if none existed
        """
        source_dir = self.config.source_dir
        latest = self.client.list_files(
            self.folder_id,
            mime_type=ARCHIVE_MIME_TYPE,
            order_by="createdTime desc",
            limit=1,
        )

        if not latest:
            logger.warning("No backups available. Creating empty folder.")
            source_dir.mkdir(parents=True, exist_ok=True)
            return False

        backup = latest[0]
        logger.info(f"Latest backup found: {backup.name}")

        self.config.work_dir.mkdir(parents=True, exist_ok=True)
        temp_path = self.config.work_dir / f"temp-{backup.name}"
        try:
            size = self.client.download_file(backup.id, temp_path)
            logger.info(f"Backup downloaded: {temp_path.name} ({size:,} bytes)")
            extract_archive(temp_path, source_dir)
        finally:
            self._discard(temp_path)

        logger.info("Restored from latest backup.")
        return True

    def _fetch_remote_fingerprint(self) -> RemoteFingerprint | None:
        """
        Read the fingerprint record from Drive.

        Returns:
            The record, or None if there is none

        Raises:
            FingerprintRecordError: If the record exists but is unreadable
                and the read policy is "fail"
        """
        logger.info("Retrieving hash file from Google Drive...")
        records = self.client.list_files(self.folder_id, name=HASH_FILENAME, limit=1)
        if not records:
            logger.info("No hash file found on Google Drive.")
            return None

        file_id = records[0].id
        try:
            try:
                content = self.client.get_file_content(file_id)
            except RemoteError as e:
                raise FingerprintRecordError(f"Could not read hash file: {e}") from e
            try:
                value = content.decode("utf-8").strip()
            except UnicodeDecodeError as e:
                raise FingerprintRecordError(f"Hash file is not valid text: {e}") from e
        except FingerprintRecordError as e:
            if self.config.fingerprint_read_policy == POLICY_FAIL:
                raise
            logger.warning(f"{e}; treating remote hash as stale")
            return RemoteFingerprint(file_id=file_id, value=None)

        logger.info("Hash file retrieved from Google Drive.")
        return RemoteFingerprint(file_id=file_id, value=value)

    def _write_remote_fingerprint(
        self, fingerprint: str, record: RemoteFingerprint | None
    ) -> None:
        content = fingerprint.encode("utf-8")
        if record is not None:
            self.client.update_file(
                record.file_id, FINGERPRINT_MIME_TYPE, content=content
            )
            logger.info("Hash file updated on Google Drive.")
        else:
            self.client.create_file(
                self.folder_id, HASH_FILENAME, FINGERPRINT_MIME_TYPE, content=content
            )
            logger.info("Hash file uploaded to Google Drive.")

    def _publish(
        self,
        result: RunResult,
        fingerprint: str | None = None,
        record: RemoteFingerprint | None = None,
    ) -> None:
        """
        Archive, upload, record the fingerprint (sync mode) and prune.

        The local archive is removed whether or not the upload succeeds.
        """
        name = backup_filename(self.clock())
        archive_path = self.config.work_dir / name

        try:
            with self._step("archive"):
                create_archive(self.config.source_dir, archive_path)

            with self._step("upload"):
                file_id = self.client.create_file(
                    self.folder_id, name, ARCHIVE_MIME_TYPE, path=archive_path
                )
            result.archive_name = name
            logger.info(f"Backup uploaded. File ID: {file_id}")

            if fingerprint is not None:
                with self._step("publish_fingerprint"):
                    self._write_remote_fingerprint(fingerprint, record)

            with self._step("prune"):
                pruned = prune_backups(self.client, self.folder_id, self.config.max_backups)
            result.backups_deleted = [backup.name for backup in pruned.deleted]

        except VaultSyncError:
            self._discard(archive_path)
            raise

        with self._step("cleanup"):
            archive_path.unlink(missing_ok=True)
        logger.info(f"Local backup {name} deleted.")

        result.outcome = RunOutcome.BACKED_UP

    def _discard(self, path: Path) -> None:
        """Remove a transient local file after a failure."""
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove {path}: {e}")
