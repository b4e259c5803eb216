"""
Retention for backup archives in the Drive folder.

Keeps the newest N archives (by creation time) and permanently deletes
the rest. The fingerprint record and sub-folders are never touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from vaultsync.fingerprint import HASH_FILENAME

if TYPE_CHECKING:
    from vaultsync.providers.google_drive import DriveFile, GoogleDriveClient

logger = logging.getLogger(__name__)


@dataclass
class PruneResult:
    """Result of a retention pass."""

    kept: list[DriveFile] = field(default_factory=list)
    deleted: list[DriveFile] = field(default_factory=list)
    dry_run: bool = False


def list_backups(client: GoogleDriveClient, folder_id: str) -> list[DriveFile]:
    """
    List every archive in the folder, newest first.

    Everything except sub-folders and the fingerprint record counts as
    an archive.
    """
    return client.list_files(
        folder_id,
        exclude_name=HASH_FILENAME,
        exclude_folders=True,
        order_by="createdTime desc",
    )


def prune_backups(
    client: GoogleDriveClient,
    folder_id: str,
    keep: int,
    dry_run: bool = False,
) -> PruneResult:
    """
    Delete all but the `keep` most recent archives.

    Args:
        client: Drive client
        folder_id: Folder holding the archives
        keep: Number of archives to retain (at least 1)
        dry_run: If True, report what would be deleted without deleting

    Returns:
        PruneResult with kept and deleted archives

    Raises:
        ValueError: If keep is less than 1
        RemoteError: If listing or deleting fails
    """
    if keep < 1:
        raise ValueError(f"keep must be at least 1, got {keep}")

    logger.info("Checking for old backups to delete...")
    backups = list_backups(client, folder_id)
    result = PruneResult(kept=backups[:keep], dry_run=dry_run)

    if len(backups) <= keep:
        logger.info("No old backups to delete.")
        return result

    for backup in backups[keep:]:
        if dry_run:
            logger.info(f"[DRY RUN] Would delete old backup: {backup.name}")
        else:
            client.delete_file(backup.id)
            logger.info(f"Deleted old backup: {backup.name}")
        result.deleted.append(backup)

    return result
