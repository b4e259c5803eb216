"""
Tar.gz archives of the backed-up folder.

An archive holds a single top-level directory named after the source
folder. Extraction strips that component so an archive can be restored
into a folder with any name.
"""

from __future__ import annotations

import logging
import tarfile
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from vaultsync.exceptions import LocalIOError

logger = logging.getLogger(__name__)

ARCHIVE_MIME_TYPE = "application/gzip"
ARCHIVE_PREFIX = "backup-"
ARCHIVE_SUFFIX = ".tar.gz"


def backup_filename(now: datetime | None = None) -> str:
    """
    Build the archive name for a backup taken at `now`.

    Format: backup-2024-01-15T10-30-00.tar.gz (UTC, no sub-seconds)
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    stamp = now.replace(microsecond=0, tzinfo=None).isoformat().replace(":", "-")
    return f"{ARCHIVE_PREFIX}{stamp}{ARCHIVE_SUFFIX}"


def _whole_second_mtime(member: tarfile.TarInfo) -> tarfile.TarInfo:
    member.mtime = int(member.mtime)
    return member


def create_archive(source_dir: str | Path, dest: str | Path) -> Path:
    """
    Pack a directory into a gzip-compressed tarball.

    Member mtimes are truncated to whole seconds, matching the
    precision used by compute_fingerprint.

    Args:
        source_dir: Directory to archive
        dest: Path of the archive to write

    Returns:
        Path to the written archive

    Raises:
        LocalIOError: If the directory cannot be read or the archive written
    """
    source_dir = Path(source_dir)
    dest = Path(dest)

    if not source_dir.is_dir():
        raise LocalIOError(f"Source folder does not exist: {source_dir}")

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(dest, "w:gz") as tar:
            tar.add(source_dir, arcname=source_dir.name, filter=_whole_second_mtime)
    except (OSError, tarfile.TarError) as e:
        # Don't leave a truncated archive behind
        dest.unlink(missing_ok=True)
        raise LocalIOError(f"Failed to create archive {dest.name}: {e}") from e

    logger.info(f"Backup created: {dest.name} ({dest.stat().st_size:,} bytes)")
    return dest


def _strip_top_level(member: tarfile.TarInfo, path: str) -> tarfile.TarInfo | None:
    """
    Extraction filter that drops the archive's top-level directory.

    Members outside the top-level directory and the directory entry itself
    are skipped. Everything else goes through tarfile's data filter.
    """
    parts = PurePosixPath(member.name).parts
    if len(parts) < 2:
        return None

    stripped = member.replace(name=str(PurePosixPath(*parts[1:])), deep=False)
    if stripped.islnk():
        link_parts = PurePosixPath(stripped.linkname).parts
        stripped = stripped.replace(
            linkname=str(PurePosixPath(*link_parts[1:])), deep=False
        )
    return tarfile.data_filter(stripped, path)


def extract_archive(archive: str | Path, target_dir: str | Path) -> Path:
    """
    Unpack an archive's top-level directory into target_dir.

    Args:
        archive: Path to a tar.gz created by create_archive
        target_dir: Directory to restore into (created if missing)

    Returns:
        The target directory

    Raises:
        LocalIOError: If the archive is unreadable or contains unsafe members
    """
    archive = Path(archive)
    target_dir = Path(target_dir)

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        with tarfile.open(archive, "r:gz") as tar:
            tar.extractall(target_dir, filter=_strip_top_level)
    except (OSError, tarfile.TarError) as e:
        raise LocalIOError(f"Failed to extract {archive.name}: {e}") from e

    logger.info(f"Backup extracted to {target_dir}")
    return target_dir
