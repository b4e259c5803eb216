"""
Directory fingerprinting for change detection.

A fingerprint is a SHA256 hex digest over every regular file in a tree,
visited depth-first in name order. Each file contributes a
"<relative path>:<size>:<mtime>" record followed by its raw bytes. The
mtime is in whole seconds, the precision an archive keeps.
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Iterator

from vaultsync.exceptions import LocalIOError

logger = logging.getLogger(__name__)

# Name of the remote fingerprint record; never part of a fingerprint
HASH_FILENAME = ".last_backup_hash"

CHUNK_SIZE = 65536


def _sorted_entries(directory: str | Path) -> Iterator[os.DirEntry]:
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)
    return iter(entries)


def iter_files(root: str | Path) -> Iterator[tuple[str, os.stat_result]]:
    """
    Walk a directory tree lazily in deterministic order.

    Entries are sorted by name at each level and visited depth-first
    using an explicit stack. Symlinks are neither followed nor yielded,
    and files named HASH_FILENAME are skipped at any depth.

    Args:
        root: Directory to walk

    Yields:
        Tuple of (relative POSIX path, stat result) for each regular file
    """
    root = Path(root)
    stack = [_sorted_entries(root)]

    while stack:
        entry = next(stack[-1], None)
        if entry is None:
            stack.pop()
            continue

        if entry.is_symlink():
            continue

        if entry.is_dir(follow_symlinks=False):
            stack.append(_sorted_entries(entry.path))
        elif entry.is_file(follow_symlinks=False):
            if entry.name == HASH_FILENAME:
                continue
            relative_path = Path(entry.path).relative_to(root).as_posix()
            yield relative_path, entry.stat(follow_symlinks=False)


def compute_fingerprint(root: str | Path) -> str:
    """
    Compute the fingerprint of a directory tree.

    Args:
        root: Directory to fingerprint

    Returns:
        SHA256 hex digest of the tree's paths, sizes, mtimes and contents

    Raises:
        LocalIOError: If the tree cannot be read
    """
    root = Path(root)
    hasher = hashlib.sha256()
    file_count = 0

    try:
        for relative_path, stat in iter_files(root):
            hasher.update(
                f"{relative_path}:{stat.st_size}:{int(stat.st_mtime)}".encode("utf-8")
            )
            with open(root / relative_path, "rb") as f:
                for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                    hasher.update(chunk)
            file_count += 1
    except OSError as e:
        raise LocalIOError(f"Failed to fingerprint {root}: {e}") from e

    digest = hasher.hexdigest()
    logger.debug(f"Fingerprinted {file_count} files under {root}: {digest}")
    return digest
