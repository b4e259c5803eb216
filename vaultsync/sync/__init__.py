"""
Backup and sync orchestration.
"""

from vaultsync.sync.engine import BackupEngine, RunResult
from vaultsync.exceptions import (
    AuthError,
    ConfigError,
    FingerprintRecordError,
    LocalIOError,
    RemoteError,
    VaultSyncError,
)

__all__ = [
    "BackupEngine",
    "RunResult",
    "VaultSyncError",
    "ConfigError",
    "AuthError",
    "LocalIOError",
    "RemoteError",
    "FingerprintRecordError",
]
