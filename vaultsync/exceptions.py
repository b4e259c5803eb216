"""
Exceptions for backup and sync runs.
"""


class VaultSyncError(Exception):
    """Base exception for backup and sync runs."""

    def __init__(self, message: str, step: str | None = None):
        super().__init__(message)
        self.step = step


class ConfigError(VaultSyncError):
    """Required configuration is missing or invalid."""

    pass


class AuthError(VaultSyncError):
    """Authentication against Google Drive failed."""

    pass


class LocalIOError(VaultSyncError):
    """Local filesystem read, write, pack or unpack failed."""

    pass


class RemoteError(VaultSyncError):
    """A Google Drive API call failed."""

    pass


class FingerprintRecordError(RemoteError):
    """The remote fingerprint record exists but could not be read."""

    pass
