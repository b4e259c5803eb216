"""
Run configuration.

BackupConfig is built once from Django settings (or explicit overrides)
and handed to the engine, which never reads settings itself.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field, fields
from pathlib import Path

from django.conf import settings

from vaultsync.credentials import load_service_account_info
from vaultsync.exceptions import ConfigError
from vaultsync.models import RunMode

logger = logging.getLogger(__name__)

POLICY_FAIL = "fail"
POLICY_REBACKUP = "rebackup"
FINGERPRINT_READ_POLICIES = (POLICY_FAIL, POLICY_REBACKUP)


@dataclass(frozen=True)
class BackupConfig:
    """Validated settings for a single run."""

    source_dir: Path
    drive_folder_name: str
    max_backups: int
    mode: str = RunMode.BACKUP
    work_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    fingerprint_read_policy: str = POLICY_FAIL
    service_account_info: dict = field(default_factory=dict, repr=False)

    @property
    def is_sync(self) -> bool:
        return self.mode == RunMode.SYNC

    @classmethod
    def from_settings(cls, **overrides) -> "BackupConfig":
        """
        Build a config from Django settings.

        Keyword arguments override individual fields; None values are
        ignored so CLI options can be passed straight through.

        Raises:
            ConfigError: If any value is missing or invalid
        """
        sync_mode = getattr(settings, "SYNC_MODE", False)
        values = {
            "source_dir": getattr(settings, "FOLDER_TO_BACKUP", "/data"),
            "drive_folder_name": getattr(settings, "GDRIVE_FOLDER_NAME", "VaultWarden"),
            "max_backups": getattr(settings, "MAX_BACKUPS", 5),
            "mode": RunMode.SYNC if sync_mode else RunMode.BACKUP,
            "work_dir": getattr(settings, "BACKUP_WORK_DIR", None) or tempfile.gettempdir(),
            "fingerprint_read_policy": getattr(
                settings, "FINGERPRINT_READ_POLICY", POLICY_FAIL
            ),
        }

        known = {f.name for f in fields(cls)}
        for key, value in overrides.items():
            if key not in known:
                raise ConfigError(f"Unknown configuration option: {key}")
            if value is not None:
                values[key] = value

        if "service_account_info" not in values:
            values["service_account_info"] = load_service_account_info()

        if not values["source_dir"]:
            raise ConfigError("FOLDER_TO_BACKUP must not be empty")

        try:
            values["max_backups"] = int(values["max_backups"])
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"MAX_BACKUPS must be a positive integer, got {values['max_backups']!r}"
            ) from e

        config = cls(
            source_dir=Path(values["source_dir"]),
            drive_folder_name=values["drive_folder_name"],
            max_backups=values["max_backups"],
            mode=values["mode"],
            work_dir=Path(values["work_dir"]),
            fingerprint_read_policy=values["fingerprint_read_policy"],
            service_account_info=values["service_account_info"],
        )
        config.validate()
        return config

    def validate(self) -> None:
        """
        Check every field.

        Raises:
            ConfigError: On the first invalid value
        """
        if not self.drive_folder_name or not self.drive_folder_name.strip():
            raise ConfigError("GDRIVE_FOLDER_NAME must not be empty")
        if self.max_backups < 1:
            raise ConfigError(
                f"MAX_BACKUPS must be a positive integer, got {self.max_backups}"
            )
        if self.mode not in RunMode.values:
            raise ConfigError(
                f"Unknown mode {self.mode!r}, expected one of {', '.join(RunMode.values)}"
            )
        if self.fingerprint_read_policy not in FINGERPRINT_READ_POLICIES:
            raise ConfigError(
                f"Unknown FINGERPRINT_READ_POLICY {self.fingerprint_read_policy!r}, "
                f"expected one of {', '.join(FINGERPRINT_READ_POLICIES)}"
            )
        if not self.service_account_info:
            raise ConfigError("Missing Google service account credentials")

