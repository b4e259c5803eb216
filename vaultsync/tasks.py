"""
Celery tasks for scheduled backups.

The task never retries on its own: a failed run is left for the next
scheduled run, which re-evaluates the folder from scratch.
"""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def run_backup_task(mode: str | None = None):
    """
    Run one backup or sync pass using the configured settings.

    Args:
        mode: Optional "backup" or "sync" overriding SYNC_MODE
    """
    from vaultsync.config import BackupConfig
    from vaultsync.providers.google_drive import GoogleDriveClient
    from vaultsync.sync import BackupEngine

    config = BackupConfig.from_settings(mode=mode)
    client = GoogleDriveClient(config.service_account_info)
    engine = BackupEngine(config, client)

    result = engine.run()

    if not result.ok:
        logger.error(f"Scheduled {config.mode} failed at step '{result.failed_step}'")
        raise result.error

    return {
        "status": "completed",
        "mode": result.mode,
        "outcome": result.outcome,
        "restored": result.restored,
        "archive_name": result.archive_name,
        "backups_deleted": result.backups_deleted,
    }
