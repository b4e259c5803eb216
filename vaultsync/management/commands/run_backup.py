"""
Django management command to run a single backup or sync pass.
"""

from django.core.management.base import BaseCommand, CommandError

from vaultsync.config import BackupConfig
from vaultsync.models import RunMode, RunOutcome
from vaultsync.providers.google_drive import GoogleDriveClient
from vaultsync.sync import BackupEngine, ConfigError


class Command(BaseCommand):
    help = "Back up (or sync) the configured folder to Google Drive"

    def add_arguments(self, parser):
        parser.add_argument(
            "--mode",
            choices=RunMode.values,
            help="Run mode (default: sync if SYNC_MODE is true, else backup)",
        )
        parser.add_argument(
            "--folder",
            dest="source_dir",
            help="Local folder to back up (default: FOLDER_TO_BACKUP)",
        )
        parser.add_argument(
            "--drive-folder",
            dest="drive_folder_name",
            help="Google Drive folder name (default: GDRIVE_FOLDER_NAME)",
        )
        parser.add_argument(
            "--max-backups",
            type=int,
            help="Number of archives to keep (default: MAX_BACKUPS)",
        )

    def handle(self, *args, **options):
        try:
            config = BackupConfig.from_settings(
                mode=options["mode"],
                source_dir=options["source_dir"],
                drive_folder_name=options["drive_folder_name"],
                max_backups=options["max_backups"],
            )
        except ConfigError as e:
            raise CommandError(f"Invalid configuration: {e}")

        self.stdout.write(
            f"Running {config.mode} of {config.source_dir} "
            f"to Drive folder '{config.drive_folder_name}'"
        )

        client = GoogleDriveClient(config.service_account_info)
        result = BackupEngine(config, client).run()

        if not result.ok:
            self.stdout.write(
                self.style.ERROR(f"\n✗ {config.mode.capitalize()} failed: {result.error}")
            )
            raise CommandError(
                f"{config.mode.capitalize()} failed at step '{result.failed_step}': "
                f"{result.error}"
            )

        if result.restored:
            self.stdout.write(self.style.WARNING("Restored folder from latest backup"))

        if result.outcome == RunOutcome.UNCHANGED:
            self.stdout.write(self.style.SUCCESS("\n✓ No changes detected, backup skipped"))
            return

        self.stdout.write(
            self.style.SUCCESS(
                f"\n✓ Backup completed successfully:\n"
                f"  - Archive: {result.archive_name}\n"
                f"  - Old backups deleted: {len(result.backups_deleted)}"
            )
        )
        for name in result.backups_deleted:
            self.stdout.write(f"  - {name}")
