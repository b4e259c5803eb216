"""
Django management command to apply backup retention.
"""

from django.core.management.base import BaseCommand, CommandError

from vaultsync.config import BackupConfig
from vaultsync.providers.google_drive import GoogleDriveClient
from vaultsync.retention import prune_backups
from vaultsync.sync import VaultSyncError


class Command(BaseCommand):
    help = "Delete all but the newest backups in the Drive folder"

    def add_arguments(self, parser):
        parser.add_argument(
            "--keep",
            type=int,
            help="Number of archives to keep (default: MAX_BACKUPS)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report what would be deleted without actually deleting",
        )

    def handle(self, *args, **options):
        try:
            config = BackupConfig.from_settings(max_backups=options["keep"])
            client = GoogleDriveClient(config.service_account_info)

            folder_id = client.find_folder(config.drive_folder_name)
            if folder_id is None:
                raise CommandError(
                    f"Drive folder '{config.drive_folder_name}' not found"
                )

            if options["dry_run"]:
                self.stdout.write(self.style.WARNING("Running in dry-run mode"))

            result = prune_backups(
                client, folder_id, config.max_backups, dry_run=options["dry_run"]
            )
        except VaultSyncError as e:
            raise CommandError(f"Prune failed: {e}")

        if result.dry_run:
            summary = f"\n[DRY RUN] Would delete {len(result.deleted)} backup(s), keeping {len(result.kept)}"
            self.stdout.write(self.style.WARNING(summary))
        else:
            summary = f"\nDeleted {len(result.deleted)} old backup(s), kept {len(result.kept)}"
            self.stdout.write(self.style.SUCCESS(summary))

        for backup in result.deleted:
            self.stdout.write(f"  - {backup.name}")
