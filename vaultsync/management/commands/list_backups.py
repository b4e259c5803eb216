"""
Django management command to list backups stored in Google Drive.
"""

import json

from django.core.management.base import BaseCommand, CommandError

from vaultsync.config import BackupConfig
from vaultsync.providers.google_drive import GoogleDriveClient
from vaultsync.retention import list_backups
from vaultsync.sync import VaultSyncError


class Command(BaseCommand):
    help = "List backup archives in the Drive folder, newest first"

    def add_arguments(self, parser):
        parser.add_argument(
            "--json",
            action="store_true",
            help="Output as JSON",
        )

    def handle(self, *args, **options):
        try:
            config = BackupConfig.from_settings()
            client = GoogleDriveClient(config.service_account_info)
            folder_id = client.find_folder(config.drive_folder_name)
            backups = list_backups(client, folder_id) if folder_id else []
        except VaultSyncError as e:
            raise CommandError(f"Failed to list backups: {e}")

        if options["json"]:
            self._output_json(backups)
            return

        if not backups:
            self.stdout.write(
                self.style.WARNING(f"No backups found in '{config.drive_folder_name}'.")
            )
            return

        self._output_table(backups, config.max_backups)

    def _output_table(self, backups, max_backups: int):
        """Output backups as formatted table."""
        self.stdout.write("\n" + "=" * 80)
        self.stdout.write(f"{'Name':<40} {'Created':<20} {'Size':>16}")
        self.stdout.write("=" * 80)

        for backup in backups:
            created = (
                backup.created_time.strftime("%Y-%m-%d %H:%M:%S")
                if backup.created_time
                else "unknown"
            )
            size = f"{backup.size:,}" if backup.size is not None else "-"
            self.stdout.write(f"{backup.name:<40} {created:<20} {size:>16}")

        self.stdout.write("=" * 80)
        self.stdout.write(f"Total: {len(backups)} backup(s), keeping {max_backups}\n")

    def _output_json(self, backups):
        """Output backups as JSON."""
        data = [
            {
                "id": backup.id,
                "name": backup.name,
                "created_time": backup.created_time.isoformat() if backup.created_time else None,
                "size": backup.size,
            }
            for backup in backups
        ]
        self.stdout.write(json.dumps(data, indent=2))
