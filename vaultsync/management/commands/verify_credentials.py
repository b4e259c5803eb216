"""
Django management command to verify Google Drive credentials.
"""

from django.core.management.base import BaseCommand, CommandError

from vaultsync.credentials import load_service_account_info
from vaultsync.providers.google_drive import GoogleDriveClient
from vaultsync.sync import VaultSyncError


class Command(BaseCommand):
    help = "Verify the service account can authenticate to Google Drive"

    def handle(self, *args, **options):
        try:
            info = load_service_account_info()
            self.stdout.write(f"Service account: {info['client_email']}")

            user = GoogleDriveClient(info).get_user_info()
        except VaultSyncError as e:
            self.stdout.write(self.style.ERROR("✗ INVALID"))
            raise CommandError(f"Credential check failed: {e}")

        self.stdout.write(
            self.style.SUCCESS(
                f"✓ VALID - authenticated as {user['email']} ({user['display_name']})"
            )
        )
