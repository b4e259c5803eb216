from django.apps import AppConfig


class VaultSyncConfig(AppConfig):
    name = "vaultsync"
    verbose_name = "Vault Sync"
    default_auto_field = "django.db.models.BigAutoField"
