from django.db import models


class RunMode(models.TextChoices):
    BACKUP = "backup", "Backup"
    SYNC = "sync", "Sync"


class RunStatus(models.TextChoices):
    RUNNING = "running", "Running"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class RunOutcome(models.TextChoices):
    BACKED_UP = "backed_up", "Backed Up"
    UNCHANGED = "unchanged", "Unchanged"
    FAILED = "failed", "Failed"


class BackupRun(models.Model):
    """
    Records each backup or sync run for audit and debugging.

    The directory fingerprint is deliberately not stored here; the remote
    fingerprint record is the only change-detection baseline.
    """

    mode = models.CharField(max_length=10, choices=RunMode.choices)
    status = models.CharField(
        max_length=20, choices=RunStatus.choices, default=RunStatus.RUNNING
    )
    outcome = models.CharField(max_length=20, choices=RunOutcome.choices, blank=True)
    started_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    source_dir = models.TextField()
    drive_folder_name = models.CharField(max_length=255)

    restored = models.BooleanField(default=False)
    archive_name = models.CharField(max_length=255, blank=True)
    backups_deleted = models.PositiveIntegerField(default=0)

    # Error tracking
    failed_step = models.CharField(max_length=50, blank=True)
    error_message = models.TextField(blank=True)

    class Meta:
        indexes = [
            models.Index(
                fields=["drive_folder_name", "-started_at"],
                name="vaultsync_b_drive_f_6c1a2e_idx",
            ),
            models.Index(fields=["status"], name="vaultsync_b_status_9d4b7f_idx"),
        ]
        ordering = ["-started_at"]

    def __str__(self):
        return f"{self.get_mode_display()} of {self.source_dir} - {self.get_status_display()}"
