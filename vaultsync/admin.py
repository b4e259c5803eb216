from django.contrib import admin

from .models import BackupRun


@admin.register(BackupRun)
class BackupRunAdmin(admin.ModelAdmin):
    list_display = [
        "started_at",
        "mode",
        "status",
        "outcome",
        "drive_folder_name",
        "archive_name",
        "restored",
        "backups_deleted",
    ]
    list_filter = ["mode", "status", "outcome", "restored"]
    search_fields = ["source_dir", "drive_folder_name", "archive_name", "error_message"]
    readonly_fields = [
        "mode",
        "status",
        "outcome",
        "started_at",
        "completed_at",
        "source_dir",
        "drive_folder_name",
        "restored",
        "archive_name",
        "backups_deleted",
        "failed_step",
        "error_message",
    ]
