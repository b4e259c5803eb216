from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="BackupRun",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "mode",
                    models.CharField(
                        choices=[("backup", "Backup"), ("sync", "Sync")], max_length=10
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("running", "Running"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="running",
                        max_length=20,
                    ),
                ),
                (
                    "outcome",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("backed_up", "Backed Up"),
                            ("unchanged", "Unchanged"),
                            ("failed", "Failed"),
                        ],
                        max_length=20,
                    ),
                ),
                ("started_at", models.DateTimeField(auto_now_add=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("source_dir", models.TextField()),
                ("drive_folder_name", models.CharField(max_length=255)),
                ("restored", models.BooleanField(default=False)),
                ("archive_name", models.CharField(blank=True, max_length=255)),
                ("backups_deleted", models.PositiveIntegerField(default=0)),
                ("failed_step", models.CharField(blank=True, max_length=50)),
                ("error_message", models.TextField(blank=True)),
            ],
            options={
                "ordering": ["-started_at"],
                "indexes": [
                    models.Index(
                        fields=["drive_folder_name", "-started_at"],
                        name="vaultsync_b_drive_f_6c1a2e_idx",
                    ),
                    models.Index(fields=["status"], name="vaultsync_b_status_9d4b7f_idx"),
                ],
            },
        ),
    ]
