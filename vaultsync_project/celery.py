"""
Celery application for scheduled backups.

The beat schedule lives in settings (CELERY_BEAT_SCHEDULE).
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "vaultsync_project.settings")

app = Celery("vaultsync")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
