"""
Celery application for the marketplace backend.

Beat triggers the monthly payout jobs declared in ``CELERY_BEAT_SCHEDULE``.
"""
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.settings")

app = Celery("core")

# Read CELERY_* keys from Django settings
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
