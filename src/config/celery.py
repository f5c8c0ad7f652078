"""
Celery configuration for the Baladi project.

DJANGO_SETTINGS_MODULE is set before the app is created so Celery reads
the Django settings (CELERY_ prefix). Periodic jobs live in
``CELERY_BEAT_SCHEDULE``.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("baladi")

# Reads Django settings with the CELERY_ prefix
app.config_from_object("django.conf:settings", namespace="CELERY")

# Discovers tasks.py in every installed app
app.autodiscover_tasks()
