"""
Celery configuration for huddle.

Celery runs the background work that must not block a request:
- Sending registration mail
- Periodic cleanup of expired pending registrations and tokens

The periodic schedule below is synced into django-celery-beat's
DatabaseScheduler on beat startup, where it can be tuned from the admin.

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("huddle")

# All Celery settings should be prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()

app.conf.beat_schedule = {
    "cleanup-expired-pending-users": {
        "task": "accounts.tasks.cleanup_expired_pending_users",
        "schedule": crontab(hour=0, minute=0),
    },
    "flush-expired-tokens": {
        "task": "accounts.tasks.flush_expired_tokens",
        "schedule": crontab(hour=0, minute=30),
    },
}
