"""
Celery configuration for the chat backend.

Redis is used as both the message broker and result backend. Tasks are
auto-discovered from every installed app; periodic work (room statistics
reconciliation) is declared in ``CELERY_BEAT_SCHEDULE`` and persisted by
django-celery-beat's DatabaseScheduler.

Usage:
    from chat.tasks import reconcile_room_stats

    reconcile_room_stats.delay()
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("portal_chat")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
