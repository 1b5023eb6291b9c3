"""
Celery configuration for the draw data collector.

Collection is a scheduled batch job: beat triggers one sequential run over
every registered source each week.
"""

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("drawdata")

# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

# A single queue: sources are collected one after another, never in parallel
app.conf.task_default_queue = "collect"
app.conf.task_routes = {
    "drawdata.tasks.collect_sources": {"queue": "collect"},
}

app.conf.beat_schedule = {
    "collect-all-sources-weekly": {
        "task": "drawdata.tasks.collect_sources",
        "schedule": crontab(minute=0, hour=6, day_of_week="mon"),
    },
}
