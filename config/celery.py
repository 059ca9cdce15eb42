"""
Celery configuration for the storefront backend.

Used when TASK_BACKEND=celery, and by beat to drain the Redis job queue
when TASK_BACKEND=redis.
"""
import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('storefront')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# Celery Beat Schedule
app.conf.beat_schedule = {
    'process-task-queue': {
        'task': 'apps.core.tasks.process_queue_task',
        'schedule': crontab(minute='*'),  # Every minute
    },
}
