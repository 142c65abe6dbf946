# hemolink/celery.py
"""
Celery configuration for background notification and sweep tasks
"""
import os

from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'hemolink.settings')

app = Celery('hemolink')

# Load config from Django settings (prefix: CELERY_)
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all installed apps
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'process-notification-queue': {
        'task': 'notifications.tasks.process_notification_queue',
        'schedule': 60.0,
    },
    'expire-overdue-requests': {
        'task': 'blood_requests.tasks.expire_overdue_requests',
        'schedule': 300.0,
    },
    'process-expired-units': {
        'task': 'inventory.tasks.process_expired_units',
        'schedule': crontab(hour=2, minute=0),
    },
    'check-inventory-alerts': {
        'task': 'inventory.tasks.check_inventory_alerts',
        'schedule': crontab(minute=15),
    },
}
