# notifications/tasks.py
"""
Celery tasks for the notification queue
"""
from celery import shared_task

from notifications.dispatch import process_pending


@shared_task
def process_notification_queue():
    """Deliver due scheduled notifications and retry failed ones"""
    result = process_pending()
    return f"Processed {result['processed']} notifications ({result['sent']} sent, {result['failed']} failed)"
