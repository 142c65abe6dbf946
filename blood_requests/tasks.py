# blood_requests/tasks.py
"""
Celery tasks for donor notification and request expiry
"""
import logging

from celery import shared_task

from blood_requests import services, workflow
from blood_requests.models import BloodRequest

logger = logging.getLogger(__name__)


@shared_task
def notify_request_matches(blood_request_id):
    """Alert the top matched donors for a newly created request"""
    try:
        blood_request = BloodRequest.objects.get(pk=blood_request_id)
    except BloodRequest.DoesNotExist:
        logger.warning(f"Request {blood_request_id} vanished before donors were notified")
        return None

    if blood_request.is_terminal:
        return None

    result = services.notify_matches(blood_request)
    if result is None:
        return f"No donors matched request {blood_request_id}"
    return f"Request {blood_request_id}: {result['sent']} sent, {result['suppressed']} suppressed, {result['failed']} failed"


@shared_task
def expire_overdue_requests():
    """Run every few minutes via celery beat"""
    expired = workflow.expire_overdue_requests()
    return f"Expired {expired} requests"
