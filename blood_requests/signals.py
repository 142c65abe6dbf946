# blood_requests/signals.py
"""
Notify matched donors when a blood request is created
"""
import logging

from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from blood_requests.models import BloodRequest
from blood_requests.tasks import notify_request_matches

logger = logging.getLogger(__name__)


@receiver(post_save, sender=BloodRequest)
def notify_on_create(sender, instance, created, **kwargs):
    if created and instance.status == 'pending':
        request_id = str(instance.pk)
        transaction.on_commit(lambda: notify_request_matches.delay(request_id))
        logger.info(f"Match notification queued for request {request_id}")
