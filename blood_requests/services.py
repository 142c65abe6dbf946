# blood_requests/services.py
"""
Blood request creation, donor responses and match notification
"""
import logging

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from blood_requests import workflow
from blood_requests.models import BloodRequest, DonorResponse
from donors.matching import find_matches
from donors.models import DonorProfile
from notifications.dispatch import send_alert

logger = logging.getLogger(__name__)

DEFAULT_NOTIFY_TOP = 8

# Urgency -> channels used to alert matched donors
URGENCY_CHANNELS = {
    'emergency': ['push', 'sms', 'call', 'email'],
    'critical': ['push', 'sms', 'email'],
    'urgent': ['push', 'email'],
    'normal': ['push'],
}

URGENCY_PRIORITY = {
    'emergency': 'critical',
    'critical': 'high',
    'urgent': 'high',
    'normal': 'normal',
}

# Weight of the newest sample in the donors' running averages
RESPONSE_SMOOTHING = 0.2


def notify_top_count():
    return getattr(settings, 'BLOOD_MATCHING', {}).get('NOTIFY_TOP', DEFAULT_NOTIFY_TOP)


def create_blood_request(data, requester):
    """
    Create a pending request. Staff requests belong to their institution;
    admins may name one explicitly.
    """
    institution = data.pop('institution', None)
    if not requester.is_admin_role or institution is None:
        institution = requester.institution

    blood_request = BloodRequest.objects.create(requester=requester, institution=institution, **data)
    logger.info(
        f"Blood request {blood_request.pk} created by {requester.username}: "
        f"{blood_request.blood_type} x{blood_request.units_needed} ({blood_request.urgency})"
    )
    return blood_request


def notify_matches(blood_request, matches=None):
    """
    Alert the best matched donors on the channels the urgency calls for

    Returns:
        The dispatch result, or None when nobody matched
    """
    if matches is None:
        matches = find_matches(blood_request, limit=notify_top_count())
    top = matches[:notify_top_count()]
    if not top:
        logger.info(f"No donors to notify for request {blood_request.pk}")
        return None

    notification_type = 'emergency' if blood_request.urgency == 'emergency' else 'blood_request'
    title = f"{blood_request.blood_type} blood needed ({blood_request.urgency})"
    message = (
        f"{blood_request.hospital_name} needs {blood_request.units_needed} unit(s) of "
        f"{blood_request.blood_type} blood. {blood_request.address}. Please respond in the app."
    )[:500]

    return send_alert(
        None,
        notification_type,
        title[:100],
        message,
        [match['donor'].user_id for match in top],
        priority=URGENCY_PRIORITY.get(blood_request.urgency, 'normal'),
        channels=URGENCY_CHANNELS.get(blood_request.urgency, ['push']),
        data={
            'request_id': str(blood_request.pk),
            'blood_type': blood_request.blood_type,
            'urgency': blood_request.urgency,
        },
    )


def _update_donor_stats(donor, blood_request, first_response):
    """Running averages for response rate and response time"""
    if not first_response:
        return
    minutes = max((timezone.now() - blood_request.created_at).total_seconds() / 60, 0)
    if donor.avg_response_minutes is None:
        avg_minutes = minutes
    else:
        avg_minutes = donor.avg_response_minutes * (1 - RESPONSE_SMOOTHING) + minutes * RESPONSE_SMOOTHING
    response_rate = min(donor.response_rate * (1 - RESPONSE_SMOOTHING) + RESPONSE_SMOOTHING, 1.0)

    DonorProfile.objects.filter(pk=donor.pk).update(
        total_responses=F('total_responses') + 1,
        avg_response_minutes=round(avg_minutes, 1),
        response_rate=round(response_rate, 4),
    )


def record_response(blood_request, donor, data):
    """
    Create or update a donor's response to a request and advance the
    request when enough donors have accepted.

    Returns:
        (DonorResponse, created)
    """
    if blood_request.is_terminal:
        raise ValidationError({'status': f"Request is {blood_request.status} and no longer accepts responses"})

    response_type = data['response_type']
    location = data.get('current_location') or {}

    with transaction.atomic():
        response, created = DonorResponse.objects.update_or_create(
            blood_request=blood_request,
            donor=donor,
            defaults={
                'response_type': response_type,
                'eta_minutes': data.get('eta_minutes'),
                'current_latitude': location.get('latitude'),
                'current_longitude': location.get('longitude'),
                'notes': data.get('notes', ''),
                'status': 'confirmed' if response_type == 'accept' else 'pending',
                'confirmed_at': timezone.now() if response_type == 'accept' else None,
            },
        )
        _update_donor_stats(donor, blood_request, created)

        if response_type == 'accept':
            advance_on_accept(blood_request, donor.user)

    logger.info(f"Donor {donor.id} responded '{response_type}' to request {blood_request.pk}")
    return response, created


def advance_on_accept(blood_request, donor_user):
    """pending -> processing on the first accept; -> matched once accepts cover units_needed"""
    blood_request.refresh_from_db(fields=['status'])
    accepted = blood_request.responses.filter(response_type='accept').count()

    if accepted >= blood_request.units_needed and workflow.can_transition(blood_request.status, 'matched'):
        workflow.transition(blood_request, 'matched', actor=donor_user,
                            note=f"{accepted} donor(s) accepted", system=True)
    elif blood_request.status == 'pending':
        workflow.transition(blood_request, 'processing', actor=donor_user,
                            note='First donor accepted', system=True)
