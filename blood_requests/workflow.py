# blood_requests/workflow.py
"""
Request status workflow

    pending -> processing -> matched -> partially_fulfilled -> completed

Forward skips are allowed and every non-terminal state may move to
expired or cancelled. completed, expired and cancelled are terminal.
"""
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import APIException

from accounts.decorators import check_policy
from blood_requests.models import BloodRequest, RequestStatusHistory
from donors.models import DonorProfile
from inventory import reservation

logger = logging.getLogger(__name__)

TRANSITIONS = {
    'pending': {'processing', 'matched', 'partially_fulfilled', 'expired', 'cancelled'},
    'processing': {'matched', 'partially_fulfilled', 'expired', 'cancelled'},
    'matched': {'partially_fulfilled', 'completed', 'expired', 'cancelled'},
    'partially_fulfilled': {'completed', 'expired', 'cancelled'},
    'completed': set(),
    'expired': set(),
    'cancelled': set(),
}


class WorkflowError(APIException):
    status_code = 400
    default_detail = 'Invalid status transition.'
    default_code = 'invalid_transition'


def allowed_transitions(status):
    return sorted(TRANSITIONS.get(status, set()))


def can_transition(current_status, new_status):
    return new_status in TRANSITIONS.get(current_status, set())


def transition(blood_request, new_status, actor=None, note='', system=False):
    """
    Move a request to new_status.

    Args:
        blood_request: BloodRequest to update
        new_status: Target status
        actor: User performing the change (recorded in history)
        note: Optional audit note
        system: Skip the permission check for automatic transitions

    Raises:
        PermissionDenied: actor may not transition this request
        WorkflowError: the graph does not allow the move

    Returns:
        The RequestStatusHistory entry
    """
    if not system:
        check_policy(actor, blood_request, 'request.transition')

    with transaction.atomic():
        locked = BloodRequest.objects.select_for_update().get(pk=blood_request.pk)
        previous_status = locked.status

        if not can_transition(previous_status, new_status):
            raise WorkflowError(f"Cannot move request from '{previous_status}' to '{new_status}'")

        locked.status = new_status
        locked.save(update_fields=['status', 'updated_at'])

        entry = RequestStatusHistory.objects.create(
            blood_request=locked,
            previous_status=previous_status,
            new_status=new_status,
            changed_by=actor if getattr(actor, 'is_authenticated', False) else None,
            note=note,
        )

        if new_status == 'completed':
            _complete(locked)
        elif new_status in ('expired', 'cancelled'):
            reservation.release(locked, reason=new_status)

    blood_request.status = new_status
    blood_request.updated_at = locked.updated_at
    logger.info(f"Request {blood_request.pk}: {previous_status} -> {new_status} by {getattr(actor, 'username', 'system')}")
    return entry


def _complete(blood_request):
    """Credit accepted donors and consume the reserved units"""
    donor_ids = list(
        blood_request.responses.filter(response_type='accept').values_list('donor_id', flat=True)
    )
    if donor_ids:
        DonorProfile.objects.filter(id__in=donor_ids).update(
            successful_donations=F('successful_donations') + 1,
            last_donation_date=timezone.localdate(),
        )
    used = reservation.mark_used(blood_request)
    logger.info(f"Request {blood_request.pk} completed: {len(donor_ids)} donors credited, {used} units used")


def expire_overdue_requests():
    """Expire open requests whose required_by time has passed"""
    overdue = BloodRequest.objects.filter(
        required_by__lt=timezone.now(),
    ).exclude(status__in=BloodRequest.TERMINAL_STATUSES)

    expired = 0
    for blood_request in overdue:
        transition(blood_request, 'expired', note='Required-by time passed', system=True)
        expired += 1

    if expired:
        logger.info(f"Expired {expired} overdue blood requests")
    return expired
