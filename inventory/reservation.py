# inventory/reservation.py
"""
Blood unit reservation, release and expiry

reserve() is the only place units move from available to reserved. It
locks the candidate rows, then marks them with a conditional UPDATE that
only matches units still available, unexpired and unreserved. If the
number of rows updated differs from the number selected, another writer
got there first and the whole batch is rolled back.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Avg, Count
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from accounts.decorators import check_policy
from algorithms.blood_compatibility import is_valid_blood_type
from inventory.models import BloodUnit, InventoryTransaction

logger = logging.getLogger(__name__)

MAX_UNITS_PER_RESERVATION = 10
EXPIRY_PREFERENCES = ('oldest_first', 'newest_first')
EXPIRING_SOON_DAYS = 7


def expiring_soon_days():
    return getattr(settings, 'BLOOD_INVENTORY', {}).get('EXPIRING_SOON_DAYS', EXPIRING_SOON_DAYS)


class ReservationConflict(Exception):
    """Raised inside the reservation transaction to roll it back"""


def resolve_blood_bank(user, requested=None):
    """
    The stock a user acts on. Admins act on any institution (None means
    every institution); staff only on their own.
    """
    if user.is_admin_role:
        return requested
    if requested is not None and requested.id != user.institution_id:
        check_policy(user, requested, 'inventory.manage')
    return user.institution


def _reservation_result(success, unit_ids=None, reason='', shortfall=0):
    return {
        'success': success,
        'reserved_unit_ids': [str(unit_id) for unit_id in (unit_ids or [])],
        'reason': reason,
        'shortfall': shortfall,
    }


def _log_transaction(transaction_type, unit_ids, blood_type='', blood_request=None, performed_by=None, reason=''):
    return InventoryTransaction.objects.create(
        transaction_type=transaction_type,
        blood_type=blood_type,
        unit_ids=[str(unit_id) for unit_id in unit_ids],
        quantity=len(unit_ids),
        blood_request=blood_request,
        performed_by=performed_by if getattr(performed_by, 'is_authenticated', False) else None,
        reason=reason,
    )


def _mark_reserved(unit_ids, blood_request, now):
    """Conditional update; returns the number of units actually reserved"""
    return BloodUnit.objects.filter(
        id__in=unit_ids,
        status='available',
        expiry_date__gt=now,
        reserved_for_request__isnull=True,
    ).update(
        status='reserved',
        reserved_for_request=blood_request,
        reserved_at=now,
        updated_at=now,
    )


def reserve(blood_type, units_needed, blood_request=None, expiry_preference='oldest_first',
            blood_bank=None, performed_by=None):
    """
    Reserve units_needed units of blood_type for a request.

    Args:
        blood_type: Exact ABO/Rh type of the units
        units_needed: 1-10
        blood_request: BloodRequest the units are earmarked for
        expiry_preference: 'oldest_first' (least wastage) or 'newest_first'
        blood_bank: Restrict to one institution's stock
        performed_by: User recorded on the inventory transaction

    Returns:
        dict: success, reserved_unit_ids, reason, shortfall.
        A shortfall is a normal result with success False, never an exception.
    """
    if not is_valid_blood_type(blood_type):
        raise ValidationError({'blood_type': f"Invalid blood type: {blood_type}"})
    if not 1 <= units_needed <= MAX_UNITS_PER_RESERVATION:
        raise ValidationError({'units_needed': f"Must be between 1 and {MAX_UNITS_PER_RESERVATION}"})
    if expiry_preference not in EXPIRY_PREFERENCES:
        raise ValidationError({'expiry_preference': f"Must be one of {', '.join(EXPIRY_PREFERENCES)}"})

    expiry_order = 'expiry_date' if expiry_preference == 'oldest_first' else '-expiry_date'
    now = timezone.now()

    try:
        with transaction.atomic():
            candidates = BloodUnit.objects.select_for_update().filter(
                blood_type=blood_type,
                status='available',
                expiry_date__gt=now,
                reserved_for_request__isnull=True,
            )
            if blood_bank is not None:
                candidates = candidates.filter(blood_bank=blood_bank)

            unit_ids = list(
                candidates.order_by(expiry_order, '-quality_score', 'id').values_list('id', flat=True)[:units_needed]
            )

            if len(unit_ids) < units_needed:
                shortfall = units_needed - len(unit_ids)
                logger.info(f"Reservation of {units_needed} x {blood_type} failed: short by {shortfall}")
                return _reservation_result(
                    False,
                    reason=f"Insufficient inventory: {len(unit_ids)} of {units_needed} {blood_type} units available",
                    shortfall=shortfall,
                )

            reserved = _mark_reserved(unit_ids, blood_request, now)
            if reserved != len(unit_ids):
                raise ReservationConflict(f"{reserved} of {len(unit_ids)} units could be reserved")

            _log_transaction(
                'reservation',
                unit_ids,
                blood_type=blood_type,
                blood_request=blood_request,
                performed_by=performed_by,
                reason=f"Reserved {expiry_preference}",
            )
    except ReservationConflict as e:
        logger.warning(f"Reservation conflict for {blood_type}: {e}; batch rolled back")
        return _reservation_result(
            False,
            reason='Units were reserved concurrently by another request, please retry',
            shortfall=units_needed,
        )

    logger.info(f"Reserved {len(unit_ids)} x {blood_type} for request {getattr(blood_request, 'pk', None)}")
    return _reservation_result(True, unit_ids)


def _lock_reserved_units(blood_request):
    """Lock a request's reserved units; returns (all ids, ids with a positive test)"""
    units = list(
        BloodUnit.objects.select_for_update()
        .filter(reserved_for_request=blood_request, status='reserved')
        .only('id', 'test_results')
    )
    return [unit.id for unit in units], [unit.id for unit in units if unit.has_positive_test]


def _quarantine(unit_ids, now):
    # Bulk updates skip the quarantine guard in BloodUnit.save()
    BloodUnit.objects.filter(id__in=unit_ids).update(
        status='quarantine', reserved_for_request=None, reserved_at=None, updated_at=now,
    )
    logger.warning(f"Quarantined {len(unit_ids)} reserved units with positive test results")


def release(blood_request, reason='released', performed_by=None):
    """
    Return a request's reserved units to stock. Units that expired while
    reserved go straight to expired and units that tested positive while
    reserved go to quarantine.

    Returns:
        Number of units released
    """
    now = timezone.now()
    with transaction.atomic():
        unit_ids, positive_ids = _lock_reserved_units(blood_request)
        if not unit_ids:
            return 0

        if positive_ids:
            _quarantine(positive_ids, now)
        remaining = BloodUnit.objects.filter(id__in=unit_ids).exclude(id__in=positive_ids)
        remaining.filter(expiry_date__gt=now).update(
            status='available', reserved_for_request=None, reserved_at=None, updated_at=now,
        )
        remaining.filter(expiry_date__lte=now).update(
            status='expired', reserved_for_request=None, reserved_at=None, updated_at=now,
        )
        _log_transaction(
            'release',
            unit_ids,
            blood_type=blood_request.blood_type,
            blood_request=blood_request,
            performed_by=performed_by,
            reason=reason,
        )

    logger.info(f"Released {len(unit_ids)} units from request {blood_request.pk} ({reason})")
    return len(unit_ids)


def mark_used(blood_request, performed_by=None):
    """Consume the units reserved for a completed request"""
    now = timezone.now()
    with transaction.atomic():
        unit_ids, positive_ids = _lock_reserved_units(blood_request)
        if positive_ids:
            _quarantine(positive_ids, now)
        used_ids = [unit_id for unit_id in unit_ids if unit_id not in positive_ids]
        if not used_ids:
            return 0
        BloodUnit.objects.filter(id__in=used_ids).update(status='used', updated_at=now)
        _log_transaction(
            'usage',
            used_ids,
            blood_type=blood_request.blood_type,
            blood_request=blood_request,
            performed_by=performed_by,
            reason='Request completed',
        )
    return len(used_ids)


def process_expired(performed_by=None):
    """
    Expire every available or reserved unit past its expiry date and drop
    its reservation.

    Returns:
        dict with expired_count and expired_unit_ids
    """
    now = timezone.now()
    with transaction.atomic():
        unit_ids = list(
            BloodUnit.objects.select_for_update()
            .filter(expiry_date__lte=now, status__in=['available', 'reserved'])
            .values_list('id', flat=True)
        )
        if unit_ids:
            BloodUnit.objects.filter(id__in=unit_ids).update(
                status='expired', reserved_for_request=None, reserved_at=None, updated_at=now,
            )
            _log_transaction('disposal', unit_ids, performed_by=performed_by, reason='Expired')

    if unit_ids:
        logger.info(f"Expiry sweep: {len(unit_ids)} units expired")
    return {'expired_count': len(unit_ids), 'expired_unit_ids': [str(unit_id) for unit_id in unit_ids]}


def add_units(units, blood_bank, performed_by=None):
    """
    Create blood units from already validated data.

    Returns:
        List of created BloodUnit objects
    """
    created = []
    with transaction.atomic():
        for data in units:
            unit = BloodUnit(blood_bank=blood_bank, **data)
            unit.save()
            created.append(unit)

        by_type = {}
        for unit in created:
            by_type.setdefault(unit.blood_type, []).append(unit.id)
        for blood_type, unit_ids in by_type.items():
            _log_transaction('addition', unit_ids, blood_type=blood_type, performed_by=performed_by,
                             reason=f"Intake at {blood_bank.name}")

    quarantined = sum(1 for unit in created if unit.status == 'quarantine')
    logger.info(f"Added {len(created)} units to {blood_bank.name} ({quarantined} quarantined)")
    return created


def inventory_stats(blood_bank=None):
    """Unit counts by status and blood type, plus expiry and quality figures"""
    units = BloodUnit.objects.all()
    if blood_bank is not None:
        units = units.filter(blood_bank=blood_bank)

    now = timezone.now()
    by_status = {choice: 0 for choice, _ in BloodUnit.STATUS_CHOICES}
    by_status.update({row['status']: row['count'] for row in units.values('status').annotate(count=Count('id'))})

    available = units.filter(status='available', expiry_date__gt=now)
    by_blood_type = {row['blood_type']: row['count'] for row in available.values('blood_type').annotate(count=Count('id'))}

    return {
        'total_units': units.count(),
        'by_status': by_status,
        'available_by_blood_type': by_blood_type,
        'expiring_soon': available.filter(expiry_date__lte=now + timedelta(days=expiring_soon_days())).count(),
        'average_quality': round(units.aggregate(avg=Avg('quality_score'))['avg'] or 0, 1),
    }
