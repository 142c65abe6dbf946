# inventory/alerts.py
"""
Inventory alerts

check_alerts() looks at every institution holding stock for shortages,
units close to expiry and units below the quality threshold. An open
alert for the same condition is refreshed rather than duplicated, and
open alerts whose condition has cleared are resolved automatically.
New critical alerts are pushed to the institution's inventory staff.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Count, Q
from django.utils import timezone

from accounts.policy import INVENTORY_ROLES
from algorithms.blood_compatibility import BLOOD_TYPES
from institutions.models import Institution
from inventory.models import BloodUnit, InventoryAlert
from inventory.reservation import expiring_soon_days
from notifications.dispatch import send_alert

logger = logging.getLogger(__name__)

User = get_user_model()

LOW_STOCK_UNITS = 5
CRITICAL_STOCK_UNITS = 2
QUALITY_THRESHOLD = 80


def alert_thresholds():
    config = getattr(settings, 'BLOOD_INVENTORY', {})
    return {
        'low_stock': config.get('LOW_STOCK_UNITS', LOW_STOCK_UNITS),
        'critical_stock': config.get('CRITICAL_STOCK_UNITS', CRITICAL_STOCK_UNITS),
        'expiring_soon_days': expiring_soon_days(),
        'quality_threshold': config.get('QUALITY_THRESHOLD', QUALITY_THRESHOLD),
    }


def stock_holders(blood_bank=None):
    """Blood banks plus any other institution that holds units"""
    if blood_bank is not None:
        return [blood_bank]
    return list(
        Institution.objects.filter(Q(institution_type='blood_bank') | Q(blood_units__isnull=False)).distinct()
    )


def _count_by_type(units):
    return {row['blood_type']: row['count'] for row in units.values('blood_type').annotate(count=Count('id'))}


def current_conditions(blood_bank, thresholds, now=None):
    """
    Alert conditions that hold right now for one institution.

    Returns:
        dict keyed by (alert_type, blood_type) with severity, message and details
    """
    now = now or timezone.now()
    available = BloodUnit.objects.filter(blood_bank=blood_bank, status='available', expiry_date__gt=now)
    conditions = {}

    stock = _count_by_type(available)
    for blood_type in BLOOD_TYPES:
        count = stock.get(blood_type, 0)
        if count <= thresholds['critical_stock']:
            conditions[('critical_shortage', blood_type)] = {
                'severity': 'critical',
                'message': f"Critical shortage: only {count} {blood_type} units remaining",
                'details': {'current_stock': count, 'threshold': thresholds['critical_stock']},
            }
        elif count <= thresholds['low_stock']:
            conditions[('low_stock', blood_type)] = {
                'severity': 'high',
                'message': f"Low stock warning: {count} {blood_type} units remaining",
                'details': {'current_stock': count, 'threshold': thresholds['low_stock']},
            }

    days = thresholds['expiring_soon_days']
    expiring = _count_by_type(available.filter(expiry_date__lte=now + timedelta(days=days)))
    for blood_type, count in expiring.items():
        conditions[('expiry_warning', blood_type)] = {
            'severity': 'medium',
            'message': f"{count} {blood_type} units expiring within {days} days",
            'details': {'count': count, 'days_until_expiry': days},
        }

    low_quality = available.filter(quality_score__lt=thresholds['quality_threshold']).count()
    if low_quality:
        conditions[('quality_issue', '')] = {
            'severity': 'high',
            'message': f"{low_quality} blood units below quality threshold",
            'details': {'count': low_quality, 'threshold': thresholds['quality_threshold']},
        }

    return conditions


def check_alerts(blood_bank=None):
    """
    Raise, refresh and clear inventory alerts.

    Args:
        blood_bank: Limit the check to one institution

    Returns:
        List of newly raised InventoryAlert objects
    """
    thresholds = alert_thresholds()
    now = timezone.now()
    raised = []
    cleared = 0

    for holder in stock_holders(blood_bank):
        open_alerts = {
            (alert.alert_type, alert.blood_type): alert
            for alert in InventoryAlert.objects.filter(blood_bank=holder, resolved=False)
        }

        for (alert_type, blood_type), condition in current_conditions(holder, thresholds, now).items():
            alert = open_alerts.pop((alert_type, blood_type), None)
            if alert is None:
                raised.append(InventoryAlert.objects.create(
                    blood_bank=holder,
                    alert_type=alert_type,
                    blood_type=blood_type,
                    **condition,
                ))
            elif alert.details != condition['details']:
                alert.severity = condition['severity']
                alert.message = condition['message']
                alert.details = condition['details']
                alert.save(update_fields=['severity', 'message', 'details', 'updated_at'])

        for alert in open_alerts.values():
            resolve_alert(alert, None, 'Condition cleared')
            cleared += 1

    if raised or cleared:
        logger.info(f"Inventory alert check: {len(raised)} raised, {cleared} cleared")

    notify_critical([alert for alert in raised if alert.severity == 'critical'])
    return raised


def notify_critical(alerts):
    """Push critical alerts to the inventory staff of the affected institution"""
    by_holder = {}
    for alert in alerts:
        by_holder.setdefault(alert.blood_bank_id, []).append(alert)

    for blood_bank_id, holder_alerts in by_holder.items():
        staff = list(
            User.objects.filter(institution_id=blood_bank_id, role__in=INVENTORY_ROLES, is_active=True)
            .values_list('id', flat=True)
        )
        if not staff:
            logger.warning(f"No inventory staff to notify about {len(holder_alerts)} critical alerts at {blood_bank_id}")
            continue

        send_alert(
            None,
            'system',
            'Critical inventory alert',
            '; '.join(alert.message for alert in holder_alerts)[:500],
            staff,
            priority='critical',
            data={'alert_ids': [alert.id for alert in holder_alerts], 'blood_bank': blood_bank_id},
        )


def resolve_alert(alert, resolved_by, resolution=''):
    alert.resolved = True
    alert.resolved_at = timezone.now()
    alert.resolved_by = resolved_by if getattr(resolved_by, 'is_authenticated', False) else None
    alert.resolution = resolution[:500]
    alert.save(update_fields=['resolved', 'resolved_at', 'resolved_by', 'resolution', 'updated_at'])
    return alert
