# inventory/tasks.py
from celery import shared_task

from inventory import alerts, reservation


@shared_task
def process_expired_units():
    """Daily sweep: mark expired units and release their reservations"""
    result = reservation.process_expired()
    return f"Expired {result['expired_count']} units"


@shared_task
def check_inventory_alerts():
    """Hourly: raise shortage, expiry and quality alerts"""
    raised = alerts.check_alerts()
    return f"Raised {len(raised)} inventory alerts"
