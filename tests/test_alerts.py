import pytest

from inventory import alerts
from inventory.models import InventoryAlert
from notifications.models import Notification

pytestmark = pytest.mark.django_db


def open_alerts(**filters):
    return InventoryAlert.objects.filter(resolved=False, **filters)


def test_shortage_levels(blood_bank, make_unit):
    for _ in range(4):
        make_unit('A+')
    make_unit('B+')
    for _ in range(6):
        make_unit('O+')

    alerts.check_alerts(blood_bank)

    assert open_alerts(blood_type='A+').get().alert_type == 'low_stock'
    assert open_alerts(blood_type='B+').get().alert_type == 'critical_shortage'
    assert open_alerts(blood_type='B+').get().details == {'current_stock': 1, 'threshold': 2}
    assert not open_alerts(blood_type='O+').exists()


def test_expiry_and_quality_warnings(blood_bank, make_unit, settings):
    settings.BLOOD_INVENTORY = {'LOW_STOCK_UNITS': -1, 'CRITICAL_STOCK_UNITS': -1}
    make_unit('O-', days_to_expiry=3)
    make_unit('O-', days_to_expiry=30)
    make_unit('A-', quality_score=60)
    make_unit('A-', status='quarantine', quality_score=10)

    alerts.check_alerts(blood_bank)

    expiry = open_alerts(alert_type='expiry_warning').get()
    assert expiry.blood_type == 'O-'
    assert expiry.details == {'count': 1, 'days_until_expiry': 7}
    quality = open_alerts(alert_type='quality_issue').get()
    assert quality.details['count'] == 1
    assert quality.severity == 'high'


def test_repeat_check_does_not_duplicate_and_clears_recovered_stock(blood_bank, make_unit):
    for _ in range(3):
        make_unit('O+')

    first = alerts.check_alerts(blood_bank)
    assert alerts.check_alerts(blood_bank) == []
    assert open_alerts().count() == len(first)

    for _ in range(5):
        make_unit('O+')
    alerts.check_alerts(blood_bank)

    cleared = InventoryAlert.objects.get(alert_type='low_stock', blood_type='O+')
    assert cleared.resolved is True
    assert cleared.resolved_by is None
    assert cleared.resolution == 'Condition cleared'


def test_changed_condition_refreshes_open_alert(blood_bank, make_unit):
    make_unit('AB-')
    alerts.check_alerts(blood_bank)
    alert = open_alerts(blood_type='AB-').get()

    make_unit('AB-')
    alerts.check_alerts(blood_bank)

    alert.refresh_from_db()
    assert alert.resolved is False
    assert alert.details['current_stock'] == 2


def test_critical_alerts_notify_inventory_staff(blood_bank, bank_staff, make_user, make_unit):
    make_user('donor')
    for blood_type in ('O-', 'O+', 'A-', 'A+', 'B-', 'B+', 'AB-'):
        for _ in range(10):
            make_unit(blood_type)

    raised = alerts.check_alerts(blood_bank)

    assert [alert.blood_type for alert in raised] == ['AB+']
    notification = Notification.objects.get()
    assert notification.recipient == bank_staff
    assert notification.priority == 'critical'
    assert notification.data['alert_ids'] == [raised[0].id]


def test_hospitals_without_stock_are_not_checked(hospital, blood_bank):
    assert [holder.id for holder in alerts.stock_holders()] == [blood_bank.id]
