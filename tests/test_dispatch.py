from datetime import datetime, time, timedelta, timezone as dt_timezone

import pytest
from django.core import mail
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from notifications import dispatch
from notifications.channels import DeliveryError, get_channel
from notifications.models import Notification, NotificationPreference
from security.models import SecurityEvent

pytestmark = pytest.mark.django_db


class FailingChannel:
    def send(self, notification):
        raise DeliveryError('provider unavailable')


class BrokenChannel:
    def send(self, notification):
        raise RuntimeError('socket closed')


def at(hour, minute=0):
    return datetime(2024, 6, 1, hour, minute, tzinfo=dt_timezone.utc)


# ============================================
# QUIET HOURS
# ============================================
@pytest.mark.parametrize('current, expected', [
    (time(23, 30), True),
    (time(2, 0), True),
    (time(7, 0), False),
    (time(12, 0), False),
    (time(22, 0), True),
])
def test_overnight_quiet_hours(current, expected):
    assert dispatch.in_quiet_hours(time(22, 0), time(7, 0), current) is expected


def test_daytime_quiet_hours():
    assert dispatch.in_quiet_hours(time(13, 0), time(14, 0), time(13, 30))
    assert not dispatch.in_quiet_hours(time(13, 0), time(14, 0), time(14, 0))
    assert not dispatch.in_quiet_hours(None, time(14, 0), time(13, 30))


def test_quiet_hours_suppress_normal_but_not_emergency(make_user):
    preference = NotificationPreference(
        user=make_user(), quiet_hours_start=time(22, 0), quiet_hours_end=time(6, 0)
    )

    assert dispatch.suppression_reason(preference, 'blood_request', 'normal', 'push', now=at(23)) == 'quiet_hours'
    assert dispatch.suppression_reason(preference, 'emergency', 'normal', 'push', now=at(23)) is None
    assert dispatch.suppression_reason(preference, 'blood_request', 'critical', 'push', now=at(23)) is None
    assert dispatch.suppression_reason(preference, 'blood_request', 'normal', 'push', now=at(12)) is None


def test_other_suppression_reasons(make_user):
    user = make_user()

    assert dispatch.suppression_reason(NotificationPreference(user=user), 'system', 'normal', 'call') == 'channel_disabled'
    assert dispatch.suppression_reason(
        NotificationPreference(user=user, emergency_only=True), 'reminder', 'normal', 'push'
    ) == 'emergency_only'
    assert dispatch.suppression_reason(
        NotificationPreference(user=user, donation_reminders=False), 'reminder', 'normal', 'push'
    ) == 'category_disabled'


# ============================================
# SEND
# ============================================
def test_partial_failure_does_not_stop_other_deliveries(make_user, admin_user):
    with_phone = make_user(phone='0711111111')
    without_phone = make_user()

    result = dispatch.send_alert(
        admin_user, 'system', 'Maintenance', 'Scheduled downtime tonight',
        [with_phone.id, without_phone.id], channels=['push', 'sms'],
    )

    assert result == {'sent': 3, 'failed': 1, 'suppressed': 0, 'scheduled': 0, 'invalid_recipients': 0, 'total': 4}
    failed = Notification.objects.get(status='failed')
    assert failed.recipient == without_phone
    assert failed.channel == 'sms'
    assert 'phone' in failed.last_error


def test_failing_provider_is_recorded(make_user, admin_user, settings):
    settings.NOTIFICATION_CHANNELS = {'push': 'tests.test_dispatch.FailingChannel'}
    recipient = make_user()

    result = dispatch.send_alert(admin_user, 'system', 'Hello', 'World', [recipient.id], channels=['push', 'email'])

    assert result['failed'] == 1
    assert result['sent'] == 1
    assert len(mail.outbox) == 1
    assert Notification.objects.get(channel='push').last_error == 'provider unavailable'


def test_unexpected_channel_error_does_not_abort_fan_out(make_user, admin_user, settings):
    settings.NOTIFICATION_CHANNELS = {'push': 'tests.test_dispatch.BrokenChannel'}
    first = make_user()
    second = make_user()

    result = dispatch.send_alert(admin_user, 'system', 'Hello', 'World', [first.id, second.id], channels=['push', 'email'])

    assert result['failed'] == 2
    assert result['sent'] == 2
    assert len(mail.outbox) == 2
    assert Notification.objects.filter(channel='push', status='failed').count() == 2
    assert Notification.objects.filter(channel='push').first().last_error == 'RuntimeError: socket closed'


def test_preferences_and_unknown_recipients(make_user, admin_user):
    muted = make_user()
    NotificationPreference.objects.create(user=muted, push_enabled=False)

    result = dispatch.send_alert(admin_user, 'system', 'Hi', 'There', [muted.id, 999999], channels=['push'])

    assert result['suppressed'] == 1
    assert result['invalid_recipients'] == 1
    assert Notification.objects.get().last_error == 'channel_disabled'


def test_staff_may_only_send_request_alerts(hospital_staff, make_user):
    recipient = make_user()

    result = dispatch.send_alert(hospital_staff, 'blood_request', 'O+ needed', 'Please help', [recipient.id])
    assert result['sent'] == 1

    with pytest.raises(PermissionDenied):
        dispatch.send_alert(hospital_staff, 'system', 'Update', 'Text', [recipient.id])


def test_donors_cannot_send(donor, make_user):
    with pytest.raises(PermissionDenied):
        dispatch.send_alert(donor.user, 'blood_request', 'Help', 'Text', [make_user().id])


@pytest.mark.parametrize('kwargs', [
    {'recipients': []},
    {'recipients': [1], 'channels': []},
    {'recipients': [1], 'channels': ['pigeon']},
])
def test_send_validation(admin_user, kwargs):
    with pytest.raises(ValidationError):
        dispatch.send_alert(admin_user, 'system', 'T', 'M', **kwargs)


def test_send_logs_security_event(admin_user, make_user):
    dispatch.send_alert(admin_user, 'system', 'T', 'M', [make_user().id])

    event = SecurityEvent.objects.get(event_type='notification_sent')
    assert event.user == admin_user
    assert event.details['sent'] == 1


# ============================================
# QUEUE
# ============================================
def test_scheduled_alert_is_delivered_by_queue(admin_user, make_user):
    recipient = make_user()
    send_at = timezone.now() + timedelta(hours=1)

    result = dispatch.send_alert(admin_user, 'reminder', 'Donate', 'You are eligible again', [recipient.id],
                                 scheduled_at=send_at)
    assert result['scheduled'] == 1
    assert dispatch.process_pending()['processed'] == 0

    Notification.objects.update(scheduled_at=timezone.now() - timedelta(minutes=1))
    assert dispatch.process_pending()['sent'] == 1
    assert Notification.objects.get().status == 'sent'


def test_failed_notifications_retry_until_max_attempts(admin_user, make_user, settings):
    settings.NOTIFICATION_MAX_ATTEMPTS = 2
    recipient = make_user()
    dispatch.send_alert(admin_user, 'system', 'T', 'M', [recipient.id], channels=['sms'])

    assert dispatch.process_pending()['failed'] == 1
    assert dispatch.process_pending()['processed'] == 0
    assert Notification.objects.get().attempts == 2


def test_expired_notifications_are_not_sent(admin_user, make_user):
    recipient = make_user()
    dispatch.send_alert(admin_user, 'system', 'T', 'M', [recipient.id],
                        scheduled_at=timezone.now() + timedelta(minutes=5),
                        expires_at=timezone.now() + timedelta(minutes=10))
    Notification.objects.update(expires_at=timezone.now() - timedelta(minutes=1))

    assert dispatch.process_pending()['expired'] == 1
    assert Notification.objects.get().status == 'expired'


def test_statistics(admin_user, make_user):
    dispatch.send_alert(admin_user, 'system', 'T', 'M', [make_user(phone='0700000000').id, make_user().id],
                        channels=['sms'])

    stats = dispatch.get_statistics(days=7)

    assert stats['total'] == 2
    assert stats['by_channel'] == {'sms': 2}
    assert stats['success_rate'] == 0.5


def test_get_channel_unknown():
    with pytest.raises(DeliveryError):
        get_channel('pigeon')
