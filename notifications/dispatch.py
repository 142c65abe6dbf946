# notifications/dispatch.py
"""
Notification dispatch

send_alert() fans an alert out to one Notification per recipient per
channel. Recipient preferences are applied first (disabled channels,
emergency-only mode, category toggles, quiet hours); every remaining
delivery is attempted on its own, so one failing channel or recipient
never stops the others.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Count, Q
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from accounts.decorators import check_policy
from notifications.channels import DeliveryError, get_channel
from notifications.models import CHANNELS, Notification, NotificationPreference
from security.events import log_security_event

User = get_user_model()

logger = logging.getLogger(__name__)

MAX_RECIPIENTS = 1000
DEFAULT_MAX_ATTEMPTS = 3

# Notification type -> preference flag that can switch it off
CATEGORY_FLAGS = {
    'blood_request': 'blood_request_alerts',
    'donor_match': 'blood_request_alerts',
    'reminder': 'donation_reminders',
    'status_update': 'system_updates',
    'system': 'system_updates',
}


def max_attempts():
    return getattr(settings, 'NOTIFICATION_MAX_ATTEMPTS', DEFAULT_MAX_ATTEMPTS)


# ============================================
# PREFERENCES
# ============================================
def get_preferences(user):
    """Stored preferences, or unsaved defaults when the user has none"""
    try:
        return user.notification_preference
    except NotificationPreference.DoesNotExist:
        return NotificationPreference(user=user)


def reset_preferences(user):
    NotificationPreference.objects.filter(user=user).delete()
    preference = NotificationPreference.objects.create(user=user)
    logger.info(f"Notification preferences reset for user {user.id}")
    return preference


def in_quiet_hours(start, end, current_time):
    """True when current_time falls in [start, end); windows may wrap midnight"""
    if start is None or end is None or start == end:
        return False
    if start < end:
        return start <= current_time < end
    return current_time >= start or current_time < end


def bypasses_quiet_hours(notification_type, priority):
    return notification_type == 'emergency' or priority == 'critical'


def suppression_reason(preference, notification_type, priority, channel, now=None):
    """
    Why a delivery should be suppressed, or None when it may go out
    """
    if not preference.channel_enabled(channel):
        return 'channel_disabled'

    urgent = bypasses_quiet_hours(notification_type, priority)

    if preference.emergency_only and not urgent:
        return 'emergency_only'

    flag = CATEGORY_FLAGS.get(notification_type)
    if flag and not getattr(preference, flag):
        return 'category_disabled'

    if not urgent:
        current_time = timezone.localtime(now or timezone.now()).time()
        if in_quiet_hours(preference.quiet_hours_start, preference.quiet_hours_end, current_time):
            return 'quiet_hours'

    return None


# ============================================
# DELIVERY
# ============================================
def deliver(notification):
    """
    Attempt one delivery. Failures are recorded on the notification.

    Returns:
        True if sent, False if the attempt failed
    """
    now = timezone.now()
    if notification.expires_at is not None and notification.expires_at <= now:
        notification.status = 'expired'
        notification.save(update_fields=['status'])
        return False

    notification.attempts += 1
    try:
        get_channel(notification.channel).send(notification)
    except DeliveryError as e:
        notification.status = 'failed'
        notification.last_error = str(e)[:255]
        notification.save(update_fields=['status', 'attempts', 'last_error'])
        logger.warning(f"Notification {notification.id} via {notification.channel} failed: {e}")
        return False
    except Exception as e:
        notification.status = 'failed'
        notification.last_error = f"{type(e).__name__}: {e}"[:255]
        notification.save(update_fields=['status', 'attempts', 'last_error'])
        logger.exception(f"Channel {notification.channel} raised while sending notification {notification.id}")
        return False

    notification.status = 'sent'
    notification.sent_at = now
    notification.last_error = ''
    notification.save(update_fields=['status', 'attempts', 'sent_at', 'last_error'])
    return True


def send_alert(sender, notification_type, title, message, recipients, priority='normal', channels=('push',),
               data=None, scheduled_at=None, expires_at=None):
    """
    Send an alert to many users over many channels.

    Args:
        sender: Sending user, or None for system alerts (no permission check)
        notification_type: blood_request | emergency | donor_match | status_update | reminder | system
        recipients: User ids (1-1000)
        channels: Subset of push, sms, email, whatsapp, call
        scheduled_at: Queue for later delivery by process_pending()

    Returns:
        dict with sent, failed, suppressed, scheduled, invalid_recipients and total
    """
    recipient_ids = list(dict.fromkeys(recipients))
    channels = list(dict.fromkeys(channels))

    if not 1 <= len(recipient_ids) <= MAX_RECIPIENTS:
        raise ValidationError({'recipients': f"Between 1 and {MAX_RECIPIENTS} recipients are required"})
    if not channels:
        raise ValidationError({'channels': 'At least one channel is required'})
    unknown = [channel for channel in channels if channel not in CHANNELS]
    if unknown:
        raise ValidationError({'channels': f"Unknown channels: {', '.join(unknown)}"})

    if sender is not None:
        check_policy(sender, notification_type, 'notification.send')

    now = timezone.now()
    deferred = scheduled_at is not None and scheduled_at > now

    users = list(
        User.objects.filter(id__in=recipient_ids, is_active=True).select_related('notification_preference')
    )
    result = {
        'sent': 0,
        'failed': 0,
        'suppressed': 0,
        'scheduled': 0,
        'invalid_recipients': len(recipient_ids) - len(users),
    }

    for user in users:
        preference = get_preferences(user)
        for channel in channels:
            notification = Notification(
                recipient=user,
                sender=sender,
                notification_type=notification_type,
                title=title,
                message=message,
                data=data or {},
                priority=priority,
                channel=channel,
                scheduled_at=scheduled_at,
                expires_at=expires_at,
            )

            reason = suppression_reason(preference, notification_type, priority, channel, now)
            if reason:
                notification.status = 'suppressed'
                notification.last_error = reason
                notification.save()
                result['suppressed'] += 1
                continue

            notification.save()
            if deferred:
                result['scheduled'] += 1
            elif deliver(notification):
                result['sent'] += 1
            else:
                result['failed'] += 1

    result['total'] = result['sent'] + result['failed'] + result['suppressed'] + result['scheduled']

    log_security_event(
        'notification_sent',
        user=sender,
        details={
            'type': notification_type,
            'priority': priority,
            'channels': channels,
            'recipients': len(users),
            'sent': result['sent'],
            'failed': result['failed'],
        },
    )
    logger.info(
        f"Alert '{title}' ({notification_type}/{priority}): sent {result['sent']}, "
        f"failed {result['failed']}, suppressed {result['suppressed']}, scheduled {result['scheduled']}"
    )
    return result


def process_pending(limit=500):
    """
    Deliver due scheduled notifications and retry failed ones that still
    have attempts left. Expired notifications are marked expired.
    """
    now = timezone.now()

    expired = Notification.objects.filter(
        status__in=['pending', 'failed'],
        expires_at__lte=now,
    ).update(status='expired')

    due = (
        Notification.objects.select_related('recipient')
        .filter(
            Q(status='pending', scheduled_at__lte=now)
            | Q(status='pending', scheduled_at__isnull=True)
            | Q(status='failed', attempts__lt=max_attempts())
        )
        .order_by('created_at')[:limit]
    )

    result = {'processed': 0, 'sent': 0, 'failed': 0, 'expired': expired}
    for notification in due:
        result['processed'] += 1
        if deliver(notification):
            result['sent'] += 1
        else:
            result['failed'] += 1

    if result['processed'] or expired:
        logger.info(f"Notification queue: {result}")
    return result


def mark_read(notification):
    if notification.read_at is None:
        notification.read_at = timezone.now()
        notification.save(update_fields=['read_at'])
    return notification


# ============================================
# STATISTICS
# ============================================
def get_statistics(days=7, sender=None):
    since = timezone.now() - timedelta(days=days)
    notifications = Notification.objects.filter(created_at__gte=since)
    if sender is not None:
        notifications = notifications.filter(sender=sender)

    def counts(field):
        return {row[field]: row['count'] for row in notifications.values(field).annotate(count=Count('id'))}

    by_status = counts('status')
    sent = by_status.get('sent', 0)
    failed = by_status.get('failed', 0)

    return {
        'days': days,
        'total': notifications.count(),
        'by_status': by_status,
        'by_type': counts('notification_type'),
        'by_priority': counts('priority'),
        'by_channel': counts('channel'),
        'success_rate': round(sent / (sent + failed), 3) if sent + failed else None,
    }
