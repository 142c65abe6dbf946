# notifications/channels.py
"""
Delivery channel backends

Each channel name maps to a backend class in settings.NOTIFICATION_CHANNELS
(dotted path). Email goes through Django's mail framework; the other
channels default to ConsoleChannel, which logs the delivery the way
Django's console email backend prints mail. A provider integration is a
class with a send(notification) method that raises DeliveryError.
"""
import logging
import smtplib

from django.conf import settings
from django.core.mail import send_mail
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_BACKENDS = {
    'push': 'notifications.channels.ConsoleChannel',
    'sms': 'notifications.channels.PhoneConsoleChannel',
    'email': 'notifications.channels.EmailChannel',
    'whatsapp': 'notifications.channels.PhoneConsoleChannel',
    'call': 'notifications.channels.PhoneConsoleChannel',
}


class DeliveryError(Exception):
    """A single delivery attempt failed"""


class ConsoleChannel:
    def send(self, notification):
        logger.info(
            f"[{notification.channel}] to user {notification.recipient_id} "
            f"({notification.priority}): {notification.title} - {notification.message}"
        )


class PhoneConsoleChannel(ConsoleChannel):
    """Console delivery for phone-based channels; needs a phone number"""
    def send(self, notification):
        if not notification.recipient.phone:
            raise DeliveryError(f"User {notification.recipient_id} has no phone number")
        super().send(notification)


class EmailChannel:
    def send(self, notification):
        recipient = notification.recipient
        if not recipient.email:
            raise DeliveryError(f"User {recipient.id} has no email address")

        subject = notification.title
        if notification.priority in ('high', 'critical'):
            subject = f"URGENT: {subject}"

        try:
            send_mail(
                subject=subject,
                message=notification.message,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[recipient.email],
                fail_silently=False,
            )
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"Email failed: {e}") from e


def get_channel(name):
    backends = {**DEFAULT_CHANNEL_BACKENDS, **getattr(settings, 'NOTIFICATION_CHANNELS', {})}
    if name not in backends:
        raise DeliveryError(f"Unknown channel: {name}")
    return import_string(backends[name])()
