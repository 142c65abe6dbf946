# notifications/models.py
from django.conf import settings
from django.db import models

CHANNEL_CHOICES = [
    ('push', 'Push'),
    ('sms', 'SMS'),
    ('email', 'Email'),
    ('whatsapp', 'WhatsApp'),
    ('call', 'Voice Call'),
]

CHANNELS = [choice for choice, _ in CHANNEL_CHOICES]


class Notification(models.Model):
    """One delivery of an alert to one recipient over one channel"""
    TYPE_CHOICES = [
        ('blood_request', 'Blood Request'),
        ('emergency', 'Emergency'),
        ('donor_match', 'Donor Match'),
        ('status_update', 'Status Update'),
        ('reminder', 'Reminder'),
        ('system', 'System'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('normal', 'Normal'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('sent', 'Sent'),
        ('failed', 'Failed'),
        ('suppressed', 'Suppressed'),
        ('expired', 'Expired'),
    ]

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sent_notifications'
    )

    notification_type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)
    title = models.CharField(max_length=100)
    message = models.CharField(max_length=500)
    data = models.JSONField(default=dict, blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    channel = models.CharField(max_length=10, choices=CHANNEL_CHOICES)

    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default='pending', db_index=True)
    attempts = models.PositiveSmallIntegerField(default=0)
    last_error = models.CharField(max_length=255, blank=True)

    scheduled_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.notification_type} -> {self.recipient_id} via {self.channel} ({self.status})"

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', '-created_at'], name='notification_recipient_idx'),
            models.Index(fields=['status', 'scheduled_at'], name='notification_queue_idx'),
        ]


class NotificationPreference(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notification_preference'
    )

    push_enabled = models.BooleanField(default=True)
    sms_enabled = models.BooleanField(default=True)
    email_enabled = models.BooleanField(default=True)
    whatsapp_enabled = models.BooleanField(default=False)
    call_enabled = models.BooleanField(default=False)

    emergency_only = models.BooleanField(default=False)
    quiet_hours_start = models.TimeField(null=True, blank=True)
    quiet_hours_end = models.TimeField(null=True, blank=True)

    blood_request_alerts = models.BooleanField(default=True)
    donation_reminders = models.BooleanField(default=True)
    system_updates = models.BooleanField(default=True)

    updated_at = models.DateTimeField(auto_now=True)

    def channel_enabled(self, channel):
        return getattr(self, f"{channel}_enabled", False)

    def __str__(self):
        return f"Preferences for {self.user_id}"
