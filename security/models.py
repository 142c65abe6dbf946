# security/models.py
from django.conf import settings
from django.db import models


class SecurityEvent(models.Model):
    EVENT_TYPE_CHOICES = [
        ('login_success', 'Login Success'),
        ('login_failure', 'Login Failure'),
        ('account_locked', 'Account Locked'),
        ('unauthorized_access', 'Unauthorized Access'),
        ('rate_limit_exceeded', 'Rate Limit Exceeded'),
        ('malicious_input_detected', 'Malicious Input Detected'),
        ('suspicious_activity', 'Suspicious Activity'),
        ('data_access', 'Sensitive Data Access'),
        ('notification_sent', 'Notification Sent'),
        ('inventory_change', 'Inventory Change'),
        ('ip_blocked', 'IP Blocked'),
        ('ip_unblocked', 'IP Unblocked'),
    ]

    RISK_LEVEL_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]

    event_type = models.CharField(max_length=40, choices=EVENT_TYPE_CHOICES, db_index=True)
    risk_level = models.CharField(max_length=10, choices=RISK_LEVEL_CHOICES, default='low', db_index=True)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='security_events',
    )
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)
    endpoint = models.CharField(max_length=255, blank=True)
    method = models.CharField(max_length=10, blank=True)
    details = models.JSONField(default=dict, blank=True)

    resolved = models.BooleanField(default=False)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='resolved_security_events',
    )
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"{self.event_type} [{self.risk_level}] @ {self.created_at:%Y-%m-%d %H:%M}"

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['ip_address', '-created_at'], name='security_event_ip_created_idx'),
        ]


class BlockedIP(models.Model):
    ip_address = models.GenericIPAddressField(unique=True)
    reason = models.CharField(max_length=255, blank=True)
    blocked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='blocked_ips',
    )
    # None blocks until an admin unblocks
    expires_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.ip_address} blocked @ {self.created_at:%Y-%m-%d %H:%M}"

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Blocked IP'
        verbose_name_plural = 'Blocked IPs'
