# inventory/models.py
import uuid
from datetime import timedelta

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from algorithms.blood_compatibility import BLOOD_TYPE_CHOICES

# Red cell concentrate shelf life
DEFAULT_SHELF_LIFE_DAYS = 42

TEST_NAMES = ('hiv', 'hepatitis_b', 'hepatitis_c', 'syphilis')
TEST_RESULT_CHOICES = ('negative', 'positive', 'pending')


def default_test_results():
    return {name: 'pending' for name in TEST_NAMES}


class BloodUnit(models.Model):
    STATUS_CHOICES = [
        ('testing', 'Testing'),
        ('quarantine', 'Quarantine'),
        ('available', 'Available'),
        ('reserved', 'Reserved'),
        ('used', 'Used'),
        ('expired', 'Expired'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    blood_bank = models.ForeignKey(
        'institutions.Institution',
        on_delete=models.CASCADE,
        related_name='blood_units'
    )
    donor = models.ForeignKey(
        'donors.DonorProfile',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='blood_units'
    )

    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, db_index=True)
    volume_ml = models.PositiveIntegerField(
        default=450,
        validators=[MinValueValidator(50), MaxValueValidator(500)]
    )
    collection_date = models.DateTimeField(default=timezone.now)
    expiry_date = models.DateTimeField(db_index=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default='testing', db_index=True)

    storage_location = models.CharField(max_length=100, blank=True)
    batch_number = models.CharField(max_length=50, blank=True)
    quality_score = models.PositiveSmallIntegerField(
        default=85,
        validators=[MaxValueValidator(100)]
    )
    test_results = models.JSONField(default=default_test_results)

    reserved_for_request = models.ForeignKey(
        'blood_requests.BloodRequest',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reserved_units'
    )
    reserved_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def has_positive_test(self):
        return any(result == 'positive' for result in (self.test_results or {}).values())

    @property
    def is_expired(self):
        return self.expiry_date <= timezone.now()

    def save(self, *args, **kwargs):
        if self.expiry_date is None:
            shelf_life = getattr(settings, 'BLOOD_INVENTORY', {}).get('SHELF_LIFE_DAYS', DEFAULT_SHELF_LIFE_DAYS)
            self.expiry_date = self.collection_date + timedelta(days=shelf_life)
        # A unit that tested positive is never released for use
        if self.has_positive_test and self.status in ('available', 'reserved'):
            self.status = 'quarantine'
            self.reserved_for_request = None
            self.reserved_at = None
            update_fields = kwargs.get('update_fields')
            if update_fields is not None:
                kwargs['update_fields'] = set(update_fields) | {'status', 'reserved_for_request', 'reserved_at'}
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.blood_type} unit {str(self.id)[:8]} ({self.status})"

    class Meta:
        ordering = ['expiry_date']
        indexes = [
            models.Index(fields=['blood_type', 'status', 'expiry_date'], name='unit_type_status_expiry_idx'),
        ]


class InventoryTransaction(models.Model):
    TYPE_CHOICES = [
        ('addition', 'Addition'),
        ('reservation', 'Reservation'),
        ('release', 'Release'),
        ('usage', 'Usage'),
        ('disposal', 'Disposal'),
    ]

    transaction_type = models.CharField(max_length=12, choices=TYPE_CHOICES, db_index=True)
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, blank=True)
    unit_ids = models.JSONField(default=list)
    quantity = models.PositiveIntegerField(default=0)
    blood_request = models.ForeignKey(
        'blood_requests.BloodRequest',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='inventory_transactions'
    )
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True
    )
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.transaction_type} x{self.quantity} {self.blood_type}"

    class Meta:
        ordering = ['-created_at']


class InventoryAlert(models.Model):
    TYPE_CHOICES = [
        ('low_stock', 'Low Stock'),
        ('critical_shortage', 'Critical Shortage'),
        ('expiry_warning', 'Expiry Warning'),
        ('quality_issue', 'Quality Issue'),
    ]

    SEVERITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]

    alert_type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)
    severity = models.CharField(max_length=10, choices=SEVERITY_CHOICES, default='medium')
    blood_bank = models.ForeignKey(
        'institutions.Institution',
        on_delete=models.CASCADE,
        related_name='inventory_alerts'
    )
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, blank=True)
    message = models.CharField(max_length=255)
    details = models.JSONField(default=dict, blank=True)

    resolved = models.BooleanField(default=False, db_index=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='resolved_inventory_alerts'
    )
    resolution = models.CharField(max_length=500, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.alert_type} [{self.severity}] {self.blood_type or 'all'} at {self.blood_bank_id}"

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['blood_bank', 'alert_type', 'resolved'], name='inventory_alert_open_idx'),
        ]
