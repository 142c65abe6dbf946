# blood_requests/models.py
import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from algorithms.blood_compatibility import BLOOD_TYPE_CHOICES


class BloodRequest(models.Model):
    URGENCY_CHOICES = [
        ('normal', 'Normal'),
        ('urgent', 'Urgent'),
        ('critical', 'Critical'),
        ('emergency', 'Emergency'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('matched', 'Matched'),
        ('partially_fulfilled', 'Partially Fulfilled'),
        ('completed', 'Completed'),
        ('expired', 'Expired'),
        ('cancelled', 'Cancelled'),
    ]

    TERMINAL_STATUSES = ('completed', 'expired', 'cancelled')

    REQUEST_TYPE_CHOICES = [
        ('patient', 'Patient'),
        ('emergency', 'Emergency'),
        ('scheduled', 'Scheduled Surgery'),
        ('stock', 'Stock Replenishment'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Patient / contact
    patient_name = models.CharField(max_length=200)
    patient_age = models.PositiveIntegerField(null=True, blank=True, validators=[MaxValueValidator(120)])
    hospital_name = models.CharField(max_length=200)
    contact_name = models.CharField(max_length=200)
    contact_phone = models.CharField(max_length=20)
    contact_email = models.EmailField(blank=True)
    medical_condition = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, db_index=True)
    units_needed = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(10)]
    )
    urgency = models.CharField(max_length=10, choices=URGENCY_CHOICES, default='normal', db_index=True)
    request_type = models.CharField(max_length=20, choices=REQUEST_TYPE_CHOICES, default='patient')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)

    # Location
    latitude = models.FloatField()
    longitude = models.FloatField()
    address = models.TextField()

    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='blood_requests'
    )
    institution = models.ForeignKey(
        'institutions.Institution',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='blood_requests'
    )

    required_by = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.hospital_name} - {self.blood_type} x{self.units_needed} ({self.urgency})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def response_summary(self):
        counts = {'accept': 0, 'decline': 0, 'maybe': 0}
        for row in self.responses.values('response_type').annotate(count=models.Count('id')):
            counts[row['response_type']] = row['count']
        return {
            'total': sum(counts.values()),
            'accepted': counts['accept'],
            'declined': counts['decline'],
            'maybe': counts['maybe'],
        }

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Blood Request'
        verbose_name_plural = 'Blood Requests'
        constraints = [
            models.CheckConstraint(
                condition=models.Q(units_needed__gte=1),
                name='blood_request_units_needed_gte_1',
            ),
        ]


class DonorResponse(models.Model):
    RESPONSE_TYPE_CHOICES = [
        ('accept', 'Accept'),
        ('decline', 'Decline'),
        ('maybe', 'Maybe'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
    ]

    blood_request = models.ForeignKey(BloodRequest, on_delete=models.CASCADE, related_name='responses')
    donor = models.ForeignKey('donors.DonorProfile', on_delete=models.CASCADE, related_name='responses')

    response_type = models.CharField(max_length=10, choices=RESPONSE_TYPE_CHOICES)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending')
    eta_minutes = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(5), MaxValueValidator(480)]
    )
    current_latitude = models.FloatField(null=True, blank=True)
    current_longitude = models.FloatField(null=True, blank=True)
    notes = models.TextField(blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.donor.full_name} -> {self.response_type}"

    class Meta:
        ordering = ['-responded_at']
        constraints = [
            models.UniqueConstraint(fields=['blood_request', 'donor'], name='one_response_per_donor'),
        ]


class RequestStatusHistory(models.Model):
    """Append-only audit trail of status transitions"""
    blood_request = models.ForeignKey(BloodRequest, on_delete=models.CASCADE, related_name='status_history')
    previous_status = models.CharField(max_length=20, choices=BloodRequest.STATUS_CHOICES)
    new_status = models.CharField(max_length=20, choices=BloodRequest.STATUS_CHOICES)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='status_changes'
    )
    note = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Status history entries are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Status history entries are immutable")

    def __str__(self):
        return f"{self.blood_request_id}: {self.previous_status} -> {self.new_status}"

    class Meta:
        ordering = ['created_at', 'id']
        verbose_name_plural = 'Request status history'
