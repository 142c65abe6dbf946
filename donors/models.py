from datetime import date

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from algorithms.blood_compatibility import BLOOD_TYPE_CHOICES

# Minimum days between two whole-blood donations
DONATION_COOLDOWN_DAYS = 90


# ---------------------------
# Donor Profile
# ---------------------------
class DonorProfile(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='donor_profile'
    )

    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, db_index=True)
    blood_type = models.CharField(max_length=3, choices=BLOOD_TYPE_CHOICES, db_index=True)
    date_of_birth = models.DateField(null=True, blank=True)
    address = models.TextField(blank=True)

    # Geolocation, only used for matching when location_sharing is on
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    location_sharing = models.BooleanField(default=False)

    is_available = models.BooleanField(default=True)
    last_donation_date = models.DateField(null=True, blank=True)

    # Ranking statistics
    successful_donations = models.PositiveIntegerField(default=0)
    total_responses = models.PositiveIntegerField(default=0)
    response_rate = models.FloatField(
        default=0.5,
        validators=[MinValueValidator(0.0), MaxValueValidator(1.0)]
    )
    avg_response_minutes = models.FloatField(null=True, blank=True)
    rating = models.FloatField(
        default=3.0,
        validators=[MinValueValidator(0.0), MaxValueValidator(5.0)]
    )
    is_verified = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def can_donate(self) -> bool:
        """Donors can donate every 90 days"""
        if not self.last_donation_date:
            return True
        return (date.today() - self.last_donation_date).days >= DONATION_COOLDOWN_DAYS

    @property
    def next_eligible_date(self):
        if not self.last_donation_date:
            return None
        return date.fromordinal(self.last_donation_date.toordinal() + DONATION_COOLDOWN_DAYS)

    def __str__(self):
        return f"{self.full_name} ({self.blood_type})"

    class Meta:
        verbose_name = "Donor Profile"
        verbose_name_plural = "Donor Profiles"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['blood_type', 'is_available'], name='donor_type_available_idx'),
        ]
