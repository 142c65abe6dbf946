# institutions/models.py
from django.db import models


class Institution(models.Model):
    TYPE_CHOICES = [
        ('hospital', 'Hospital'),
        ('blood_bank', 'Blood Bank'),
        ('clinic', 'Clinic'),
    ]

    name = models.CharField(max_length=200)
    institution_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='hospital')
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)

    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    license_number = models.CharField(max_length=100, blank=True)
    is_verified = models.BooleanField(default=False)
    # Share of fulfilled inventory requests, used when ranking blood banks
    reliability = models.FloatField(default=0.0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.get_institution_type_display()})"

    @property
    def is_blood_bank(self):
        return self.institution_type == 'blood_bank'

    class Meta:
        ordering = ['name']
        verbose_name = 'Institution'
        verbose_name_plural = 'Institutions'
