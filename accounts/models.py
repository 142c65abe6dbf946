from django.contrib.auth.models import AbstractUser
from django.db import models

# Lock the account after this many consecutive failed logins
MAX_FAILED_ATTEMPTS = 5


class CustomUser(AbstractUser):
    ROLE_CHOICES = (
        ('donor', 'Donor'),
        ('hospital_staff', 'Hospital Staff'),
        ('blood_bank_staff', 'Blood Bank Staff'),
        ('emergency_responder', 'Emergency Responder'),
        ('admin', 'Admin'),
        ('super_admin', 'Super Admin'),
    )

    STAFF_ROLES = ('hospital_staff', 'blood_bank_staff', 'emergency_responder')
    ADMIN_ROLES = ('admin', 'super_admin')

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='donor')
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True)
    institution = models.ForeignKey(
        'institutions.Institution',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='staff',
    )

    failed_attempts = models.PositiveIntegerField(default=0)
    is_locked = models.BooleanField(default=False)

    def __str__(self):
        return f"{self.username} ({self.role})"

    @property
    def is_admin_role(self):
        return self.role in self.ADMIN_ROLES or self.is_superuser

    @property
    def is_institution_staff(self):
        return self.role in self.STAFF_ROLES and self.institution_id is not None

    def register_failed_login(self):
        """Count a failed login and lock the account once the limit is hit"""
        self.failed_attempts += 1
        if self.failed_attempts >= MAX_FAILED_ATTEMPTS:
            self.is_locked = True
        self.save(update_fields=['failed_attempts', 'is_locked'])
        return self.is_locked

    def reset_failed_logins(self):
        if self.failed_attempts:
            self.failed_attempts = 0
            self.save(update_fields=['failed_attempts'])
