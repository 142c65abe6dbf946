from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from blood_requests.models import BloodRequest
from donors.models import DonorProfile
from institutions.models import Institution
from inventory.models import BloodUnit

User = get_user_model()

NAIROBI = (-1.2921, 36.8219)
PASSWORD = 'Str0ng-pass-2024'


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def hospital(db):
    return Institution.objects.create(
        name='Kenyatta National Hospital',
        institution_type='hospital',
        latitude=NAIROBI[0],
        longitude=NAIROBI[1],
        address='Hospital Rd, Nairobi',
    )


@pytest.fixture
def blood_bank(db):
    return Institution.objects.create(
        name='Nairobi Regional Blood Bank',
        institution_type='blood_bank',
        latitude=NAIROBI[0] + 0.01,
        longitude=NAIROBI[1] + 0.01,
        address='Upper Hill, Nairobi',
        phone='0700000001',
        reliability=0.9,
    )


@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def _make_user(role='donor', institution=None, username=None, **extra):
        counter['n'] += 1
        username = username or f"{role}{counter['n']}"
        return User.objects.create_user(
            username=username,
            email=f"{username}@example.com",
            password=PASSWORD,
            role=role,
            institution=institution,
            **extra,
        )
    return _make_user


@pytest.fixture
def make_donor(make_user):
    def _make_donor(blood_type='O+', latitude=NAIROBI[0], longitude=NAIROBI[1], user=None, **extra):
        user = user or make_user('donor')
        fields = {
            'full_name': f"Donor {user.username}",
            'phone': '0712345678',
            'blood_type': blood_type,
            'latitude': latitude,
            'longitude': longitude,
            'location_sharing': True,
            'rating': 4.0,
        }
        fields.update(extra)
        return DonorProfile.objects.create(user=user, **fields)
    return _make_donor


@pytest.fixture
def admin_user(make_user):
    return make_user('admin', username='admin')


@pytest.fixture
def hospital_staff(make_user, hospital):
    return make_user('hospital_staff', institution=hospital, username='hstaff')


@pytest.fixture
def bank_staff(make_user, blood_bank):
    return make_user('blood_bank_staff', institution=blood_bank, username='bstaff')


@pytest.fixture
def donor(make_donor):
    return make_donor('O+')


@pytest.fixture
def make_request(db):
    def _make_request(requester=None, institution=None, **extra):
        fields = {
            'patient_name': 'Jane Wanjiku',
            'hospital_name': 'Kenyatta National Hospital',
            'contact_name': 'Dr. Otieno',
            'contact_phone': '0722000000',
            'blood_type': 'O+',
            'units_needed': 1,
            'urgency': 'urgent',
            'latitude': NAIROBI[0],
            'longitude': NAIROBI[1],
            'address': 'Hospital Rd, Nairobi',
        }
        fields.update(extra)
        return BloodRequest.objects.create(requester=requester, institution=institution, **fields)
    return _make_request


@pytest.fixture
def make_unit(blood_bank):
    def _make_unit(blood_type='O+', status='available', days_to_expiry=20, bank=None, **extra):
        now = timezone.now()
        return BloodUnit.objects.create(
            blood_bank=bank or blood_bank,
            blood_type=blood_type,
            status=status,
            collection_date=now - timedelta(days=5),
            expiry_date=now + timedelta(days=days_to_expiry),
            **extra,
        )
    return _make_unit


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def _client_for(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client_for
