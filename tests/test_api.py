import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from blood_requests.models import BloodRequest, DonorResponse
from inventory import reservation
from inventory.models import BloodUnit
from security.models import SecurityEvent

from .conftest import NAIROBI, PASSWORD

pytestmark = pytest.mark.django_db


def request_payload(**overrides):
    payload = {
        'patient_name': 'Achieng Odhiambo',
        'hospital_name': 'Kenyatta National Hospital',
        'contact_name': 'Dr. Mwangi',
        'contact_phone': '0722123456',
        'blood_type': 'O+',
        'units_needed': 2,
        'urgency_level': 'critical',
        'latitude': NAIROBI[0],
        'longitude': NAIROBI[1],
        'address': 'Hospital Rd, Upper Hill, Nairobi',
    }
    payload.update(overrides)
    return payload


# ============================================
# ENVELOPE AND STATUS CODES
# ============================================
def test_health_is_enveloped(api_client):
    response = api_client.get('/api/health/')

    body = response.json()
    assert response.status_code == 200
    assert body['success'] is True
    assert body['data']['status'] == 'healthy'
    assert set(body['metadata']) == {'timestamp', 'version'}


def test_unauthenticated_is_401(api_client):
    response = api_client.get('/api/blood-requests/')

    body = response.json()
    assert response.status_code == 401
    assert body['success'] is False
    assert body['error']['type'] == 'authentication_required'
    assert 'metadata' in body


def test_validation_error_is_400_with_details(client_for, hospital_staff):
    response = client_for(hospital_staff).post('/api/blood-requests/', request_payload(units_needed=0, blood_type='X'))

    body = response.json()
    assert response.status_code == 400
    assert body['error']['type'] == 'validation_error'
    assert {'units_needed', 'blood_type'} <= set(body['error']['details'])


def test_forbidden_is_403_and_logged(client_for, make_request, donor):
    blood_request = make_request()

    response = client_for(donor.user).get(f'/api/blood-requests/{blood_request.pk}/')

    assert response.status_code == 403
    assert response.json()['error'] == {'type': 'permission_denied', 'message': 'Access denied', 'details': None}
    assert SecurityEvent.objects.filter(event_type='unauthorized_access', user=donor.user).exists()


def test_missing_request_is_404(client_for, admin_user):
    response = client_for(admin_user).get(f'/api/blood-requests/{uuid.uuid4()}/')

    assert response.status_code == 404
    assert response.json()['error']['type'] == 'not_found'


# ============================================
# AUTH
# ============================================
def test_register_and_login(api_client):
    response = api_client.post('/api/auth/register/', {
        'username': 'wanjiru',
        'email': 'Wanjiru@Example.com',
        'password': PASSWORD,
        'full_name': 'Wanjiru Kamau',
        'phone': '0711222333',
        'blood_type': 'A-',
        'latitude': NAIROBI[0],
        'longitude': NAIROBI[1],
        'location_sharing': True,
    })
    assert response.status_code == 201
    assert response.data['user']['email'] == 'wanjiru@example.com'

    login = api_client.post('/api/auth/login/', {'username': 'wanjiru@example.com', 'password': PASSWORD})
    assert login.status_code == 200
    access = login.data['tokens']['access']

    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
    me = api_client.get('/api/donors/me/')
    assert me.status_code == 200
    assert me.data['blood_type'] == 'A-'


def test_account_locks_after_five_failures(api_client, make_user):
    user = make_user(username='kiprop')

    for _ in range(5):
        response = api_client.post('/api/auth/login/', {'username': 'kiprop', 'password': 'wrong-password'})
        assert response.status_code == 401

    user.refresh_from_db()
    assert user.is_locked

    response = api_client.post('/api/auth/login/', {'username': 'kiprop', 'password': PASSWORD})
    assert response.status_code == 401
    assert SecurityEvent.objects.filter(event_type='account_locked', user=user).count() == 2


# ============================================
# BLOOD REQUESTS
# ============================================
def test_create_request_matches_and_reserves(client_for, hospital_staff, hospital, make_donor, make_unit):
    make_donor('O+')
    make_donor('O-', latitude=NAIROBI[0] + 0.05)
    make_donor('A+')
    make_unit('O+', bank=hospital)
    make_unit('O+', bank=hospital)
    make_unit('O+')

    response = client_for(hospital_staff).post(
        '/api/blood-requests/', request_payload(reserve_inventory=True)
    )

    assert response.status_code == 201
    data = response.data
    assert data['matches_found'] == 2
    assert data['request']['urgency'] == 'critical'
    assert data['request']['institution'] == hospital.id
    assert data['reservation']['success'] is True
    assert len(data['reservation']['reserved_unit_ids']) == 2
    assert BloodUnit.objects.filter(status='reserved', blood_bank=hospital).count() == 2
    assert BloodUnit.objects.filter(status='available').count() == 1


def test_donor_cannot_reserve_stock_when_creating_request(client_for, donor, make_unit):
    make_unit('O+')
    make_unit('O+')

    response = client_for(donor.user).post('/api/blood-requests/', request_payload(reserve_inventory=True))

    assert response.status_code == 403
    assert not BloodRequest.objects.exists()
    assert BloodUnit.objects.filter(status='available').count() == 2


def test_required_by_must_be_in_future(client_for, hospital_staff):
    past = (timezone.now() - timedelta(hours=1)).isoformat()

    response = client_for(hospital_staff).post('/api/blood-requests/', request_payload(required_by=past))

    assert response.status_code == 400
    assert 'required_by' in response.json()['error']['details']


def test_list_is_priority_ordered_and_scoped(client_for, hospital_staff, hospital, make_request, make_user):
    normal = make_request(institution=hospital, urgency='normal')
    emergency = make_request(institution=hospital, urgency='emergency')
    make_request(requester=make_user('hospital_staff'), urgency='emergency')

    response = client_for(hospital_staff).get('/api/blood-requests/')

    ids = [row['id'] for row in response.data['results']]
    assert ids == [str(emergency.pk), str(normal.pk)]
    assert response.data['results'][0]['priority_score'] > response.data['results'][1]['priority_score']


def test_donor_responds_then_sees_request(client_for, make_request, donor):
    blood_request = make_request(units_needed=1)
    client = client_for(donor.user)

    response = client.post(f'/api/blood-requests/{blood_request.pk}/respond/', {
        'response_type': 'accept',
        'eta_minutes': 25,
        'current_location': {'latitude': NAIROBI[0], 'longitude': NAIROBI[1]},
    })

    assert response.status_code == 201
    assert response.data['request_status'] == 'matched'
    assert DonorResponse.objects.get().eta_minutes == 25

    detail = client.get(f'/api/blood-requests/{blood_request.pk}/?include_history=true')
    assert detail.status_code == 200
    assert detail.data['response_summary']['accepted'] == 1
    assert [h['new_status'] for h in detail.data['status_history']] == ['matched']


def test_respond_rejects_bad_eta(client_for, make_request, donor):
    blood_request = make_request()

    response = client_for(donor.user).post(f'/api/blood-requests/{blood_request.pk}/respond/',
                                           {'response_type': 'accept', 'eta_minutes': 2})

    assert response.status_code == 400


def test_status_transition_and_invalid_transition(client_for, hospital_staff, hospital, make_request):
    blood_request = make_request(institution=hospital)
    client = client_for(hospital_staff)

    response = client.post(f'/api/blood-requests/{blood_request.pk}/status/', {'status': 'cancelled', 'notes': 'Duplicate'})
    assert response.status_code == 200
    assert response.data['request']['status'] == 'cancelled'

    response = client.post(f'/api/blood-requests/{blood_request.pk}/status/', {'status': 'pending'})
    assert response.status_code == 400
    assert response.json()['error']['type'] == 'invalid_transition'
    assert BloodRequest.objects.get(pk=blood_request.pk).status == 'cancelled'


def test_matches_and_responses_for_staff(client_for, hospital_staff, hospital, make_request, make_donor):
    blood_request = make_request(institution=hospital)
    donor = make_donor('O-')
    DonorResponse.objects.create(blood_request=blood_request, donor=donor, response_type='maybe')

    client = client_for(hospital_staff)
    matches = client.get(f'/api/blood-requests/{blood_request.pk}/matches/')
    responses = client.get(f'/api/blood-requests/{blood_request.pk}/responses/')

    assert matches.data['count'] == 1
    assert matches.data['results'][0]['donor']['id'] == donor.id
    assert responses.data['summary']['maybe'] == 1


# ============================================
# INVENTORY / NOTIFICATIONS / ADMIN
# ============================================
def test_add_units_reports_errors_per_index(client_for, bank_staff):
    response = client_for(bank_staff).post('/api/inventory/units/', {
        'units': [
            {'blood_type': 'O+', 'status': 'available'},
            {'blood_type': 'ZZ'},
            {'blood_type': 'A+', 'volume_ml': 900},
        ],
    })

    assert response.status_code == 400
    assert set(response.json()['error']['details']['units']) == {'1', '2'}
    assert not BloodUnit.objects.exists()


def test_add_and_reserve_units(client_for, bank_staff, blood_bank):
    client = client_for(bank_staff)
    response = client.post('/api/inventory/units/', {
        'units': [{'blood_type': 'B-', 'status': 'available'} for _ in range(2)],
    })
    assert response.status_code == 201
    assert response.data['created_count'] == 2

    short = client.post('/api/inventory/reserve/', {'blood_type': 'B-', 'units_needed': 3})
    assert short.status_code == 200
    assert short.data['success'] is False
    assert short.data['shortfall'] == 1

    ok = client.post('/api/inventory/reserve/', {'blood_type': 'B-', 'units_needed': 2})
    assert ok.data['success'] is True


def test_staff_reserve_only_from_own_stock(client_for, hospital_staff, blood_bank, make_unit):
    make_unit('O+')
    client = client_for(hospital_staff)

    named = client.post('/api/inventory/reserve/', {'blood_type': 'O+', 'units_needed': 1, 'blood_bank': blood_bank.id})
    unnamed = client.post('/api/inventory/reserve/', {'blood_type': 'O+', 'units_needed': 1})

    assert named.status_code == 403
    assert unnamed.status_code == 200
    assert unnamed.data['success'] is False
    assert unnamed.data['shortfall'] == 1
    assert BloodUnit.objects.get().status == 'available'


def test_release_requires_the_institution_holding_the_units(client_for, hospital_staff, bank_staff, blood_bank,
                                                            make_unit, make_request):
    blood_request = make_request()
    make_unit('O+')
    reservation.reserve('O+', 1, blood_request=blood_request, blood_bank=blood_bank)
    payload = {'request_id': str(blood_request.pk)}

    assert client_for(hospital_staff).post('/api/inventory/release/', payload).status_code == 403
    assert BloodUnit.objects.get().status == 'reserved'

    response = client_for(bank_staff).post('/api/inventory/release/', payload)
    assert response.status_code == 200
    assert response.data['released_count'] == 1
    assert BloodUnit.objects.get().status == 'available'


def test_inventory_alerts_check_list_and_resolve(client_for, bank_staff, hospital_staff, make_unit):
    for _ in range(3):
        make_unit('O+')
    client = client_for(bank_staff)

    checked = client.post('/api/inventory/alerts/', {'action': 'check'})
    assert checked.status_code == 200
    assert checked.data['count'] == 8

    listed = client.get('/api/inventory/alerts/')
    assert listed.data['count'] == 8
    low_stock = next(alert for alert in listed.data['results'] if alert['alert_type'] == 'low_stock')
    assert low_stock['blood_type'] == 'O+'

    # Staff of another institution can neither see nor resolve it
    other = client_for(hospital_staff)
    assert other.get('/api/inventory/alerts/').data['count'] == 0
    denied = other.post('/api/inventory/alerts/', {'action': 'resolve', 'alert_id': low_stock['id'], 'resolution': 'x'})
    assert denied.status_code == 403

    missing_resolution = client.post('/api/inventory/alerts/', {'action': 'resolve', 'alert_id': low_stock['id']})
    assert missing_resolution.status_code == 400

    resolved = client.post('/api/inventory/alerts/', {
        'action': 'resolve', 'alert_id': low_stock['id'], 'resolution': 'Transfer requested from Kisumu',
    })
    assert resolved.status_code == 200
    assert resolved.data['resolved'] is True
    assert resolved.data['resolved_by'] == bank_staff.id
    assert client.get('/api/inventory/alerts/', {'resolved': 'true'}).data['count'] == 1


def test_donor_cannot_sweep_inventory(client_for, donor):
    assert client_for(donor.user).post('/api/inventory/process-expired/').status_code == 403


def test_nearby_blood_banks(client_for, donor, make_unit):
    make_unit('O+')

    response = client_for(donor.user).get('/api/location/blood-banks/', {
        'latitude': NAIROBI[0], 'longitude': NAIROBI[1], 'blood_type': 'O+',
    })

    assert response.status_code == 200
    assert response.data['count'] == 1
    assert response.data['results'][0]['available_units'] == 1


def test_send_alert_and_inbox(client_for, hospital_staff, donor):
    response = client_for(hospital_staff).post('/api/notifications/send/', {
        'type': 'blood_request',
        'title': 'O+ needed',
        'message': 'Please come to Kenyatta National Hospital',
        'recipients': [donor.user.id],
        'channels': ['push'],
    })
    assert response.status_code == 201
    assert response.data['sent'] == 1

    inbox = client_for(donor.user).get('/api/notifications/')
    assert len(inbox.data) == 1

    read = client_for(donor.user).post(f"/api/notifications/{inbox.data[0]['id']}/read/")
    assert read.status_code == 200
    assert read.data['read_at'] is not None


def test_quiet_hours_preferences_validation(client_for, donor):
    response = client_for(donor.user).put('/api/notifications/preferences/', {
        'quiet_hours_start': '22:00',
        'quiet_hours_end': '22:00',
    })
    assert response.status_code == 400

    response = client_for(donor.user).put('/api/notifications/preferences/', {
        'quiet_hours_start': '22:00',
        'quiet_hours_end': '06:00',
        'sms_enabled': False,
    })
    assert response.status_code == 200
    assert response.data['sms_enabled'] is False


def test_security_endpoints_are_admin_only(client_for, admin_user, hospital_staff):
    assert client_for(hospital_staff).get('/api/admin/security/metrics/').status_code == 403

    response = client_for(admin_user).get('/api/admin/security/metrics/', {'time_range': '24h'})
    assert response.status_code == 200
    assert response.data['events_by_type']['unauthorized_access'] == 1

    event = SecurityEvent.objects.get()
    resolved = client_for(admin_user).post(f'/api/admin/security/events/{event.id}/resolve/', {'notes': 'Checked'})
    assert resolved.data['resolved'] is True


def test_blocked_ip_is_refused_until_unblocked(client_for, admin_user, hospital_staff, api_client):
    admin = client_for(admin_user)
    assert client_for(hospital_staff).post('/api/admin/security/blocked-ips/', {'ip_address': '203.0.113.7'}).status_code == 403

    blocked = admin.post('/api/admin/security/blocked-ips/', {'ip_address': '203.0.113.7', 'reason': 'Credential stuffing'})
    assert blocked.status_code == 201
    assert blocked.data['blocked_by'] == admin_user.id

    refused = api_client.get('/api/health/', REMOTE_ADDR='203.0.113.7')
    assert refused.status_code == 403
    assert refused.json()['error']['type'] == 'permission_denied'
    assert api_client.get('/api/health/').status_code == 200

    listed = admin.get('/api/admin/security/blocked-ips/')
    assert [row['ip_address'] for row in listed.data['results']] == ['203.0.113.7']

    unblocked = admin.post('/api/admin/security/blocked-ips/unblock/', {'ip_addresses': ['203.0.113.7', '198.51.100.1']})
    assert unblocked.data['unblocked'] == ['203.0.113.7']
    assert api_client.get('/api/health/', REMOTE_ADDR='203.0.113.7').status_code == 200


def test_dashboard_stats(client_for, admin_user, donor, make_request):
    make_request()

    response = client_for(admin_user).get('/api/stats/')

    assert response.data['total_donors'] == 1
    assert response.data['active_requests'] == 1


def test_inventory_audit_trail(client_for, bank_staff):
    client = client_for(bank_staff)
    client.post('/api/inventory/units/', {'units': [{'blood_type': 'O-', 'status': 'available'}]})
    client.post('/api/inventory/reserve/', {'blood_type': 'O-', 'units_needed': 1})

    response = client.get('/api/inventory/transactions/')

    assert [row['transaction_type'] for row in response.data] == ['reservation', 'addition']
    assert client.get('/api/inventory/transactions/', {'transaction_type': 'addition'}).data[0]['quantity'] == 1
