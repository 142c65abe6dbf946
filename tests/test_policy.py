import pytest
from django.contrib.auth.models import AnonymousUser

from accounts.policy import evaluate
from blood_requests.models import DonorResponse

pytestmark = pytest.mark.django_db


def test_anonymous_and_unknown_actions_are_denied(admin_user):
    assert not evaluate(AnonymousUser(), None, 'request.create')
    assert not evaluate(None, None, 'request.create')
    assert not evaluate(admin_user, None, 'request.delete_everything')


def test_request_management(make_request, make_user, hospital_staff, hospital, admin_user, donor):
    blood_request = make_request(requester=make_user('hospital_staff'), institution=hospital)

    assert evaluate(admin_user, blood_request, 'request.transition')
    assert evaluate(hospital_staff, blood_request, 'request.transition')
    assert evaluate(blood_request.requester, blood_request, 'request.view_matches')
    assert not evaluate(donor.user, blood_request, 'request.transition')
    assert not evaluate(make_user('hospital_staff'), blood_request, 'request.view')


def test_donor_sees_request_after_responding(make_request, donor):
    blood_request = make_request()
    assert not evaluate(donor.user, blood_request, 'request.view')

    DonorResponse.objects.create(blood_request=blood_request, donor=donor, response_type='maybe')

    assert evaluate(donor.user, blood_request, 'request.view')
    assert not evaluate(donor.user, blood_request, 'request.view_matches')


def test_only_donors_with_profiles_respond(make_request, make_user, donor, hospital_staff):
    blood_request = make_request()

    assert evaluate(donor.user, blood_request, 'request.respond')
    assert not evaluate(make_user('donor'), blood_request, 'request.respond')
    assert not evaluate(hospital_staff, blood_request, 'request.respond')


def test_inventory_rules(hospital_staff, bank_staff, blood_bank, hospital, make_user, admin_user):
    emergency_responder = make_user('emergency_responder', institution=hospital)

    assert evaluate(bank_staff, blood_bank, 'inventory.manage')
    assert not evaluate(bank_staff, hospital, 'inventory.manage')
    assert not evaluate(emergency_responder, hospital, 'inventory.manage')
    assert evaluate(emergency_responder, None, 'inventory.view')
    assert evaluate(bank_staff, None, 'inventory.sweep')
    assert not evaluate(hospital_staff, None, 'inventory.sweep')
    assert evaluate(admin_user, hospital, 'inventory.manage')
    assert evaluate(admin_user, None, 'inventory.manage')
    assert not evaluate(bank_staff, None, 'inventory.manage')
    assert not evaluate(hospital_staff, None, 'inventory.manage')


def test_notification_rules(hospital_staff, admin_user, donor):
    assert evaluate(hospital_staff, 'emergency', 'notification.send')
    assert not evaluate(hospital_staff, 'system', 'notification.send')
    assert evaluate(admin_user, 'system', 'notification.send')
    assert not evaluate(donor.user, 'blood_request', 'notification.send')
    assert not evaluate(hospital_staff, None, 'notification.process')


def test_admin_only_actions(admin_user, hospital_staff, make_user):
    superuser = make_user('donor', is_superuser=True)

    for action in ('security.view', 'dashboard.view', 'notification.process'):
        assert evaluate(admin_user, None, action)
        assert evaluate(superuser, None, action)
        assert not evaluate(hospital_staff, None, action)


def test_donor_search(hospital_staff, donor, make_user):
    assert evaluate(hospital_staff, None, 'donor.search')
    assert evaluate(make_user('emergency_responder'), None, 'donor.search')
    assert not evaluate(donor.user, None, 'donor.search')
