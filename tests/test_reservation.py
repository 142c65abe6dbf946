from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from inventory import reservation
from inventory.models import BloodUnit, InventoryTransaction

pytestmark = pytest.mark.django_db


def test_reserves_exactly_the_available_units(make_unit, make_request):
    first = make_unit('O+')
    second = make_unit('O+')
    make_unit('A+')
    blood_request = make_request(units_needed=2)

    result = reservation.reserve('O+', 2, blood_request=blood_request)

    assert result['success'] is True
    assert sorted(result['reserved_unit_ids']) == sorted([str(first.id), str(second.id)])
    assert BloodUnit.objects.filter(status='reserved', reserved_for_request=blood_request).count() == 2
    assert InventoryTransaction.objects.get(transaction_type='reservation').quantity == 2


def test_shortfall_reserves_nothing(make_unit):
    make_unit('O+')
    make_unit('O+')

    result = reservation.reserve('O+', 3)

    assert result['success'] is False
    assert result['shortfall'] == 1
    assert result['reserved_unit_ids'] == []
    assert BloodUnit.objects.filter(status='reserved').count() == 0


def test_expired_quarantined_and_reserved_units_are_not_candidates(make_unit, make_request):
    make_unit('O+', days_to_expiry=-1)
    make_unit('O+', status='quarantine')
    make_unit('O+', status='reserved', reserved_for_request=make_request())
    usable = make_unit('O+')

    result = reservation.reserve('O+', 1)

    assert result['reserved_unit_ids'] == [str(usable.id)]
    assert reservation.reserve('O+', 1)['success'] is False


def test_expiry_preference_order(make_unit):
    soon = make_unit('B+', days_to_expiry=3)
    late = make_unit('B+', days_to_expiry=30)

    assert reservation.reserve('B+', 1)['reserved_unit_ids'] == [str(soon.id)]
    BloodUnit.objects.filter(id=soon.id).update(status='available', reserved_for_request=None)
    assert reservation.reserve('B+', 1, expiry_preference='newest_first')['reserved_unit_ids'] == [str(late.id)]


def test_restricts_to_blood_bank(make_unit, hospital):
    make_unit('O-')

    result = reservation.reserve('O-', 1, blood_bank=hospital)

    assert result['success'] is False


def test_conflicting_update_rolls_back_whole_batch(make_unit, monkeypatch):
    units = [make_unit('A-') for _ in range(3)]

    def lose_race(unit_ids, blood_request, now):
        # Only one row still matches: another writer took the rest
        return BloodUnit.objects.filter(id=unit_ids[0]).update(status='reserved', reserved_at=now)

    monkeypatch.setattr(reservation, '_mark_reserved', lose_race)

    result = reservation.reserve('A-', 3)

    assert result['success'] is False
    assert result['reserved_unit_ids'] == []
    assert BloodUnit.objects.filter(id__in=[u.id for u in units], status='available').count() == 3
    assert not InventoryTransaction.objects.filter(transaction_type='reservation').exists()


def test_second_reservation_cannot_take_reserved_units(make_unit, make_request):
    make_unit('AB+')
    make_unit('AB+')

    assert reservation.reserve('AB+', 2, blood_request=make_request())['success'] is True
    second = reservation.reserve('AB+', 1, blood_request=make_request())

    assert second['success'] is False
    assert second['shortfall'] == 1


@pytest.mark.parametrize('kwargs', [
    {'blood_type': 'Q+', 'units_needed': 1},
    {'blood_type': 'O+', 'units_needed': 0},
    {'blood_type': 'O+', 'units_needed': 11},
    {'blood_type': 'O+', 'units_needed': 1, 'expiry_preference': 'random'},
])
def test_invalid_input(kwargs):
    with pytest.raises(ValidationError):
        reservation.reserve(**kwargs)


def test_release_returns_units_to_stock(make_unit, make_request):
    blood_request = make_request(units_needed=2)
    make_unit('O+')
    make_unit('O+')
    reservation.reserve('O+', 2, blood_request=blood_request)

    assert reservation.release(blood_request) == 2
    assert BloodUnit.objects.filter(status='available', reserved_for_request__isnull=True).count() == 2
    assert reservation.release(blood_request) == 0


def test_mark_used(make_unit, make_request):
    blood_request = make_request()
    make_unit('O+')
    reservation.reserve('O+', 1, blood_request=blood_request)

    assert reservation.mark_used(blood_request) == 1
    assert BloodUnit.objects.get().status == 'used'


POSITIVE_HIV = {'hiv': 'positive', 'hepatitis_b': 'negative', 'hepatitis_c': 'negative', 'syphilis': 'negative'}


def test_release_quarantines_units_that_tested_positive_while_reserved(make_unit, make_request):
    blood_request = make_request(units_needed=2)
    clean = make_unit('O+')
    infected = make_unit('O+')
    reservation.reserve('O+', 2, blood_request=blood_request)
    # Bulk update, as a lab import would write it, skipping BloodUnit.save()
    BloodUnit.objects.filter(id=infected.id).update(test_results=POSITIVE_HIV)

    assert reservation.release(blood_request) == 2

    clean.refresh_from_db()
    infected.refresh_from_db()
    assert clean.status == 'available'
    assert infected.status == 'quarantine'
    assert infected.reserved_for_request is None


def test_saving_a_positive_result_on_a_reserved_unit_quarantines_it(make_unit, make_request):
    blood_request = make_request()
    unit = make_unit('O+')
    reservation.reserve('O+', 1, blood_request=blood_request)
    unit.refresh_from_db()

    unit.test_results = POSITIVE_HIV
    unit.save(update_fields=['test_results'])

    unit.refresh_from_db()
    assert unit.status == 'quarantine'
    assert unit.reserved_for_request is None
    assert reservation.release(blood_request) == 0


def test_mark_used_skips_positive_units(make_unit, make_request):
    blood_request = make_request(units_needed=2)
    make_unit('O+')
    infected = make_unit('O+')
    reservation.reserve('O+', 2, blood_request=blood_request)
    BloodUnit.objects.filter(id=infected.id).update(test_results=POSITIVE_HIV)

    assert reservation.mark_used(blood_request) == 1

    infected.refresh_from_db()
    assert infected.status == 'quarantine'
    assert InventoryTransaction.objects.get(transaction_type='usage').unit_ids == [
        str(unit_id) for unit_id in BloodUnit.objects.filter(status='used').values_list('id', flat=True)
    ]


def test_expiry_sweep(make_unit, make_request):
    expired_available = make_unit('O+', days_to_expiry=-1)
    expired_reserved = make_unit('O+', status='reserved', days_to_expiry=-2, reserved_for_request=make_request())
    fresh = make_unit('O+')

    result = reservation.process_expired()

    assert result['expired_count'] == 2
    assert set(result['expired_unit_ids']) == {str(expired_available.id), str(expired_reserved.id)}
    expired_reserved.refresh_from_db()
    assert expired_reserved.status == 'expired'
    assert expired_reserved.reserved_for_request is None
    fresh.refresh_from_db()
    assert fresh.status == 'available'
    assert reservation.process_expired()['expired_count'] == 0


def test_positive_test_result_forces_quarantine(make_unit):
    unit = make_unit('O+', test_results={'hiv': 'positive', 'hepatitis_b': 'negative',
                                         'hepatitis_c': 'negative', 'syphilis': 'negative'})
    assert unit.status == 'quarantine'


def test_default_expiry_from_shelf_life(blood_bank, settings):
    settings.BLOOD_INVENTORY = {'SHELF_LIFE_DAYS': 35}
    collected = timezone.now()

    unit = BloodUnit.objects.create(blood_bank=blood_bank, blood_type='A+', collection_date=collected)

    assert unit.expiry_date == collected + timedelta(days=35)


def test_inventory_stats(make_unit):
    make_unit('O+')
    make_unit('O+', days_to_expiry=3)
    make_unit('A-', status='quarantine')

    stats = reservation.inventory_stats()

    assert stats['total_units'] == 3
    assert stats['by_status']['available'] == 2
    assert stats['available_by_blood_type'] == {'O+': 2}
    assert stats['expiring_soon'] == 1
