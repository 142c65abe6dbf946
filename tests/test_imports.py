import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from donors.models import DonorProfile
from institutions.models import Institution

pytestmark = pytest.mark.django_db


def test_import_institutions_from_csv(tmp_path):
    path = tmp_path / 'institutions.csv'
    path.write_text(
        'Name,Address,Institution Type,Latitude,Longitude\n'
        'Aga Khan Hospital,3rd Parklands Ave,hospital,-1.2614,36.8176\n'
        'KNBTS,Mbagathi Way,blood_bank,-1.3050,36.8050\n'
        'Mystery Place,Nowhere,spaceport,,\n'
    )

    call_command('import_institutions', str(path))
    call_command('import_institutions', str(path))

    assert Institution.objects.count() == 2
    bank = Institution.objects.get(name='KNBTS')
    assert bank.is_blood_bank
    assert bank.latitude == pytest.approx(-1.305)


def test_import_institutions_requires_columns(tmp_path):
    path = tmp_path / 'bad.csv'
    path.write_text('title,city\nX,Y\n')

    with pytest.raises(CommandError):
        call_command('import_institutions', str(path))


def test_import_donors_from_csv(tmp_path):
    path = tmp_path / 'donors.csv'
    path.write_text(
        'Name,Email,Blood Group,Latitude,Longitude,Last Donation Date\n'
        'Amina Hassan,amina@example.com,o-,-1.29,36.82,2024-01-15\n'
        'Brian Otieno,brian@example.com,A+,,,\n'
        'Bad Type,bad@example.com,K+,,,\n'
    )

    call_command('import_donors', str(path), '--share-location')

    assert DonorProfile.objects.count() == 2
    amina = DonorProfile.objects.get(user__email='amina@example.com')
    assert amina.blood_type == 'O-'
    assert amina.location_sharing is True
    assert str(amina.last_donation_date) == '2024-01-15'
    assert not amina.user.has_usable_password()
    assert DonorProfile.objects.get(user__email='brian@example.com').location_sharing is False


def test_import_missing_file():
    with pytest.raises(CommandError):
        call_command('import_donors', '/nonexistent/donors.csv')
