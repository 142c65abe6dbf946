# donors/management/commands/import_donors.py
"""
Import donor data from Excel or CSV
Usage: python manage.py import_donors path/to/donors.xlsx [--share-location]

Required columns: full_name, email, blood_type
Optional columns: phone, address, latitude, longitude, last_donation_date, date_of_birth
"""
import os

import pandas as pd
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils.crypto import get_random_string

from algorithms.blood_compatibility import is_valid_blood_type
from donors.models import DonorProfile

User = get_user_model()

REQUIRED_COLUMNS = ['full_name', 'email', 'blood_type']


def cell(row, column):
    value = row.get(column)
    if value is None or pd.isna(value):
        return None
    return value


def parse_date(value):
    if value is None:
        return None
    return pd.to_datetime(value).date()


class Command(BaseCommand):
    help = 'Import donors from an Excel or CSV file'

    def add_arguments(self, parser):
        parser.add_argument('path', type=str, help='Path to the .xlsx or .csv file')
        parser.add_argument(
            '--share-location',
            action='store_true',
            help='Opt imported donors with coordinates into location sharing',
        )

    def handle(self, *args, **options):
        path = options['path']
        if not os.path.exists(path):
            raise CommandError(f'File not found: {path}')

        self.stdout.write(self.style.WARNING(f'Starting import from {path}...'))

        df = pd.read_csv(path) if path.lower().endswith('.csv') else pd.read_excel(path)
        df.columns = [str(col).strip().lower().replace(' ', '_') for col in df.columns]
        df = df.rename(columns={'blood_group': 'blood_type', 'phone_number': 'phone', 'name': 'full_name'})

        missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing:
            raise CommandError(f'Missing columns: {", ".join(missing)}')

        df = df.dropna(subset=['full_name', 'email'])
        self.stdout.write(f'Found {len(df)} rows')

        imported_count = 0
        updated_count = 0
        skipped_count = 0

        for index, row in df.iterrows():
            line = index + 2
            blood_type = str(row['blood_type']).strip().upper()
            if not is_valid_blood_type(blood_type):
                self.stdout.write(self.style.WARNING(f'Skipping row {line}: invalid blood type {blood_type}'))
                skipped_count += 1
                continue

            email = str(row['email']).strip().lower()
            latitude = cell(row, 'latitude')
            longitude = cell(row, 'longitude')
            has_location = latitude is not None and longitude is not None

            try:
                last_donation_date = parse_date(cell(row, 'last_donation_date'))
                date_of_birth = parse_date(cell(row, 'date_of_birth'))
            except (ValueError, TypeError) as e:
                self.stdout.write(self.style.WARNING(f'Skipping row {line}: invalid date ({e})'))
                skipped_count += 1
                continue

            with transaction.atomic():
                user, user_created = User.objects.get_or_create(
                    email=email,
                    defaults={
                        'username': email.split('@')[0][:30] + '_' + get_random_string(4).lower(),
                        'role': 'donor',
                        'phone': str(cell(row, 'phone') or ''),
                    },
                )
                if user_created:
                    # Imported donors set their own password through reset
                    user.set_unusable_password()
                    user.save(update_fields=['password'])

                _, created = DonorProfile.objects.update_or_create(
                    user=user,
                    defaults={
                        'full_name': str(row['full_name']).strip(),
                        'phone': str(cell(row, 'phone') or ''),
                        'blood_type': blood_type,
                        'address': str(cell(row, 'address') or ''),
                        'latitude': float(latitude) if has_location else None,
                        'longitude': float(longitude) if has_location else None,
                        'location_sharing': options['share_location'] and has_location,
                        'last_donation_date': last_donation_date,
                        'date_of_birth': date_of_birth,
                    },
                )

            if created:
                imported_count += 1
            else:
                updated_count += 1

        self.stdout.write(
            self.style.SUCCESS(
                f'Import complete. Created: {imported_count}, updated: {updated_count}, skipped: {skipped_count}'
            )
        )
