# institutions/management/commands/import_institutions.py
"""
Import hospitals, blood banks and clinics from an Excel or CSV file

USAGE:
    python manage.py import_institutions path/to/institutions.xlsx
    python manage.py import_institutions path/to/institutions.csv --type blood_bank

Required columns: name, address
Optional columns: institution_type, phone, email, latitude, longitude, license_number
"""
import os

import pandas as pd
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from institutions.models import Institution

REQUIRED_COLUMNS = ['name', 'address']
VALID_TYPES = {choice for choice, _ in Institution.TYPE_CHOICES}


def optional(row, column, cast=str):
    value = row.get(column)
    if value is None or pd.isna(value):
        return None
    return cast(value).strip() if cast is str else cast(value)


class Command(BaseCommand):
    help = 'Import institutions (hospitals, blood banks, clinics) from Excel or CSV'

    def add_arguments(self, parser):
        parser.add_argument('path', type=str, help='Path to the .xlsx or .csv file')
        parser.add_argument(
            '--type',
            dest='default_type',
            default='hospital',
            choices=sorted(VALID_TYPES),
            help='Institution type for rows without an institution_type column',
        )

    def handle(self, *args, **options):
        path = options['path']
        if not os.path.exists(path):
            raise CommandError(f'File not found: {path}')

        if path.lower().endswith('.csv'):
            df = pd.read_csv(path)
        else:
            df = pd.read_excel(path)

        df.columns = [str(col).strip().lower().replace(' ', '_') for col in df.columns]
        missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing:
            raise CommandError(f'Missing columns: {", ".join(missing)}')

        df = df.dropna(subset=['name'])
        self.stdout.write(f'Found {len(df)} institutions in {path}')

        created_count = 0
        updated_count = 0
        skipped_count = 0

        for index, row in df.iterrows():
            name = str(row['name']).strip()
            institution_type = optional(row, 'institution_type') or options['default_type']
            if institution_type not in VALID_TYPES:
                self.stdout.write(self.style.WARNING(f'Skipping row {index + 2}: invalid type {institution_type}'))
                skipped_count += 1
                continue

            with transaction.atomic():
                _, created = Institution.objects.update_or_create(
                    name=name,
                    institution_type=institution_type,
                    defaults={
                        'address': optional(row, 'address') or '',
                        'phone': optional(row, 'phone') or '',
                        'email': optional(row, 'email') or '',
                        'license_number': optional(row, 'license_number') or '',
                        'latitude': optional(row, 'latitude', float),
                        'longitude': optional(row, 'longitude', float),
                    },
                )

            if created:
                created_count += 1
            else:
                updated_count += 1

        self.stdout.write(
            self.style.SUCCESS(
                f'Import complete. Created: {created_count}, updated: {updated_count}, skipped: {skipped_count}'
            )
        )
