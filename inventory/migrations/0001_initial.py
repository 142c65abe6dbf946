import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import inventory.models
from django.conf import settings
from django.db import migrations, models

BLOOD_TYPE_CHOICES = [('O-', 'O-'), ('O+', 'O+'), ('A-', 'A-'), ('A+', 'A+'), ('B-', 'B-'), ('B+', 'B+'), ('AB-', 'AB-'), ('AB+', 'AB+')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('blood_requests', '0001_initial'),
        ('donors', '0001_initial'),
        ('institutions', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='BloodUnit',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('blood_type', models.CharField(choices=BLOOD_TYPE_CHOICES, db_index=True, max_length=3)),
                ('volume_ml', models.PositiveIntegerField(default=450, validators=[django.core.validators.MinValueValidator(50), django.core.validators.MaxValueValidator(500)])),
                ('collection_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('expiry_date', models.DateTimeField(db_index=True)),
                ('status', models.CharField(choices=[('testing', 'Testing'), ('quarantine', 'Quarantine'), ('available', 'Available'), ('reserved', 'Reserved'), ('used', 'Used'), ('expired', 'Expired')], db_index=True, default='testing', max_length=12)),
                ('storage_location', models.CharField(blank=True, max_length=100)),
                ('batch_number', models.CharField(blank=True, max_length=50)),
                ('quality_score', models.PositiveSmallIntegerField(default=85, validators=[django.core.validators.MaxValueValidator(100)])),
                ('test_results', models.JSONField(default=inventory.models.default_test_results)),
                ('reserved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('blood_bank', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='blood_units', to='institutions.institution')),
                ('donor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='blood_units', to='donors.donorprofile')),
                ('reserved_for_request', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reserved_units', to='blood_requests.bloodrequest')),
            ],
            options={
                'ordering': ['expiry_date'],
                'indexes': [models.Index(fields=['blood_type', 'status', 'expiry_date'], name='unit_type_status_expiry_idx')],
            },
        ),
        migrations.CreateModel(
            name='InventoryTransaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('transaction_type', models.CharField(choices=[('addition', 'Addition'), ('reservation', 'Reservation'), ('release', 'Release'), ('usage', 'Usage'), ('disposal', 'Disposal')], db_index=True, max_length=12)),
                ('blood_type', models.CharField(blank=True, choices=BLOOD_TYPE_CHOICES, max_length=3)),
                ('unit_ids', models.JSONField(default=list)),
                ('quantity', models.PositiveIntegerField(default=0)),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('blood_request', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='inventory_transactions', to='blood_requests.bloodrequest')),
                ('performed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
