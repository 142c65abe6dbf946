from django.utils import timezone
from rest_framework import serializers

from algorithms.blood_compatibility import BLOOD_TYPES
from donors.models import DonorProfile
from institutions.models import Institution
from .models import TEST_NAMES, TEST_RESULT_CHOICES, BloodUnit, InventoryAlert, InventoryTransaction
from .reservation import EXPIRY_PREFERENCES, MAX_UNITS_PER_RESERVATION


class BloodUnitSerializer(serializers.ModelSerializer):
    blood_bank_name = serializers.CharField(source='blood_bank.name', read_only=True)

    class Meta:
        model = BloodUnit
        fields = [
            'id',
            'blood_bank',
            'blood_bank_name',
            'donor',
            'blood_type',
            'volume_ml',
            'collection_date',
            'expiry_date',
            'status',
            'storage_location',
            'batch_number',
            'quality_score',
            'test_results',
            'reserved_for_request',
            'reserved_at',
            'created_at',
        ]
        read_only_fields = fields


class BloodUnitCreateSerializer(serializers.Serializer):
    blood_type = serializers.ChoiceField(choices=BLOOD_TYPES)
    volume_ml = serializers.IntegerField(min_value=50, max_value=500, default=450)
    collection_date = serializers.DateTimeField(required=False)
    expiry_date = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(choices=['testing', 'quarantine', 'available'], default='testing')
    storage_location = serializers.CharField(max_length=100, required=False, allow_blank=True)
    batch_number = serializers.CharField(max_length=50, required=False, allow_blank=True)
    quality_score = serializers.IntegerField(min_value=0, max_value=100, default=85)
    test_results = serializers.DictField(child=serializers.ChoiceField(choices=TEST_RESULT_CHOICES), required=False)
    donor = serializers.PrimaryKeyRelatedField(queryset=DonorProfile.objects.all(), required=False, allow_null=True)

    def validate_test_results(self, value):
        unknown = set(value) - set(TEST_NAMES)
        if unknown:
            raise serializers.ValidationError(f"Unknown tests: {', '.join(sorted(unknown))}")
        return {name: value.get(name, 'pending') for name in TEST_NAMES}

    def validate(self, attrs):
        collection_date = attrs.setdefault('collection_date', timezone.now())
        if collection_date > timezone.now():
            raise serializers.ValidationError({'collection_date': 'Collection date cannot be in the future'})
        expiry_date = attrs.get('expiry_date')
        if expiry_date is not None and expiry_date <= collection_date:
            raise serializers.ValidationError({'expiry_date': 'Expiry must be after collection'})
        return attrs


class AddUnitsSerializer(serializers.Serializer):
    blood_bank = serializers.PrimaryKeyRelatedField(queryset=Institution.objects.all(), required=False)
    units = serializers.ListField(child=serializers.DictField(), min_length=1, max_length=100)


class ReserveSerializer(serializers.Serializer):
    blood_type = serializers.ChoiceField(choices=BLOOD_TYPES)
    units_needed = serializers.IntegerField(min_value=1, max_value=MAX_UNITS_PER_RESERVATION)
    request_id = serializers.UUIDField(required=False)
    expiry_preference = serializers.ChoiceField(choices=EXPIRY_PREFERENCES, default='oldest_first')
    blood_bank = serializers.PrimaryKeyRelatedField(queryset=Institution.objects.all(), required=False)


class ReleaseSerializer(serializers.Serializer):
    request_id = serializers.UUIDField()
    reason = serializers.CharField(max_length=255, required=False, default='released')


class InventoryTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = InventoryTransaction
        fields = ['id', 'transaction_type', 'blood_type', 'unit_ids', 'quantity', 'blood_request', 'reason', 'created_at']
        read_only_fields = fields


class InventoryAlertSerializer(serializers.ModelSerializer):
    blood_bank_name = serializers.CharField(source='blood_bank.name', read_only=True)

    class Meta:
        model = InventoryAlert
        fields = [
            'id',
            'alert_type',
            'severity',
            'blood_bank',
            'blood_bank_name',
            'blood_type',
            'message',
            'details',
            'resolved',
            'resolved_at',
            'resolved_by',
            'resolution',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class AlertQuerySerializer(serializers.Serializer):
    resolved = serializers.BooleanField(default=False)
    alert_type = serializers.ChoiceField(choices=InventoryAlert.TYPE_CHOICES, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=200, default=50)


class AlertActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['check', 'resolve'])
    blood_bank = serializers.PrimaryKeyRelatedField(queryset=Institution.objects.all(), required=False)
    alert_id = serializers.IntegerField(required=False)
    resolution = serializers.CharField(max_length=500, required=False)

    def validate(self, attrs):
        if attrs['action'] == 'resolve':
            if attrs.get('alert_id') is None:
                raise serializers.ValidationError({'alert_id': 'Required to resolve an alert'})
            if not attrs.get('resolution'):
                raise serializers.ValidationError({'resolution': 'Resolution description is required'})
        return attrs


class BloodBankQuerySerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    blood_type = serializers.ChoiceField(choices=BLOOD_TYPES, required=False)
    units_needed = serializers.IntegerField(min_value=1, max_value=MAX_UNITS_PER_RESERVATION, default=1)
    radius = serializers.FloatField(min_value=1, max_value=200, default=50)
    max_results = serializers.IntegerField(min_value=1, max_value=20, default=10)


class NearbyBloodBankSerializer(serializers.Serializer):
    institution_id = serializers.IntegerField(source='institution.id')
    name = serializers.CharField(source='institution.name')
    address = serializers.CharField(source='institution.address')
    phone = serializers.CharField(source='institution.phone')
    distance = serializers.FloatField()
    available_units = serializers.IntegerField()
    status = serializers.CharField()
    estimated_travel_minutes = serializers.IntegerField()
    score = serializers.FloatField()
