from django.utils import timezone
from rest_framework import serializers

from algorithms.blood_compatibility import BLOOD_TYPES
from institutions.models import Institution
from inventory.reservation import EXPIRY_PREFERENCES
from .models import BloodRequest, DonorResponse, RequestStatusHistory

URGENCY_VALUES = [choice for choice, _ in BloodRequest.URGENCY_CHOICES]


class BloodRequestSerializer(serializers.ModelSerializer):
    requester_username = serializers.CharField(source='requester.username', read_only=True, default=None)
    institution_name = serializers.CharField(source='institution.name', read_only=True, default=None)

    class Meta:
        model = BloodRequest
        fields = [
            'id',
            'patient_name',
            'patient_age',
            'hospital_name',
            'contact_name',
            'contact_phone',
            'contact_email',
            'medical_condition',
            'notes',
            'blood_type',
            'units_needed',
            'urgency',
            'request_type',
            'status',
            'latitude',
            'longitude',
            'address',
            'requester',
            'requester_username',
            'institution',
            'institution_name',
            'required_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class BloodRequestCreateSerializer(serializers.Serializer):
    """
    Input for new requests. 'urgency' is canonical; 'urgency_level' is
    accepted as an alias for older clients.
    """
    patient_name = serializers.CharField(min_length=2, max_length=200)
    patient_age = serializers.IntegerField(min_value=0, max_value=120, required=False, allow_null=True)
    hospital_name = serializers.CharField(min_length=2, max_length=200)
    contact_name = serializers.CharField(min_length=2, max_length=200)
    contact_phone = serializers.CharField(min_length=10, max_length=20)
    contact_email = serializers.EmailField(required=False, allow_blank=True)
    medical_condition = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)

    blood_type = serializers.ChoiceField(choices=BLOOD_TYPES)
    units_needed = serializers.IntegerField(min_value=1, max_value=10)
    urgency = serializers.ChoiceField(choices=URGENCY_VALUES, required=False)
    urgency_level = serializers.ChoiceField(choices=URGENCY_VALUES, required=False, write_only=True)
    request_type = serializers.ChoiceField(choices=BloodRequest.REQUEST_TYPE_CHOICES, default='patient')

    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    address = serializers.CharField(min_length=5, max_length=500)

    institution = serializers.PrimaryKeyRelatedField(queryset=Institution.objects.all(), required=False, allow_null=True)
    required_by = serializers.DateTimeField(required=False, allow_null=True)

    # Processing options, not stored on the request
    reserve_inventory = serializers.BooleanField(default=False)
    expiry_preference = serializers.ChoiceField(choices=EXPIRY_PREFERENCES, default='oldest_first')

    def validate_required_by(self, value):
        if value is not None and value <= timezone.now():
            raise serializers.ValidationError('Must be in the future')
        return value

    def validate(self, attrs):
        urgency = attrs.get('urgency')
        alias = attrs.pop('urgency_level', None)
        if urgency and alias and urgency != alias:
            raise serializers.ValidationError({'urgency': 'urgency and urgency_level disagree'})
        attrs['urgency'] = urgency or alias or 'normal'
        return attrs


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BloodRequest.STATUS_CHOICES)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True, default='')


class LocationSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)


class RespondSerializer(serializers.Serializer):
    response_type = serializers.ChoiceField(choices=DonorResponse.RESPONSE_TYPE_CHOICES)
    eta_minutes = serializers.IntegerField(min_value=5, max_value=480, required=False, allow_null=True)
    current_location = LocationSerializer(required=False)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class DonorResponseSerializer(serializers.ModelSerializer):
    donor_name = serializers.CharField(source='donor.full_name', read_only=True)
    donor_blood_type = serializers.CharField(source='donor.blood_type', read_only=True)
    donor_phone = serializers.CharField(source='donor.phone', read_only=True)

    class Meta:
        model = DonorResponse
        fields = [
            'id',
            'blood_request',
            'donor',
            'donor_name',
            'donor_blood_type',
            'donor_phone',
            'response_type',
            'status',
            'eta_minutes',
            'current_latitude',
            'current_longitude',
            'notes',
            'confirmed_at',
            'responded_at',
            'updated_at',
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    changed_by_username = serializers.CharField(source='changed_by.username', read_only=True, default=None)

    class Meta:
        model = RequestStatusHistory
        fields = ['id', 'previous_status', 'new_status', 'changed_by', 'changed_by_username', 'note', 'created_at']
        read_only_fields = fields
