from rest_framework import serializers

from algorithms.blood_compatibility import BLOOD_TYPES
from .models import DonorProfile


class DonorSerializer(serializers.ModelSerializer):
    email = serializers.EmailField(source='user.email', read_only=True)
    can_donate = serializers.BooleanField(read_only=True)
    next_eligible_date = serializers.DateField(read_only=True)

    class Meta:
        model = DonorProfile
        fields = [
            'id',
            'full_name',
            'email',
            'phone',
            'blood_type',
            'date_of_birth',
            'address',
            'latitude',
            'longitude',
            'location_sharing',
            'is_available',
            'last_donation_date',
            'can_donate',
            'next_eligible_date',
            'successful_donations',
            'response_rate',
            'avg_response_minutes',
            'rating',
            'is_verified',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'blood_type',
            'last_donation_date',
            'successful_donations',
            'response_rate',
            'avg_response_minutes',
            'rating',
            'is_verified',
            'created_at',
            'updated_at',
        ]
        extra_kwargs = {
            'latitude': {'min_value': -90, 'max_value': 90},
            'longitude': {'min_value': -180, 'max_value': 180},
        }

    def validate(self, attrs):
        latitude = attrs.get('latitude', getattr(self.instance, 'latitude', None))
        longitude = attrs.get('longitude', getattr(self.instance, 'longitude', None))
        if attrs.get('location_sharing') and (latitude is None or longitude is None):
            raise serializers.ValidationError({'location_sharing': 'Set a location before enabling sharing'})
        return attrs


class PublicDonorSerializer(serializers.ModelSerializer):
    """Minimal donor info shown to request owners"""
    class Meta:
        model = DonorProfile
        fields = ['id', 'full_name', 'blood_type', 'phone', 'rating', 'is_verified']


class DonorMatchSerializer(serializers.Serializer):
    donor = PublicDonorSerializer()
    compatibility_score = serializers.IntegerField()
    distance = serializers.FloatField()
    match_score = serializers.FloatField()
    success_probability = serializers.FloatField()
    estimated_arrival_minutes = serializers.IntegerField()


class NearbyDonorQuerySerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    radius = serializers.FloatField(min_value=0.1, max_value=100, default=25)
    blood_type = serializers.ChoiceField(choices=BLOOD_TYPES, required=False)
    max_results = serializers.IntegerField(min_value=1, max_value=50, default=20)


class NearbyDonorSerializer(serializers.Serializer):
    donor = PublicDonorSerializer()
    distance = serializers.FloatField()
    estimated_travel_minutes = serializers.IntegerField()
    score = serializers.FloatField()
