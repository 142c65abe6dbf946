from rest_framework import serializers
from .models import BlockedIP, SecurityEvent


class SecurityEventSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = SecurityEvent
        fields = [
            'id',
            'event_type',
            'risk_level',
            'user',
            'username',
            'ip_address',
            'user_agent',
            'endpoint',
            'method',
            'details',
            'resolved',
            'resolved_at',
            'resolved_by',
            'notes',
            'created_at',
        ]
        read_only_fields = fields


class ResolveEventSerializer(serializers.Serializer):
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)


class MetricsQuerySerializer(serializers.Serializer):
    time_range = serializers.ChoiceField(choices=['1h', '24h', '7d', '30d'], default='24h')


class EventFilterSerializer(serializers.Serializer):
    event_type = serializers.ChoiceField(choices=SecurityEvent.EVENT_TYPE_CHOICES, required=False)
    risk_level = serializers.ChoiceField(choices=SecurityEvent.RISK_LEVEL_CHOICES, required=False)
    resolved = serializers.BooleanField(required=False, allow_null=True, default=None)
    limit = serializers.IntegerField(min_value=1, max_value=500, default=100)


class BlockedIPSerializer(serializers.ModelSerializer):
    blocked_by_username = serializers.CharField(source='blocked_by.username', read_only=True, default=None)

    class Meta:
        model = BlockedIP
        fields = ['id', 'ip_address', 'reason', 'blocked_by', 'blocked_by_username', 'expires_at', 'created_at']
        read_only_fields = fields


class BlockIPSerializer(serializers.Serializer):
    ip_address = serializers.IPAddressField()
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    # Omit to block until explicitly unblocked
    duration_hours = serializers.IntegerField(min_value=1, max_value=24 * 90, required=False, allow_null=True)


class UnblockIPSerializer(serializers.Serializer):
    ip_address = serializers.IPAddressField(required=False)
    ip_addresses = serializers.ListField(child=serializers.IPAddressField(), required=False, max_length=500)

    def validate(self, attrs):
        addresses = list(attrs.get('ip_addresses') or [])
        if attrs.get('ip_address'):
            addresses.append(attrs['ip_address'])
        if not addresses:
            raise serializers.ValidationError({'ip_address': 'An IP address is required'})
        return {'ip_addresses': list(dict.fromkeys(addresses))}
