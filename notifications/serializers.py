from django.utils import timezone
from rest_framework import serializers

from .dispatch import MAX_RECIPIENTS
from .models import CHANNELS, Notification, NotificationPreference


class SendAlertSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Notification.TYPE_CHOICES)
    title = serializers.CharField(max_length=100)
    message = serializers.CharField(max_length=500)
    recipients = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        min_length=1,
        max_length=MAX_RECIPIENTS,
    )
    priority = serializers.ChoiceField(choices=Notification.PRIORITY_CHOICES, default='normal')
    channels = serializers.ListField(child=serializers.ChoiceField(choices=CHANNELS), min_length=1)
    data = serializers.DictField(required=False)
    scheduled_at = serializers.DateTimeField(required=False, allow_null=True)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        expires_at = attrs.get('expires_at')
        if expires_at is not None:
            if expires_at <= timezone.now():
                raise serializers.ValidationError({'expires_at': 'Expiry must be in the future'})
            scheduled_at = attrs.get('scheduled_at')
            if scheduled_at is not None and expires_at <= scheduled_at:
                raise serializers.ValidationError({'expires_at': 'Expiry must be after the scheduled time'})
        return attrs


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            'id',
            'notification_type',
            'title',
            'message',
            'data',
            'priority',
            'channel',
            'status',
            'scheduled_at',
            'sent_at',
            'read_at',
            'expires_at',
            'created_at',
        ]
        read_only_fields = fields


class NotificationPreferenceSerializer(serializers.ModelSerializer):
    quiet_hours_start = serializers.TimeField(format='%H:%M', input_formats=['%H:%M'], required=False, allow_null=True)
    quiet_hours_end = serializers.TimeField(format='%H:%M', input_formats=['%H:%M'], required=False, allow_null=True)

    class Meta:
        model = NotificationPreference
        fields = [
            'push_enabled',
            'sms_enabled',
            'email_enabled',
            'whatsapp_enabled',
            'call_enabled',
            'emergency_only',
            'quiet_hours_start',
            'quiet_hours_end',
            'blood_request_alerts',
            'donation_reminders',
            'system_updates',
            'updated_at',
        ]
        read_only_fields = ['updated_at']

    def validate(self, attrs):
        start = attrs.get('quiet_hours_start', getattr(self.instance, 'quiet_hours_start', None))
        end = attrs.get('quiet_hours_end', getattr(self.instance, 'quiet_hours_end', None))
        if (start is None) != (end is None):
            raise serializers.ValidationError({'quiet_hours': 'Set both start and end, or neither'})
        if start is not None and start == end:
            raise serializers.ValidationError({'quiet_hours': 'Start and end must differ'})
        return attrs


class StatisticsQuerySerializer(serializers.Serializer):
    days = serializers.IntegerField(min_value=1, max_value=90, default=7)
