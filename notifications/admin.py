from django.contrib import admin
from .models import Notification, NotificationPreference


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['notification_type', 'recipient', 'channel', 'priority', 'status', 'attempts', 'created_at']
    list_filter = ['notification_type', 'channel', 'priority', 'status']
    search_fields = ['title', 'recipient__username']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'sent_at', 'read_at', 'last_error']


@admin.register(NotificationPreference)
class NotificationPreferenceAdmin(admin.ModelAdmin):
    list_display = ['user', 'push_enabled', 'sms_enabled', 'email_enabled', 'emergency_only', 'quiet_hours_start', 'quiet_hours_end']
    search_fields = ['user__username']
