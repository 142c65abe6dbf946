from django.contrib import admin
from django.core.cache import cache
from django.utils import timezone
from .events import BLOCKED_IPS_CACHE_KEY
from .models import BlockedIP, SecurityEvent


@admin.register(SecurityEvent)
class SecurityEventAdmin(admin.ModelAdmin):
    list_display = ['event_type', 'risk_level', 'user', 'ip_address', 'endpoint', 'resolved', 'created_at']
    list_filter = ['event_type', 'risk_level', 'resolved']
    search_fields = ['ip_address', 'endpoint', 'user__username']
    readonly_fields = ['created_at', 'details']
    ordering = ['-created_at']

    actions = ['mark_resolved']

    @admin.action(description='Mark selected events as resolved')
    def mark_resolved(self, request, queryset):
        updated = queryset.filter(resolved=False).update(
            resolved=True,
            resolved_at=timezone.now(),
            resolved_by=request.user,
        )
        self.message_user(request, f'{updated} event(s) resolved.')


@admin.register(BlockedIP)
class BlockedIPAdmin(admin.ModelAdmin):
    list_display = ['ip_address', 'reason', 'blocked_by', 'expires_at', 'created_at']
    search_fields = ['ip_address', 'reason']
    readonly_fields = ['created_at']
    ordering = ['-created_at']

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        cache.delete(BLOCKED_IPS_CACHE_KEY)

    def delete_model(self, request, obj):
        super().delete_model(request, obj)
        cache.delete(BLOCKED_IPS_CACHE_KEY)
