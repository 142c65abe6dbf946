from django.contrib import admin
from .models import DonorProfile


@admin.register(DonorProfile)
class DonorProfileAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'blood_type', 'successful_donations', 'rating', 'is_available', 'location_sharing', 'can_donate_display']
    list_filter = ['blood_type', 'is_available', 'location_sharing', 'is_verified']
    search_fields = ['full_name', 'user__username', 'phone']
    ordering = ['-successful_donations']
    readonly_fields = ['successful_donations', 'total_responses', 'response_rate', 'avg_response_minutes', 'created_at', 'updated_at']

    fieldsets = (
        ('Personal Info', {
            'fields': ('user', 'full_name', 'date_of_birth', 'phone', 'blood_type', 'address')
        }),
        ('Location', {
            'fields': ('latitude', 'longitude', 'location_sharing')
        }),
        ('Donation Stats', {
            'fields': ('is_available', 'last_donation_date', 'successful_donations', 'total_responses',
                       'response_rate', 'avg_response_minutes', 'rating', 'is_verified')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    @admin.display(boolean=True, description='Can Donate Now')
    def can_donate_display(self, obj):
        return obj.can_donate
