from django.contrib import admin

from .models import BloodRequest, DonorResponse, RequestStatusHistory


class DonorResponseInline(admin.TabularInline):
    model = DonorResponse
    extra = 0
    fields = ['donor', 'response_type', 'status', 'eta_minutes', 'responded_at']
    readonly_fields = ['responded_at']


class StatusHistoryInline(admin.TabularInline):
    model = RequestStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ['previous_status', 'new_status', 'changed_by', 'note', 'created_at']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(BloodRequest)
class BloodRequestAdmin(admin.ModelAdmin):
    list_display = ['hospital_name', 'blood_type', 'units_needed', 'urgency', 'status', 'institution', 'created_at']
    list_filter = ['status', 'urgency', 'blood_type']
    search_fields = ['patient_name', 'hospital_name', 'contact_phone']
    readonly_fields = ['id', 'status', 'created_at', 'updated_at']
    ordering = ['-created_at']
    inlines = [DonorResponseInline, StatusHistoryInline]


@admin.register(DonorResponse)
class DonorResponseAdmin(admin.ModelAdmin):
    list_display = ['blood_request', 'donor', 'response_type', 'status', 'eta_minutes', 'responded_at']
    list_filter = ['response_type', 'status']
    search_fields = ['donor__full_name']
