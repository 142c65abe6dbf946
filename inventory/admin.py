from django.contrib import admin
from .models import BloodUnit, InventoryAlert, InventoryTransaction


@admin.register(BloodUnit)
class BloodUnitAdmin(admin.ModelAdmin):
    list_display = ['id', 'blood_type', 'blood_bank', 'status', 'quality_score', 'expiry_date', 'reserved_for_request']
    list_filter = ['blood_type', 'status', 'blood_bank']
    search_fields = ['batch_number', 'storage_location']
    ordering = ['expiry_date']
    readonly_fields = ['reserved_for_request', 'reserved_at', 'created_at', 'updated_at']


@admin.register(InventoryTransaction)
class InventoryTransactionAdmin(admin.ModelAdmin):
    list_display = ['transaction_type', 'blood_type', 'quantity', 'blood_request', 'performed_by', 'created_at']
    list_filter = ['transaction_type', 'blood_type']
    ordering = ['-created_at']
    readonly_fields = ['unit_ids', 'created_at']


@admin.register(InventoryAlert)
class InventoryAlertAdmin(admin.ModelAdmin):
    list_display = ['alert_type', 'severity', 'blood_bank', 'blood_type', 'resolved', 'created_at']
    list_filter = ['alert_type', 'severity', 'resolved']
    ordering = ['-created_at']
    readonly_fields = ['details', 'created_at', 'updated_at']
