from django.contrib import admin
from .models import Institution


@admin.register(Institution)
class InstitutionAdmin(admin.ModelAdmin):
    list_display = ['name', 'institution_type', 'phone', 'is_verified', 'created_at']
    list_filter = ['institution_type', 'is_verified']
    search_fields = ['name', 'address', 'license_number']
    readonly_fields = ['created_at', 'updated_at']

    actions = ['verify_institutions']

    @admin.action(description='Mark selected institutions as verified')
    def verify_institutions(self, request, queryset):
        updated = queryset.update(is_verified=True)
        self.message_user(request, f'{updated} institution(s) verified.')
