from django.contrib import admin
from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'role', 'institution', 'is_locked', 'is_staff')
    search_fields = ('username', 'email')
    list_filter = ('role', 'is_locked', 'is_staff')

    actions = ['unlock_accounts']

    @admin.action(description='Unlock selected accounts')
    def unlock_accounts(self, request, queryset):
        updated = queryset.update(is_locked=False, failed_attempts=0)
        self.message_user(request, f'{updated} account(s) unlocked.')
