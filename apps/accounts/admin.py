from django.contrib import admin

from .models import User


# -------------------------
# User admin
# -------------------------
@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('id', 'email', 'name', 'role', 'is_active', 'is_staff', 'created_at')
    search_fields = ('email', 'name')
    readonly_fields = ('created_at', 'updated_at', 'last_login')
    list_filter = ('role', 'is_active', 'is_staff')
    exclude = ('password',)
    ordering = ('-created_at',)

    actions = ['deactivate_users', 'export_user_ids']

    def deactivate_users(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"Deactivated {updated} users")
    deactivate_users.short_description = 'Deactivate selected users'

    def export_user_ids(self, request, queryset):
        ids = ",".join(str(u.id) for u in queryset)
        self.message_user(request, f"IDs: {ids}")
    export_user_ids.short_description = 'Copy selected user IDs'
