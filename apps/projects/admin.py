from django.contrib import admin

from .models import Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'client_email', 'category', 'budget', 'status', 'deadline', 'created_at')
    search_fields = ('title', 'description', 'client__email')
    list_filter = ('status', 'category')
    readonly_fields = ('created_at', 'updated_at')
    raw_id_fields = ('client',)

    def client_email(self, obj):
        return obj.client.email if obj.client else None
    client_email.short_description = 'client'
