from django.contrib import admin

from .models import Proposal


@admin.register(Proposal)
class ProposalAdmin(admin.ModelAdmin):
    list_display = ('id', 'project', 'freelancer_email', 'proposed_budget', 'status', 'created_at')
    search_fields = ('project__title', 'freelancer__email')
    list_filter = ('status',)
    readonly_fields = ('created_at', 'updated_at')
    raw_id_fields = ('project', 'freelancer')

    def freelancer_email(self, obj):
        return obj.freelancer.email if obj.freelancer else None
    freelancer_email.short_description = 'freelancer'
