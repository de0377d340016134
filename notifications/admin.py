from django.contrib import admin
from .models import EmailLog


@admin.register(EmailLog)
class EmailLogAdmin(admin.ModelAdmin):
    list_display = ("id", "to", "subject", "status", "created_at")
    search_fields = ("to", "subject")
    list_filter = ("status", "created_at")
    date_hierarchy = "created_at"
    # codes are in the body; keep the record as it was sent
    readonly_fields = ("to", "subject", "body", "status", "error", "created_at")
