from django.contrib import admin

from .models import Transaction, ProcessedEvent, ProviderLog


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "customer_email", "product", "amount", "currency", "credits", "status", "created_at")
    list_filter = ("status", "currency", "product")
    search_fields = ("customer_email", "external_payment_ref", "idempotency_key")
    date_hierarchy = "created_at"
    # status only changes through the ledger
    readonly_fields = ("status", "external_payment_ref", "idempotency_key", "client_secret", "completed_at")


@admin.register(ProcessedEvent)
class ProcessedEventAdmin(admin.ModelAdmin):
    list_display = ("event_id", "event_type", "outcome", "processed_at")
    list_filter = ("event_type", "outcome")
    search_fields = ("event_id",)


@admin.register(ProviderLog)
class ProviderLogAdmin(admin.ModelAdmin):
    list_display = ("id", "provider", "endpoint", "reference", "status_code", "timestamp")
    list_filter = ("provider", "status_code")
    search_fields = ("reference", "endpoint")
