from django.contrib import admin

from .models import Distributor, InventoryRecord


@admin.register(Distributor)
class DistributorAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "owner", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("name", "owner__email")


@admin.register(InventoryRecord)
class InventoryRecordAdmin(admin.ModelAdmin):
    list_display = ("distributor", "product", "credits_available", "updated_at")
    list_filter = ("product",)
    search_fields = ("distributor__name",)
    # balances move only through issuance
    readonly_fields = ("distributor", "product", "credits_available", "updated_at")
