from django.contrib import admin

from .models import CodeBatch, CreditCode


class CreditCodeInline(admin.TabularInline):
    model = CreditCode
    extra = 0
    can_delete = False
    fields = ("code", "credits", "expires_at", "is_redeemed", "redeemed_at")
    readonly_fields = fields


@admin.register(CodeBatch)
class CodeBatchAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "distributor", "transaction", "quantity", "credits", "created_by", "created_at")
    list_filter = ("product", "distributor")
    inlines = [CreditCodeInline]


@admin.register(CreditCode)
class CreditCodeAdmin(admin.ModelAdmin):
    list_display = ("code", "product", "credits", "is_redeemed", "redeemed_at", "expires_at")
    list_filter = ("is_redeemed", "product", "distributor")
    search_fields = ("code", "customer_email", "redeemed_by")
    # redemption state only changes through the redeem endpoint
    readonly_fields = ("code", "is_redeemed", "redeemed_at", "redeemed_by")
