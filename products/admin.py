from django.contrib import admin

from .models import Product, CreditPackage


class CreditPackageInline(admin.TabularInline):
    model = CreditPackage
    extra = 0
    fields = ("name", "credits", "price", "bonus_percent", "is_active")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("name",)
    inlines = [CreditPackageInline]


@admin.register(CreditPackage)
class CreditPackageAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "name", "credits", "price", "is_active")
    list_filter = ("is_active", "product")
    search_fields = ("name", "product__name")
