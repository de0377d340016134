from rest_framework import serializers

from .models import Product, CreditPackage


class CreditPackageSerializer(serializers.ModelSerializer):
    class Meta:
        model = CreditPackage
        fields = ("id", "name", "credits", "price", "bonus_percent")
        read_only_fields = fields


class ProductSerializer(serializers.ModelSerializer):
    credit_packages = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ("id", "name", "description", "credit_costs", "status", "created_at", "credit_packages")
        read_only_fields = fields

    def get_credit_packages(self, obj):
        # prefetched as active-only in the view
        packages = getattr(obj, "active_packages", None)
        if packages is None:
            packages = obj.packages.filter(is_active=True)
        return CreditPackageSerializer(packages, many=True).data
