from rest_framework import serializers

from .models import InventoryRecord


class InventoryRecordSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(source="product.id", read_only=True)
    product = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = InventoryRecord
        fields = ("product_id", "product", "credits_available", "updated_at")
        read_only_fields = fields
