from rest_framework import serializers

from .issuance import MAX_BATCH_QUANTITY
from .models import CreditCode


class RedeemRequestSerializer(serializers.Serializer):
    # Format is checked by the engine so a bad code gets INVALID_FORMAT, not a field error
    code = serializers.CharField(allow_blank=True, trim_whitespace=True)
    customer_email = serializers.EmailField()

    def validate_customer_email(self, v: str) -> str:
        return v.strip().lower()


class GenerateCodesRequestSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    credits = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1, max_value=MAX_BATCH_QUANTITY, default=1)
    distributor_id = serializers.IntegerField(min_value=1, required=False)
    purchase_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    wholesale_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    expires_days = serializers.IntegerField(min_value=1, max_value=3650, required=False)


class CreditCodeSerializer(serializers.ModelSerializer):
    product = serializers.CharField(source="product.name", read_only=True)

    class Meta:
        model = CreditCode
        fields = ("code", "credits", "product", "distributor_id", "purchase_price",
                  "wholesale_price", "expires_at", "is_redeemed", "created_at")
        read_only_fields = fields
