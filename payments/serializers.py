# payments/serializers.py
from rest_framework import serializers


class CreateIntentRequestSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    package_id = serializers.IntegerField(min_value=1)
    customer_email = serializers.EmailField()
    idempotency_key = serializers.CharField(max_length=128, required=False, allow_blank=False)
    # Buying stock on behalf of an owned distributor account
    distributor_id = serializers.IntegerField(min_value=1, required=False)

    def validate_customer_email(self, v: str) -> str:
        return v.strip().lower()


class ConfirmPurchaseRequestSerializer(serializers.Serializer):
    intent_id = serializers.CharField(max_length=128)
    customer_email = serializers.EmailField()
    product_id = serializers.IntegerField(min_value=1)
    package_id = serializers.IntegerField(min_value=1)

    def validate_customer_email(self, v: str) -> str:
        return v.strip().lower()


class IssuedCodeSerializer(serializers.Serializer):
    code = serializers.CharField()
    credits = serializers.IntegerField()
    expires_at = serializers.DateTimeField()


class StatsQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start, end = attrs.get("start_date"), attrs.get("end_date")
        if start and end and start > end:
            raise serializers.ValidationError("start_date must be on or before end_date")
        return attrs
