from django.db.models import Count, Sum
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from drf_spectacular.utils import extend_schema, OpenApiResponse

from core.capabilities import DISTRIBUTOR, resolve_capability
from core.exceptions import error_body
from distributors.models import Distributor
from payments.models import Transaction
from products.models import Product
from .issuance import CodeIssuer
from .models import CreditCode
from .redemption import ALREADY_REDEEMED, EXPIRED, INVALID_FORMAT, NOT_FOUND, RedemptionEngine
from .serializers import CreditCodeSerializer, GenerateCodesRequestSerializer, RedeemRequestSerializer

REDEMPTION_STATUS = {
    INVALID_FORMAT: status.HTTP_400_BAD_REQUEST,
    NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ALREADY_REDEEMED: status.HTTP_409_CONFLICT,
    EXPIRED: status.HTTP_410_GONE,
}


class RedeemThrottle(AnonRateThrottle):
    scope = "redeem"


@extend_schema(
    description="Redeem a credit code. Each code succeeds exactly once.",
    request=RedeemRequestSerializer,
    responses={
        200: OpenApiResponse(description="Redeemed"),
        400: OpenApiResponse(description="INVALID_FORMAT"),
        404: OpenApiResponse(description="NOT_FOUND"),
        409: OpenApiResponse(description="ALREADY_REDEEMED"),
        410: OpenApiResponse(description="EXPIRED"),
    },
)
class RedeemCodeView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [RedeemThrottle]

    def post(self, request):
        ser = RedeemRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        result = RedemptionEngine().redeem(ser.validated_data["code"], ser.validated_data["customer_email"])
        if not result.success:
            extra = {"redeemed_at": result.redeemed_at} if result.redeemed_at else {}
            return Response(
                error_body(result.message, result.error_code, **extra),
                status=REDEMPTION_STATUS[result.error_code],
            )

        return Response({
            "success": True,
            "data": {
                "credits": result.credits,
                "product": result.product,
                "redeemed_at": result.redeemed_at,
            },
        })


@extend_schema(
    description="Check a credit code without redeeming it.",
    request=None,
    responses={200: OpenApiResponse(description="Lookup result")},
)
class ValidateCodeView(APIView):
    permission_classes = [AllowAny]
    throttle_classes = [RedeemThrottle]

    def get(self, request, code: str):
        result = RedemptionEngine().validate(code.strip())
        data = {"valid": result.valid}
        if result.credits is not None:
            data.update(credits=result.credits, product=result.product, expires_at=result.expires_at)
        if result.error_code:
            data.update(error_code=result.error_code, message=result.message)
        if result.redeemed_at:
            data["redeemed_at"] = result.redeemed_at
        return Response({"success": True, "data": data})


@extend_schema(
    description="Generate a batch of credit codes (admin, or a distributor for its own stock).",
    request=GenerateCodesRequestSerializer,
    responses={201: CreditCodeSerializer(many=True), 403: OpenApiResponse(description="Access denied")},
)
class GenerateCodesView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = GenerateCodesRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        capability = resolve_capability(request.user)
        distributor_id = data.get("distributor_id")
        if distributor_id is None and capability.kind == DISTRIBUTOR:
            distributor_id = capability.owner_id

        product = get_object_or_404(Product, pk=data["product_id"])
        distributor = get_object_or_404(Distributor, pk=distributor_id) if distributor_id else None

        result = CodeIssuer().issue_batch(
            product=product,
            credits=data["credits"],
            quantity=data["quantity"],
            capability=capability,
            distributor=distributor,
            purchase_price=data.get("purchase_price"),
            wholesale_price=data.get("wholesale_price"),
            expires_days=data.get("expires_days"),
            actor=request.user.get_username(),
        )
        return Response({
            "success": True,
            "data": {
                "batch_id": result.batch.id,
                "codes": CreditCodeSerializer(result.codes, many=True).data,
                "generated_count": len(result.codes),
                "requested_count": result.requested,
            },
        }, status=status.HTTP_201_CREATED)


@extend_schema(
    description="Public platform totals.",
    request=None,
    responses={200: OpenApiResponse(description="Totals")},
)
class PublicStatsView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        redeemed = CreditCode.objects.filter(is_redeemed=True).aggregate(n=Count("id"), credits=Sum("credits"))
        customers = (
            Transaction.objects.filter(status=Transaction.STATUS_COMPLETED)
            .order_by().values("customer_email").distinct().count()
        )
        return Response({
            "success": True,
            "data": {
                "total_customers": customers,
                "total_credits_redeemed": redeemed["credits"] or 0,
                "total_codes_redeemed": redeemed["n"] or 0,
                "active_distributors": Distributor.objects.filter(status=Distributor.STATUS_APPROVED).count(),
                "active_products": Product.objects.filter(status=Product.STATUS_ACTIVE).count(),
            },
        })
