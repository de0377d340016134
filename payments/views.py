# payments/views.py
import logging

from django.conf import settings
from django.db.models import Count, Sum
from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.utils import extend_schema, OpenApiResponse

from core.capabilities import require_admin, require_issuance_rights, resolve_capability
from distributors.models import Distributor
from .gateway import get_gateway
from .models import Transaction
from .purchase import PurchaseCoordinator
from .serializers import (
    ConfirmPurchaseRequestSerializer,
    CreateIntentRequestSerializer,
    IssuedCodeSerializer,
    StatsQuerySerializer,
)
from .webhooks import WebhookReconciler

logger = logging.getLogger(__name__)


@extend_schema(
    description="Open a pending purchase and create a payment intent for it.",
    request=CreateIntentRequestSerializer,
    responses={201: OpenApiResponse(description="Intent created"), 402: OpenApiResponse(description="Provider error")},
)
class CreateIntentView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        ser = CreateIntentRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        distributor = None
        if data.get("distributor_id"):
            require_issuance_rights(resolve_capability(request.user), data["distributor_id"])
            distributor = get_object_or_404(Distributor, pk=data["distributor_id"])

        result = PurchaseCoordinator(gateway=get_gateway()).create_intent(
            product_id=data["product_id"],
            package_id=data["package_id"],
            customer_email=data["customer_email"],
            idempotency_key=data.get("idempotency_key"),
            distributor=distributor,
        )
        txn = result.transaction
        return Response({
            "success": True,
            "data": {
                "client_secret": result.client_secret,
                "intent_id": result.intent_id,
                "transaction_id": txn.id,
                "amount": str(txn.amount),
                "currency": txn.currency,
                "product": txn.product.name,
                "package": {
                    "id": txn.package_id,
                    "name": txn.package.name if txn.package else None,
                    "credits": txn.credits,
                },
            },
        }, status=status.HTTP_201_CREATED)


@extend_schema(
    description="Confirm a succeeded payment and return its credit codes. Safe to repeat.",
    request=ConfirmPurchaseRequestSerializer,
    responses={200: IssuedCodeSerializer(many=True), 402: OpenApiResponse(description="Payment not completed")},
)
class ConfirmPurchaseView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        ser = ConfirmPurchaseRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        result = PurchaseCoordinator(gateway=get_gateway()).confirm_purchase(
            intent_id=data["intent_id"],
            customer_email=data["customer_email"],
            product_id=data["product_id"],
            package_id=data["package_id"],
        )
        return Response({
            "success": True,
            "data": {
                "transaction_id": result.transaction.id,
                "credits_purchased": result.transaction.credits,
                "codes": IssuedCodeSerializer(result.codes, many=True).data,
            },
        })


@method_decorator(csrf_exempt, name="dispatch")
class StripeWebhookView(APIView):
    """
    Raw body + Stripe-Signature header. Verification happens before anything
    is parsed; a bad signature is a 400 and nothing is applied.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    # Deliveries all come from the processor's IPs; the signature is the gate
    throttle_classes = []

    @extend_schema(exclude=True)
    def post(self, request):
        raw = request.body
        header = request.headers.get("Stripe-Signature", "")

        gateway = get_gateway()
        event = gateway.verify_event(raw, header, getattr(settings, "STRIPE_WEBHOOK_SECRET", ""))
        outcome = WebhookReconciler().handle(event)
        logger.info("Webhook %s (%s) -> %s", event.id, event.type, outcome)
        return Response({"received": True, "outcome": outcome})


@extend_schema(
    description="Completed purchase totals (admin only).",
    parameters=[StatsQuerySerializer],
    responses={200: OpenApiResponse(description="Totals")},
)
class PaymentStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        require_admin(resolve_capability(request.user))

        q = StatsQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        qs = Transaction.objects.filter(status=Transaction.STATUS_COMPLETED)
        if q.validated_data.get("start_date"):
            qs = qs.filter(completed_at__date__gte=q.validated_data["start_date"])
        if q.validated_data.get("end_date"):
            qs = qs.filter(completed_at__date__lte=q.validated_data["end_date"])

        totals = qs.aggregate(count=Count("id"), revenue=Sum("amount"), credits=Sum("credits"))
        by_product = list(
            qs.values("product_id", "product__name")
            .annotate(count=Count("id"), revenue=Sum("amount"), credits=Sum("credits"))
            .order_by("product_id")
        )
        return Response({
            "success": True,
            "data": {
                "total_transactions": totals["count"] or 0,
                "total_revenue": str(totals["revenue"] or 0),
                "total_credits": totals["credits"] or 0,
                "by_product": [
                    {
                        "product_id": row["product_id"],
                        "product": row["product__name"],
                        "count": row["count"],
                        "revenue": str(row["revenue"] or 0),
                        "credits": row["credits"] or 0,
                    }
                    for row in by_product
                ],
            },
        })
