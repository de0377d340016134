from django.db.models import Prefetch

from rest_framework.views import APIView
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from drf_spectacular.utils import extend_schema

from .models import Product, CreditPackage
from .serializers import ProductSerializer


@extend_schema(
    description="Active products with their active credit packages.",
    request=None,
    responses={200: ProductSerializer(many=True)},
)
class ProductListView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        qs = Product.objects.filter(status=Product.STATUS_ACTIVE).prefetch_related(
            Prefetch(
                "packages",
                queryset=CreditPackage.objects.filter(is_active=True),
                to_attr="active_packages",
            )
        )
        return Response({"success": True, "data": ProductSerializer(qs, many=True).data})
