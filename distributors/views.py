from django.shortcuts import get_object_or_404

from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from drf_spectacular.utils import extend_schema, OpenApiResponse

from core.capabilities import resolve_capability, require_issuance_rights
from .inventory import InventoryTracker
from .models import Distributor
from .serializers import InventoryRecordSerializer


@extend_schema(
    description="Credit inventory for a distributor (admin or the owning distributor).",
    request=None,
    responses={200: InventoryRecordSerializer(many=True), 403: OpenApiResponse(description="Access denied")},
)
class DistributorInventoryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, distributor_id: int):
        capability = resolve_capability(request.user)
        require_issuance_rights(capability, distributor_id)

        distributor = get_object_or_404(Distributor, pk=distributor_id)
        records = InventoryTracker().summary(distributor)
        return Response({
            "success": True,
            "data": {
                "distributor_id": distributor.id,
                "status": distributor.status,
                "inventory": InventoryRecordSerializer(records, many=True).data,
            },
        })
