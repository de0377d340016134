from django.urls import path
from .views import DistributorInventoryView

urlpatterns = [
    path("<int:distributor_id>/inventory/", DistributorInventoryView.as_view(), name="distributor_inventory"),
]
