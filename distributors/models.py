# distributors/models.py
from __future__ import annotations

from django.conf import settings
from django.db import models

from products.models import Product


class Distributor(models.Model):
    """
    Reseller account. Created and approved by admins; onboarding lives elsewhere.
    """
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_SUSPENDED = "suspended"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_SUSPENDED, "Suspended"),
    ]

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="distributors")
    name = models.CharField(max_length=120)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("name",)

    def __str__(self) -> str:
        return f"{self.name} [{self.status}]"

    @property
    def is_approved(self) -> bool:
        return self.status == self.STATUS_APPROVED


class InventoryRecord(models.Model):
    """
    Credits a distributor holds for one product. Only ever incremented by issuance.
    """
    distributor = models.ForeignKey(Distributor, on_delete=models.CASCADE, related_name="inventory")
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="inventory_records")
    credits_available = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["distributor", "product"], name="inventory_distributor_product_unique"),
            models.CheckConstraint(condition=models.Q(credits_available__gte=0), name="inventory_never_negative"),
        ]

    def __str__(self) -> str:
        return f"Inventory<{self.distributor_id}:{self.product_id}> credits={self.credits_available}"
