# codes/models.py
from __future__ import annotations

from django.db import models
from django.utils import timezone

from distributors.models import Distributor
from products.models import Product


class CodeBatch(models.Model):
    """
    One issuance call. The one-to-one on transaction is what keeps a purchase
    from ever getting a second set of codes.
    """
    transaction = models.OneToOneField(
        "payments.Transaction", on_delete=models.PROTECT, null=True, blank=True, related_name="code_batch"
    )
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="code_batches")
    distributor = models.ForeignKey(Distributor, on_delete=models.PROTECT, null=True, blank=True, related_name="code_batches")
    credits = models.PositiveIntegerField()
    quantity = models.PositiveIntegerField(default=1)
    created_by = models.CharField(max_length=128, default="system")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self):
        return f"Batch<{self.id} txn={self.transaction_id or '-'} {self.quantity}x{self.credits}>"


class CreditCode(models.Model):
    code = models.CharField(max_length=14, unique=True)
    batch = models.ForeignKey(CodeBatch, on_delete=models.PROTECT, related_name="codes")
    credits = models.PositiveIntegerField()
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="credit_codes")
    distributor = models.ForeignKey(Distributor, on_delete=models.SET_NULL, null=True, blank=True, related_name="credit_codes")
    customer_email = models.EmailField(blank=True, null=True)

    purchase_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    wholesale_price = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    expires_at = models.DateTimeField()

    is_redeemed = models.BooleanField(default=False)
    redeemed_at = models.DateTimeField(blank=True, null=True)
    redeemed_by = models.CharField(max_length=254, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=["is_redeemed", "expires_at"], name="code_redeemed_expires_idx"),
            models.Index(fields=["customer_email"], name="code_customer_email_idx"),
        ]

    def __str__(self):
        state = "redeemed" if self.is_redeemed else "open"
        return f"{self.code} | {self.credits} credits | {state}"

    def is_expired(self, now=None) -> bool:
        return self.expires_at <= (now or timezone.now())
