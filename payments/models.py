# payments/models.py
from django.db import models

from distributors.models import Distributor
from products.models import Product, CreditPackage


class Transaction(models.Model):
    """
    Ledger row for one purchase attempt. Status only moves pending -> completed
    or pending -> failed, and only through TransactionLedger's conditional updates.
    """
    KIND_PURCHASE = "purchase"
    KIND_CHOICES = [(KIND_PURCHASE, "Purchase")]

    STATUS_PENDING = "pending"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"
    STATUS = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
    ]
    TERMINAL = {STATUS_COMPLETED, STATUS_FAILED}

    kind = models.CharField(max_length=16, choices=KIND_CHOICES, default=KIND_PURCHASE)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=8, default="usd")
    credits = models.PositiveIntegerField()
    customer_email = models.EmailField()

    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="transactions")
    package = models.ForeignKey(CreditPackage, on_delete=models.SET_NULL, null=True, blank=True, related_name="transactions")
    distributor = models.ForeignKey(Distributor, on_delete=models.SET_NULL, null=True, blank=True, related_name="transactions")

    # Processor intent id; null until the intent exists
    external_payment_ref = models.CharField(max_length=128, unique=True, null=True, blank=True)
    idempotency_key = models.CharField(max_length=64, unique=True)
    client_secret = models.CharField(max_length=255, blank=True, default="")

    status = models.CharField(max_length=16, choices=STATUS, default=STATUS_PENDING, db_index=True)
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=["status", "created_at"], name="txn_status_created_idx"),
            models.Index(fields=["customer_email", "created_at"], name="txn_email_created_idx"),
        ]

    def __str__(self):
        return f"Txn<{self.id} {self.kind} {self.amount} {self.currency} {self.status} ref={self.external_payment_ref or '-'}>"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL


class ProcessedEvent(models.Model):
    """Processor event ids we have already applied."""
    event_id = models.CharField(max_length=128, unique=True)
    event_type = models.CharField(max_length=64)
    outcome = models.CharField(max_length=32, blank=True, default="")
    processed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-processed_at",)

    def __str__(self):
        return f"{self.event_type} {self.event_id} -> {self.outcome or '-'}"


class ProviderLog(models.Model):
    """Payment provider I/O log with masked payloads."""
    provider = models.CharField(max_length=32, default="stripe")
    endpoint = models.CharField(max_length=128)
    reference = models.CharField(max_length=128, blank=True, null=True, db_index=True)
    request_payload = models.JSONField(default=dict, blank=True)
    response_payload = models.JSONField(default=dict, blank=True)
    status_code = models.CharField(max_length=10)
    error_message = models.CharField(max_length=255, blank=True, null=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-timestamp",)
        indexes = [
            models.Index(fields=["provider", "timestamp"], name="providerlog_provider_ts_idx"),
            models.Index(fields=["status_code", "timestamp"], name="providerlog_status_ts_idx"),
        ]

    def __str__(self):
        return f"{self.provider} | {self.endpoint} | {self.reference or '-'} | {self.status_code}"
