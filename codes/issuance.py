# codes/issuance.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, ROUND_DOWN
from typing import List, Optional

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction as db_transaction
from django.utils import timezone

from core import audit
from core.capabilities import Capability, require_issuance_rights
from core.exceptions import ExhaustedError, IssuanceError, ValidationError
from distributors.inventory import InventoryTracker
from .generator import CodeGenerator
from .models import CodeBatch, CreditCode

logger = logging.getLogger(__name__)

MAX_BATCH_QUANTITY = 100


@dataclass
class IssuanceResult:
    batch: CodeBatch
    codes: List[CreditCode] = field(default_factory=list)
    created: bool = True
    requested: int = 0

    @property
    def partial(self) -> bool:
        return self.created and len(self.codes) < self.requested


class CodeIssuer:
    """
    Mints credit codes for a completed purchase or an admin/distributor batch.
    """

    def __init__(self, generator: Optional[CodeGenerator] = None,
                 inventory: Optional[InventoryTracker] = None, ttl_days: Optional[int] = None):
        self.generator = generator or CodeGenerator()
        self.inventory = inventory or InventoryTracker()
        if ttl_days is None:
            ttl_days = int(getattr(settings, "CREDIT_CODE_TTL_DAYS", 365))
        self.ttl_days = ttl_days

    # ------------------------------------------------------------------ #
    # Purchases
    # ------------------------------------------------------------------ #

    def existing_for(self, transaction) -> Optional[IssuanceResult]:
        batch = CodeBatch.objects.filter(transaction=transaction).first()
        if batch is None:
            return None
        codes = list(batch.codes.order_by("id"))
        return IssuanceResult(batch=batch, codes=codes, created=False, requested=batch.quantity)

    def issue_codes(self, transaction, quantity: Optional[int] = None) -> IssuanceResult:
        """
        At most one batch per transaction. A second call (or a racing caller)
        gets the codes already minted instead of new ones.
        """
        existing = self.existing_for(transaction)
        if existing is not None:
            logger.info("Codes already issued for transaction %s (%s codes)", transaction.id, len(existing.codes))
            return existing

        quantity = int(quantity or (transaction.metadata or {}).get("quantity") or 1)
        unit_price = (Decimal(transaction.amount) / quantity).quantize(Decimal("0.01"), rounding=ROUND_DOWN)

        try:
            with db_transaction.atomic():
                batch = CodeBatch.objects.create(
                    transaction=transaction,
                    product_id=transaction.product_id,
                    distributor_id=transaction.distributor_id,
                    credits=transaction.credits,
                    quantity=quantity,
                    created_by="purchase",
                )
                codes = self._mint(batch, quantity, customer_email=transaction.customer_email,
                                   purchase_price=unit_price)
                self._after_mint(batch, codes, action="credit_codes_issued", actor="system")
        except IntegrityError:
            existing = self.existing_for(transaction)
            if existing is None:
                raise
            logger.info("Lost issuance race for transaction %s; returning existing codes", transaction.id)
            return existing

        return IssuanceResult(batch=batch, codes=codes, created=True, requested=quantity)

    # ------------------------------------------------------------------ #
    # Admin / distributor batches
    # ------------------------------------------------------------------ #

    def issue_batch(self, *, product, credits: int, quantity: int, capability: Capability,
                    distributor=None, purchase_price=None, wholesale_price=None,
                    expires_days: Optional[int] = None, actor: str = "system") -> IssuanceResult:
        require_issuance_rights(capability, distributor.id if distributor is not None else None)

        credits, quantity = int(credits), int(quantity)
        if credits <= 0:
            raise ValidationError("credits must be > 0")
        if not 1 <= quantity <= MAX_BATCH_QUANTITY:
            raise ValidationError(f"quantity must be between 1 and {MAX_BATCH_QUANTITY}")
        if distributor is not None and not distributor.is_approved:
            raise ValidationError("Distributor not approved")

        with db_transaction.atomic():
            batch = CodeBatch.objects.create(
                product=product,
                distributor=distributor,
                credits=credits,
                quantity=quantity,
                created_by=str(actor)[:128],
            )
            codes = self._mint(
                batch, quantity,
                purchase_price=purchase_price or Decimal("0"),
                wholesale_price=wholesale_price,
                expires_days=expires_days,
            )
            self._after_mint(batch, codes, action="generate_credit_codes", actor=actor)

        return IssuanceResult(batch=batch, codes=codes, created=True, requested=quantity)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _mint(self, batch: CodeBatch, quantity: int, *, customer_email=None, purchase_price=Decimal("0"),
              wholesale_price=None, expires_days: Optional[int] = None) -> List[CreditCode]:
        expires_at = timezone.now() + timedelta(days=expires_days or self.ttl_days)
        codes: List[CreditCode] = []

        for i in range(quantity):
            try:
                code = self.generator.create_unique(
                    lambda value: CreditCode.objects.create(
                        code=value,
                        batch=batch,
                        credits=batch.credits,
                        product_id=batch.product_id,
                        distributor_id=batch.distributor_id,
                        customer_email=customer_email,
                        purchase_price=purchase_price,
                        wholesale_price=wholesale_price,
                        expires_at=expires_at,
                    )
                )
            except (ExhaustedError, DatabaseError):
                # Keep what we have; the missing ones are reconciled by hand
                logger.exception("Failed to mint code %s/%s for batch %s", i + 1, quantity, batch.id)
                continue
            codes.append(code)

        if not codes:
            raise IssuanceError(details={"batch_quantity": quantity})
        if len(codes) < quantity:
            logger.error("Partial issuance for batch %s: %s/%s codes", batch.id, len(codes), quantity)
        return codes

    def _after_mint(self, batch: CodeBatch, codes: List[CreditCode], *, action: str, actor: str) -> None:
        if batch.distributor_id:
            self.inventory.credit(batch.distributor, batch.product, batch.credits * len(codes))

        audit.record(
            action,
            resource_type="credit_codes",
            resource_id=batch.id,
            actor=actor,
            payload={
                "transaction_id": batch.transaction_id,
                "product_id": batch.product_id,
                "distributor_id": batch.distributor_id,
                "credits": batch.credits,
                "requested": batch.quantity,
                "issued": len(codes),
            },
        )
