# codes/redemption.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.utils import timezone

from core import audit
from .generator import is_valid_format
from .models import CreditCode

logger = logging.getLogger(__name__)

INVALID_FORMAT = "INVALID_FORMAT"
NOT_FOUND = "NOT_FOUND"
ALREADY_REDEEMED = "ALREADY_REDEEMED"
EXPIRED = "EXPIRED"

MESSAGES = {
    INVALID_FORMAT: "Invalid credit code format",
    NOT_FOUND: "Credit code not found",
    ALREADY_REDEEMED: "Credit code has already been redeemed",
    EXPIRED: "Credit code has expired",
}


@dataclass
class RedemptionResult:
    success: bool
    error_code: Optional[str] = None
    credits: Optional[int] = None
    product: Optional[str] = None
    redeemed_at: Optional[datetime] = None

    @property
    def message(self) -> str:
        return MESSAGES.get(self.error_code, "Credit code redeemed")


@dataclass
class ValidationResult:
    valid: bool
    error_code: Optional[str] = None
    credits: Optional[int] = None
    product: Optional[str] = None
    expires_at: Optional[datetime] = None
    redeemed_at: Optional[datetime] = None

    @property
    def message(self) -> Optional[str]:
        return MESSAGES.get(self.error_code) if self.error_code else None


class RedemptionEngine:
    """
    The conditional UPDATE in `redeem` is the only write path for redemption
    state; the row-level atomicity of that statement is the serialization point.
    """

    def _lookup(self, code: str) -> Optional[CreditCode]:
        return CreditCode.objects.select_related("product").filter(code=code).first()

    def validate(self, code) -> ValidationResult:
        if not is_valid_format(code):
            return ValidationResult(valid=False, error_code=INVALID_FORMAT)

        row = self._lookup(code)
        if row is None:
            return ValidationResult(valid=False, error_code=NOT_FOUND)

        base = dict(credits=row.credits, product=row.product.name, expires_at=row.expires_at)
        if row.is_expired():
            return ValidationResult(valid=False, error_code=EXPIRED, **base)
        if row.is_redeemed:
            return ValidationResult(valid=False, error_code=ALREADY_REDEEMED, redeemed_at=row.redeemed_at, **base)
        return ValidationResult(valid=True, **base)

    def redeem(self, code, redeemer: str) -> RedemptionResult:
        if not is_valid_format(code):
            return RedemptionResult(success=False, error_code=INVALID_FORMAT)

        row = self._lookup(code)
        if row is None:
            return RedemptionResult(success=False, error_code=NOT_FOUND)

        now = timezone.now()
        if row.is_expired(now):
            return RedemptionResult(success=False, error_code=EXPIRED)

        updated = CreditCode.objects.filter(pk=row.pk, is_redeemed=False).update(
            is_redeemed=True, redeemed_at=now, redeemed_by=redeemer,
        )
        if not updated:
            redeemed_at = CreditCode.objects.filter(pk=row.pk).values_list("redeemed_at", flat=True).first()
            logger.info("Redemption refused for code id=%s: already redeemed", row.pk)
            return RedemptionResult(success=False, error_code=ALREADY_REDEEMED, redeemed_at=redeemed_at)

        audit.record(
            "credit_code_redeemed",
            resource_type="credit_code",
            resource_id=row.pk,
            actor=audit.mask_email(redeemer),
            payload={"credits": row.credits, "product_id": row.product_id},
        )
        logger.info("Code id=%s redeemed for %s credits", row.pk, row.credits)
        return RedemptionResult(
            success=True, credits=row.credits, product=row.product.name, redeemed_at=now,
        )
