# distributors/inventory.py
from __future__ import annotations

import logging
from typing import List

from django.db import IntegrityError, transaction as db_transaction
from django.db.models import F

from core.exceptions import ValidationError
from .models import InventoryRecord

logger = logging.getLogger(__name__)


class InventoryTracker:
    """
    Per-distributor, per-product credit balances.
    Increments go through a single UPDATE with an F() expression so
    concurrent issuers never lose an increment.
    """

    def credit(self, distributor, product, credits: int) -> InventoryRecord:
        credits = int(credits)
        if credits <= 0:
            raise ValidationError("Inventory credit must be > 0")

        with db_transaction.atomic():
            updated = InventoryRecord.objects.filter(distributor=distributor, product=product).update(
                credits_available=F("credits_available") + credits
            )
            if not updated:
                try:
                    with db_transaction.atomic():
                        InventoryRecord.objects.create(
                            distributor=distributor, product=product, credits_available=credits
                        )
                except IntegrityError:
                    # Another issuer created the row first; add on top of theirs
                    InventoryRecord.objects.filter(distributor=distributor, product=product).update(
                        credits_available=F("credits_available") + credits
                    )

        record = InventoryRecord.objects.get(distributor=distributor, product=product)
        logger.info(
            "Inventory credited distributor=%s product=%s +%s -> %s",
            record.distributor_id, record.product_id, credits, record.credits_available,
        )
        return record

    def balance(self, distributor, product) -> int:
        value = (
            InventoryRecord.objects.filter(distributor=distributor, product=product)
            .values_list("credits_available", flat=True)
            .first()
        )
        return int(value or 0)

    def summary(self, distributor) -> List[InventoryRecord]:
        return list(
            InventoryRecord.objects.filter(distributor=distributor).select_related("product").order_by("product__name")
        )
