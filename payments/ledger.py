# payments/ledger.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from django.db import IntegrityError, transaction as db_transaction
from django.utils import timezone

from core import audit
from core.exceptions import NotFoundError, ValidationError
from core.idempotency import derive_key
from .gateway import Intent
from .models import Transaction

logger = logging.getLogger(__name__)


@dataclass
class PurchaseSpec:
    product: object
    package: object
    customer_email: str
    nonce: str
    distributor: object = None
    currency: str = "usd"
    quantity: int = 1

    @property
    def idempotency_key(self) -> str:
        return derive_key(self.product.id, self.package.id, self.customer_email, self.nonce)


class TransactionLedger:
    """
    Owns Transaction state. Every transition is one conditional UPDATE keyed on
    status='pending', so whichever caller's UPDATE hits the row first wins and
    every later caller sees zero affected rows.
    """

    def open_pending(self, spec: PurchaseSpec) -> Transaction:
        key = spec.idempotency_key
        txn = Transaction.objects.filter(idempotency_key=key).first()
        if txn is None:
            try:
                with db_transaction.atomic():
                    txn = Transaction.objects.create(
                        kind=Transaction.KIND_PURCHASE,
                        amount=spec.package.price,
                        currency=spec.currency,
                        credits=spec.package.credits,
                        customer_email=spec.customer_email,
                        product=spec.product,
                        package=spec.package,
                        distributor=spec.distributor,
                        idempotency_key=key,
                        metadata={
                            "package_id": spec.package.id,
                            "package_name": spec.package.name,
                            "credits": spec.package.credits,
                            "quantity": spec.quantity,
                        },
                    )
                logger.info("Opened pending transaction %s", txn.id)
                return txn
            except IntegrityError:
                txn = Transaction.objects.get(idempotency_key=key)

        if txn.status != Transaction.STATUS_PENDING:
            raise ValidationError(
                "This purchase has already been processed",
                details={"transaction_id": txn.id, "status": txn.status},
            )
        return txn

    def attach_intent(self, transaction: Transaction, intent: Intent) -> Transaction:
        Transaction.objects.filter(pk=transaction.pk, external_payment_ref__isnull=True).update(
            external_payment_ref=intent.intent_id,
            client_secret=intent.client_secret,
        )
        transaction.refresh_from_db()
        if transaction.external_payment_ref != intent.intent_id:
            logger.warning(
                "Transaction %s already bound to intent %s; ignoring %s",
                transaction.id, transaction.external_payment_ref, intent.intent_id,
            )
        return transaction

    def get_by_ref(self, external_ref: str) -> Optional[Transaction]:
        if not external_ref:
            return None
        return Transaction.objects.filter(external_payment_ref=external_ref).first()

    def complete(self, external_ref: str, result_fields: Optional[Dict] = None) -> Tuple[Transaction, bool]:
        """
        pending -> completed. Returns (transaction, was_already_completed).
        was_already_completed is True whenever this call did not perform the
        transition; `transaction.status` tells completed from failed.
        """
        now = timezone.now()
        won = Transaction.objects.filter(
            external_payment_ref=external_ref, status=Transaction.STATUS_PENDING
        ).update(status=Transaction.STATUS_COMPLETED, completed_at=now)

        txn = self.get_by_ref(external_ref)
        if txn is None:
            raise NotFoundError("Transaction not found", details={"external_payment_ref": external_ref})

        if not won:
            if txn.status == Transaction.STATUS_FAILED:
                logger.warning("Completion for already failed transaction %s ignored", txn.id)
            return txn, True

        if result_fields:
            txn.metadata = {**(txn.metadata or {}), **result_fields}
            txn.save(update_fields=["metadata"])

        audit.record(
            "transaction_completed",
            resource_type="transaction",
            resource_id=txn.id,
            payload={"external_payment_ref": external_ref, "amount": str(txn.amount), "credits": txn.credits},
        )
        logger.info("Transaction %s completed (ref=%s)", txn.id, external_ref)
        return txn, False

    def fail(self, external_ref: str, reason: str = "") -> Transaction:
        now = timezone.now()
        won = Transaction.objects.filter(
            external_payment_ref=external_ref, status=Transaction.STATUS_PENDING
        ).update(status=Transaction.STATUS_FAILED, completed_at=now)

        txn = self.get_by_ref(external_ref)
        if txn is None:
            raise NotFoundError("Transaction not found", details={"external_payment_ref": external_ref})

        if won:
            audit.record(
                "transaction_failed",
                resource_type="transaction",
                resource_id=txn.id,
                payload={"external_payment_ref": external_ref, "reason": reason},
            )
            logger.info("Transaction %s failed (ref=%s)", txn.id, external_ref)
        return txn
