# payments/purchase.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.conf import settings

from codes.issuance import CodeIssuer
from core.exceptions import NotFoundError, PaymentError, ValidationError
from core.idempotency import new_nonce
from products.models import CreditPackage, Product
from .completion import complete_purchase
from .gateway import PaymentGateway, get_gateway
from .ledger import PurchaseSpec, TransactionLedger
from .models import Transaction

logger = logging.getLogger(__name__)


@dataclass
class IntentResult:
    transaction: Transaction
    intent_id: str
    client_secret: str


@dataclass
class ConfirmResult:
    transaction: Transaction
    codes: List = field(default_factory=list)
    newly_completed: bool = False


class PurchaseCoordinator:
    """
    Synchronous purchase flow. Confirmation goes through the same completion
    entry point as the webhook, so whichever of the two arrives first issues
    the codes and the other gets them back unchanged.
    """

    def __init__(self, gateway: Optional[PaymentGateway] = None, ledger: Optional[TransactionLedger] = None,
                 issuer: Optional[CodeIssuer] = None, notify=None):
        self.gateway = gateway or get_gateway()
        self.ledger = ledger or TransactionLedger()
        self.issuer = issuer or CodeIssuer()
        self.notify = notify

    def _load(self, product_id, package_id):
        product = Product.objects.filter(pk=product_id).first()
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        if not product.is_active:
            raise ValidationError("Product is not available for purchase", details={"product_id": product_id})

        package = CreditPackage.objects.filter(pk=package_id, product=product, is_active=True).first()
        if package is None:
            raise NotFoundError("Credit package not found", details={"package_id": package_id})
        return product, package

    # ------------------------------------------------------------------ #
    # createIntent
    # ------------------------------------------------------------------ #

    def create_intent(self, product_id, package_id, customer_email: str,
                      idempotency_key: Optional[str] = None, distributor=None) -> IntentResult:
        product, package = self._load(product_id, package_id)
        spec = PurchaseSpec(
            product=product,
            package=package,
            customer_email=customer_email,
            nonce=idempotency_key or new_nonce(),
            distributor=distributor,
            currency=getattr(settings, "PAYMENT_CURRENCY", "usd"),
        )
        txn = self.ledger.open_pending(spec)

        # Replayed request: the intent already exists
        if txn.external_payment_ref:
            return IntentResult(transaction=txn, intent_id=txn.external_payment_ref, client_secret=txn.client_secret)

        intent = self.gateway.create_intent(
            amount=package.price,
            currency=txn.currency,
            customer_email=customer_email,
            metadata={
                "transaction_id": txn.id,
                "product_id": product.id,
                "package_id": package.id,
                "credits": package.credits,
            },
            idempotency_key=txn.idempotency_key,
        )
        txn = self.ledger.attach_intent(txn, intent)
        logger.info("Intent %s created for transaction %s", txn.external_payment_ref, txn.id)
        return IntentResult(transaction=txn, intent_id=txn.external_payment_ref, client_secret=txn.client_secret)

    # ------------------------------------------------------------------ #
    # confirmPurchase
    # ------------------------------------------------------------------ #

    def confirm_purchase(self, intent_id: str, customer_email: str, product_id, package_id) -> ConfirmResult:
        intent = self.gateway.retrieve_intent(intent_id)
        if not intent.succeeded:
            raise PaymentError("Payment has not been completed", details={"status": intent.status})

        txn = self.ledger.get_by_ref(intent_id)
        if txn is None:
            product, package = self._load(product_id, package_id)
            # Intent made outside create-intent; the intent id doubles as the nonce
            txn = self.ledger.open_pending(PurchaseSpec(
                product=product,
                package=package,
                customer_email=customer_email,
                nonce=intent_id,
                currency=intent.currency or getattr(settings, "PAYMENT_CURRENCY", "usd"),
            ))
            txn = self.ledger.attach_intent(txn, intent)
            if txn.external_payment_ref != intent_id:
                raise ValidationError("Transaction is bound to another payment", details={"transaction_id": txn.id})
        # Existing purchase: catalogue status may have changed since payment
        elif (txn.customer_email.lower() != customer_email.lower()
              or txn.product_id != product_id or txn.package_id != package_id):
            raise ValidationError("Purchase details do not match this payment")

        if intent.amount != txn.amount:
            raise ValidationError("Payment amount does not match the package price",
                                  details={"paid": str(intent.amount), "expected": str(txn.amount)})

        if txn.status == Transaction.STATUS_FAILED:
            raise PaymentError("Payment failed for this transaction", details={"transaction_id": txn.id})

        kwargs = {"ledger": self.ledger, "issuer": self.issuer, "result_fields": {"completed_via": "confirm"}}
        if self.notify is not None:
            kwargs["notify"] = self.notify
        outcome = complete_purchase(intent_id, **kwargs)
        txn = outcome.transaction

        if outcome.won:
            return ConfirmResult(transaction=txn, codes=outcome.codes, newly_completed=True)

        if txn.status == Transaction.STATUS_FAILED:
            raise PaymentError("Payment failed for this transaction", details={"transaction_id": txn.id})
        if txn.distributor_id:
            return ConfirmResult(transaction=txn)

        # Completed elsewhere; issue_codes hands back the existing batch
        issuance = self.issuer.issue_codes(txn)
        return ConfirmResult(transaction=txn, codes=list(issuance.codes))
