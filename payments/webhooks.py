# payments/webhooks.py
from __future__ import annotations

import logging
from typing import Optional

from django.db import IntegrityError, transaction as db_transaction

from codes.issuance import CodeIssuer
from core import audit
from .completion import complete_purchase
from .gateway import Event
from .ledger import TransactionLedger
from .models import ProcessedEvent

logger = logging.getLogger(__name__)

SUCCEEDED = "intent.succeeded"
FAILED = "intent.failed"
DISPUTE = "dispute.created"


class WebhookReconciler:
    """
    Applies processor events to local state. Safe to run any number of times
    for the same event: each effect below is itself idempotent, and processed
    event ids are recorded once the effect has gone through.
    """

    def __init__(self, ledger: Optional[TransactionLedger] = None, issuer: Optional[CodeIssuer] = None,
                 notify=None):
        self.ledger = ledger or TransactionLedger()
        self.issuer = issuer or CodeIssuer()
        self.notify = notify

    def handle(self, event: Event) -> str:
        if ProcessedEvent.objects.filter(event_id=event.id).exists():
            logger.info("Event %s (%s) already processed", event.id, event.type)
            return "duplicate"

        if event.type == DISPUTE:
            # claim and audit row commit together
            return self._dispute(event)

        if event.type == SUCCEEDED:
            outcome = self._succeeded(event)
        elif event.type == FAILED:
            outcome = self._failed(event)
        else:
            logger.info("Unhandled webhook event type: %s", event.raw_type or event.type)
            outcome = "ignored"

        ProcessedEvent.objects.get_or_create(
            event_id=event.id, defaults={"event_type": event.type, "outcome": outcome}
        )
        return outcome

    def _succeeded(self, event: Event) -> str:
        ref = event.intent_id
        if self.ledger.get_by_ref(ref) is None:
            logger.warning("No transaction for succeeded intent %s (event %s)", ref, event.id)
            return "unknown_reference"

        kwargs = {"ledger": self.ledger, "issuer": self.issuer,
                  "result_fields": {"completed_via": "webhook", "event_id": event.id}}
        if self.notify is not None:
            kwargs["notify"] = self.notify
        outcome = complete_purchase(ref, **kwargs)

        if not outcome.won:
            logger.info("Intent %s already settled (status=%s)", ref, outcome.transaction.status)
            return "already_completed"
        return "completed"

    def _failed(self, event: Event) -> str:
        ref = event.intent_id
        if self.ledger.get_by_ref(ref) is None:
            logger.warning("No transaction for failed intent %s (event %s)", ref, event.id)
            return "unknown_reference"

        error = (event.data.get("last_payment_error") or {}).get("message", "")
        txn = self.ledger.fail(ref, reason=error)
        return "failed" if txn.status == txn.STATUS_FAILED else "already_completed"

    def _dispute(self, event: Event) -> str:
        data = event.data
        try:
            with db_transaction.atomic():
                ProcessedEvent.objects.create(event_id=event.id, event_type=event.type, outcome="audited")
                audit.record(
                    "charge_dispute_created",
                    resource_type="stripe_dispute",
                    resource_id=data.get("id", ""),
                    actor="stripe",
                    payload={
                        "charge_id": data.get("charge"),
                        "payment_intent_id": data.get("payment_intent"),
                        "amount": data.get("amount"),
                        "currency": data.get("currency"),
                        "reason": data.get("reason"),
                        "status": data.get("status"),
                    },
                )
        except IntegrityError:
            logger.info("Dispute event %s already recorded", event.id)
            return "duplicate"
        logger.warning("Charge dispute %s recorded for review", data.get("id"))
        return "audited"
