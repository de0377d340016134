# payments/completion.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from django.db import transaction as db_transaction

from codes.issuance import CodeIssuer, IssuanceResult
from notifications.utils import send_purchase_confirmation
from .ledger import TransactionLedger
from .models import Transaction

logger = logging.getLogger(__name__)


@dataclass
class CompletionOutcome:
    transaction: Transaction
    won: bool
    issuance: Optional[IssuanceResult] = None

    @property
    def codes(self) -> List:
        return list(self.issuance.codes) if self.issuance else []


def complete_purchase(
    external_ref: str,
    *,
    ledger: TransactionLedger,
    issuer: CodeIssuer,
    result_fields: Optional[Dict] = None,
    notify: Callable = send_purchase_confirmation,
) -> CompletionOutcome:
    """
    Entry point shared by the confirm call and the webhook. Only the caller
    whose ledger transition wins issues codes; everyone else is a no-op.
    Distributor purchases are stocked through batch issuance instead.

    The transition and the issuance commit together: if no code can be minted
    the transaction stays pending and a retry starts over.
    """
    with db_transaction.atomic():
        txn, was_already_completed = ledger.complete(external_ref, result_fields)
        if was_already_completed:
            return CompletionOutcome(transaction=txn, won=False)

        if txn.distributor_id:
            logger.info("Transaction %s belongs to distributor %s; no direct codes", txn.id, txn.distributor_id)
            return CompletionOutcome(transaction=txn, won=True)

        issuance = issuer.issue_codes(txn)
        if issuance.created:
            codes = list(issuance.codes)
            db_transaction.on_commit(lambda: notify(txn, codes))
    return CompletionOutcome(transaction=txn, won=True, issuance=issuance)
