# core/management/commands/reconcile_pending.py
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from codes.issuance import CodeIssuer
from core.exceptions import AppError
from payments.completion import complete_purchase
from payments.gateway import get_gateway
from payments.ledger import TransactionLedger
from payments.models import Transaction

# Processor states that will never turn into a payment
DEAD_STATES = {"canceled"}


class Command(BaseCommand):
    help = "Ask the payment provider about stale pending transactions and settle them idempotently."

    def add_arguments(self, parser):
        parser.add_argument("--age-mins", type=int, default=15,
                            help="Only look at transactions older than N minutes (default: 15)")
        parser.add_argument("--max", type=int, default=200,
                            help="Max transactions to process (default: 200)")

    def handle(self, *args, **opts):
        cutoff = timezone.now() - timedelta(minutes=opts["age_mins"])
        gateway = get_gateway()
        ledger = TransactionLedger()
        issuer = CodeIssuer()

        txns = list(
            Transaction.objects.filter(
                status=Transaction.STATUS_PENDING,
                external_payment_ref__isnull=False,
                created_at__lte=cutoff,
            ).order_by("created_at")[: opts["max"]]
        )

        completed = failed = 0
        for txn in txns:
            ref = txn.external_payment_ref
            try:
                intent = gateway.retrieve_intent(ref)
                if intent.succeeded:
                    outcome = complete_purchase(ref, ledger=ledger, issuer=issuer,
                                                result_fields={"completed_via": "reconcile"})
                    completed += int(outcome.won)
                elif intent.status in DEAD_STATES:
                    if ledger.fail(ref, reason=f"intent {intent.status}").status == Transaction.STATUS_FAILED:
                        failed += 1
            except AppError as e:
                self.stderr.write(f"{ref}: {e.message}")

        self.stdout.write(self.style.SUCCESS(
            f"Done. Checked {len(txns)} txn(s). Completed {completed}, failed {failed}."
        ))
