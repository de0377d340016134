from unittest.mock import Mock

import pytest

from codes.generator import CodeGenerator
from codes.issuance import CodeIssuer
from codes.models import CreditCode
from core.exceptions import ExhaustedError, IssuanceError
from core.models import AuditEvent
from payments.gateway import Event
from payments.models import ProcessedEvent, Transaction
from payments.webhooks import WebhookReconciler

pytestmark = pytest.mark.django_db


def _succeeded(ref, event_id="evt_ok"):
    return Event(id=event_id, type="intent.succeeded", data={"id": ref, "status": "succeeded"},
                 raw_type="payment_intent.succeeded")


def _failed(ref, event_id="evt_fail"):
    return Event(id=event_id, type="intent.failed",
                 data={"id": ref, "last_payment_error": {"message": "Your card was declined."}},
                 raw_type="payment_intent.payment_failed")


def _dispute(event_id="evt_dp"):
    return Event(id=event_id, type="dispute.created",
                 data={"id": "dp_1", "charge": "ch_1", "payment_intent": "pi_1", "amount": 1000,
                       "currency": "usd", "reason": "fraudulent", "status": "needs_response"},
                 raw_type="charge.dispute.created")


@pytest.fixture
def notify():
    return Mock()


@pytest.fixture
def reconciler(notify):
    return WebhookReconciler(notify=notify)


class TestSucceeded:
    def test_completes_and_issues(self, reconciler, notify, make_pending, django_capture_on_commit_callbacks):
        make_pending(email="a@b.com", ref="pi_1")

        with django_capture_on_commit_callbacks(execute=True):
            outcome = reconciler.handle(_succeeded("pi_1"))

        assert outcome == "completed"
        txn = Transaction.objects.get(external_payment_ref="pi_1")
        assert txn.status == Transaction.STATUS_COMPLETED
        assert txn.metadata["completed_via"] == "webhook"
        codes = list(CreditCode.objects.filter(batch__transaction=txn))
        assert len(codes) == 1
        notify.assert_called_once()
        assert notify.call_args.args[0].pk == txn.pk
        assert ProcessedEvent.objects.get(event_id="evt_ok").outcome == "completed"

    def test_redelivery_is_duplicate(self, reconciler, make_pending):
        make_pending(ref="pi_1")
        reconciler.handle(_succeeded("pi_1"))

        assert reconciler.handle(_succeeded("pi_1")) == "duplicate"
        assert CreditCode.objects.count() == 1

    def test_after_confirm_issues_nothing(self, reconciler, ledger, notify, make_pending,
                                          django_capture_on_commit_callbacks):
        make_pending(ref="pi_1")
        ledger.complete("pi_1", {"completed_via": "confirm"})

        with django_capture_on_commit_callbacks(execute=True):
            outcome = reconciler.handle(_succeeded("pi_1", event_id="evt_late"))

        assert outcome == "already_completed"
        assert CreditCode.objects.count() == 0
        assert AuditEvent.objects.filter(action="transaction_completed").count() == 1
        notify.assert_not_called()

    def test_new_event_for_settled_intent(self, reconciler, make_pending):
        make_pending(ref="pi_1")
        reconciler.handle(_succeeded("pi_1", event_id="evt_a"))

        assert reconciler.handle(_succeeded("pi_1", event_id="evt_b")) == "already_completed"
        assert CreditCode.objects.count() == 1

    def test_unknown_reference_ignored(self, reconciler):
        assert reconciler.handle(_succeeded("pi_ghost")) == "unknown_reference"
        assert ProcessedEvent.objects.filter(event_id="evt_ok").exists()

    def test_distributor_purchase_gets_no_codes(self, reconciler, make_pending, distributor):
        make_pending(ref="pi_d", distributor=distributor)

        assert reconciler.handle(_succeeded("pi_d")) == "completed"
        assert Transaction.objects.get(external_payment_ref="pi_d").status == Transaction.STATUS_COMPLETED
        assert CreditCode.objects.count() == 0


class TestFailed:
    def test_marks_failed(self, reconciler, make_pending):
        make_pending(ref="pi_1")

        assert reconciler.handle(_failed("pi_1")) == "failed"
        assert Transaction.objects.get(external_payment_ref="pi_1").status == Transaction.STATUS_FAILED
        audit = AuditEvent.objects.get(action="transaction_failed")
        assert audit.payload["reason"] == "Your card was declined."

    def test_success_after_failure_is_ignored(self, reconciler, make_pending):
        make_pending(ref="pi_1")
        reconciler.handle(_failed("pi_1"))

        assert reconciler.handle(_succeeded("pi_1")) == "already_completed"
        assert Transaction.objects.get(external_payment_ref="pi_1").status == Transaction.STATUS_FAILED
        assert CreditCode.objects.count() == 0

    def test_failure_after_success_is_ignored(self, reconciler, make_pending):
        make_pending(ref="pi_1")
        reconciler.handle(_succeeded("pi_1"))

        assert reconciler.handle(_failed("pi_1")) == "already_completed"
        assert Transaction.objects.get(external_payment_ref="pi_1").status == Transaction.STATUS_COMPLETED

    def test_unknown_reference(self, reconciler):
        assert reconciler.handle(_failed("pi_ghost")) == "unknown_reference"


class TestDispute:
    def test_audited_once(self, reconciler):
        assert reconciler.handle(_dispute()) == "audited"
        assert reconciler.handle(_dispute()) == "duplicate"

        events = AuditEvent.objects.filter(action="charge_dispute_created")
        assert events.count() == 1
        event = events.get()
        assert event.resource_id == "dp_1"
        assert event.payload["reason"] == "fraudulent"


def test_unknown_type_is_ignored(reconciler):
    event = Event(id="evt_x", type="customer.created", data={}, raw_type="customer.created")
    assert reconciler.handle(event) == "ignored"
    assert ProcessedEvent.objects.get(event_id="evt_x").outcome == "ignored"


def test_failed_issuance_leaves_transaction_retryable(make_pending, notify):
    make_pending(ref="pi_retry")
    broken = CodeGenerator(max_attempts=1)
    broken.create_unique = Mock(side_effect=ExhaustedError("no free code"))

    with pytest.raises(IssuanceError):
        WebhookReconciler(issuer=CodeIssuer(generator=broken), notify=notify).handle(_succeeded("pi_retry"))

    txn = Transaction.objects.get(external_payment_ref="pi_retry")
    assert txn.status == Transaction.STATUS_PENDING
    assert not ProcessedEvent.objects.exists()
    assert not AuditEvent.objects.filter(action="transaction_completed").exists()

    # the processor redelivers the same event
    assert WebhookReconciler(notify=notify).handle(_succeeded("pi_retry")) == "completed"
    assert CreditCode.objects.filter(batch__transaction=txn).count() == 1
