import json
import time
from decimal import Decimal
from unittest.mock import Mock

import pytest
import requests

from core.exceptions import GatewayError, SignatureError, ValidationError
from payments.gateway import (
    MockGateway,
    PaymentGateway,
    StripeGateway,
    from_minor,
    parse_event,
    sign_payload,
    to_minor,
    verify_signature,
)

SECRET = "whsec_unit"


def _event(raw_type="payment_intent.succeeded", obj=None, event_id="evt_1"):
    return json.dumps({"id": event_id, "type": raw_type, "data": {"object": obj or {"id": "pi_1"}}}).encode()


class TestSignature:
    def test_valid_signature(self):
        payload = _event()
        verify_signature(payload, sign_payload(payload, SECRET), SECRET)

    def test_tampered_payload(self):
        payload = _event()
        header = sign_payload(payload, SECRET)
        with pytest.raises(SignatureError):
            verify_signature(payload.replace(b"pi_1", b"pi_2"), header, SECRET)

    def test_wrong_secret(self):
        payload = _event()
        with pytest.raises(SignatureError):
            verify_signature(payload, sign_payload(payload, "whsec_other"), SECRET)

    def test_stale_timestamp(self):
        payload = _event()
        header = sign_payload(payload, SECRET, timestamp=int(time.time()) - 301)
        with pytest.raises(SignatureError):
            verify_signature(payload, header, SECRET, tolerance=300)

    def test_any_matching_v1_is_accepted(self):
        payload = _event()
        header = sign_payload(payload, SECRET)
        ts = header.split(",")[0]
        rotated = f"{ts},v1={'0' * 64},{header.split(',')[1]}"
        verify_signature(payload, rotated, SECRET)

    @pytest.mark.parametrize("header", ["", "garbage", "t=abc,v1=deadbeef", "t=123"])
    def test_malformed_header(self, header):
        with pytest.raises(SignatureError):
            verify_signature(_event(), header, SECRET)

    def test_missing_secret(self):
        payload = _event()
        with pytest.raises(SignatureError):
            verify_signature(payload, sign_payload(payload, SECRET), "")


class TestParseEvent:
    @pytest.mark.parametrize(
        "raw_type,normalised",
        [
            ("payment_intent.succeeded", "intent.succeeded"),
            ("payment_intent.payment_failed", "intent.failed"),
            ("charge.dispute.created", "dispute.created"),
            ("customer.created", "customer.created"),
        ],
    )
    def test_type_normalisation(self, raw_type, normalised):
        event = parse_event(_event(raw_type))
        assert event.type == normalised
        assert event.raw_type == raw_type

    def test_intent_id_for_intent_and_dispute(self):
        assert parse_event(_event(obj={"id": "pi_9"})).intent_id == "pi_9"
        dispute = parse_event(_event("charge.dispute.created", {"id": "dp_1", "payment_intent": "pi_7"}))
        assert dispute.intent_id == "pi_7"

    @pytest.mark.parametrize("payload", [b"not json", b"[]", b'{"type": "x"}', b"\xff\xfe"])
    def test_malformed_payload(self, payload):
        with pytest.raises(ValidationError):
            parse_event(payload)

    def test_verify_event_checks_signature_first(self):
        payload = _event()
        with pytest.raises(SignatureError):
            PaymentGateway().verify_event(payload, "t=1,v1=bad", SECRET)
        event = PaymentGateway().verify_event(payload, sign_payload(payload, SECRET), SECRET)
        assert event.id == "evt_1"


def test_minor_units():
    assert to_minor(Decimal("10.00")) == 1000
    assert to_minor("19.995") == 2000
    assert from_minor(1000) == Decimal("10.00")


class TestMockGateway:
    def test_create_intent(self):
        intent = MockGateway().create_intent(Decimal("10.00"), "usd", "a@b.com")
        assert intent.amount == Decimal("10.00")
        assert intent.client_secret.startswith(intent.intent_id)
        assert intent.succeeded

    def test_idempotency_key_returns_same_intent(self):
        gw = MockGateway()
        a = gw.create_intent(Decimal("10.00"), "usd", "a@b.com", idempotency_key="k1")
        b = MockGateway().create_intent(Decimal("10.00"), "usd", "a@b.com", idempotency_key="k1")
        assert a.intent_id == b.intent_id

    def test_unknown_intent(self):
        with pytest.raises(GatewayError):
            MockGateway().retrieve_intent("pi_nope")

    def test_set_status_is_shared(self):
        intent = MockGateway(auto_succeed=False).create_intent(Decimal("5.00"), "usd", "a@b.com")
        assert not intent.succeeded
        MockGateway().set_status(intent.intent_id, "succeeded")
        assert MockGateway().retrieve_intent(intent.intent_id).succeeded

    def test_non_positive_amount_rejected(self):
        with pytest.raises(GatewayError):
            MockGateway().create_intent(Decimal("0"), "usd", "a@b.com")


def _response(status_code, body):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = body
    resp.text = json.dumps(body)
    return resp


class TestStripeGateway:
    def test_create_intent_posts_minor_units(self):
        session = Mock()
        session.request.return_value = _response(200, {
            "id": "pi_123", "client_secret": "pi_123_secret_x", "amount": 1000,
            "currency": "usd", "status": "requires_payment_method",
        })
        log = Mock()
        gw = StripeGateway("sk_test", session=session, log_fn=log)

        intent = gw.create_intent(Decimal("10.00"), "usd", "a@b.com", {"product_id": 1}, idempotency_key="idem-1")

        assert intent.intent_id == "pi_123"
        assert intent.amount == Decimal("10.00")
        kwargs = session.request.call_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["url"].endswith("/payment_intents")
        assert kwargs["data"]["amount"] == 1000
        assert kwargs["data"]["metadata[product_id]"] == "1"
        assert kwargs["headers"]["Idempotency-Key"] == "idem-1"
        assert kwargs["headers"]["Authorization"] == "Bearer sk_test"
        logged = log.call_args.kwargs
        assert logged["request_payload"]["receipt_email"] == "a***@b.com"
        assert logged["response_payload"]["client_secret"] != "pi_123_secret_x"

    def test_rejection_carries_processor_detail(self):
        session = Mock()
        session.request.return_value = _response(402, {
            "error": {"message": "Your card was declined.", "code": "card_declined", "type": "card_error"},
        })
        gw = StripeGateway("sk_test", session=session)

        with pytest.raises(GatewayError) as exc:
            gw.retrieve_intent("pi_1")

        assert exc.value.details["code"] == "card_declined"
        assert exc.value.details["http_status"] == 402

    def test_idempotent_call_retried_once_on_network_error(self):
        session = Mock()
        session.request.side_effect = [
            requests.ConnectionError("reset"),
            _response(200, {"id": "pi_1", "amount": 500, "currency": "usd", "status": "succeeded"}),
        ]
        gw = StripeGateway("sk_test", session=session)

        intent = gw.retrieve_intent("pi_1")

        assert intent.succeeded
        assert session.request.call_count == 2

    def test_post_without_key_not_retried(self):
        session = Mock()
        session.request.side_effect = requests.Timeout("slow")
        gw = StripeGateway("sk_test", session=session)

        with pytest.raises(GatewayError):
            gw.create_intent(Decimal("1.00"), "usd", "a@b.com")
        assert session.request.call_count == 1
