# payments/gateway.py
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Optional, Tuple

import requests
from django.conf import settings
from django.core.cache import cache

from core.exceptions import GatewayError, SignatureError, ValidationError

logger = logging.getLogger(__name__)

TIMEOUT = (5, 25)  # connect, read
MAX_RETRIES = 1  # network errors only, and only when the call is idempotent

# processor event type -> type the reconciler understands
EVENT_TYPES = {
    "payment_intent.succeeded": "intent.succeeded",
    "payment_intent.payment_failed": "intent.failed",
    "charge.dispute.created": "dispute.created",
}

SUCCEEDED = "succeeded"


# ============================================================================
# Amount helpers
# ============================================================================

def to_minor(amount) -> int:
    d = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int(d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP) * 100)


def from_minor(value) -> Decimal:
    return (Decimal(int(value or 0)) / Decimal(100)).quantize(Decimal("0.01"))


# ============================================================================
# Value objects
# ============================================================================

@dataclass
class Intent:
    intent_id: str
    client_secret: str
    amount: Decimal
    currency: str
    status: str
    metadata: Dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED


@dataclass
class Event:
    id: str
    type: str
    data: Dict
    raw_type: str = ""

    @property
    def intent_id(self) -> Optional[str]:
        if self.type.startswith("intent."):
            return self.data.get("id")
        return self.data.get("payment_intent")


# ============================================================================
# Signatures (header: "t=<unix>,v1=<hex>[,v1=<hex>]")
# ============================================================================

def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    signed = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def sign_payload(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    ts = int(timestamp if timestamp is not None else time.time())
    return f"t={ts},v1={compute_signature(payload, secret, ts)}"


def _parse_signature_header(header: str) -> Tuple[Optional[int], list]:
    ts, sigs = None, []
    for part in (header or "").split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                ts = int(value)
            except ValueError:
                ts = None
        elif key == "v1" and value:
            sigs.append(value)
    return ts, sigs


def verify_signature(payload: bytes, header: str, secret: str, tolerance: Optional[int] = None) -> None:
    if not secret:
        raise SignatureError("Webhook secret is not configured")
    if not header:
        raise SignatureError("Missing signature header")

    ts, sigs = _parse_signature_header(header)
    if ts is None or not sigs:
        raise SignatureError("Malformed signature header")

    expected = compute_signature(payload, secret, ts)
    if not any(hmac.compare_digest(expected, s) for s in sigs):
        raise SignatureError("Signature mismatch")

    if tolerance is None:
        tolerance = int(getattr(settings, "WEBHOOK_TOLERANCE_SECONDS", 300))
    if tolerance > 0 and abs(time.time() - ts) > tolerance:
        raise SignatureError("Signature timestamp outside tolerance")


def parse_event(payload: bytes) -> Event:
    try:
        body = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise ValidationError("Malformed webhook payload")
    if not isinstance(body, dict) or not body.get("id") or not body.get("type"):
        raise ValidationError("Malformed webhook payload")

    raw_type = str(body["type"])
    obj = (body.get("data") or {}).get("object") or {}
    return Event(id=str(body["id"]), type=EVENT_TYPES.get(raw_type, raw_type), data=obj, raw_type=raw_type)


# ============================================================================
# Gateways
# ============================================================================

class PaymentGateway:
    name = "base"

    def create_intent(self, amount, currency: str, customer_email: str, metadata: Optional[Dict] = None,
                      idempotency_key: Optional[str] = None) -> Intent:
        raise NotImplementedError

    def retrieve_intent(self, intent_id: str) -> Intent:
        raise NotImplementedError

    def verify_event(self, raw_payload: bytes, signature_header: str, secret: str) -> Event:
        verify_signature(raw_payload, signature_header, secret)
        return parse_event(raw_payload)


def _mask(value: Optional[str]) -> str:
    if not value:
        return ""
    s = str(value)
    if "@" in s:
        name, _, domain = s.partition("@")
        return (name[:2] + "***@" + domain) if name else "***@" + domain
    if len(s) > 10:
        return s[:6] + "***" + s[-4:]
    return "***"


def _mask_payload(payload: Optional[Dict]) -> Dict:
    if not payload:
        return {}
    masked = dict(payload)
    for k in ["receipt_email", "email", "client_secret", "metadata[customer_email]"]:
        if k in masked:
            masked[k] = _mask(masked[k])
    return masked


class StripeGateway(PaymentGateway):
    """
    Stripe PaymentIntents over plain REST.
    """
    name = "stripe"

    def __init__(self, secret_key: str, base_url: str = "https://api.stripe.com/v1",
                 log_fn: Optional[Callable[..., None]] = None, timeout: Tuple[int, int] = TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.log_fn = log_fn
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, idempotency_key: Optional[str] = None) -> Dict[str, str]:
        h = {"Authorization": f"Bearer {self.secret_key}"}
        if idempotency_key:
            h["Idempotency-Key"] = idempotency_key
        return h

    def _request(self, method: str, path: str, *, data: Optional[Dict] = None,
                 idempotency_key: Optional[str] = None, reference: Optional[str] = None) -> Dict:
        url = f"{self.base_url}{path}"
        retries = MAX_RETRIES if (method == "GET" or idempotency_key) else 0
        last_exc: Optional[Exception] = None

        for attempt in range(retries + 1):
            try:
                resp = self.session.request(
                    method=method, url=url, headers=self._headers(idempotency_key),
                    data=data, timeout=self.timeout,
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                last_exc = e
                logger.warning("stripe %s %s attempt %s failed: %s", method, path, attempt + 1, e)
                continue

            try:
                body = resp.json()
            except ValueError:
                body = {"raw": resp.text[:500]}
            self._log(path, reference, data, body, resp.status_code)

            if resp.status_code >= 400:
                err = body.get("error") or {}
                raise GatewayError(
                    "Payment provider rejected the request",
                    details={
                        "stripe_error": err.get("message") or body.get("raw"),
                        "code": err.get("code"),
                        "type": err.get("type"),
                        "http_status": resp.status_code,
                    },
                )
            return body

        self._log(path, reference, data, {}, "timeout", error=str(last_exc))
        raise GatewayError("Payment provider unreachable", details={"error": str(last_exc)})

    def _log(self, endpoint, reference, req, resp, status_code, error=None):
        if not self.log_fn:
            return
        try:
            self.log_fn(endpoint=endpoint, reference=reference, request_payload=_mask_payload(req),
                        response_payload=_mask_payload(resp), status_code=status_code, error=error)
        except Exception:
            logger.exception("Could not write provider log for %s", endpoint)

    @staticmethod
    def _to_intent(body: Dict) -> Intent:
        return Intent(
            intent_id=body.get("id", ""),
            client_secret=body.get("client_secret") or "",
            amount=from_minor(body.get("amount")),
            currency=body.get("currency") or "",
            status=body.get("status") or "",
            metadata=body.get("metadata") or {},
        )

    def create_intent(self, amount, currency, customer_email, metadata=None, idempotency_key=None) -> Intent:
        payload = {
            "amount": to_minor(amount),
            "currency": currency,
            "receipt_email": customer_email,
            "automatic_payment_methods[enabled]": "true",
            "metadata[customer_email]": customer_email,
        }
        for k, v in (metadata or {}).items():
            payload[f"metadata[{k}]"] = str(v)
        body = self._request("POST", "/payment_intents", data=payload, idempotency_key=idempotency_key)
        return self._to_intent(body)

    def retrieve_intent(self, intent_id: str) -> Intent:
        body = self._request("GET", f"/payment_intents/{intent_id}", reference=intent_id)
        return self._to_intent(body)


class MockGateway(PaymentGateway):
    """
    Offline processor for development and tests. Intents live in the Django cache
    so separate requests (and separate gateway instances) see the same state.
    """
    name = "mock"
    CACHE_PREFIX = "mockpay:intent:"

    def __init__(self, auto_succeed: bool = True, log_fn: Optional[Callable[..., None]] = None):
        self.auto_succeed = auto_succeed
        self.log_fn = log_fn

    def _key(self, intent_id: str) -> str:
        return f"{self.CACHE_PREFIX}{intent_id}"

    def _save(self, intent: Intent) -> None:
        cache.set(self._key(intent.intent_id), intent, None)

    def create_intent(self, amount, currency, customer_email, metadata=None, idempotency_key=None) -> Intent:
        if idempotency_key:
            existing_id = cache.get(f"{self.CACHE_PREFIX}idem:{idempotency_key}")
            if existing_id:
                return self.retrieve_intent(existing_id)

        if to_minor(amount) <= 0:
            raise GatewayError("Payment provider rejected the request",
                               details={"stripe_error": "Amount must be positive", "code": "amount_too_small"})

        intent_id = f"pi_mock_{uuid.uuid4().hex[:16]}"
        intent = Intent(
            intent_id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:12]}",
            amount=from_minor(to_minor(amount)),
            currency=currency,
            status=SUCCEEDED if self.auto_succeed else "requires_payment_method",
            metadata={"customer_email": customer_email, **{k: str(v) for k, v in (metadata or {}).items()}},
        )
        self._save(intent)
        if idempotency_key:
            cache.set(f"{self.CACHE_PREFIX}idem:{idempotency_key}", intent_id, None)
        if self.log_fn:
            self.log_fn(endpoint="/payment_intents", reference=intent_id,
                        request_payload=_mask_payload({"amount": str(amount), "currency": currency}),
                        response_payload={"id": intent_id, "status": intent.status}, status_code=200)
        return intent

    def retrieve_intent(self, intent_id: str) -> Intent:
        intent = cache.get(self._key(intent_id))
        if intent is None:
            raise GatewayError("Payment provider rejected the request",
                               details={"stripe_error": f"No such payment_intent: {intent_id}",
                                        "code": "resource_missing", "http_status": 404})
        return intent

    def set_status(self, intent_id: str, status: str) -> Intent:
        intent = self.retrieve_intent(intent_id)
        intent.status = status
        self._save(intent)
        return intent

    @staticmethod
    def build_event(raw_type: str, obj: Dict, event_id: Optional[str] = None) -> bytes:
        body = {
            "id": event_id or f"evt_mock_{uuid.uuid4().hex[:16]}",
            "type": raw_type,
            "data": {"object": obj},
        }
        return json.dumps(body).encode("utf-8")


# ============================================================================
# Wiring
# ============================================================================

def provider_logger(provider: str = "stripe") -> Callable[..., None]:
    from .models import ProviderLog

    def _save(endpoint, reference, request_payload, response_payload, status_code, error=None):
        ProviderLog.objects.create(
            provider=provider,
            endpoint=endpoint,
            reference=reference,
            request_payload=request_payload or {},
            response_payload=response_payload or {},
            status_code=str(status_code),
            error_message=(error or "")[:255] or None,
        )
    return _save


def get_gateway() -> PaymentGateway:
    """Build a gateway for the configured mode. Called per request; holds no global client."""
    mode = str(getattr(settings, "PAYMENT_PROVIDER_MODE", "MOCK")).upper()
    if mode == "LIVE":
        return StripeGateway(
            secret_key=settings.STRIPE_SECRET_KEY,
            base_url=getattr(settings, "STRIPE_BASE_URL", "https://api.stripe.com/v1"),
            log_fn=provider_logger("stripe"),
        )
    return MockGateway(
        auto_succeed=bool(getattr(settings, "MOCK_PAYMENTS_AUTO_SUCCEED", True)),
        log_fn=provider_logger("mock"),
    )
