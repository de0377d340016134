from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from codes.models import CodeBatch, CreditCode
from distributors.models import Distributor
from payments.gateway import Intent, MockGateway
from payments.ledger import PurchaseSpec, TransactionLedger
from products.models import CreditPackage, Product
from users.models import User


@pytest.fixture(autouse=True)
def _clear_cache():
    # mock intents live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def product(db):
    return Product.objects.create(
        name="Voice Notes Translator",
        status=Product.STATUS_ACTIVE,
        credit_costs={"translate_minute": 1},
    )


@pytest.fixture
def package(product):
    return CreditPackage.objects.create(product=product, name="Starter", credits=100, price=Decimal("10.00"))


@pytest.fixture
def customer(db):
    return User.objects.create_user(email="customer@example.com", password="pw-123456")


@pytest.fixture
def owner(db):
    return User.objects.create_user(email="owner@example.com", password="pw-123456")


@pytest.fixture
def admin_user(db):
    return User.objects.create_superuser(email="admin@example.com", password="pw-123456")


@pytest.fixture
def distributor(owner):
    return Distributor.objects.create(owner=owner, name="Acme Resale", status=Distributor.STATUS_APPROVED)


@pytest.fixture
def gateway():
    return MockGateway(auto_succeed=True)


@pytest.fixture
def ledger():
    return TransactionLedger()


@pytest.fixture
def make_pending(ledger, product, package):
    """Pending transaction already bound to an intent id."""
    counter = {"n": 0}

    def _make(email="a@b.com", ref=None, distributor=None, quantity=1):
        counter["n"] += 1
        spec = PurchaseSpec(product=product, package=package, customer_email=email,
                            nonce=f"nonce-{counter['n']}", distributor=distributor, quantity=quantity)
        txn = ledger.open_pending(spec)
        intent = Intent(
            intent_id=ref or f"pi_test_{counter['n']}",
            client_secret=f"pi_test_{counter['n']}_secret",
            amount=package.price,
            currency="usd",
            status="requires_payment_method",
        )
        return ledger.attach_intent(txn, intent)

    return _make


@pytest.fixture
def make_code(product):
    def _make(code="ABCD-2345-EFGH", credits=100, expires_at=None, **extra):
        batch = CodeBatch.objects.create(product=product, credits=credits, quantity=1)
        return CreditCode.objects.create(
            code=code,
            batch=batch,
            credits=credits,
            product=product,
            expires_at=expires_at or timezone.now() + timedelta(days=365),
            **extra,
        )

    return _make
