import pytest

from core.exceptions import ValidationError
from distributors.inventory import InventoryTracker
from distributors.models import InventoryRecord
from products.models import Product

pytestmark = pytest.mark.django_db


def test_first_credit_creates_record(distributor, product):
    record = InventoryTracker().credit(distributor, product, 100)
    assert record.credits_available == 100
    assert InventoryRecord.objects.count() == 1


def test_credits_accumulate(distributor, product):
    tracker = InventoryTracker()
    tracker.credit(distributor, product, 100)
    tracker.credit(distributor, product, 25)

    assert tracker.balance(distributor, product) == 125
    assert InventoryRecord.objects.count() == 1


@pytest.mark.parametrize("credits", [0, -5])
def test_non_positive_credit_refused(distributor, product, credits):
    with pytest.raises(ValidationError):
        InventoryTracker().credit(distributor, product, credits)
    assert not InventoryRecord.objects.exists()


def test_balance_without_record_is_zero(distributor, product):
    assert InventoryTracker().balance(distributor, product) == 0


def test_summary_lists_products_by_name(distributor, product):
    other = Product.objects.create(name="Avatar Studio", status=Product.STATUS_COMING_SOON)
    tracker = InventoryTracker()
    tracker.credit(distributor, product, 10)
    tracker.credit(distributor, other, 5)

    summary = tracker.summary(distributor)

    assert [r.product.name for r in summary] == ["Avatar Studio", "Voice Notes Translator"]
    assert [r.credits_available for r in summary] == [5, 10]
