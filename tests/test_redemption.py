from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from codes.models import CreditCode
from codes.redemption import (
    ALREADY_REDEEMED,
    EXPIRED,
    INVALID_FORMAT,
    NOT_FOUND,
    RedemptionEngine,
)
from core.models import AuditEvent

pytestmark = pytest.mark.django_db


class TestRedeem:
    def test_fresh_code_redeems(self, make_code):
        code = make_code(code="ABCD-1234-EFGH", credits=100)

        result = RedemptionEngine().redeem("ABCD-1234-EFGH", "a@b.com")

        assert result.success
        assert result.credits == 100
        assert result.product == "Voice Notes Translator"
        code.refresh_from_db()
        assert code.is_redeemed
        assert code.redeemed_by == "a@b.com"
        assert code.redeemed_at == result.redeemed_at

        audit = AuditEvent.objects.get(action="credit_code_redeemed")
        assert audit.resource_id == str(code.pk)
        assert audit.actor == "a***@b.com"

    def test_repeat_reports_prior_redemption(self, make_code):
        make_code(code="ABCD-1234-EFGH")
        engine = RedemptionEngine()

        first = engine.redeem("ABCD-1234-EFGH", "a@b.com")
        second = engine.redeem("ABCD-1234-EFGH", "a@b.com")

        assert first.success
        assert not second.success
        assert second.error_code == ALREADY_REDEEMED
        assert second.redeemed_at == first.redeemed_at
        assert AuditEvent.objects.filter(action="credit_code_redeemed").count() == 1

    @pytest.mark.parametrize("value", ["abcd-1234-efgh", "ABCD1234EFGH", "ABCD-1234", "", None])
    def test_malformed_code(self, value):
        result = RedemptionEngine().redeem(value, "a@b.com")
        assert result.error_code == INVALID_FORMAT
        assert result.message == "Invalid credit code format"

    def test_unknown_code(self, db):
        result = RedemptionEngine().redeem("ZZZZ-ZZZZ-ZZZZ", "a@b.com")
        assert result.error_code == NOT_FOUND

    def test_expired_code_is_never_redeemable(self, make_code):
        code = make_code(code="OLDD-CODE-XXXX", expires_at=timezone.now() - timedelta(seconds=1))

        result = RedemptionEngine().redeem("OLDD-CODE-XXXX", "a@b.com")

        assert result.error_code == EXPIRED
        code.refresh_from_db()
        assert not code.is_redeemed
        assert code.redeemed_at is None

    def test_lost_race_reports_already_redeemed(self, make_code):
        code = make_code(code="RACE-RACE-RACE")
        stale = CreditCode.objects.get(pk=code.pk)  # read before anyone redeemed

        winner = RedemptionEngine().redeem("RACE-RACE-RACE", "first@example.com")
        with patch.object(RedemptionEngine, "_lookup", return_value=stale):
            loser = RedemptionEngine().redeem("RACE-RACE-RACE", "second@example.com")

        assert winner.success
        assert loser.error_code == ALREADY_REDEEMED
        assert loser.redeemed_at == winner.redeemed_at
        code.refresh_from_db()
        assert code.redeemed_by == "first@example.com"

    def test_exactly_one_of_many_racers_wins(self, make_code):
        code = make_code(code="MANY-RACE-RSXX")
        # every racer passed the lookup before any of them wrote
        snapshots = [CreditCode.objects.get(pk=code.pk) for _ in range(6)]

        with patch.object(RedemptionEngine, "_lookup", side_effect=snapshots):
            results = [RedemptionEngine().redeem("MANY-RACE-RSXX", f"u{i}@example.com") for i in range(6)]

        assert sum(r.success for r in results) == 1
        assert {r.error_code for r in results if not r.success} == {ALREADY_REDEEMED}


class TestValidate:
    def test_valid_code(self, make_code):
        code = make_code(code="GOOD-CODE-HERE", credits=50)

        result = RedemptionEngine().validate("GOOD-CODE-HERE")

        assert result.valid
        assert result.credits == 50
        assert result.expires_at == code.expires_at
        assert result.error_code is None

    def test_does_not_mutate(self, make_code):
        code = make_code(code="GOOD-CODE-HERE")
        RedemptionEngine().validate("GOOD-CODE-HERE")
        code.refresh_from_db()
        assert not code.is_redeemed

    def test_redeemed_code_reports_when(self, make_code):
        make_code(code="USED-CODE-HERE")
        redeemed = RedemptionEngine().redeem("USED-CODE-HERE", "a@b.com")

        result = RedemptionEngine().validate("USED-CODE-HERE")

        assert not result.valid
        assert result.error_code == ALREADY_REDEEMED
        assert result.redeemed_at == redeemed.redeemed_at

    def test_expired_and_unknown(self, make_code):
        make_code(code="OLDD-CODE-HERE", expires_at=timezone.now() - timedelta(days=1))
        engine = RedemptionEngine()

        assert engine.validate("OLDD-CODE-HERE").error_code == EXPIRED
        assert engine.validate("NOPE-NOPE-NOPE").error_code == NOT_FOUND
        assert engine.validate("nope").error_code == INVALID_FORMAT
