from unittest.mock import patch

import pytest
from django.db import IntegrityError

from codes.generator import ALPHABET, CODE_PATTERN, CodeGenerator, is_valid_format
from core.exceptions import ExhaustedError


class TestGenerate:
    def test_output_matches_code_pattern(self):
        gen = CodeGenerator(max_attempts=10)
        for _ in range(200):
            assert CODE_PATTERN.match(gen.generate())

    def test_alphabet_skips_lookalikes(self):
        assert len(ALPHABET) == 32
        for ch in "0O1I":
            assert ch not in ALPHABET

        gen = CodeGenerator(max_attempts=10)
        body = "".join(gen.generate().replace("-", "") for _ in range(200))
        assert not set(body) & set("0O1I")

    def test_values_are_not_repeated(self):
        gen = CodeGenerator(max_attempts=10)
        values = {gen.generate() for _ in range(500)}
        assert len(values) == 500


@pytest.mark.parametrize(
    "value,expected",
    [
        ("ABCD-2345-EFGH", True),
        ("ABCD-1234-EFGH", True),  # legacy codes may contain 0/O/1/I
        ("abcd-2345-efgh", False),
        ("ABCD2345EFGH", False),
        ("ABCD-2345-EFG", False),
        ("ABCD-2345-EFGH-", False),
        ("", False),
        (None, False),
        (12345, False),
    ],
)
def test_is_valid_format(value, expected):
    assert is_valid_format(value) is expected


@pytest.mark.django_db
class TestCreateUnique:
    def test_retries_after_collision(self):
        gen = CodeGenerator(max_attempts=5)
        seen = []

        def create(code):
            seen.append(code)
            if len(seen) < 3:
                raise IntegrityError("duplicate key")
            return code

        with patch.object(gen, "generate", side_effect=["AAAA-AAAA-AAAA", "BBBB-BBBB-BBBB", "CCCC-CCCC-CCCC"]):
            assert gen.create_unique(create) == "CCCC-CCCC-CCCC"
        assert seen == ["AAAA-AAAA-AAAA", "BBBB-BBBB-BBBB", "CCCC-CCCC-CCCC"]

    def test_gives_up_after_max_attempts(self):
        gen = CodeGenerator(max_attempts=4)
        calls = []

        def always_collides(code):
            calls.append(code)
            raise IntegrityError("duplicate key")

        with pytest.raises(ExhaustedError):
            gen.create_unique(always_collides)
        assert len(calls) == 4

    def test_collision_against_real_unique_index(self, make_code):
        existing = make_code(code="TAKN-TAKN-TAKN")
        gen = CodeGenerator(max_attempts=3)

        from codes.models import CreditCode

        def create(code):
            return CreditCode.objects.create(
                code=code, batch=existing.batch, credits=10,
                product=existing.product, expires_at=existing.expires_at,
            )

        with patch.object(gen, "generate", side_effect=["TAKN-TAKN-TAKN", "FRSH-FRSH-FRSH"]):
            row = gen.create_unique(create)

        assert row.code == "FRSH-FRSH-FRSH"
        assert CreditCode.objects.filter(code="TAKN-TAKN-TAKN").count() == 1

    def test_max_attempts_defaults_from_settings(self, settings):
        settings.CREDIT_CODE_MAX_ATTEMPTS = 7
        assert CodeGenerator().max_attempts == 7
