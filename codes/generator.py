# codes/generator.py
from __future__ import annotations

import logging
import re
import secrets
from typing import Callable, Optional, TypeVar

from django.conf import settings
from django.db import IntegrityError, transaction as db_transaction

from core.exceptions import ExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CODE_PATTERN = re.compile(r"^[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$")

# Uppercase letters + digits minus the look-alikes 0/O and 1/I.
ALPHABET = "".join(c for c in "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789" if c not in "0O1I")
GROUPS = 3
GROUP_SIZE = 4
DEFAULT_MAX_ATTEMPTS = 10


def is_valid_format(value) -> bool:
    return isinstance(value, str) and bool(CODE_PATTERN.match(value))


class CodeGenerator:
    def __init__(self, max_attempts: Optional[int] = None, alphabet: str = ALPHABET):
        if max_attempts is None:
            max_attempts = int(getattr(settings, "CREDIT_CODE_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS))
        self.max_attempts = max(1, max_attempts)
        self.alphabet = alphabet

    def generate(self) -> str:
        groups = [
            "".join(secrets.choice(self.alphabet) for _ in range(GROUP_SIZE))
            for _ in range(GROUPS)
        ]
        return "-".join(groups)

    def create_unique(self, create: Callable[[str], T]) -> T:
        """
        Propose a code and let `create` insert it. The unique index decides:
        on collision we roll back the savepoint and try a fresh value.
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self.generate()
            try:
                with db_transaction.atomic():
                    return create(code)
            except IntegrityError:
                logger.warning("Credit code collision on attempt %s/%s", attempt, self.max_attempts)

        raise ExhaustedError(f"Could not generate a unique credit code after {self.max_attempts} attempts")
