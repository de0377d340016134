from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .exceptions import AuthorizationError

NONE = "none"
CUSTOMER = "customer"
DISTRIBUTOR = "distributor"
ADMIN = "admin"


@dataclass(frozen=True)
class Capability:
    """
    What the caller may do, resolved once per request.
    For distributors, owner_id is the Distributor they own.
    """
    kind: str = NONE
    owner_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.kind == ADMIN

    def owns_distributor(self, distributor_id) -> bool:
        return self.kind == DISTRIBUTOR and self.owner_id is not None and str(self.owner_id) == str(distributor_id)


ANONYMOUS = Capability()


def resolve_capability(user) -> Capability:
    if user is None or not getattr(user, "is_authenticated", False):
        return ANONYMOUS
    if user.is_staff or user.is_superuser:
        return Capability(kind=ADMIN)

    from distributors.models import Distributor

    owned = (
        Distributor.objects.filter(owner=user, status=Distributor.STATUS_APPROVED)
        .values_list("id", flat=True)
        .first()
    )
    if owned is not None:
        return Capability(kind=DISTRIBUTOR, owner_id=owned)
    return Capability(kind=CUSTOMER)


def require_issuance_rights(capability: Capability, distributor_id=None) -> None:
    """
    Admins may issue for anyone. Distributors only for their own account.
    Everyone else is refused.
    """
    if capability.is_admin:
        return
    if distributor_id is not None and capability.owns_distributor(distributor_id):
        return
    raise AuthorizationError("Admin or distributor ownership required to issue codes")


def require_admin(capability: Capability) -> None:
    if not capability.is_admin:
        raise AuthorizationError("Admin access required")
