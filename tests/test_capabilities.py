import pytest

from core.capabilities import (
    ADMIN,
    ANONYMOUS,
    CUSTOMER,
    DISTRIBUTOR,
    Capability,
    require_admin,
    require_issuance_rights,
    resolve_capability,
)
from core.exceptions import AuthorizationError
from distributors.models import Distributor


@pytest.mark.django_db
class TestResolveCapability:
    def test_anonymous(self):
        assert resolve_capability(None) == ANONYMOUS

    def test_staff_is_admin(self, admin_user):
        assert resolve_capability(admin_user).kind == ADMIN

    def test_owner_of_approved_distributor(self, distributor):
        cap = resolve_capability(distributor.owner)
        assert cap == Capability(kind=DISTRIBUTOR, owner_id=distributor.id)

    def test_pending_distributor_owner_is_customer(self, customer):
        Distributor.objects.create(owner=customer, name="Waiting")
        assert resolve_capability(customer).kind == CUSTOMER


class TestRequireIssuanceRights:
    def test_admin_any_target(self):
        require_issuance_rights(Capability(kind=ADMIN))
        require_issuance_rights(Capability(kind=ADMIN), distributor_id=42)

    def test_distributor_own_target_only(self):
        cap = Capability(kind=DISTRIBUTOR, owner_id=7)
        require_issuance_rights(cap, distributor_id=7)
        require_issuance_rights(cap, distributor_id="7")
        with pytest.raises(AuthorizationError):
            require_issuance_rights(cap, distributor_id=8)
        with pytest.raises(AuthorizationError):
            require_issuance_rights(cap)

    @pytest.mark.parametrize("cap", [ANONYMOUS, Capability(kind=CUSTOMER)])
    def test_everyone_else_refused(self, cap):
        with pytest.raises(AuthorizationError):
            require_issuance_rights(cap, distributor_id=1)


def test_require_admin():
    require_admin(Capability(kind=ADMIN))
    with pytest.raises(AuthorizationError):
        require_admin(Capability(kind=DISTRIBUTOR, owner_id=1))
