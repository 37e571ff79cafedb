"""
Tests for roles, permissions and the token principal.
"""

import pytest

from crm_finance.core.exceptions import TokenInvalidError
from crm_finance.core.permissions import (
    ROLE_PERMISSIONS,
    Permission,
    Principal,
    Role,
)


class TestRolePermissions:
    def test_every_role_has_a_permission_set(self):
        assert set(ROLE_PERMISSIONS) == set(Role)

    def test_admin_has_everything(self):
        assert ROLE_PERMISSIONS[Role.ADMIN] == frozenset(Permission)

    def test_only_admin_manages_gateways(self):
        holders = {role for role, perms in ROLE_PERMISSIONS.items() if Permission.GATEWAY_MANAGE in perms}
        assert holders == {Role.ADMIN}

    def test_client_cannot_verify_or_write_invoices(self):
        client = ROLE_PERMISSIONS[Role.CLIENT]
        assert Permission.PAYMENT_VERIFY not in client
        assert Permission.INVOICE_WRITE not in client
        assert Permission.PAYMENT_CREATE in client

    def test_staff_cannot_delete_invoices(self):
        assert Permission.INVOICE_DELETE not in ROLE_PERMISSIONS[Role.STAFF]


class TestPrincipalFromClaims:
    def test_full_claims(self):
        principal = Principal.from_claims(
            {"sub": "12", "org_id": 3, "role": "client", "email": "c@example.com", "client_id": "9"}
        )
        assert principal == Principal(
            user_id=12, org_id=3, role=Role.CLIENT, email="c@example.com", client_id=9
        )
        assert principal.is_client
        assert principal.has_permission(Permission.INVOICE_READ)
        assert not principal.has_permission(Permission.INVOICE_DELETE)

    def test_role_is_case_insensitive(self):
        assert Principal.from_claims({"sub": "1", "org_id": 1, "role": "ADMIN"}).role == Role.ADMIN

    @pytest.mark.parametrize(
        "claims",
        [
            {"org_id": 1, "role": "admin"},
            {"sub": "1", "role": "admin"},
            {"sub": "abc", "org_id": 1, "role": "admin"},
            {"sub": "1", "org_id": 1, "role": "superuser"},
            {"sub": "1", "org_id": 1, "role": "client", "client_id": "x"},
        ],
    )
    def test_malformed_claims_raise(self, claims):
        with pytest.raises(TokenInvalidError):
            Principal.from_claims(claims)
