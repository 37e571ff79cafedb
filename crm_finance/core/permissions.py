"""
Role-based permissions for the finance API.

WHY: Each role maps to an explicit, closed set of Permission members instead
of a free-form {"name": bool} map, so a typo in a permission name fails at
import time rather than silently granting or denying access.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from crm_finance.core.exceptions import TokenInvalidError


class Role(str, Enum):
    """Roles carried in the token's ``role`` claim."""

    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    CLIENT = "client"


class Permission(str, Enum):
    INVOICE_READ = "invoice:read"
    INVOICE_WRITE = "invoice:write"
    INVOICE_DELETE = "invoice:delete"
    PAYMENT_READ = "payment:read"
    PAYMENT_CREATE = "payment:create"
    PAYMENT_VERIFY = "payment:verify"
    GATEWAY_READ = "gateway:read"
    GATEWAY_MANAGE = "gateway:manage"
    PROJECT_READ = "project:read"
    PROJECT_WRITE = "project:write"


ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.MANAGER: frozenset(
        {
            Permission.INVOICE_READ,
            Permission.INVOICE_WRITE,
            Permission.INVOICE_DELETE,
            Permission.PAYMENT_READ,
            Permission.PAYMENT_CREATE,
            Permission.PAYMENT_VERIFY,
            Permission.GATEWAY_READ,
            Permission.PROJECT_READ,
            Permission.PROJECT_WRITE,
        }
    ),
    Role.STAFF: frozenset(
        {
            Permission.INVOICE_READ,
            Permission.INVOICE_WRITE,
            Permission.PAYMENT_READ,
            Permission.PAYMENT_CREATE,
            Permission.GATEWAY_READ,
            Permission.PROJECT_READ,
        }
    ),
    Role.CLIENT: frozenset(
        {
            Permission.INVOICE_READ,
            Permission.PAYMENT_READ,
            Permission.PAYMENT_CREATE,
            Permission.GATEWAY_READ,
            Permission.PROJECT_READ,
            Permission.PROJECT_WRITE,
        }
    ),
}


@dataclass(frozen=True)
class Principal:
    """
    The authenticated caller of a request.

    Built from verified token claims; org_id is the tenant every query of the
    request is scoped to.
    """

    user_id: int
    org_id: int
    role: Role
    email: Optional[str] = None
    client_id: Optional[int] = None

    @property
    def permissions(self) -> FrozenSet[Permission]:
        return ROLE_PERMISSIONS[self.role]

    @property
    def is_client(self) -> bool:
        return self.role == Role.CLIENT

    def has_permission(self, permission: Permission) -> bool:
        return permission in self.permissions

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Principal":
        """
        Build a principal from decoded JWT claims.

        Raises:
            TokenInvalidError: If a required claim is missing or malformed
        """
        try:
            user_id = int(claims["sub"])
            org_id = int(claims["org_id"])
        except (KeyError, TypeError, ValueError):
            raise TokenInvalidError(message="Invalid token: missing sub or org_id")

        try:
            role = Role(str(claims.get("role", "")).lower())
        except ValueError:
            raise TokenInvalidError(message="Invalid token: unknown role", role=claims.get("role"))

        client_id = claims.get("client_id")
        if client_id is not None:
            try:
                client_id = int(client_id)
            except (TypeError, ValueError):
                raise TokenInvalidError(message="Invalid token: malformed client_id")

        return cls(
            user_id=user_id,
            org_id=org_id,
            role=role,
            email=claims.get("email"),
            client_id=client_id,
        )
