"""
FastAPI dependencies for authentication and authorization.

WHY: Route handlers declare what they need (a principal, a tenant id, a
permission) and these dependencies resolve it from the bearer token, so the
check is identical on every route.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from crm_finance.core.auth import verify_token
from crm_finance.core.exceptions import (
    AuthenticationError,
    InsufficientPermissionsError,
)
from crm_finance.core.permissions import Permission, Principal


# auto_error=False so a missing header goes through AuthenticationError
# and gets the standard error envelope
security = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    """
    Resolve the authenticated principal from the Authorization header.

    Usage:
        @router.get("/invoices")
        async def list_invoices(principal: Principal = Depends(get_current_principal)):
            ...

    Args:
        credentials: Bearer token from Authorization header

    Returns:
        Principal built from the verified claims

    Raises:
        AuthenticationError: If the token is missing, expired or invalid
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Missing bearer token")

    payload = verify_token(credentials.credentials)
    return Principal.from_claims(payload)


def require_permission(permission: Permission):
    """
    Factory function to create a permission requirement dependency.

    Usage:
        @router.post("/payments/{payment_id}/approve")
        async def approve(
            principal: Principal = Depends(require_permission(Permission.PAYMENT_VERIFY)),
        ):
            ...

    Args:
        permission: Permission the caller's role must grant

    Returns:
        Dependency function that returns the principal when allowed
    """

    async def permission_checker(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if not principal.has_permission(permission):
            raise InsufficientPermissionsError(
                message=f"Permission '{permission.value}' required",
                user_id=principal.user_id,
                user_role=principal.role.value,
                required_permission=permission.value,
            )
        return principal

    return permission_checker
