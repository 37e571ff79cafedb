"""
Payment gateway API endpoints.

Everyone in the organization can see active gateways (clients need them to
pay); managing them requires gateway:manage.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.core.deps import require_permission
from crm_finance.core.permissions import Permission, Principal
from crm_finance.db.session import get_db
from crm_finance.schemas.common import ApiResponse, ok
from crm_finance.schemas.payment_gateway import (
    PaymentGatewayCreate,
    PaymentGatewayResponse,
    PaymentGatewayUpdate,
)
from crm_finance.services.payment_gateway_service import PaymentGatewayService


router = APIRouter(prefix="/payment-gateways", tags=["payment-gateways"])


@router.get(
    "/active",
    response_model=ApiResponse[list[PaymentGatewayResponse]],
    summary="List active gateways",
)
async def list_active_gateways(
    principal: Principal = Depends(require_permission(Permission.GATEWAY_READ)),
    db: AsyncSession = Depends(get_db),
):
    gateways = await PaymentGatewayService(db).list_gateways(principal.org_id, active_only=True)
    return ok([PaymentGatewayResponse.model_validate(g) for g in gateways], "Active gateways retrieved")


@router.get(
    "",
    response_model=ApiResponse[list[PaymentGatewayResponse]],
    summary="List gateways",
)
async def list_gateways(
    principal: Principal = Depends(require_permission(Permission.GATEWAY_MANAGE)),
    db: AsyncSession = Depends(get_db),
):
    gateways = await PaymentGatewayService(db).list_gateways(principal.org_id)
    return ok([PaymentGatewayResponse.model_validate(g) for g in gateways], "Gateways retrieved")


@router.get(
    "/{gateway_id}",
    response_model=ApiResponse[PaymentGatewayResponse],
    summary="Get gateway",
)
async def get_gateway(
    gateway_id: int,
    principal: Principal = Depends(require_permission(Permission.GATEWAY_MANAGE)),
    db: AsyncSession = Depends(get_db),
):
    gateway = await PaymentGatewayService(db).get_gateway(gateway_id, principal.org_id)
    return ok(PaymentGatewayResponse.model_validate(gateway), "Gateway retrieved")


@router.post(
    "",
    response_model=ApiResponse[PaymentGatewayResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create gateway",
)
async def create_gateway(
    data: PaymentGatewayCreate,
    principal: Principal = Depends(require_permission(Permission.GATEWAY_MANAGE)),
    db: AsyncSession = Depends(get_db),
):
    gateway = await PaymentGatewayService(db).create_gateway(
        org_id=principal.org_id,
        actor_id=principal.user_id,
        **data.model_dump(),
    )
    return ok(PaymentGatewayResponse.model_validate(gateway), "Gateway created")


@router.put(
    "/{gateway_id}",
    response_model=ApiResponse[PaymentGatewayResponse],
    summary="Update gateway",
)
async def update_gateway(
    gateway_id: int,
    data: PaymentGatewayUpdate,
    principal: Principal = Depends(require_permission(Permission.GATEWAY_MANAGE)),
    db: AsyncSession = Depends(get_db),
):
    gateway = await PaymentGatewayService(db).update_gateway(
        gateway_id,
        principal.org_id,
        data.model_dump(exclude_unset=True),
        actor_id=principal.user_id,
    )
    return ok(PaymentGatewayResponse.model_validate(gateway), "Gateway updated")


@router.delete(
    "/{gateway_id}",
    response_model=ApiResponse[None],
    summary="Delete gateway",
)
async def delete_gateway(
    gateway_id: int,
    principal: Principal = Depends(require_permission(Permission.GATEWAY_MANAGE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Raises:
        PaymentGatewayInUseError (409): Payments reference the gateway
    """
    await PaymentGatewayService(db).delete_gateway(gateway_id, principal.org_id, actor_id=principal.user_id)
    return ok(None, "Gateway deleted")
