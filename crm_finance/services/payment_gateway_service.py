"""
Payment gateway service.

CRUD for the payment channels an organization accepts. Gateways that
already carry payments cannot be deleted; deactivate them instead.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.core.exceptions import (
    PaymentGatewayInUseError,
    PaymentGatewayNotFoundError,
    ValidationError,
)
from crm_finance.dao.payment import PaymentGatewayDAO
from crm_finance.models.payment import GatewayAccountType, PaymentGateway
from crm_finance.services.audit import AuditService

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {"name", "account_type", "account_number", "instructions", "is_active", "auto_approve"}
)


def _account_type(value) -> GatewayAccountType:
    try:
        return GatewayAccountType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in GatewayAccountType)
        raise ValidationError(message=f"account_type must be one of: {allowed}")


class PaymentGatewayService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.gateway_dao = PaymentGatewayDAO(session)
        self.audit = AuditService(session)

    async def list_gateways(self, org_id: int, active_only: bool = False) -> List[PaymentGateway]:
        if active_only:
            return await self.gateway_dao.get_active(org_id)
        return await self.gateway_dao.get_by_org(org_id, limit=500)

    async def get_gateway(self, gateway_id: int, org_id: int) -> PaymentGateway:
        gateway = await self.gateway_dao.get_by_id_and_org(gateway_id, org_id)
        if not gateway:
            raise PaymentGatewayNotFoundError(message="Payment gateway not found", gateway_id=gateway_id)
        return gateway

    async def create_gateway(
        self,
        org_id: int,
        name: str,
        account_number: str,
        account_type: GatewayAccountType = GatewayAccountType.PERSONAL,
        instructions: Optional[str] = None,
        is_active: bool = True,
        auto_approve: bool = False,
        actor_id: Optional[int] = None,
    ) -> PaymentGateway:
        """
        Create a gateway.

        Raises:
            ValidationError: If name or account number is blank
        """
        name = (name or "").strip()
        account_number = (account_number or "").strip()
        if not name or not account_number:
            raise ValidationError(message="Name and account number are required")

        gateway = await self.gateway_dao.create(
            org_id=org_id,
            name=name,
            account_number=account_number,
            account_type=_account_type(account_type),
            instructions=instructions,
            is_active=is_active,
            auto_approve=auto_approve,
        )
        logger.info(f"Payment gateway {gateway.id} ({gateway.name}) created for org {org_id}")
        await self.audit.log_create(
            resource_type="payment_gateway",
            resource_id=gateway.id,
            org_id=org_id,
            actor_user_id=actor_id,
            extra_data={"name": gateway.name, "auto_approve": gateway.auto_approve},
        )
        return gateway

    async def update_gateway(
        self,
        gateway_id: int,
        org_id: int,
        fields: Dict[str, Any],
        actor_id: Optional[int] = None,
    ) -> PaymentGateway:
        """
        Apply a partial update; fields maps column names to new values.

        Raises:
            ValidationError: Unknown fields, blank name or number, null flags
            PaymentGatewayNotFoundError: If not found in the organization
        """
        fields = dict(fields)
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(message=f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        gateway = await self.get_gateway(gateway_id, org_id)
        for required in ("name", "account_number"):
            if required in fields and not (fields[required] or "").strip():
                raise ValidationError(message=f"{required} cannot be blank")
        for flag in ("account_type", "is_active", "auto_approve"):
            if flag in fields and fields[flag] is None:
                raise ValidationError(message=f"{flag} cannot be null")
        if fields.get("account_type") is not None:
            fields["account_type"] = _account_type(fields["account_type"])

        changes = {}
        for field, value in fields.items():
            before = getattr(gateway, field)
            if before != value:
                changes[field] = {
                    "before": getattr(before, "value", before),
                    "after": getattr(value, "value", value),
                }
        if changes:
            await self.gateway_dao.update(gateway, **fields)
            await self.audit.log_update(
                resource_type="payment_gateway",
                resource_id=gateway.id,
                org_id=org_id,
                changes=changes,
                actor_user_id=actor_id,
            )
        return gateway

    async def delete_gateway(self, gateway_id: int, org_id: int, actor_id: Optional[int] = None) -> None:
        """
        Raises:
            PaymentGatewayNotFoundError: If not found in the organization
            PaymentGatewayInUseError: If payments reference the gateway
        """
        gateway = await self.get_gateway(gateway_id, org_id)
        if await self.gateway_dao.has_payments(gateway_id, org_id):
            raise PaymentGatewayInUseError(gateway_id=gateway_id)

        await self.gateway_dao.delete(gateway)
        logger.info(f"Payment gateway {gateway_id} deleted for org {org_id}")
        await self.audit.log_delete(
            resource_type="payment_gateway",
            resource_id=gateway_id,
            org_id=org_id,
            actor_user_id=actor_id,
        )
