"""
Audit logging service.

WHAT: Writes the finance audit trail: who created, changed, approved or
cancelled an invoice, payment, gateway or project, and from where.

WHY: Money-moving actions need a record that survives the request. Losing
an audit row is logged as an error, but it never undoes the invoice or
payment change it describes.

HOW: Wraps AuditLogDAO. IP address and user agent are read from the
RequestContextMiddleware's ContextVar when the caller does not pass them.
Each insert runs in a SAVEPOINT, so a failed audit write rolls back alone
and the caller's transaction stays usable.
"""

import logging
from typing import Optional, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.dao.audit_log import AuditLogDAO
from crm_finance.models.audit_log import AuditLog, AuditAction
from crm_finance.middleware.request_context import get_request_context


logger = logging.getLogger(__name__)


class AuditService:
    """
    Records audit entries for finance resources.

    Example:
        audit = AuditService(session)
        await audit.log_status_change(
            resource_type="invoice",
            resource_id=invoice.id,
            org_id=org_id,
            old_status="unpaid",
            new_status="paid",
        )

    Every method returns the stored AuditLog, or None when the write failed.
    """

    def __init__(self, session: AsyncSession):
        self.dao = AuditLogDAO(session)
        self._session = session

    async def log_event(
        self,
        action: AuditAction,
        resource_type: str,
        actor_user_id: Optional[int] = None,
        resource_id: Optional[int] = None,
        org_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
        extra_data: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """
        Store one audit entry.

        Args:
            action: What happened
            resource_type: "invoice", "payment", "payment_gateway" or "project"
            actor_user_id: User behind the request, None for system actions
            resource_id: Affected row
            org_id: Tenant the row belongs to
            changes: {"field": {"before": old, "after": new}}
            extra_data: Anything else worth keeping (amounts, reasons)
            ip_address: Overrides the request's client address
            user_agent: Overrides the request's user agent

        Never raises; failures are logged.
        """
        ctx = get_request_context()
        if ctx is not None:
            ip_address = ip_address or ctx.ip_address
            user_agent = user_agent or ctx.user_agent

        try:
            async with self._session.begin_nested():
                return await self.dao.create(
                    action=action,
                    resource_type=resource_type,
                    actor_user_id=actor_user_id,
                    resource_id=resource_id,
                    org_id=org_id,
                    changes=changes,
                    extra_data=extra_data,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
        except Exception as e:
            logger.error(
                f"Audit write failed for {resource_type} {resource_id} ({action.value}): {e}",
                exc_info=True,
            )
            return None

    async def log_create(
        self,
        resource_type: str,
        resource_id: int,
        org_id: int,
        actor_user_id: Optional[int] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        return await self.log_event(
            AuditAction.CREATE,
            resource_type,
            actor_user_id=actor_user_id,
            resource_id=resource_id,
            org_id=org_id,
            extra_data=extra_data,
        )

    async def log_update(
        self,
        resource_type: str,
        resource_id: int,
        org_id: int,
        changes: Dict[str, Any],
        actor_user_id: Optional[int] = None,
    ) -> Optional[AuditLog]:
        return await self.log_event(
            AuditAction.UPDATE,
            resource_type,
            actor_user_id=actor_user_id,
            resource_id=resource_id,
            org_id=org_id,
            changes=changes,
        )

    async def log_delete(
        self,
        resource_type: str,
        resource_id: int,
        org_id: int,
        actor_user_id: Optional[int] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        return await self.log_event(
            AuditAction.DELETE,
            resource_type,
            actor_user_id=actor_user_id,
            resource_id=resource_id,
            org_id=org_id,
            extra_data=extra_data,
        )

    async def log_status_change(
        self,
        resource_type: str,
        resource_id: int,
        org_id: int,
        old_status: str,
        new_status: str,
        actor_user_id: Optional[int] = None,
        action: AuditAction = AuditAction.STATUS_CHANGE,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """
        Record a status transition of an invoice, payment or project.

        Payment review and invoice cancellation pass a more specific action
        (PAYMENT_APPROVED, INVOICE_CANCELLED, ...) with the same changes shape.
        """
        return await self.log_event(
            action,
            resource_type,
            actor_user_id=actor_user_id,
            resource_id=resource_id,
            org_id=org_id,
            changes={"status": {"before": old_status, "after": new_status}},
            extra_data=extra_data,
        )
