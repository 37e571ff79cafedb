"""
Audit Log Data Access Object (DAO).

WHAT: Data access layer for the finance audit trail.

WHY: Audit rows must never change once written, so this DAO does not
extend BaseDAO: it only creates and queries, and its update/delete raise.
"""

from typing import Optional, List, Dict, Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.models.audit_log import AuditLog, AuditAction
from crm_finance.core.exceptions import AuditLogImmutableError


class AuditLogDAO:
    """
    Data Access Object for audit log operations.

    HOW: Uses SQLAlchemy async session for all operations.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
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
    ) -> AuditLog:
        """
        Insert one audit row and flush it so its id is available.

        changes holds {"field": {"before": old, "after": new}}; extra_data
        holds anything else worth keeping, such as a rejection reason.
        """
        log = AuditLog(
            actor_user_id=actor_user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            org_id=org_id,
            changes=changes,
            extra_data=extra_data,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(log)
        await self.session.flush()
        await self.session.refresh(log)
        return log

    async def get_by_resource(
        self,
        resource_type: str,
        resource_id: int,
        org_id: int,
    ) -> List[AuditLog]:
        """
        Get the history of one resource, oldest first.

        Args:
            resource_type: e.g. "invoice", "payment"
            resource_id: Resource ID
            org_id: Organization ID

        Returns:
            List of AuditLog entries
        """
        result = await self.session.execute(
            select(AuditLog)
            .where(
                AuditLog.resource_type == resource_type,
                AuditLog.resource_id == resource_id,
                AuditLog.org_id == org_id,
            )
            .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
        )
        return list(result.scalars().all())

    async def update(self, log_id: int, **kwargs: Any) -> None:
        """
        Raises:
            AuditLogImmutableError: Always raised - updates not allowed
        """
        raise AuditLogImmutableError("Audit logs are immutable and cannot be updated")

    async def delete(self, log_id: int) -> None:
        """
        Raises:
            AuditLogImmutableError: Always raised - deletions not allowed
        """
        raise AuditLogImmutableError("Audit logs cannot be deleted")
