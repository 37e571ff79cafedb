"""
Project status service.

Moves projects through their lifecycle. Submitting a project raises its
first invoice from the budget in the same transaction.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.core.exceptions import (
    AuthorizationError,
    InvalidStateTransitionError,
    ProjectNotFoundError,
    ValidationError,
)
from crm_finance.core.permissions import Principal
from crm_finance.dao.project import ProjectDAO
from crm_finance.models.invoice import Invoice
from crm_finance.models.project import Project, ProjectStatus
from crm_finance.services.access import ClientAccessPolicy
from crm_finance.services.audit import AuditService
from crm_finance.services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)

# Client users may submit their own draft project or pull it back
CLIENT_TRANSITIONS = frozenset(
    {
        (ProjectStatus.DRAFT, ProjectStatus.SUBMITTED),
        (ProjectStatus.SUBMITTED, ProjectStatus.DRAFT),
    }
)


class ProjectService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.project_dao = ProjectDAO(session)
        self.invoice_service = InvoiceService(session)
        self.audit = AuditService(session)

    async def update_status(
        self,
        project_id: int,
        org_id: int,
        new_status: ProjectStatus,
        principal: Principal,
    ) -> Tuple[Project, Optional[Invoice]]:
        """
        Change a project's status.

        Args:
            project_id: Project ID
            org_id: Organization ID
            new_status: Target status
            principal: Caller; client users may only submit or withdraw
                projects they own

        Returns:
            (project, invoice) where invoice is the project's invoice when
            the project was submitted, otherwise None

        Raises:
            ProjectNotFoundError: If the project is not in the organization
            AuthorizationError: If a client user is not allowed the change
            InvalidStateTransitionError: If the transition is not allowed
        """
        try:
            new_status = ProjectStatus(new_status)
        except ValueError:
            raise ValidationError(message=f"Unknown project status: {new_status}")

        project = await self.project_dao.get_for_update(project_id, org_id)
        if not project:
            raise ProjectNotFoundError(project_id=project_id)

        await ClientAccessPolicy(self.session, principal).ensure_project(project)

        old_status = project.status
        if not project.can_transition_to(new_status):
            raise InvalidStateTransitionError(
                message=f"Cannot move project from {old_status.value} to {new_status.value}",
                project_id=project_id,
                current_status=old_status.value,
                requested_status=new_status.value,
            )
        if principal.is_client and (old_status, new_status) not in CLIENT_TRANSITIONS:
            raise AuthorizationError(
                message="Clients can only submit or withdraw their projects",
                project_id=project_id,
            )

        await self.project_dao.update(project, status=new_status)
        logger.info(f"Project {project.id} status {old_status.value} -> {new_status.value}")
        await self.audit.log_status_change(
            resource_type="project",
            resource_id=project.id,
            org_id=org_id,
            old_status=old_status.value,
            new_status=new_status.value,
            actor_user_id=principal.user_id,
        )

        invoice = None
        if new_status == ProjectStatus.SUBMITTED:
            invoice = await self.invoice_service.generate_invoice_for_project(
                org_id, project.id, actor_id=principal.user_id
            )
        return project, invoice
