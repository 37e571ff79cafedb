"""
Project API endpoints.

WHAT: The project overview (project, client, invoices, payments, campaigns,
leads) and project status changes.

HOW: Overview and status changes check client ownership in the services;
submitting a project returns the invoice generated for it.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.api.invoices import invoice_to_response
from crm_finance.core.deps import require_permission
from crm_finance.core.permissions import Permission, Principal
from crm_finance.db.session import get_db
from crm_finance.schemas.common import ApiResponse, ok
from crm_finance.schemas.payment import PaymentResponse
from crm_finance.schemas.project import (
    CampaignResponse,
    ClientResponse,
    LeadResponse,
    ProjectOverviewResponse,
    ProjectResponse,
    ProjectStatusResponse,
    ProjectStatusUpdate,
    ProjectSummary,
)
from crm_finance.services.invoice_service import InvoiceService
from crm_finance.services.project_overview_service import ProjectOverviewService
from crm_finance.services.project_service import ProjectService


router = APIRouter(prefix="/projects", tags=["projects"])


@router.get(
    "/{project_id}/overview",
    response_model=ApiResponse[ProjectOverviewResponse],
    summary="Get project overview",
)
async def get_project_overview(
    project_id: int,
    principal: Principal = Depends(require_permission(Permission.PROJECT_READ)),
    db: AsyncSession = Depends(get_db),
):
    """
    Get a project with its client, invoices, payments, campaigns and leads.

    Raises:
        ResourceNotFoundError (404): Project not in the caller's organization
        AuthorizationError (403): Client user does not own the project
    """
    overview = await ProjectOverviewService(db).get_project_overview(
        project_id, principal.org_id, principal
    )
    data = ProjectOverviewResponse(
        project=ProjectResponse.model_validate(overview.project),
        client=ClientResponse.model_validate(overview.client) if overview.client else None,
        invoices=[invoice_to_response(s.invoice, s.balance) for s in overview.invoices],
        payments=[PaymentResponse.model_validate(p) for p in overview.payments],
        campaigns=[CampaignResponse.model_validate(c) for c in overview.campaigns],
        leads=[LeadResponse.model_validate(lead) for lead in overview.leads],
        summary=ProjectSummary(**overview.summary),
    )
    return ok(data, "Project overview retrieved")


@router.put(
    "/{project_id}/status",
    response_model=ApiResponse[ProjectStatusResponse],
    summary="Update project status",
)
async def update_project_status(
    project_id: int,
    data: ProjectStatusUpdate,
    principal: Principal = Depends(require_permission(Permission.PROJECT_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Move a project to a new status.

    Submitting a project with a budget generates its invoice.

    Raises:
        InvalidStateTransitionError (400): Transition not allowed
    """
    project, invoice = await ProjectService(db).update_status(
        project_id, principal.org_id, data.status, principal
    )
    invoice_data = None
    if invoice is not None:
        balance = await InvoiceService(db).get_balance(invoice)
        invoice_data = invoice_to_response(invoice, balance)
    return ok(
        ProjectStatusResponse(project=ProjectResponse.model_validate(project), invoice=invoice_data),
        "Project status updated",
    )
