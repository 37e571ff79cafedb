"""
Project overview.

WHAT: Aggregates a project with its client, invoices, payments, campaigns
and leads for the project detail screen.

WHY: The screen needs money figures per invoice (paid, due, credit) and
totals across the project, computed the same way the invoice endpoints do.

HOW: One read per collection, all scoped by org_id. Client-role callers are
checked for ownership before anything else is loaded.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.core.exceptions import ProjectNotFoundError
from crm_finance.core.money import ZERO, to_money
from crm_finance.core.permissions import Principal
from crm_finance.dao.client import ClientDAO
from crm_finance.dao.invoice import InvoiceDAO
from crm_finance.dao.marketing import CampaignDAO, LeadDAO
from crm_finance.dao.payment import PaymentDAO
from crm_finance.dao.project import ProjectDAO
from crm_finance.models.client import Client
from crm_finance.models.invoice import Invoice, InvoiceStatus
from crm_finance.models.marketing import Campaign, Lead
from crm_finance.models.payment import Payment, PaymentStatus
from crm_finance.models.project import Project
from crm_finance.services.access import ClientAccessPolicy
from crm_finance.services.invoice_service import InvoiceBalance
from crm_finance.services.reconciliation import InvoiceStatusReconciler

logger = logging.getLogger(__name__)


@dataclass
class InvoiceSummary:
    invoice: Invoice
    balance: InvoiceBalance


@dataclass
class ProjectOverview:
    project: Project
    client: Optional[Client]
    invoices: List[InvoiceSummary] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)
    campaigns: List[Campaign] = field(default_factory=list)
    leads: List[Lead] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)


def summarize(invoices: List[InvoiceSummary], payments: List[Payment], campaigns, leads) -> Dict[str, Any]:
    """Counts and money totals of a project; cancelled invoices are not billed."""
    billed = [s for s in invoices if s.invoice.status != InvoiceStatus.CANCELLED]
    total_invoiced = sum((to_money(s.invoice.total_amount) for s in billed), ZERO)
    total_paid = sum((s.balance.amount_paid for s in billed), ZERO)
    total_due = sum((s.balance.amount_due for s in billed), ZERO)
    pending: Decimal = sum(
        (to_money(p.amount) for p in payments if p.status == PaymentStatus.PENDING),
        ZERO,
    )
    return {
        "invoice_count": len(invoices),
        "payment_count": len(payments),
        "campaign_count": len(campaigns),
        "lead_count": len(leads),
        "total_invoiced": to_money(total_invoiced),
        "total_paid": to_money(total_paid),
        "total_due": to_money(total_due),
        "total_pending": to_money(pending),
    }


class ProjectOverviewService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.project_dao = ProjectDAO(session)
        self.client_dao = ClientDAO(session)
        self.invoice_dao = InvoiceDAO(session)
        self.payment_dao = PaymentDAO(session)
        self.campaign_dao = CampaignDAO(session)
        self.lead_dao = LeadDAO(session)
        self.reconciler = InvoiceStatusReconciler(session)

    async def get_project_overview(
        self,
        project_id: int,
        org_id: int,
        principal: Principal,
    ) -> ProjectOverview:
        """
        Build the overview of a project.

        Args:
            project_id: Project ID
            org_id: Organization ID (the principal's tenant)
            principal: Caller; client users must own the project

        Raises:
            ProjectNotFoundError: If the project is not in the organization
            AuthorizationError: If a client user does not own the project
        """
        project = await self.project_dao.get_by_id_and_org(project_id, org_id)
        if not project:
            raise ProjectNotFoundError(project_id=project_id)

        await ClientAccessPolicy(self.session, principal).ensure_project(project)

        client = None
        if project.client_id is not None:
            client = await self.client_dao.get_by_id_and_org(project.client_id, org_id)

        await self.reconciler.reconcile_overdue(org_id)
        invoices = await self.invoice_dao.get_by_project(project.id, org_id)
        payments = await self.payment_dao.get_by_invoice_ids([i.id for i in invoices], org_id)

        by_invoice: Dict[int, List[Payment]] = {}
        for payment in payments:
            by_invoice.setdefault(payment.invoice_id, []).append(payment)
        summaries = [
            InvoiceSummary(
                invoice=invoice,
                balance=InvoiceBalance.from_payments(invoice.total_amount, by_invoice.get(invoice.id, [])),
            )
            for invoice in invoices
        ]

        campaigns = await self.campaign_dao.get_by_project(project.id, org_id)
        leads = await self.lead_dao.get_by_project(project.id, org_id)

        logger.debug(f"Built overview for project {project.id} ({len(invoices)} invoices)")
        return ProjectOverview(
            project=project,
            client=client,
            invoices=summaries,
            payments=payments,
            campaigns=campaigns,
            leads=leads,
            summary=summarize(summaries, payments, campaigns, leads),
        )
