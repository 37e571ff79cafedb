"""
Invoice Data Access Object (DAO).

WHAT: Database operations for the Invoice and InvoiceItem models.

WHY: The DAO pattern:
1. Separates data access from business logic
2. Enforces org-scoping for multi-tenancy on every query
3. Encapsulates the numbering, locking and reporting queries

HOW: Extends BaseDAO with invoice-specific methods:
- Lookups by number and project
- Row-locked reads for status reconciliation
- Reloading with items after mutations (async sessions cannot lazy-load)
- Dashboard aggregates
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import select, func, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from crm_finance.dao.base import BaseDAO
from crm_finance.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from crm_finance.models.payment import Payment
from crm_finance.models.project import Project

OPEN_STATUSES = (InvoiceStatus.UNPAID, InvoiceStatus.OVERDUE)


class InvoiceDAO(BaseDAO[Invoice]):
    """
    Data Access Object for Invoice model.

    HOW: Extends BaseDAO with invoice-specific methods.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize InvoiceDAO.

        Args:
            session: Async database session
        """
        super().__init__(Invoice, session)

    async def get_with_items(self, invoice_id: int, org_id: int) -> Optional[Invoice]:
        """
        Get an invoice with its items and client freshly loaded.

        populate_existing refreshes an instance already in the identity map,
        so callers see items replaced earlier in the same transaction.

        Args:
            invoice_id: Invoice ID
            org_id: Organization ID for security

        Returns:
            Invoice if found and belongs to org, None otherwise
        """
        result = await self.session.execute(
            select(Invoice)
            .options(selectinload(Invoice.items), selectinload(Invoice.client))
            .where(Invoice.id == invoice_id, Invoice.org_id == org_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, invoice_id: int, org_id: int) -> Optional[Invoice]:
        """
        Get an invoice and lock its row until the transaction ends.

        WHY: Status reconciliation reads approved payments and writes the
        status; holding the invoice row lock serializes concurrent
        reconciliations of the same invoice.

        Args:
            invoice_id: Invoice ID
            org_id: Organization ID for security

        Returns:
            Locked invoice, or None
        """
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id, Invoice.org_id == org_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_invoice_number(
        self,
        invoice_number: str,
        org_id: int,
    ) -> Optional[Invoice]:
        """
        Get an invoice by its invoice number.

        Args:
            invoice_number: The invoice number (e.g., INV-2024-0001)
            org_id: Organization ID for security

        Returns:
            Invoice if found and belongs to org, None otherwise
        """
        result = await self.session.execute(
            select(Invoice).where(
                Invoice.invoice_number == invoice_number,
                Invoice.org_id == org_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_numbers_with_prefix(self, org_id: int, prefix: str) -> List[str]:
        """
        List the organization's invoice numbers starting with a prefix.

        Used to find the highest sequence of the year; the sequence is
        parsed by the caller because string order breaks past 9999.
        """
        result = await self.session.execute(
            select(Invoice.invoice_number).where(
                Invoice.org_id == org_id,
                Invoice.invoice_number.like(f"{prefix}%"),
            )
        )
        return list(result.scalars().all())

    async def get_by_project(self, project_id: int, org_id: int) -> List[Invoice]:
        """
        Get all invoices raised for a project, oldest first.

        Args:
            project_id: Project ID
            org_id: Organization ID for security

        Returns:
            List of invoices
        """
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.project_id == project_id, Invoice.org_id == org_id)
            .order_by(Invoice.issue_date.asc(), Invoice.id.asc())
        )
        return list(result.scalars().all())

    async def list_filtered(
        self,
        org_id: int,
        status: Optional[InvoiceStatus] = None,
        client_id: Optional[int] = None,
        project_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        return await self.get_by_org(
            org_id,
            skip=skip,
            limit=limit,
            status=status,
            client_id=client_id,
            project_id=project_id,
        )

    async def get_for_client(
        self,
        org_id: int,
        client_ids: List[int],
        email: Optional[str] = None,
        status: Optional[InvoiceStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        """
        Get the invoices visible to a client user.

        An invoice matches when it is addressed to one of the client's
        records, or when it belongs to a project whose client email matches.

        Args:
            org_id: Organization ID for security
            client_ids: Client records of the user
            email: The user's email, matched case-insensitively
            status: Optional status filter

        Returns:
            List of invoices, newest first
        """
        conditions = []
        if client_ids:
            conditions.append(Invoice.client_id.in_(client_ids))
        if email:
            conditions.append(
                Invoice.project_id.in_(
                    select(Project.id).where(
                        Project.org_id == org_id,
                        func.lower(Project.client_email) == email.strip().lower(),
                    )
                )
            )
        if not conditions:
            return []

        query = select(Invoice).where(Invoice.org_id == org_id, or_(*conditions))
        if status is not None:
            query = query.where(Invoice.status == status)
        query = query.order_by(Invoice.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_open_invoices(self, org_id: int) -> List[Invoice]:
        """Get unpaid and overdue invoices, earliest due first."""
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.org_id == org_id, Invoice.status.in_(OPEN_STATUSES))
            .order_by(Invoice.due_date.asc())
        )
        return list(result.scalars().all())

    async def get_past_due_unpaid_ids(self, org_id: int, now: datetime) -> List[int]:
        result = await self.session.execute(
            select(Invoice.id).where(
                Invoice.org_id == org_id,
                Invoice.status == InvoiceStatus.UNPAID,
                Invoice.due_date < now,
            )
        )
        return list(result.scalars().all())

    async def replace_items(self, invoice: Invoice, items: List[InvoiceItem]) -> None:
        """
        Replace all line items of an invoice.

        The items collection is eagerly loaded, so reassigning it lets the
        delete-orphan cascade remove the old rows in the same flush.
        """
        invoice.items = items
        await self.session.flush()

    async def delete_with_children(self, invoice: Invoice) -> None:
        """
        Delete an invoice, its items and its payments.

        Payments are removed with one DELETE first; items go through the
        relationship cascade.
        """
        await self.session.execute(
            delete(Payment)
            .where(
                Payment.invoice_id == invoice.id,
                Payment.org_id == invoice.org_id,
            )
        )
        await self.delete(invoice)

    async def count_by_status(self, org_id: int) -> dict:
        """
        Get count of invoices by status for an organization.

        Args:
            org_id: Organization ID

        Returns:
            Dict mapping status value to count
        """
        result = await self.session.execute(
            select(Invoice.status, func.count(Invoice.id))
            .where(Invoice.org_id == org_id)
            .group_by(Invoice.status)
        )

        return {row[0].value: row[1] for row in result.all()}

    async def sum_total_by_status(self, org_id: int, statuses) -> Decimal:
        """
        Sum total_amount over invoices in the given statuses.

        Args:
            org_id: Organization ID
            statuses: Iterable of InvoiceStatus

        Returns:
            Sum as Decimal (0 when no rows match)
        """
        result = await self.session.execute(
            select(func.coalesce(func.sum(Invoice.total_amount), 0)).where(
                Invoice.org_id == org_id,
                Invoice.status.in_(list(statuses)),
            )
        )
        return Decimal(str(result.scalar_one()))
