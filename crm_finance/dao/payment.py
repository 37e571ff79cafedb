"""
Payment and PaymentGateway Data Access Objects (DAO).

WHAT: Database operations for payments and the gateways they go through.

WHY: Reconciliation, remaining-due checks and deletion guards all need
per-invoice aggregates over payment status; keeping them here keeps the
services free of query construction.
"""

from decimal import Decimal
from typing import List, Optional
from sqlalchemy import select, func, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.dao.base import BaseDAO
from crm_finance.models.base import utcnow
from crm_finance.models.client import Client
from crm_finance.models.payment import Payment, PaymentGateway, PaymentStatus


class PaymentDAO(BaseDAO[Payment]):
    """Data Access Object for Payment model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Payment, session)

    async def get_by_invoice(self, invoice_id: int, org_id: int) -> List[Payment]:
        """
        Get all payments of an invoice, in submission order.

        Args:
            invoice_id: Invoice ID
            org_id: Organization ID for security

        Returns:
            List of payments (gateway eagerly loaded)
        """
        result = await self.session.execute(
            select(Payment)
            .where(Payment.invoice_id == invoice_id, Payment.org_id == org_id)
            .order_by(Payment.paid_at.asc(), Payment.id.asc())
        )
        return list(result.scalars().all())

    async def get_by_invoice_ids(self, invoice_ids: List[int], org_id: int) -> List[Payment]:
        if not invoice_ids:
            return []
        result = await self.session.execute(
            select(Payment)
            .where(Payment.invoice_id.in_(invoice_ids), Payment.org_id == org_id)
            .order_by(Payment.paid_at.desc(), Payment.id.desc())
        )
        return list(result.scalars().all())

    async def get_for_update(self, payment_id: int, org_id: int) -> Optional[Payment]:
        """Get a payment and lock its row so two reviewers cannot both act on it."""
        result = await self.session.execute(
            select(Payment)
            .where(Payment.id == payment_id, Payment.org_id == org_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def has_approved(self, invoice_id: int, org_id: int) -> bool:
        return await self.exists(org_id, invoice_id=invoice_id, status=PaymentStatus.APPROVED)

    async def cancel_pending(self, invoice_id: int, org_id: int, reason: Optional[str] = None) -> int:
        """
        Cancel all pending payments of an invoice.

        Returns:
            Number of payments cancelled
        """
        result = await self.session.execute(
            update(Payment)
            .where(
                Payment.invoice_id == invoice_id,
                Payment.org_id == org_id,
                Payment.status == PaymentStatus.PENDING,
            )
            .values(
                status=PaymentStatus.CANCELLED,
                admin_notes=reason,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def list_filtered(
        self,
        org_id: int,
        status: Optional[PaymentStatus] = None,
        client_id: Optional[int] = None,
        client_email: Optional[str] = None,
        invoice_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Payment]:
        """
        List payments of an organization.

        client_id and client_email together restrict the list to one
        client's payments: a payment matches when its denormalised client_id
        equals client_id, or when its client's email matches.
        """
        query = select(Payment).where(Payment.org_id == org_id)
        if status is not None:
            query = query.where(Payment.status == status)
        if invoice_id is not None:
            query = query.where(Payment.invoice_id == invoice_id)
        if client_id is not None or client_email:
            conditions = []
            if client_id is not None:
                conditions.append(Payment.client_id == client_id)
            if client_email:
                conditions.append(
                    Payment.client_id.in_(
                        select(Client.id).where(
                            Client.org_id == org_id,
                            func.lower(Client.email) == client_email.lower(),
                        )
                    )
                )
            query = query.where(or_(*conditions))

        query = query.order_by(Payment.paid_at.desc(), Payment.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def sum_approved_for_org(self, org_id: int) -> Decimal:
        result = await self.session.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.org_id == org_id,
                Payment.status == PaymentStatus.APPROVED,
            )
        )
        return Decimal(str(result.scalar_one()))


class PaymentGatewayDAO(BaseDAO[PaymentGateway]):
    """Data Access Object for PaymentGateway model."""

    def __init__(self, session: AsyncSession):
        super().__init__(PaymentGateway, session)

    async def get_active(self, org_id: int) -> List[PaymentGateway]:
        result = await self.session.execute(
            select(PaymentGateway)
            .where(PaymentGateway.org_id == org_id, PaymentGateway.is_active.is_(True))
            .order_by(PaymentGateway.name.asc())
        )
        return list(result.scalars().all())

    async def get_active_by_id(self, gateway_id: int, org_id: int) -> Optional[PaymentGateway]:
        result = await self.session.execute(
            select(PaymentGateway).where(
                PaymentGateway.id == gateway_id,
                PaymentGateway.org_id == org_id,
                PaymentGateway.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def has_payments(self, gateway_id: int, org_id: int) -> bool:
        result = await self.session.execute(
            select(Payment.id)
            .where(Payment.gateway_id == gateway_id, Payment.org_id == org_id)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None
