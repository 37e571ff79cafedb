"""
Invoice status reconciliation.

WHAT: Derives an invoice's status from its total, due date and approved
payments, and writes it back.

WHY: Status is never set by hand. Payment creation, approval, rejection and
line item edits all call reconcile(), so the stored status always reflects
the payments actually approved.

HOW: derive_invoice_status() is a pure function. InvoiceStatusReconciler
locks the invoice row (SELECT ... FOR UPDATE), sums approved payments and
updates the status inside the caller's transaction; concurrent approvals of
the same invoice therefore reconcile one after the other.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.core.exceptions import InvoiceNotFoundError
from crm_finance.core.money import to_money
from crm_finance.dao.invoice import InvoiceDAO
from crm_finance.dao.payment import PaymentDAO
from crm_finance.models.base import utcnow
from crm_finance.models.invoice import Invoice, InvoiceStatus
from crm_finance.models.payment import PaymentStatus
from crm_finance.services.audit import AuditService

logger = logging.getLogger(__name__)


class PaymentLike(Protocol):
    amount: Decimal
    status: PaymentStatus


def approved_total(payments: Iterable[PaymentLike]) -> Decimal:
    total = Decimal("0")
    for payment in payments:
        if payment.status == PaymentStatus.APPROVED:
            total += to_money(payment.amount)
    return to_money(total)


def derive_invoice_status(
    total_amount: Decimal,
    due_date: datetime,
    payments: Iterable[PaymentLike],
    now: datetime,
) -> InvoiceStatus:
    """
    Derive the status of a non-cancelled invoice.

    Only approved payments count. The result depends on the set of approved
    amounts, not on the order they were approved in.

    Args:
        total_amount: Invoice total
        due_date: Invoice due date (naive UTC)
        payments: Payments of the invoice, any status
        now: Reference time (naive UTC)

    Returns:
        PAID, OVERDUE or UNPAID
    """
    if approved_total(payments) >= to_money(total_amount):
        return InvoiceStatus.PAID
    if due_date < now:
        return InvoiceStatus.OVERDUE
    return InvoiceStatus.UNPAID


@dataclass
class ReconcileResult:
    invoice: Invoice
    previous_status: InvoiceStatus
    amount_paid: Decimal

    @property
    def changed(self) -> bool:
        return self.previous_status != self.invoice.status


class InvoiceStatusReconciler:
    """
    Recomputes and persists invoice status.

    Example:
        reconciler = InvoiceStatusReconciler(session)
        result = await reconciler.reconcile(invoice_id, org_id)
        if result.changed:
            ...
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.invoice_dao = InvoiceDAO(session)
        self.payment_dao = PaymentDAO(session)
        self.audit = AuditService(session)

    async def reconcile(
        self,
        invoice_id: int,
        org_id: int,
        now: Optional[datetime] = None,
        actor_id: Optional[int] = None,
    ) -> ReconcileResult:
        """
        Lock the invoice, recompute its status and store it.

        Cancelled invoices are returned unchanged.

        Args:
            invoice_id: Invoice ID
            org_id: Organization ID for security
            now: Reference time, defaults to the current UTC time
            actor_id: User whose action triggered the reconciliation

        Returns:
            ReconcileResult with the invoice and its previous status

        Raises:
            InvoiceNotFoundError: If the invoice is not in the organization
        """
        now = now or utcnow()
        invoice = await self.invoice_dao.get_for_update(invoice_id, org_id)
        if not invoice:
            raise InvoiceNotFoundError(invoice_id=invoice_id)

        previous = invoice.status
        payments = await self.payment_dao.get_by_invoice(invoice_id, org_id)
        amount_paid = approved_total(payments)

        if invoice.status == InvoiceStatus.CANCELLED:
            return ReconcileResult(invoice=invoice, previous_status=previous, amount_paid=amount_paid)

        new_status = derive_invoice_status(invoice.total_amount, invoice.due_date, payments, now)

        if new_status != previous:
            await self.invoice_dao.update(invoice, status=new_status)
            logger.info(
                f"Invoice {invoice.invoice_number} (org {org_id}) status "
                f"{previous.value} -> {new_status.value}"
            )
            await self.audit.log_status_change(
                resource_type="invoice",
                resource_id=invoice.id,
                org_id=org_id,
                old_status=previous.value,
                new_status=new_status.value,
                actor_user_id=actor_id,
                extra_data={"amount_paid": str(amount_paid), "total_amount": str(invoice.total_amount)},
            )

        return ReconcileResult(invoice=invoice, previous_status=previous, amount_paid=amount_paid)

    async def reconcile_overdue(self, org_id: int, now: Optional[datetime] = None) -> int:
        """
        Reconcile every unpaid invoice of an organization that is past due.

        Meant for a periodic job or an admin action; reconciliation is
        idempotent so repeated runs are harmless.

        Returns:
            Number of invoices whose status changed
        """
        now = now or utcnow()
        changed = 0
        for invoice_id in await self.invoice_dao.get_past_due_unpaid_ids(org_id, now):
            result = await self.reconcile(invoice_id, org_id, now=now)
            if result.changed:
                changed += 1
        if changed:
            logger.info(f"Marked {changed} invoice(s) overdue for org {org_id}")
        return changed
