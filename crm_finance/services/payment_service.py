"""
Payment service.

WHAT: Records payments against invoices and handles their review.

WHY: Clients pay outside the system (bank transfer, mobile wallet) and
submit the transaction reference; staff approve or reject it. Only approved
payments count towards an invoice, so every transition here re-runs the
invoice status reconciler in the same transaction.

HOW:
- create_payment validates input before touching the database, checks the
  invoice and gateway belong to the organization, and refuses amounts above
  what is still payable (total minus approved and pending payments)
- approve/reject lock the payment row and only act on pending payments
- approval of a payment for a submitted project moves the project into
  progress
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.core.exceptions import (
    InvalidStateTransitionError,
    InvoiceNotFoundError,
    PaymentGatewayNotFoundError,
    PaymentNotFoundError,
    ValidationError,
)
from crm_finance.core.money import to_money
from crm_finance.dao.invoice import InvoiceDAO
from crm_finance.dao.payment import PaymentDAO, PaymentGatewayDAO
from crm_finance.dao.project import ProjectDAO
from crm_finance.models.audit_log import AuditAction
from crm_finance.models.base import utcnow
from crm_finance.models.invoice import InvoiceStatus
from crm_finance.models.payment import Payment, PaymentStatus
from crm_finance.models.project import ProjectStatus
from crm_finance.services.audit import AuditService
from crm_finance.services.invoice_service import InvoiceBalance
from crm_finance.services.reconciliation import InvoiceStatusReconciler

logger = logging.getLogger(__name__)


def _validate_amount(amount) -> Decimal:
    try:
        value = to_money(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(message="Amount must be a number")
    if not value.is_finite():
        raise ValidationError(message="Amount must be a number")
    if value <= 0:
        raise ValidationError(message="Amount must be greater than zero", amount=str(value))
    return value


class PaymentService:
    """
    Service for payment submission and review.

    Example:
        service = PaymentService(session)
        payment = await service.create_payment(
            org_id=1, invoice_id=10, gateway_id=2,
            amount=Decimal("800.00"), transaction_id="TX-123",
        )
        await service.approve_payment(payment.id, org_id=1, actor_id=7)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.payment_dao = PaymentDAO(session)
        self.gateway_dao = PaymentGatewayDAO(session)
        self.invoice_dao = InvoiceDAO(session)
        self.project_dao = ProjectDAO(session)
        self.reconciler = InvoiceStatusReconciler(session)
        self.audit = AuditService(session)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_payment(self, payment_id: int, org_id: int) -> Payment:
        """
        Raises:
            PaymentNotFoundError: If not found in the organization
        """
        payment = await self.payment_dao.get_by_id_and_org(payment_id, org_id)
        if not payment:
            raise PaymentNotFoundError(payment_id=payment_id)
        return payment

    async def get_payments_by_invoice(self, invoice_id: int, org_id: int) -> List[Payment]:
        """
        Get all payments of an invoice.

        Raises:
            InvoiceNotFoundError: If the invoice is not in the organization
        """
        if not await self.invoice_dao.exists(org_id, id=invoice_id):
            raise InvoiceNotFoundError(invoice_id=invoice_id)
        return await self.payment_dao.get_by_invoice(invoice_id, org_id)

    async def list_payments(
        self,
        org_id: int,
        status: Optional[PaymentStatus] = None,
        client_id: Optional[int] = None,
        client_email: Optional[str] = None,
        invoice_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Payment]:
        return await self.payment_dao.list_filtered(
            org_id,
            status=status,
            client_id=client_id,
            client_email=client_email,
            invoice_id=invoice_id,
            skip=skip,
            limit=limit,
        )

    # =========================================================================
    # Submission
    # =========================================================================

    async def create_payment(
        self,
        org_id: int,
        invoice_id: int,
        gateway_id: int,
        amount,
        transaction_id: str,
        paid_by: Optional[str] = None,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Payment:
        """
        Record a payment against an invoice.

        The payment starts pending, or approved right away when the gateway
        is configured to auto-approve.

        Args:
            org_id: Organization ID
            invoice_id: Invoice being paid
            gateway_id: Active gateway of the organization
            amount: Positive amount, at most the remaining payable amount
            transaction_id: Gateway reference, required
            paid_by: Optional payer name
            notes: Optional notes
            actor_id: Submitting user

        Returns:
            The created payment

        Raises:
            ValidationError: Bad amount or transaction id, or amount above
                what is still payable; nothing is persisted
            InvoiceNotFoundError: Invoice not in the organization
            InvalidStateTransitionError: Invoice already paid or cancelled
            PaymentGatewayNotFoundError: Gateway unknown or inactive
        """
        value = _validate_amount(amount)
        transaction_id = (transaction_id or "").strip()
        if not transaction_id:
            raise ValidationError(message="Transaction ID is required")

        invoice = await self.invoice_dao.get_for_update(invoice_id, org_id)
        if not invoice:
            raise InvoiceNotFoundError(invoice_id=invoice_id)
        if invoice.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED):
            raise InvalidStateTransitionError(
                message=f"Cannot add a payment to a {invoice.status.value} invoice",
                invoice_id=invoice_id,
                current_status=invoice.status.value,
            )

        gateway = await self.gateway_dao.get_active_by_id(gateway_id, org_id)
        if not gateway:
            raise PaymentGatewayNotFoundError(gateway_id=gateway_id)

        balance = InvoiceBalance.from_payments(
            invoice.total_amount,
            await self.payment_dao.get_by_invoice(invoice_id, org_id),
        )
        if value > balance.remaining_payable:
            raise ValidationError(
                message=f"Payment amount exceeds remaining due amount of {balance.remaining_payable}",
                amount=str(value),
                remaining_due=str(balance.remaining_payable),
            )

        now = utcnow()
        auto_approved = bool(gateway.auto_approve)
        payment = await self.payment_dao.create(
            org_id=org_id,
            invoice_id=invoice.id,
            gateway_id=gateway.id,
            project_id=invoice.project_id,
            client_id=invoice.client_id,
            amount=value,
            transaction_id=transaction_id,
            payment_method=gateway.name,
            status=PaymentStatus.APPROVED if auto_approved else PaymentStatus.PENDING,
            paid_by=paid_by,
            notes=notes,
            paid_at=now,
            verified_at=now if auto_approved else None,
        )

        logger.info(
            f"Payment {payment.id} of {value} recorded for invoice {invoice.invoice_number} "
            f"via {gateway.name} ({payment.status.value})"
        )
        await self.audit.log_create(
            resource_type="payment",
            resource_id=payment.id,
            org_id=org_id,
            actor_user_id=actor_id,
            extra_data={
                "invoice_id": invoice.id,
                "amount": str(value),
                "transaction_id": transaction_id,
                "status": payment.status.value,
            },
        )

        await self.reconciler.reconcile(invoice.id, org_id, actor_id=actor_id)
        if auto_approved:
            await self._advance_project(invoice.project_id, org_id, actor_id)
        return payment

    # =========================================================================
    # Review
    # =========================================================================

    async def approve_payment(
        self,
        payment_id: int,
        org_id: int,
        actor_id: Optional[int] = None,
        admin_notes: Optional[str] = None,
    ) -> Payment:
        """
        Approve a pending payment.

        Raises:
            PaymentNotFoundError: If not found in the organization
            InvalidStateTransitionError: If the payment is not pending
        """
        payment = await self._get_pending_for_update(payment_id, org_id, "approved")
        await self.payment_dao.update(
            payment,
            status=PaymentStatus.APPROVED,
            verified_at=utcnow(),
            verified_by=actor_id,
            admin_notes=admin_notes,
        )

        logger.info(f"Payment {payment.id} approved by user {actor_id}")
        await self.audit.log_status_change(
            resource_type="payment",
            resource_id=payment.id,
            org_id=org_id,
            old_status=PaymentStatus.PENDING.value,
            new_status=PaymentStatus.APPROVED.value,
            actor_user_id=actor_id,
            action=AuditAction.PAYMENT_APPROVED,
            extra_data={"amount": str(payment.amount), "invoice_id": payment.invoice_id},
        )

        await self.reconciler.reconcile(payment.invoice_id, org_id, actor_id=actor_id)
        await self._advance_project(payment.project_id, org_id, actor_id)
        return payment

    async def reject_payment(
        self,
        payment_id: int,
        org_id: int,
        actor_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Payment:
        """
        Reject a pending payment; the reason is stored in admin_notes.

        Raises:
            PaymentNotFoundError: If not found in the organization
            InvalidStateTransitionError: If the payment is not pending
        """
        payment = await self._get_pending_for_update(payment_id, org_id, "rejected")
        await self.payment_dao.update(
            payment,
            status=PaymentStatus.REJECTED,
            verified_at=utcnow(),
            verified_by=actor_id,
            admin_notes=reason,
        )

        logger.info(f"Payment {payment.id} rejected by user {actor_id}")
        await self.audit.log_status_change(
            resource_type="payment",
            resource_id=payment.id,
            org_id=org_id,
            old_status=PaymentStatus.PENDING.value,
            new_status=PaymentStatus.REJECTED.value,
            actor_user_id=actor_id,
            action=AuditAction.PAYMENT_REJECTED,
            extra_data={"reason": reason},
        )

        await self.reconciler.reconcile(payment.invoice_id, org_id, actor_id=actor_id)
        return payment

    async def _get_pending_for_update(self, payment_id: int, org_id: int, action: str) -> Payment:
        payment = await self.payment_dao.get_for_update(payment_id, org_id)
        if not payment:
            raise PaymentNotFoundError(payment_id=payment_id)
        if not payment.is_pending:
            raise InvalidStateTransitionError(
                message=f"Only pending payments can be {action}",
                payment_id=payment_id,
                current_status=payment.status.value,
            )
        return payment

    async def _advance_project(
        self,
        project_id: Optional[int],
        org_id: int,
        actor_id: Optional[int],
    ) -> None:
        """Move a submitted project into progress once money is approved."""
        if project_id is None:
            return
        project = await self.project_dao.get_for_update(project_id, org_id)
        if not project or project.status != ProjectStatus.SUBMITTED:
            return

        await self.project_dao.update(project, status=ProjectStatus.IN_PROGRESS)
        logger.info(f"Project {project.id} moved to in_progress after payment approval")
        await self.audit.log_status_change(
            resource_type="project",
            resource_id=project.id,
            org_id=org_id,
            old_status=ProjectStatus.SUBMITTED.value,
            new_status=ProjectStatus.IN_PROGRESS.value,
            actor_user_id=actor_id,
        )
