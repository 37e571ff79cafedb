"""
Unit tests for PaymentService.

WHAT: Payment submission, approval and rejection.

WHY: Only approved payments move money onto an invoice. These tests walk
the 2000.00 invoice (2 x 500 + 1 x 1000) through partial and full payment
and check that bad input never leaves a payment row behind.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from crm_finance.core.exceptions import (
    InvalidStateTransitionError,
    InvoiceNotFoundError,
    PaymentGatewayNotFoundError,
    PaymentNotFoundError,
    ValidationError,
)
from crm_finance.dao.payment import PaymentDAO
from crm_finance.dao.project import ProjectDAO
from crm_finance.models.base import utcnow
from crm_finance.models.invoice import InvoiceStatus
from crm_finance.models.payment import PaymentStatus
from crm_finance.models.project import ProjectStatus
from crm_finance.services.invoice_service import InvoiceService
from crm_finance.services.payment_service import PaymentService
from tests.factories import PaymentGatewayFactory, ProjectFactory

ITEMS = [
    {"description": "Design", "quantity": 2, "unit_price": "500.00"},
    {"description": "Build", "quantity": 1, "unit_price": "1000.00"},
]


async def _invoice(db_session, org_id, client_id, days_until_due=30, project_id=None):
    now = utcnow()
    return await InvoiceService(db_session).create_invoice(
        org_id=org_id,
        client_id=client_id,
        items=ITEMS,
        issue_date=now - timedelta(days=60),
        due_date=now + timedelta(days=days_until_due),
        project_id=project_id,
    )


async def _status(db_session, invoice):
    return (await InvoiceService(db_session).get_invoice(invoice.id, invoice.org_id)).status


class TestCreatePaymentValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount",
        [0, "0.00", -5, "-0.01", "abc", None, Decimal("NaN"), "NaN", "Infinity", "-Infinity"],
    )
    async def test_bad_amount_leaves_no_row(self, db_session, test_org, test_client_record, test_gateway, amount):
        invoice = await _invoice(db_session, test_org.id, test_client_record.id)

        with pytest.raises(ValidationError):
            await PaymentService(db_session).create_payment(
                test_org.id, invoice.id, test_gateway.id, amount, "TX-1"
            )
        assert await PaymentDAO(db_session).count(test_org.id) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("transaction_id", ["", "   ", None])
    async def test_blank_transaction_id(self, db_session, test_org, test_client_record, test_gateway, transaction_id):
        invoice = await _invoice(db_session, test_org.id, test_client_record.id)

        with pytest.raises(ValidationError):
            await PaymentService(db_session).create_payment(
                test_org.id, invoice.id, test_gateway.id, "100.00", transaction_id
            )
        assert await PaymentDAO(db_session).count(test_org.id) == 0

    @pytest.mark.asyncio
    async def test_overpayment_is_rejected(self, db_session, test_org, test_client_record, test_gateway):
        invoice = await _invoice(db_session, test_org.id, test_client_record.id)
        service = PaymentService(db_session)

        with pytest.raises(ValidationError):
            await service.create_payment(test_org.id, invoice.id, test_gateway.id, "2000.01", "TX-1")

        await service.create_payment(test_org.id, invoice.id, test_gateway.id, "1500.00", "TX-2")
        with pytest.raises(ValidationError):
            await service.create_payment(test_org.id, invoice.id, test_gateway.id, "600.00", "TX-3")
        assert await PaymentDAO(db_session).count(test_org.id) == 1

    @pytest.mark.asyncio
    async def test_unknown_invoice(self, db_session, test_org, other_org, test_client_record, test_gateway):
        invoice = await _invoice(db_session, test_org.id, test_client_record.id)
        with pytest.raises(InvoiceNotFoundError):
            await PaymentService(db_session).create_payment(other_org.id, invoice.id, test_gateway.id, "10", "TX")

    @pytest.mark.asyncio
    async def test_inactive_gateway(self, db_session, test_org, test_client_record):
        gateway = await PaymentGatewayFactory.create(db_session, test_org.id, is_active=False)
        invoice = await _invoice(db_session, test_org.id, test_client_record.id)

        with pytest.raises(PaymentGatewayNotFoundError):
            await PaymentService(db_session).create_payment(test_org.id, invoice.id, gateway.id, "10", "TX")

    @pytest.mark.asyncio
    async def test_paid_invoice_takes_no_payments(self, db_session, test_org, test_client_record, test_gateway):
        invoice = await _invoice(db_session, test_org.id, test_client_record.id)
        service = PaymentService(db_session)
        payment = await service.create_payment(test_org.id, invoice.id, test_gateway.id, "2000.00", "TX-1")
        await service.approve_payment(payment.id, test_org.id, actor_id=1)

        with pytest.raises(InvalidStateTransitionError):
            await service.create_payment(test_org.id, invoice.id, test_gateway.id, "1.00", "TX-2")


class TestPaymentScenarios:
    @pytest.mark.asyncio
    async def test_pending_payment_does_not_change_status(
        self, db_session, test_org, test_client_record, test_gateway
    ):
        invoice = await _invoice(db_session, test_org.id, test_client_record.id)
        payment = await PaymentService(db_session).create_payment(
            test_org.id, invoice.id, test_gateway.id, Decimal("2000.00"), " TX-9 ", paid_by="Jordan"
        )

        assert payment.status == PaymentStatus.PENDING
        assert payment.transaction_id == "TX-9"
        assert payment.payment_method == test_gateway.name
        assert payment.client_id == test_client_record.id
        assert await _status(db_session, invoice) == InvoiceStatus.UNPAID

    @pytest.mark.asyncio
    async def test_partial_then_full_payment(self, db_session, test_org, test_client_record, test_gateway):
        invoice = await _invoice(db_session, test_org.id, test_client_record.id)
        service = PaymentService(db_session)

        first = await service.create_payment(test_org.id, invoice.id, test_gateway.id, "800.00", "TX-1")
        await service.approve_payment(first.id, test_org.id, actor_id=7, admin_notes="Seen on statement")
        assert await _status(db_session, invoice) == InvoiceStatus.UNPAID

        second = await service.create_payment(test_org.id, invoice.id, test_gateway.id, "1200.00", "TX-2")
        approved = await service.approve_payment(second.id, test_org.id, actor_id=7)

        assert approved.status == PaymentStatus.APPROVED
        assert approved.verified_by == 7
        assert approved.verified_at is not None
        assert await _status(db_session, invoice) == InvoiceStatus.PAID

    @pytest.mark.asyncio
    async def test_partial_payment_on_late_invoice_stays_overdue(
        self, db_session, test_org, test_client_record, test_gateway
    ):
        invoice = await _invoice(db_session, test_org.id, test_client_record.id, days_until_due=-1)
        service = PaymentService(db_session)
        assert invoice.status == InvoiceStatus.OVERDUE

        payment = await service.create_payment(test_org.id, invoice.id, test_gateway.id, "800.00", "TX-1")
        await service.approve_payment(payment.id, test_org.id)

        assert await _status(db_session, invoice) == InvoiceStatus.OVERDUE

    @pytest.mark.asyncio
    async def test_approving_twice(self, db_session, test_org, test_client_record, test_gateway):
        invoice = await _invoice(db_session, test_org.id, test_client_record.id)
        service = PaymentService(db_session)
        payment = await service.create_payment(test_org.id, invoice.id, test_gateway.id, "100.00", "TX-1")
        await service.approve_payment(payment.id, test_org.id)

        with pytest.raises(InvalidStateTransitionError):
            await service.approve_payment(payment.id, test_org.id)
        with pytest.raises(InvalidStateTransitionError):
            await service.reject_payment(payment.id, test_org.id)

    @pytest.mark.asyncio
    async def test_reject_stores_reason(self, db_session, test_org, test_client_record, test_gateway):
        invoice = await _invoice(db_session, test_org.id, test_client_record.id)
        service = PaymentService(db_session)
        payment = await service.create_payment(test_org.id, invoice.id, test_gateway.id, "2000.00", "TX-1")

        rejected = await service.reject_payment(payment.id, test_org.id, actor_id=3, reason="No such transfer")

        assert rejected.status == PaymentStatus.REJECTED
        assert rejected.admin_notes == "No such transfer"
        assert await _status(db_session, invoice) == InvoiceStatus.UNPAID

        # The rejected amount is payable again
        again = await service.create_payment(test_org.id, invoice.id, test_gateway.id, "2000.00", "TX-2")
        assert again.status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_payment(self, db_session, test_org):
        with pytest.raises(PaymentNotFoundError):
            await PaymentService(db_session).approve_payment(424242, test_org.id)


class TestAutoApprove:
    @pytest.mark.asyncio
    async def test_auto_approved_payment_pays_invoice_and_starts_project(
        self, db_session, test_org, test_client_record
    ):
        gateway = await PaymentGatewayFactory.create(db_session, test_org.id, name="Card", auto_approve=True)
        project = await ProjectFactory.create(
            db_session, test_org.id, status=ProjectStatus.SUBMITTED, client_id=test_client_record.id
        )
        invoice = await _invoice(db_session, test_org.id, test_client_record.id, project_id=project.id)

        payment = await PaymentService(db_session).create_payment(
            test_org.id, invoice.id, gateway.id, "2000.00", "TX-AUTO"
        )

        assert payment.status == PaymentStatus.APPROVED
        assert payment.project_id == project.id
        assert await _status(db_session, invoice) == InvoiceStatus.PAID
        reloaded = await ProjectDAO(db_session).get_by_id_and_org(project.id, test_org.id)
        assert reloaded.status == ProjectStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_manual_approval_starts_project(self, db_session, test_org, test_client_record, test_gateway):
        project = await ProjectFactory.create(
            db_session, test_org.id, status=ProjectStatus.SUBMITTED, client_id=test_client_record.id
        )
        invoice = await _invoice(db_session, test_org.id, test_client_record.id, project_id=project.id)
        service = PaymentService(db_session)
        payment = await service.create_payment(test_org.id, invoice.id, test_gateway.id, "500.00", "TX-1")

        project_dao = ProjectDAO(db_session)
        assert (await project_dao.get_by_id_and_org(project.id, test_org.id)).status == ProjectStatus.SUBMITTED

        await service.approve_payment(payment.id, test_org.id)
        assert (await project_dao.get_by_id_and_org(project.id, test_org.id)).status == ProjectStatus.IN_PROGRESS
