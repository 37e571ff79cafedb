"""
Payment API endpoints.

WHAT: Submission and review of payments against invoices.

WHY: Clients (or staff on their behalf) report a payment made through one of
the organization's gateways; staff with payment:verify approve or reject it.

HOW: FastAPI router over PaymentService. Client users can only submit and
see payments for invoices they own.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.core.deps import require_permission
from crm_finance.core.permissions import Permission, Principal
from crm_finance.db.session import get_db
from crm_finance.models.payment import PaymentStatus
from crm_finance.schemas.common import ApiResponse, ok
from crm_finance.schemas.payment import (
    PaymentApprove,
    PaymentCreate,
    PaymentReject,
    PaymentResponse,
)
from crm_finance.services.access import ClientAccessPolicy
from crm_finance.services.invoice_service import InvoiceService
from crm_finance.services.payment_service import PaymentService


router = APIRouter(prefix="/payments", tags=["payments"])


@router.get(
    "",
    response_model=ApiResponse[list[PaymentResponse]],
    summary="List payments",
)
async def list_payments(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    status_filter: Optional[PaymentStatus] = Query(default=None, alias="status"),
    client_id: Optional[int] = Query(default=None),
    invoice_id: Optional[int] = Query(default=None),
    principal: Principal = Depends(require_permission(Permission.PAYMENT_READ)),
    db: AsyncSession = Depends(get_db),
):
    """
    List payments of the organization, newest first.

    Client users get their own payments only.
    """
    service = PaymentService(db)
    if principal.is_client:
        if principal.client_id is None and not principal.email:
            return ok([], "Payments retrieved")
        payments = await service.list_payments(
            principal.org_id,
            status=status_filter,
            client_id=principal.client_id,
            client_email=principal.email,
            invoice_id=invoice_id,
            skip=skip,
            limit=limit,
        )
    else:
        payments = await service.list_payments(
            principal.org_id,
            status=status_filter,
            client_id=client_id,
            invoice_id=invoice_id,
            skip=skip,
            limit=limit,
        )
    return ok([PaymentResponse.model_validate(p) for p in payments], "Payments retrieved")


@router.post(
    "",
    response_model=ApiResponse[PaymentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Submit payment",
)
async def create_payment(
    data: PaymentCreate,
    principal: Principal = Depends(require_permission(Permission.PAYMENT_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a payment for an invoice.

    Raises:
        ValidationError (400): Bad amount, missing transaction id, or more
            than the invoice still needs
        ResourceNotFoundError (404): Invoice or active gateway not found
        InvalidStateTransitionError (400): Invoice paid or cancelled
    """
    if principal.is_client:
        invoice = await InvoiceService(db).get_invoice(data.invoice_id, principal.org_id)
        await ClientAccessPolicy(db, principal).ensure_invoice(invoice)

    payment = await PaymentService(db).create_payment(
        org_id=principal.org_id,
        invoice_id=data.invoice_id,
        gateway_id=data.gateway_id,
        amount=data.amount,
        transaction_id=data.transaction_id,
        paid_by=data.paid_by,
        notes=data.notes,
        actor_id=principal.user_id,
    )
    return ok(PaymentResponse.model_validate(payment), "Payment submitted")


@router.get(
    "/{payment_id}",
    response_model=ApiResponse[PaymentResponse],
    summary="Get payment",
)
async def get_payment(
    payment_id: int,
    principal: Principal = Depends(require_permission(Permission.PAYMENT_READ)),
    db: AsyncSession = Depends(get_db),
):
    payment = await PaymentService(db).get_payment(payment_id, principal.org_id)
    await ClientAccessPolicy(db, principal).ensure_payment(payment)
    return ok(PaymentResponse.model_validate(payment), "Payment retrieved")


@router.post(
    "/{payment_id}/approve",
    response_model=ApiResponse[PaymentResponse],
    summary="Approve payment",
)
async def approve_payment(
    payment_id: int,
    data: Optional[PaymentApprove] = None,
    principal: Principal = Depends(require_permission(Permission.PAYMENT_VERIFY)),
    db: AsyncSession = Depends(get_db),
):
    payment = await PaymentService(db).approve_payment(
        payment_id,
        principal.org_id,
        actor_id=principal.user_id,
        admin_notes=data.admin_notes if data else None,
    )
    return ok(PaymentResponse.model_validate(payment), "Payment approved")


@router.post(
    "/{payment_id}/reject",
    response_model=ApiResponse[PaymentResponse],
    summary="Reject payment",
)
async def reject_payment(
    payment_id: int,
    data: Optional[PaymentReject] = None,
    principal: Principal = Depends(require_permission(Permission.PAYMENT_VERIFY)),
    db: AsyncSession = Depends(get_db),
):
    payment = await PaymentService(db).reject_payment(
        payment_id,
        principal.org_id,
        actor_id=principal.user_id,
        reason=data.reason if data else None,
    )
    return ok(PaymentResponse.model_validate(payment), "Payment rejected")
