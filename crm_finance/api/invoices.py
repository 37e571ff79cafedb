"""
Invoice management API endpoints.

WHAT: RESTful API for invoice CRUD, cancellation and renewal.

WHY: Invoices are the billing record of the CRM:
1. Staff raise them for clients, directly or from a project
2. Clients see their own invoices and renew them when due
3. Status follows approved payments (see services.reconciliation)

HOW: FastAPI router with:
- Org-scoped queries (multi-tenancy) through the services
- Permission checks per route (see core.permissions)
- Client users limited to invoices they own
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.core.deps import get_current_principal, require_permission
from crm_finance.core.exceptions import AuthorizationError, InvalidStateTransitionError
from crm_finance.core.permissions import Permission, Principal
from crm_finance.db.session import get_db
from crm_finance.models.invoice import Invoice, InvoiceStatus
from crm_finance.schemas.common import ApiResponse, ok
from crm_finance.schemas.invoice import (
    CanRenewResponse,
    InvoiceCancel,
    InvoiceCreate,
    InvoiceFromProjectCreate,
    InvoiceItemResponse,
    InvoiceResponse,
    InvoiceStats,
    InvoiceUpdate,
)
from crm_finance.schemas.payment import PaymentResponse
from crm_finance.services.access import ClientAccessPolicy
from crm_finance.services.invoice_service import InvoiceBalance, InvoiceService
from crm_finance.services.payment_service import PaymentService


router = APIRouter(prefix="/finance/invoices", tags=["invoices"])


def invoice_to_response(invoice: Invoice, balance: InvoiceBalance) -> InvoiceResponse:
    """
    Convert an Invoice model and its balance to InvoiceResponse.

    Args:
        invoice: Invoice with items and client loaded
        balance: Money position computed from its payments

    Returns:
        InvoiceResponse schema instance
    """
    client = invoice.client
    return InvoiceResponse(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        status=invoice.status,
        org_id=invoice.org_id,
        client_id=invoice.client_id,
        client_name=client.name if client else None,
        client_email=client.email if client else None,
        project_id=invoice.project_id,
        renewed_from_id=invoice.renewed_from_id,
        total_amount=invoice.total_amount,
        amount_paid=balance.amount_paid,
        amount_pending=balance.amount_pending,
        amount_due=balance.amount_due,
        credit_balance=balance.credit_balance,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        cancelled_at=invoice.cancelled_at,
        notes=invoice.notes,
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
        is_paid=invoice.is_paid,
        is_editable=invoice.is_editable,
        items=[InvoiceItemResponse.model_validate(item) for item in invoice.items],
    )


async def _respond(service: InvoiceService, invoice: Invoice, message: str) -> Dict:
    balance = await service.get_balance(invoice)
    return ok(invoice_to_response(invoice, balance), message)


async def _get_visible_invoice(
    service: InvoiceService,
    invoice_id: int,
    principal: Principal,
    db: AsyncSession,
) -> Invoice:
    invoice = await service.get_invoice(invoice_id, principal.org_id)
    await ClientAccessPolicy(db, principal).ensure_invoice(invoice)
    return invoice


# ============================================================================
# Reads
# ============================================================================


@router.get(
    "",
    response_model=ApiResponse[list[InvoiceResponse]],
    summary="List invoices",
)
async def list_invoices(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    status_filter: Optional[InvoiceStatus] = Query(default=None, alias="status"),
    client_id: Optional[int] = Query(default=None),
    project_id: Optional[int] = Query(default=None),
    principal: Principal = Depends(require_permission(Permission.INVOICE_READ)),
    db: AsyncSession = Depends(get_db),
):
    """
    List invoices of the organization.

    Client users only get invoices addressed to them; the client_id and
    project_id filters are ignored for them.
    """
    service = InvoiceService(db)
    if principal.is_client:
        invoices = await service.list_client_invoices(
            principal.org_id,
            client_id=principal.client_id,
            email=principal.email,
            status=status_filter,
            skip=skip,
            limit=limit,
        )
    else:
        invoices = await service.list_invoices(
            principal.org_id,
            status=status_filter,
            client_id=client_id,
            project_id=project_id,
            skip=skip,
            limit=limit,
        )

    balances = await service.get_balances(invoices, principal.org_id)
    return ok([invoice_to_response(i, balances[i.id]) for i in invoices], "Invoices retrieved")


@router.get(
    "/stats",
    response_model=ApiResponse[InvoiceStats],
    summary="Get invoice statistics",
)
async def get_invoice_stats(
    principal: Principal = Depends(require_permission(Permission.INVOICE_READ)),
    db: AsyncSession = Depends(get_db),
):
    """Organization-wide figures; not available to client users."""
    if principal.is_client:
        raise AuthorizationError(message="Invoice statistics are not available to clients")
    stats = await InvoiceService(db).get_stats(principal.org_id)
    return ok(InvoiceStats(**stats), "Invoice statistics retrieved")


@router.get(
    "/{invoice_id}",
    response_model=ApiResponse[InvoiceResponse],
    summary="Get invoice",
)
async def get_invoice(
    invoice_id: int,
    principal: Principal = Depends(require_permission(Permission.INVOICE_READ)),
    db: AsyncSession = Depends(get_db),
):
    service = InvoiceService(db)
    invoice = await _get_visible_invoice(service, invoice_id, principal, db)
    return await _respond(service, invoice, "Invoice retrieved")


@router.get(
    "/{invoice_id}/can-renew",
    response_model=ApiResponse[CanRenewResponse],
    summary="Check renewal eligibility",
)
async def can_renew_invoice(
    invoice_id: int,
    principal: Principal = Depends(require_permission(Permission.INVOICE_READ)),
    db: AsyncSession = Depends(get_db),
):
    service = InvoiceService(db)
    await _get_visible_invoice(service, invoice_id, principal, db)
    eligible = await service.can_renew(invoice_id, principal.org_id)
    return ok(CanRenewResponse(invoice_id=invoice_id, can_renew=eligible), "Renewal eligibility checked")


@router.get(
    "/{invoice_id}/payments",
    response_model=ApiResponse[list[PaymentResponse]],
    summary="List payments of an invoice",
)
async def get_invoice_payments(
    invoice_id: int,
    principal: Principal = Depends(require_permission(Permission.PAYMENT_READ)),
    db: AsyncSession = Depends(get_db),
):
    await _get_visible_invoice(InvoiceService(db), invoice_id, principal, db)
    payments = await PaymentService(db).get_payments_by_invoice(invoice_id, principal.org_id)
    return ok([PaymentResponse.model_validate(p) for p in payments], "Payments retrieved")


# ============================================================================
# Writes
# ============================================================================


@router.post(
    "",
    response_model=ApiResponse[InvoiceResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create invoice",
)
async def create_invoice(
    data: InvoiceCreate,
    principal: Principal = Depends(require_permission(Permission.INVOICE_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Create an invoice with line items.

    Raises:
        ValidationError (400): Invalid items or dates
        ResourceNotFoundError (404): Client or project not in the organization
        ResourceAlreadyExistsError (409): invoice_number already used
    """
    service = InvoiceService(db)
    invoice = await service.create_invoice(
        org_id=principal.org_id,
        client_id=data.client_id,
        items=data.items,
        issue_date=data.issue_date,
        due_date=data.due_date,
        notes=data.notes,
        invoice_number=data.invoice_number,
        project_id=data.project_id,
        actor_id=principal.user_id,
    )
    return await _respond(service, invoice, "Invoice created")


@router.post(
    "/from-project",
    response_model=ApiResponse[InvoiceResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create invoice from project",
)
async def create_invoice_from_project(
    data: InvoiceFromProjectCreate,
    principal: Principal = Depends(require_permission(Permission.INVOICE_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    service = InvoiceService(db)
    invoice = await service.create_invoice_from_project(
        org_id=principal.org_id,
        project_id=data.project_id,
        items=data.items,
        issue_date=data.issue_date,
        due_date=data.due_date,
        notes=data.notes,
        actor_id=principal.user_id,
    )
    return await _respond(service, invoice, "Invoice created")


@router.put(
    "/{invoice_id}",
    response_model=ApiResponse[InvoiceResponse],
    summary="Update invoice",
)
async def update_invoice(
    invoice_id: int,
    data: InvoiceUpdate,
    principal: Principal = Depends(require_permission(Permission.INVOICE_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    service = InvoiceService(db)
    invoice = await service.update_invoice(
        invoice_id,
        principal.org_id,
        data.model_dump(exclude_unset=True),
        actor_id=principal.user_id,
    )
    return await _respond(service, invoice, "Invoice updated")


@router.delete(
    "/{invoice_id}",
    response_model=ApiResponse[None],
    summary="Delete invoice",
)
async def delete_invoice(
    invoice_id: int,
    principal: Principal = Depends(require_permission(Permission.INVOICE_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    """
    Raises:
        InvoiceHasApprovedPaymentsError (409): Approved money was received
    """
    await InvoiceService(db).delete_invoice(invoice_id, principal.org_id, actor_id=principal.user_id)
    return ok(None, "Invoice deleted")


@router.post(
    "/{invoice_id}/cancel",
    response_model=ApiResponse[InvoiceResponse],
    summary="Cancel invoice",
)
async def cancel_invoice(
    invoice_id: int,
    data: Optional[InvoiceCancel] = None,
    principal: Principal = Depends(require_permission(Permission.INVOICE_WRITE)),
    db: AsyncSession = Depends(get_db),
):
    service = InvoiceService(db)
    invoice = await service.cancel_invoice(
        invoice_id,
        principal.org_id,
        reason=data.reason if data else None,
        actor_id=principal.user_id,
    )
    return await _respond(service, invoice, "Invoice cancelled")


@router.post(
    "/{invoice_id}/renew",
    response_model=ApiResponse[InvoiceResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Renew invoice",
)
async def renew_invoice(
    invoice_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Renew an invoice into the next billing period.

    Staff need invoice:write. Client users may renew their own invoices once
    the due date has passed.
    """
    service = InvoiceService(db)
    if principal.is_client:
        await _get_visible_invoice(service, invoice_id, principal, db)
        if not await service.can_renew(invoice_id, principal.org_id):
            raise InvalidStateTransitionError(
                message="Invoice is not due for renewal yet",
                invoice_id=invoice_id,
            )
    elif not principal.has_permission(Permission.INVOICE_WRITE):
        raise AuthorizationError(
            message=f"Permission '{Permission.INVOICE_WRITE.value}' required",
            user_id=principal.user_id,
        )

    renewal = await service.renew_invoice(invoice_id, principal.org_id, actor_id=principal.user_id)
    return await _respond(service, renewal, "Invoice renewed")
