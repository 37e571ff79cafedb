"""
Invoice service.

WHAT: Business logic for invoices: creation (directly or from a project),
updates, cancellation, deletion, renewal and reporting.

WHY: Invoices hold the finance invariants:
1. total_amount always equals the sum of item totals
2. status is derived from approved payments (see reconciliation)
3. items are frozen once the invoice is paid or cancelled
4. an invoice that has received approved money cannot be deleted

HOW: Validates input, resolves tenant-scoped references through the DAOs,
inserts invoice and items in one flush under a unique number (see
invoice_numbering), and re-runs the status reconciler after any change
that can affect status. All methods take org_id explicitly.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from crm_finance.core.config import settings
from crm_finance.core.exceptions import (
    ClientNotFoundError,
    InvalidStateTransitionError,
    InvoiceHasApprovedPaymentsError,
    InvoiceNotFoundError,
    ProjectNotFoundError,
    ValidationError,
)
from crm_finance.core.money import ZERO, line_total, to_money
from crm_finance.dao.client import ClientDAO
from crm_finance.dao.invoice import InvoiceDAO
from crm_finance.dao.payment import PaymentDAO
from crm_finance.dao.project import ProjectDAO
from crm_finance.models.audit_log import AuditAction
from crm_finance.models.base import as_naive_utc, utcnow
from crm_finance.models.client import Client
from crm_finance.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from crm_finance.models.payment import Payment, PaymentStatus
from crm_finance.models.project import Project
from crm_finance.services.audit import AuditService
from crm_finance.services.invoice_numbering import InvoiceNumberGenerator
from crm_finance.services.reconciliation import (
    InvoiceStatusReconciler,
    approved_total,
    derive_invoice_status,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"client_id", "issue_date", "due_date", "notes", "items"})


@dataclass(frozen=True)
class InvoiceBalance:
    """
    Money position of an invoice.

    credit_balance is non-zero only when approved payments exceed the total,
    which can happen if the total is reduced after payment.
    """

    total_amount: Decimal
    amount_paid: Decimal
    amount_pending: Decimal

    @property
    def amount_due(self) -> Decimal:
        return max(self.total_amount - self.amount_paid, ZERO)

    @property
    def credit_balance(self) -> Decimal:
        return max(self.amount_paid - self.total_amount, ZERO)

    @property
    def remaining_payable(self) -> Decimal:
        """What a new payment may still cover: due minus payments awaiting review."""
        return max(self.total_amount - self.amount_paid - self.amount_pending, ZERO)

    @classmethod
    def from_payments(cls, total_amount: Decimal, payments: Iterable[Payment]) -> "InvoiceBalance":
        payments = list(payments)
        pending = ZERO
        for payment in payments:
            if payment.status == PaymentStatus.PENDING:
                pending += to_money(payment.amount)
        return cls(
            total_amount=to_money(total_amount),
            amount_paid=approved_total(payments),
            amount_pending=to_money(pending),
        )


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def validate_line_items(items: Optional[Sequence[Any]]) -> List[Dict[str, Any]]:
    """
    Validate line items and compute their totals.

    Accepts mappings or objects with description, quantity and unit_price.

    Returns:
        List of column dicts for InvoiceItem, in input order

    Raises:
        ValidationError: On an empty list or a non-positive quantity or price
    """
    if not items:
        raise ValidationError(message="Invoice must have at least one item")

    validated = []
    for position, item in enumerate(items):
        description = (_field(item, "description") or "").strip()
        if not description:
            raise ValidationError(message=f"Item {position + 1}: description is required", position=position)

        quantity = _field(item, "quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(
                message=f"Item {position + 1}: quantity must be a positive integer",
                position=position,
            )

        try:
            unit_price = to_money(_field(item, "unit_price"))
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError(message=f"Item {position + 1}: unit price is not a number", position=position)
        if not unit_price.is_finite():
            raise ValidationError(message=f"Item {position + 1}: unit price is not a number", position=position)
        if unit_price <= 0:
            raise ValidationError(message=f"Item {position + 1}: unit price must be positive", position=position)

        validated.append(
            {
                "description": description,
                "quantity": quantity,
                "unit_price": unit_price,
                "total": line_total(quantity, unit_price),
                "position": position,
            }
        )
    return validated


class InvoiceService:
    """
    Service for invoice lifecycle operations.

    Example:
        service = InvoiceService(session)
        invoice = await service.create_invoice(
            org_id=1,
            client_id=5,
            items=[{"description": "Design", "quantity": 2, "unit_price": "500.00"}],
            issue_date=datetime(2024, 1, 1),
            due_date=datetime(2024, 1, 31),
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.invoice_dao = InvoiceDAO(session)
        self.client_dao = ClientDAO(session)
        self.project_dao = ProjectDAO(session)
        self.payment_dao = PaymentDAO(session)
        self.numbering = InvoiceNumberGenerator(session)
        self.reconciler = InvoiceStatusReconciler(session)
        self.audit = AuditService(session)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_invoice(self, invoice_id: int, org_id: int) -> Invoice:
        """
        Get an invoice with its items.

        An unpaid invoice read after its due date is reconciled first, so it
        comes back overdue.

        Raises:
            InvoiceNotFoundError: If not found in the organization
        """
        invoice = await self.invoice_dao.get_with_items(invoice_id, org_id)
        if not invoice:
            raise InvoiceNotFoundError(invoice_id=invoice_id)
        if invoice.status == InvoiceStatus.UNPAID and invoice.due_date < utcnow():
            await self.reconciler.reconcile(invoice.id, org_id)
        return invoice

    async def list_invoices(
        self,
        org_id: int,
        status: Optional[InvoiceStatus] = None,
        client_id: Optional[int] = None,
        project_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        await self.reconciler.reconcile_overdue(org_id)
        return await self.invoice_dao.list_filtered(
            org_id,
            status=status,
            client_id=client_id,
            project_id=project_id,
            skip=skip,
            limit=limit,
        )

    async def list_client_invoices(
        self,
        org_id: int,
        client_id: Optional[int],
        email: Optional[str],
        status: Optional[InvoiceStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        """
        List invoices visible to a client user.

        Matches the user's client record(s) by id and by email, plus invoices
        of projects whose client email is the user's.
        """
        await self.reconciler.reconcile_overdue(org_id)
        client_ids = [client_id] if client_id is not None else []
        if email:
            client_ids.extend(await self.client_dao.get_ids_by_email(email, org_id))
        return await self.invoice_dao.get_for_client(
            org_id,
            sorted(set(client_ids)),
            email=email,
            status=status,
            skip=skip,
            limit=limit,
        )

    async def get_balance(self, invoice: Invoice) -> InvoiceBalance:
        payments = await self.payment_dao.get_by_invoice(invoice.id, invoice.org_id)
        return InvoiceBalance.from_payments(invoice.total_amount, payments)

    async def get_balances(self, invoices: Sequence[Invoice], org_id: int) -> Dict[int, InvoiceBalance]:
        """Balances for several invoices with a single payment query."""
        payments = await self.payment_dao.get_by_invoice_ids([i.id for i in invoices], org_id)
        by_invoice: Dict[int, List[Payment]] = {}
        for payment in payments:
            by_invoice.setdefault(payment.invoice_id, []).append(payment)
        return {
            invoice.id: InvoiceBalance.from_payments(invoice.total_amount, by_invoice.get(invoice.id, []))
            for invoice in invoices
        }

    async def get_stats(self, org_id: int) -> Dict[str, Any]:
        """
        Dashboard figures for an organization.

        Returns:
            Dict with counts per status, total_invoiced (non-cancelled),
            total_collected (approved payments) and total_outstanding
            (still owed on unpaid and overdue invoices)
        """
        await self.reconciler.reconcile_overdue(org_id)
        counts = {status.value: 0 for status in InvoiceStatus}
        counts.update(await self.invoice_dao.count_by_status(org_id))

        total_invoiced = await self.invoice_dao.sum_total_by_status(
            org_id,
            [InvoiceStatus.UNPAID, InvoiceStatus.PAID, InvoiceStatus.OVERDUE],
        )
        total_collected = await self.payment_dao.sum_approved_for_org(org_id)

        open_invoices = await self.invoice_dao.get_open_invoices(org_id)
        balances = await self.get_balances(open_invoices, org_id)
        outstanding = sum((b.amount_due for b in balances.values()), ZERO)

        return {
            "counts": counts,
            "total_invoices": sum(counts.values()),
            "total_invoiced": to_money(total_invoiced),
            "total_collected": to_money(total_collected),
            "total_outstanding": to_money(outstanding),
        }

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_invoice(
        self,
        org_id: int,
        client_id: int,
        items: Sequence[Any],
        issue_date: datetime,
        due_date: datetime,
        notes: Optional[str] = None,
        invoice_number: Optional[str] = None,
        project_id: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> Invoice:
        """
        Create an invoice with line items.

        Args:
            org_id: Organization ID
            client_id: Billed client (must belong to the organization)
            items: Line items (description, quantity, unit_price)
            issue_date: Issue date
            due_date: Due date, not before issue_date
            notes: Optional notes
            invoice_number: Optional caller-supplied number
            project_id: Optional project (must belong to the organization)
            actor_id: User creating the invoice

        Returns:
            The created invoice with items

        Raises:
            ValidationError: Invalid items or dates
            ClientNotFoundError / ProjectNotFoundError: Unknown reference
            ResourceAlreadyExistsError: invoice_number already used
        """
        item_rows = validate_line_items(items)
        issue_date, due_date = self._validate_dates(issue_date, due_date)

        client = await self.client_dao.get_by_id_and_org(client_id, org_id)
        if not client:
            raise ClientNotFoundError(client_id=client_id)

        if project_id is not None:
            project = await self.project_dao.get_by_id_and_org(project_id, org_id)
            if not project:
                raise ProjectNotFoundError(project_id=project_id)

        invoice = await self._insert_invoice(
            org_id=org_id,
            client_id=client.id,
            item_rows=item_rows,
            issue_date=issue_date,
            due_date=due_date,
            notes=notes,
            invoice_number=invoice_number,
            project_id=project_id,
            actor_id=actor_id,
        )
        return await self.get_invoice(invoice.id, org_id)

    async def create_invoice_from_project(
        self,
        org_id: int,
        project_id: int,
        items: Sequence[Any],
        issue_date: Optional[datetime] = None,
        due_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Invoice:
        """
        Create an invoice for a project, billed to the project's client.

        Defaults: issue_date now, due_date issue_date + INVOICE_DEFAULT_DUE_DAYS,
        notes "Invoice for project: <name>".

        Raises:
            ProjectNotFoundError: If the project is not in the organization
            ValidationError: Invalid items, or the project has no client
        """
        project = await self.project_dao.get_by_id_and_org(project_id, org_id)
        if not project:
            raise ProjectNotFoundError(project_id=project_id)

        item_rows = validate_line_items(items)
        client = await self._resolve_project_client(project)

        issue_date = as_naive_utc(issue_date) if issue_date else utcnow()
        if due_date is None:
            due_date = issue_date + timedelta(days=settings.INVOICE_DEFAULT_DUE_DAYS)
        issue_date, due_date = self._validate_dates(issue_date, due_date)

        invoice = await self._insert_invoice(
            org_id=org_id,
            client_id=client.id,
            item_rows=item_rows,
            issue_date=issue_date,
            due_date=due_date,
            notes=notes if notes is not None else f"Invoice for project: {project.name}",
            project_id=project.id,
            actor_id=actor_id,
        )
        return await self.get_invoice(invoice.id, org_id)

    async def generate_invoice_for_project(
        self,
        org_id: int,
        project_id: int,
        actor_id: Optional[int] = None,
    ) -> Optional[Invoice]:
        """
        Make sure a project has an invoice for its budget.

        Called when a project is submitted. Idempotent: an existing invoice
        of the project is returned as is.

        Returns:
            The project's first invoice, or None when the project has no
            positive budget to bill
        """
        existing = await self.invoice_dao.get_by_project(project_id, org_id)
        if existing:
            return await self.get_invoice(existing[0].id, org_id)

        project = await self.project_dao.get_by_id_and_org(project_id, org_id)
        if not project:
            raise ProjectNotFoundError(project_id=project_id)
        if project.budget is None or to_money(project.budget) <= 0:
            logger.info(f"Project {project_id} has no budget, skipping invoice generation")
            return None

        return await self.create_invoice_from_project(
            org_id,
            project.id,
            items=[{"description": project.name, "quantity": 1, "unit_price": project.budget}],
            actor_id=actor_id,
        )

    # =========================================================================
    # Mutation
    # =========================================================================

    async def update_invoice(
        self,
        invoice_id: int,
        org_id: int,
        fields: Dict[str, Any],
        actor_id: Optional[int] = None,
    ) -> Invoice:
        """
        Partially update an invoice.

        Updatable: client_id, issue_date, due_date, notes, items. fields maps
        those names to new values. Replacing
        items recomputes total_amount; status is reconciled afterwards.

        Raises:
            InvoiceNotFoundError: If not found in the organization
            ValidationError: Unknown fields, invalid items or dates
            InvalidStateTransitionError: Editing a cancelled invoice, or the
                items of a paid one
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(message=f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        invoice = await self.get_invoice(invoice_id, org_id)
        if invoice.is_cancelled:
            raise InvalidStateTransitionError(
                message="Cancelled invoices cannot be edited",
                invoice_id=invoice_id,
            )

        changes: Dict[str, Dict[str, Any]] = {}
        values: Dict[str, Any] = {}
        item_rows = None

        if fields.get("items") is not None:
            if not invoice.is_editable:
                raise InvalidStateTransitionError(
                    message=f"Items of a {invoice.status.value} invoice cannot be edited",
                    invoice_id=invoice_id,
                    current_status=invoice.status.value,
                )
            item_rows = validate_line_items(fields["items"])
            new_total = to_money(sum((row["total"] for row in item_rows), ZERO))
            if new_total != to_money(invoice.total_amount):
                changes["total_amount"] = {"before": str(invoice.total_amount), "after": str(new_total)}
            values["total_amount"] = new_total

        if fields.get("client_id") is not None and fields["client_id"] != invoice.client_id:
            client = await self.client_dao.get_by_id_and_org(fields["client_id"], org_id)
            if not client:
                raise ClientNotFoundError(client_id=fields["client_id"])
            changes["client_id"] = {"before": invoice.client_id, "after": client.id}
            values["client_id"] = client.id

        if fields.get("issue_date") is not None or fields.get("due_date") is not None:
            issue_date, due_date = self._validate_dates(
                fields.get("issue_date") or invoice.issue_date,
                fields.get("due_date") or invoice.due_date,
            )
            for name, value in (("issue_date", issue_date), ("due_date", due_date)):
                if value != getattr(invoice, name):
                    changes[name] = {"before": getattr(invoice, name).isoformat(), "after": value.isoformat()}
                    values[name] = value

        if "notes" in fields and fields["notes"] != invoice.notes:
            changes["notes"] = {"before": invoice.notes, "after": fields["notes"]}
            values["notes"] = fields["notes"]

        if item_rows is not None:
            await self.invoice_dao.replace_items(invoice, [InvoiceItem(**row) for row in item_rows])
        if values:
            await self.invoice_dao.update(invoice, **values)
        await self.reconciler.reconcile(invoice.id, org_id, actor_id=actor_id)

        if changes:
            logger.info(f"Invoice {invoice.invoice_number} updated: {', '.join(sorted(changes))}")
            await self.audit.log_update(
                resource_type="invoice",
                resource_id=invoice.id,
                org_id=org_id,
                changes=changes,
                actor_user_id=actor_id,
            )
        return await self.get_invoice(invoice.id, org_id)

    async def cancel_invoice(
        self,
        invoice_id: int,
        org_id: int,
        reason: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Invoice:
        """
        Cancel an invoice and its pending payments.

        Raises:
            InvoiceNotFoundError: If not found in the organization
            InvalidStateTransitionError: If already cancelled
            InvoiceHasApprovedPaymentsError: If approved payments exist
        """
        invoice = await self.invoice_dao.get_for_update(invoice_id, org_id)
        if not invoice:
            raise InvoiceNotFoundError(invoice_id=invoice_id)
        if invoice.is_cancelled:
            raise InvalidStateTransitionError(message="Invoice is already cancelled", invoice_id=invoice_id)
        if await self.payment_dao.has_approved(invoice_id, org_id):
            raise InvoiceHasApprovedPaymentsError(
                message="Invoice has approved payments and cannot be cancelled",
                invoice_id=invoice_id,
            )

        cancelled_payments = await self.payment_dao.cancel_pending(
            invoice_id, org_id, reason=reason or "Invoice cancelled"
        )
        previous = invoice.status
        await self.invoice_dao.update(invoice, status=InvoiceStatus.CANCELLED, cancelled_at=utcnow())

        logger.info(
            f"Invoice {invoice.invoice_number} cancelled (org {org_id}, "
            f"{cancelled_payments} pending payment(s) cancelled)"
        )
        await self.audit.log_status_change(
            resource_type="invoice",
            resource_id=invoice.id,
            org_id=org_id,
            old_status=previous.value,
            new_status=InvoiceStatus.CANCELLED.value,
            actor_user_id=actor_id,
            action=AuditAction.INVOICE_CANCELLED,
            extra_data={"reason": reason, "cancelled_payments": cancelled_payments},
        )
        return await self.get_invoice(invoice.id, org_id)

    async def delete_invoice(
        self,
        invoice_id: int,
        org_id: int,
        actor_id: Optional[int] = None,
    ) -> None:
        """
        Delete an invoice with its items and non-approved payments.

        Raises:
            InvoiceNotFoundError: If not found in the organization
            InvoiceHasApprovedPaymentsError: If approved payments exist
        """
        invoice = await self.get_invoice(invoice_id, org_id)
        if await self.payment_dao.has_approved(invoice_id, org_id):
            raise InvoiceHasApprovedPaymentsError(
                message="Invoice has approved payments and cannot be deleted",
                invoice_id=invoice_id,
            )

        invoice_number = invoice.invoice_number
        await self.invoice_dao.delete_with_children(invoice)

        logger.info(f"Invoice {invoice_number} deleted (org {org_id})")
        await self.audit.log_delete(
            resource_type="invoice",
            resource_id=invoice_id,
            org_id=org_id,
            actor_user_id=actor_id,
            extra_data={"invoice_number": invoice_number},
        )

    async def renew_invoice(
        self,
        invoice_id: int,
        org_id: int,
        actor_id: Optional[int] = None,
    ) -> Invoice:
        """
        Clone an invoice into the next billing period.

        The renewal gets a fresh number, issue_date now and a due date at the
        source's payment terms (due - issue) from now. Items, notes, client
        and project are copied; payments are not.

        Raises:
            InvoiceNotFoundError: If not found in the organization
            InvalidStateTransitionError: If the source is cancelled or is not
                issued yet (the renewal must be issued after its source)
        """
        source = await self.get_invoice(invoice_id, org_id)
        if source.is_cancelled:
            raise InvalidStateTransitionError(
                message="Cancelled invoices cannot be renewed",
                invoice_id=invoice_id,
            )

        now = utcnow()
        if source.issue_date >= now:
            raise InvalidStateTransitionError(
                message="Invoice cannot be renewed before its issue date",
                invoice_id=invoice_id,
                issue_date=source.issue_date.isoformat(),
            )

        item_rows = validate_line_items(
            [
                {"description": item.description, "quantity": item.quantity, "unit_price": item.unit_price}
                for item in source.items
            ]
        )

        renewal = await self._insert_invoice(
            org_id=org_id,
            client_id=source.client_id,
            item_rows=item_rows,
            issue_date=now,
            due_date=now + source.payment_terms,
            notes=source.notes,
            project_id=source.project_id,
            renewed_from_id=source.id,
            actor_id=actor_id,
            audit_action=AuditAction.INVOICE_RENEWED,
        )
        logger.info(f"Invoice {source.invoice_number} renewed as {renewal.invoice_number}")
        return await self.get_invoice(renewal.id, org_id)

    async def can_renew(self, invoice_id: int, org_id: int, now: Optional[datetime] = None) -> bool:
        """
        Whether an invoice is up for renewal: its due date has passed and it
        is not cancelled.
        """
        invoice = await self.get_invoice(invoice_id, org_id)
        if invoice.is_cancelled:
            return False
        return (now or utcnow()) >= invoice.due_date

    # =========================================================================
    # Helpers
    # =========================================================================

    def _validate_dates(self, issue_date: datetime, due_date: datetime) -> tuple[datetime, datetime]:
        if issue_date is None or due_date is None:
            raise ValidationError(message="issue_date and due_date are required")
        issue_date = as_naive_utc(issue_date)
        due_date = as_naive_utc(due_date)
        if due_date < issue_date:
            raise ValidationError(
                message="Due date cannot be before issue date",
                issue_date=issue_date.isoformat(),
                due_date=due_date.isoformat(),
            )
        return issue_date, due_date

    async def _resolve_project_client(self, project: Project) -> Client:
        """
        Find the client a project invoice is addressed to.

        Order: the project's client_id; then a client of the organization
        whose email matches the project's client_email; then a new client
        created from that email. The project is linked to the client found.

        Raises:
            ValidationError: If the project has neither a client nor an email
        """
        if project.client_id is not None:
            client = await self.client_dao.get_by_id_and_org(project.client_id, project.org_id)
            if client:
                return client

        email = (project.client_email or "").strip()
        if not email:
            raise ValidationError(
                message="Project has no client to invoice",
                project_id=project.id,
            )

        client = await self.client_dao.get_by_email(email, project.org_id)
        if not client:
            client = await self.client_dao.create(
                org_id=project.org_id,
                name=email.split("@")[0],
                email=email.lower(),
            )
            logger.info(f"Created client {client.id} from project {project.id} email")

        await self.project_dao.update(project, client_id=client.id)
        return client

    async def _insert_invoice(
        self,
        org_id: int,
        client_id: int,
        item_rows: List[Dict[str, Any]],
        issue_date: datetime,
        due_date: datetime,
        notes: Optional[str] = None,
        invoice_number: Optional[str] = None,
        project_id: Optional[int] = None,
        renewed_from_id: Optional[int] = None,
        actor_id: Optional[int] = None,
        audit_action: AuditAction = AuditAction.CREATE,
    ) -> Invoice:
        total_amount = to_money(sum((row["total"] for row in item_rows), ZERO))
        # No payments yet, so only the due date decides between unpaid and overdue
        status = derive_invoice_status(total_amount, due_date, [], utcnow())

        async def build(number: str) -> Invoice:
            return await self.invoice_dao.create(
                org_id=org_id,
                invoice_number=number,
                client_id=client_id,
                project_id=project_id,
                renewed_from_id=renewed_from_id,
                issue_date=issue_date,
                due_date=due_date,
                notes=notes,
                total_amount=total_amount,
                status=status,
                # Fresh item objects per attempt; a failed savepoint discards the old ones
                items=[InvoiceItem(**row) for row in item_rows],
            )

        invoice = await self.numbering.insert_with_unique_number(
            org_id, build, requested_number=invoice_number
        )

        logger.info(
            f"Invoice {invoice.invoice_number} created for org {org_id} "
            f"(client {client_id}, total {total_amount})"
        )
        await self.audit.log_event(
            action=audit_action,
            resource_type="invoice",
            actor_user_id=actor_id,
            resource_id=invoice.id,
            org_id=org_id,
            extra_data={
                "invoice_number": invoice.invoice_number,
                "total_amount": str(total_amount),
                "renewed_from_id": renewed_from_id,
            },
        )
        return invoice
