"""
Invoice and InvoiceItem models for billing.

WHAT: SQLAlchemy models representing an invoice and its line items.

WHY: Invoices are the financial documents payments are recorded against:
1. Track amounts owed by clients, itemised
2. Carry a human-readable number unique within the tenant
3. Expose a derived status (unpaid/paid/overdue) kept in sync with
   approved payments by the status reconciler
4. Link renewals back to the invoice they were cloned from

HOW: Uses SQLAlchemy 2.0 with:
- UNIQUE(org_id, invoice_number) so concurrent numbering collides in the
  database instead of silently duplicating
- Items loaded eagerly (selectin), since async sessions cannot lazy-load
- Numeric(12, 2) amounts handled as Decimal end to end
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, TYPE_CHECKING
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Numeric,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped

from crm_finance.models.base import Base, utcnow

if TYPE_CHECKING:
    from crm_finance.models.client import Client
    from crm_finance.models.organization import Organization
    from crm_finance.models.project import Project


class InvoiceStatus(str, Enum):
    """
    Invoice payment status.

    - UNPAID: Approved payments do not cover the total yet
    - PAID: Approved payments cover the total
    - OVERDUE: Not covered and past the due date
    - CANCELLED: Voided; excluded from reconciliation
    """

    UNPAID = "unpaid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Invoice(Base):
    """
    Invoice model.

    Attributes:
        id: Primary key
        invoice_number: Human-readable identifier, unique per organization
        org_id: Organization for queries and access control
        client_id: Billed client
        project_id: Project the invoice was raised for (optional)
        renewed_from_id: Source invoice when this is a renewal

        issue_date: When the invoice was issued (naive UTC)
        due_date: Payment due date (naive UTC)
        total_amount: Sum of item totals
        status: Derived payment status
        notes: Free-text notes shown on the invoice
        cancelled_at: When the invoice was cancelled
    """

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("org_id", "invoice_number", name="uq_invoices_org_invoice_number"),
    )

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)

    invoice_number: Mapped[str] = Column(
        String(50),
        nullable=False,
        index=True,
        comment="Invoice number unique per organization (e.g., INV-2024-0001)",
    )

    status: Mapped[InvoiceStatus] = Column(
        SQLEnum(
            InvoiceStatus,
            name="invoicestatus",
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
        default=InvoiceStatus.UNPAID,
        index=True,
        comment="Derived payment status",
    )

    org_id: Mapped[int] = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Organization (for queries and access control)",
    )
    client_id: Mapped[int] = Column(
        Integer,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Billed client",
    )
    project_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Project the invoice was raised for",
    )
    renewed_from_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
        comment="Invoice this one renews",
    )

    total_amount: Mapped[Decimal] = Column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        comment="Sum of line item totals",
    )

    issue_date: Mapped[datetime] = Column(
        DateTime,
        nullable=False,
        default=utcnow,
        comment="When the invoice was issued",
    )
    due_date: Mapped[datetime] = Column(
        DateTime,
        nullable=False,
        comment="Payment due date",
    )
    cancelled_at: Mapped[Optional[datetime]] = Column(
        DateTime,
        nullable=True,
        comment="When the invoice was cancelled",
    )

    notes: Mapped[Optional[str]] = Column(
        Text,
        nullable=True,
        comment="Notes printed on the invoice",
    )

    created_at: Mapped[datetime] = Column(
        DateTime,
        nullable=False,
        default=utcnow,
        comment="Record creation timestamp",
    )
    updated_at: Mapped[datetime] = Column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        comment="Last modification timestamp",
    )

    items: Mapped[list["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
        lazy="selectin",
    )
    client: Mapped["Client"] = relationship("Client", lazy="selectin")
    project: Mapped[Optional["Project"]] = relationship(
        "Project",
        back_populates="invoices",
    )
    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="invoices",
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number}, status={self.status})>"

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID

    @property
    def is_cancelled(self) -> bool:
        return self.status == InvoiceStatus.CANCELLED

    @property
    def is_editable(self) -> bool:
        """
        Line items may change only while money is still owed.

        Returns:
            False once the invoice is paid or cancelled
        """
        return self.status not in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)

    @property
    def payment_terms(self):
        """Offset between issue and due date, reused when renewing."""
        return self.due_date - self.issue_date

    @classmethod
    def format_invoice_number(cls, prefix: str, year: int, sequence: int) -> str:
        """
        Format: PREFIX-YYYY-NNNN where NNNN is the zero-padded sequence.
        Sequences above 9999 simply grow wider.
        """
        return f"{prefix}-{year}-{sequence:04d}"


class InvoiceItem(Base):
    """
    Line item of an invoice.

    total = quantity * unit_price, rounded half-up to cents. Items of a paid
    or cancelled invoice are frozen by the invoice service.
    """

    __tablename__ = "invoice_items"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    invoice_id: Mapped[int] = Column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = Column(String(500), nullable=False)
    quantity: Mapped[int] = Column(Integer, nullable=False, comment="Positive quantity")
    unit_price: Mapped[Decimal] = Column(Numeric(12, 2), nullable=False, comment="Positive unit price")
    total: Mapped[Decimal] = Column(Numeric(12, 2), nullable=False, comment="quantity * unit_price")
    position: Mapped[int] = Column(Integer, nullable=False, default=0, comment="Display order")

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")

    def __repr__(self) -> str:
        return f"<InvoiceItem(id={self.id}, invoice_id={self.invoice_id}, total={self.total})>"
