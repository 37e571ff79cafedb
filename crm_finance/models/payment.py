"""
PaymentGateway and Payment models.

WHAT: Payment channels configured by an organization (bank account, mobile
wallet, agent) and the payments clients record against invoices through them.

WHY: Clients pay outside the system and submit the transaction id; staff
verify it. Only approved payments count towards an invoice, so payments carry
their own review status separate from the invoice status.

HOW: Payments are tenant-scoped like everything else and denormalise
project_id and client_id from the invoice for client-side listings. The
gateway name is copied into payment_method at submission time so later
gateway renames do not rewrite history.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, TYPE_CHECKING
from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Numeric,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped

from crm_finance.models.base import Base, utcnow

if TYPE_CHECKING:
    from crm_finance.models.invoice import Invoice


class GatewayAccountType(str, Enum):
    """Kind of account a gateway pays into."""

    PERSONAL = "Personal"
    PAYMENT = "Payment"
    AGENT = "Agent"


class PaymentStatus(str, Enum):
    """
    Payment review status.

    - PENDING: Submitted, awaiting verification
    - APPROVED: Verified; counts towards the invoice
    - REJECTED: Verification failed
    - CANCELLED: Withdrawn, e.g. when the invoice was cancelled
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PaymentGateway(Base):
    """
    Payment channel configured by an organization.

    Attributes:
        name: Display name (e.g., "bKash", "City Bank")
        account_type: Personal, Payment or Agent account
        account_number: Where clients send money
        instructions: Shown to clients when paying
        is_active: Inactive gateways cannot receive new payments
        auto_approve: Payments through this gateway are approved on submission
    """

    __tablename__ = "payment_gateways"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    org_id: Mapped[int] = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Organization (for queries and access control)",
    )
    name: Mapped[str] = Column(String(100), nullable=False, comment="Gateway display name")
    account_type: Mapped[GatewayAccountType] = Column(
        SQLEnum(
            GatewayAccountType,
            name="gatewayaccounttype",
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
        default=GatewayAccountType.PERSONAL,
    )
    account_number: Mapped[str] = Column(String(100), nullable=False)
    instructions: Mapped[Optional[str]] = Column(Text, nullable=True)
    is_active: Mapped[bool] = Column(Boolean, nullable=False, default=True, index=True)
    auto_approve: Mapped[bool] = Column(
        Boolean,
        nullable=False,
        default=False,
        comment="Approve payments immediately on submission",
    )

    created_at: Mapped[datetime] = Column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = Column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<PaymentGateway(id={self.id}, name={self.name}, active={self.is_active})>"


class Payment(Base):
    """
    Payment recorded against an invoice.

    Attributes:
        invoice_id: Invoice being paid
        gateway_id: Channel the money went through
        project_id: Invoice's project, denormalised
        client_id: Invoice's client, denormalised
        amount: Positive amount
        transaction_id: Reference from the gateway, required
        payment_method: Gateway name at submission time
        status: Review status
        paid_by: Free-text payer name
        paid_at: When the payment was submitted
        verified_at: When it was approved or rejected
        verified_by: User id of the reviewer
        admin_notes: Reviewer notes or rejection reason
    """

    __tablename__ = "payments"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    org_id: Mapped[int] = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Organization (for queries and access control)",
    )
    invoice_id: Mapped[int] = Column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    gateway_id: Mapped[int] = Column(
        Integer,
        ForeignKey("payment_gateways.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    client_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    amount: Mapped[Decimal] = Column(Numeric(12, 2), nullable=False, comment="Positive amount")
    transaction_id: Mapped[str] = Column(
        String(255),
        nullable=False,
        index=True,
        comment="Gateway transaction reference",
    )
    payment_method: Mapped[Optional[str]] = Column(
        String(100),
        nullable=True,
        comment="Gateway name at submission time",
    )
    status: Mapped[PaymentStatus] = Column(
        SQLEnum(
            PaymentStatus,
            name="paymentstatus",
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )
    paid_by: Mapped[Optional[str]] = Column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = Column(Text, nullable=True)

    paid_at: Mapped[datetime] = Column(DateTime, nullable=False, default=utcnow)
    verified_at: Mapped[Optional[datetime]] = Column(DateTime, nullable=True)
    verified_by: Mapped[Optional[int]] = Column(Integer, nullable=True, comment="Reviewer user id")
    admin_notes: Mapped[Optional[str]] = Column(Text, nullable=True)

    created_at: Mapped[datetime] = Column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = Column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    gateway: Mapped["PaymentGateway"] = relationship("PaymentGateway", lazy="selectin")
    invoice: Mapped["Invoice"] = relationship("Invoice", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, invoice_id={self.invoice_id}, amount={self.amount}, status={self.status})>"

    @property
    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING

    @property
    def gateway_name(self) -> Optional[str]:
        if self.gateway is not None:
            return self.gateway.name
        return self.payment_method

    @property
    def invoice_number(self) -> Optional[str]:
        return self.invoice.invoice_number if self.invoice is not None else None
