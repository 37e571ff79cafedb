"""
Client model.

WHAT: A tenant-scoped customer record that invoices are addressed to.

WHY: Invoices need a billing party; projects point at the client they are
delivered for. Client users sign in with the email stored here, which is
how ownership checks match a token to a client record.
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship, Mapped

from crm_finance.models.base import Base, utcnow

if TYPE_CHECKING:
    from crm_finance.models.organization import Organization


class Client(Base):
    """
    Client (customer) of an organization.

    Attributes:
        id: Primary key
        org_id: Owning organization
        name: Display name
        email: Contact email, matched case-insensitively for ownership
        phone: Optional phone number
        company_name: Optional company the client represents
    """

    __tablename__ = "clients"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)

    org_id: Mapped[int] = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Organization (for queries and access control)",
    )

    name: Mapped[str] = Column(String(255), nullable=False, comment="Client display name")
    email: Mapped[Optional[str]] = Column(
        String(255),
        nullable=True,
        index=True,
        comment="Contact email used to match client users",
    )
    phone: Mapped[Optional[str]] = Column(String(50), nullable=True)
    company_name: Mapped[Optional[str]] = Column(String(255), nullable=True)
    address: Mapped[Optional[str]] = Column(Text, nullable=True)

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

    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="clients",
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name}, org_id={self.org_id})>"
