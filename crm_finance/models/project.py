"""
Project model for client engagements that get invoiced.

WHAT: SQLAlchemy model representing a piece of client work.

WHY: Projects are what invoices are raised for:
1. A project owns zero or more invoices and, through them, payments
2. Submitting a project generates its first invoice from the budget
3. Approving a payment moves a submitted project into progress
4. Campaigns and leads can be attached for the project detail view

HOW: Organization-scoped rows with a status lifecycle that is independent
of invoice status (Draft -> Submitted -> InProgress -> Completed/Cancelled).
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
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped

from crm_finance.models.base import Base, utcnow

if TYPE_CHECKING:
    from crm_finance.models.organization import Organization
    from crm_finance.models.client import Client
    from crm_finance.models.invoice import Invoice


class ProjectStatus(str, Enum):
    """
    Project lifecycle status.

    - DRAFT: Being prepared, not yet sent for billing
    - SUBMITTED: Submitted by/for the client, awaiting first payment
    - IN_PROGRESS: Payment received, work under way
    - COMPLETED: All work finished
    - CANCELLED: Project terminated
    """

    DRAFT = "draft"
    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Allowed manual transitions; approval of a payment drives SUBMITTED -> IN_PROGRESS
PROJECT_STATUS_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    ProjectStatus.DRAFT: frozenset({ProjectStatus.SUBMITTED, ProjectStatus.CANCELLED}),
    ProjectStatus.SUBMITTED: frozenset(
        {ProjectStatus.DRAFT, ProjectStatus.IN_PROGRESS, ProjectStatus.CANCELLED}
    ),
    ProjectStatus.IN_PROGRESS: frozenset({ProjectStatus.COMPLETED, ProjectStatus.CANCELLED}),
    ProjectStatus.COMPLETED: frozenset(),
    ProjectStatus.CANCELLED: frozenset(),
}


class Project(Base):
    """
    Project model.

    Attributes:
        id: Primary key
        org_id: Owning organization
        client_id: Client the project is delivered for (optional)
        client_email: Email of the client user who owns the project (optional)
        name: Project title
        description: Free-text description
        budget: Agreed price, used for the auto-generated invoice
        status: Lifecycle status
    """

    __tablename__ = "projects"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)

    name: Mapped[str] = Column(
        String(255),
        nullable=False,
        comment="Project title",
    )
    description: Mapped[Optional[str]] = Column(
        Text,
        nullable=True,
        comment="Project description",
    )

    status: Mapped[ProjectStatus] = Column(
        SQLEnum(
            ProjectStatus,
            name="projectstatus",
            values_callable=lambda enum: [e.value for e in enum],
        ),
        nullable=False,
        default=ProjectStatus.DRAFT,
        index=True,
        comment="Project lifecycle status",
    )

    org_id: Mapped[int] = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Organization (for queries and access control)",
    )
    client_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Client the project is delivered for",
    )
    client_email: Mapped[Optional[str]] = Column(
        String(255),
        nullable=True,
        comment="Email of the owning client user",
    )

    budget: Mapped[Optional[Decimal]] = Column(
        Numeric(12, 2),
        nullable=True,
        comment="Agreed project price",
    )

    start_date: Mapped[Optional[datetime]] = Column(DateTime, nullable=True)
    due_date: Mapped[Optional[datetime]] = Column(DateTime, nullable=True)

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
        back_populates="projects",
    )
    client: Mapped[Optional["Client"]] = relationship("Client", lazy="selectin")
    invoices: Mapped[list["Invoice"]] = relationship(
        "Invoice",
        back_populates="project",
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, status={self.status})>"

    def can_transition_to(self, new_status: ProjectStatus) -> bool:
        return new_status in PROJECT_STATUS_TRANSITIONS.get(self.status, frozenset())
