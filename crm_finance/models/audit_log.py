"""
Audit Log Model.

WHAT: SQLAlchemy model for the finance audit trail.

WHY: Money-moving actions (invoice creation and deletion, payment approval
and rejection, status changes) need a record of who did what, when and from
where, independent of the application log.

HOW: Append-only table with JSON change and context fields. The DAO layer
offers no update or delete for it.
"""

import enum
from sqlalchemy import Column, Integer, String, Enum, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship

from crm_finance.models.base import Base, TimestampMixin, PrimaryKeyMixin


class AuditAction(str, enum.Enum):
    """
    Enumeration of auditable actions.

    Categories:
    - Data: CRUD operations on finance resources
    - Workflow: payment review and invoice lifecycle transitions
    """

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    STATUS_CHANGE = "STATUS_CHANGE"
    PAYMENT_APPROVED = "PAYMENT_APPROVED"
    PAYMENT_REJECTED = "PAYMENT_REJECTED"
    INVOICE_RENEWED = "INVOICE_RENEWED"
    INVOICE_CANCELLED = "INVOICE_CANCELLED"


class AuditLog(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Immutable audit log entry.

    Fields:
    - actor_user_id: Who performed the action (None for system actions)
    - action: What type of event occurred (AuditAction enum)
    - resource_type: Category of affected resource ("invoice", "payment", ...)
    - resource_id: Specific resource ID
    - org_id: Organization context for multi-tenant filtering
    - changes: Before/after values for mutations
    - extra_data: Additional context
    - ip_address: Client IP
    - user_agent: Browser/client info
    - created_at: Timestamp (from TimestampMixin)
    """

    __tablename__ = "audit_logs"

    # Users live in the identity service, so no foreign key here
    actor_user_id = Column(Integer, nullable=True, index=True)

    action = Column(Enum(AuditAction), nullable=False, index=True)

    resource_type = Column(String(100), nullable=False, index=True)
    resource_id = Column(Integer, nullable=True, index=True)

    org_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Example: {"status": {"before": "pending", "after": "approved"}}
    changes = Column(JSON, nullable=True)

    # 'metadata' is reserved by SQLAlchemy
    extra_data = Column(JSON, nullable=True)

    ip_address = Column(String(45), nullable=True, index=True)  # IPv6 max length
    user_agent = Column(Text, nullable=True)

    organization = relationship("Organization", foreign_keys=[org_id])

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action.value}, "
            f"actor_user_id={self.actor_user_id}, resource_type={self.resource_type})>"
        )
