"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from crm_finance.models.base import Base, TimestampMixin, PrimaryKeyMixin, utcnow
from crm_finance.models.organization import Organization
from crm_finance.models.client import Client
from crm_finance.models.project import Project, ProjectStatus, PROJECT_STATUS_TRANSITIONS
from crm_finance.models.marketing import Campaign, Lead
from crm_finance.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from crm_finance.models.payment import (
    GatewayAccountType,
    Payment,
    PaymentGateway,
    PaymentStatus,
)
from crm_finance.models.audit_log import AuditLog, AuditAction

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "utcnow",
    "Organization",
    "Client",
    "Project",
    "ProjectStatus",
    "PROJECT_STATUS_TRANSITIONS",
    "Campaign",
    "Lead",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "GatewayAccountType",
    "Payment",
    "PaymentGateway",
    "PaymentStatus",
    "AuditLog",
    "AuditAction",
]
