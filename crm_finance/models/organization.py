"""
Organization model.

WHY: Organizations are the tenants of the CRM. Every client, project,
invoice, gateway and payment row carries an org_id, and every query is
scoped by it.
"""

from sqlalchemy import Column, String, Text, JSON, Boolean
from sqlalchemy.orm import relationship

from crm_finance.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Organization(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Organization model representing a tenant (company) in the CRM.

    Each organization has:
    - Basic info (name, description)
    - Settings (configurable per-org, e.g. invoice branding)
    - Relationships to its clients, projects and billing records
    """

    __tablename__ = "organizations"

    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Flexible per-organization configuration (logo, currency, etc.)
    settings = Column(JSON, nullable=False, default=dict, server_default="{}")

    # Soft-deactivation keeps historical invoices and audit rows intact
    is_active = Column(Boolean, nullable=False, default=True)

    clients = relationship("Client", back_populates="organization", lazy="dynamic")
    projects = relationship("Project", back_populates="organization", lazy="dynamic")
    invoices = relationship("Invoice", back_populates="organization", lazy="dynamic")

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name})>"
