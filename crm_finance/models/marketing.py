"""
Campaign and Lead models.

Owned by the CRM's marketing screens; the finance API only reads the rows
attached to a project for the project overview.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import Mapped

from crm_finance.models.base import Base, utcnow


class Campaign(Base):
    """Marketing campaign, optionally run for a project."""

    __tablename__ = "campaigns"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    org_id: Mapped[int] = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = Column(String(255), nullable=False)
    status: Mapped[str] = Column(String(50), nullable=False, default="active")
    budget: Mapped[Optional[Decimal]] = Column(Numeric(12, 2), nullable=True)
    created_at: Mapped[datetime] = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Campaign(id={self.id}, name={self.name})>"


class Lead(Base):
    """Sales lead, optionally linked to a project."""

    __tablename__ = "leads"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)
    org_id: Mapped[int] = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = Column(String(255), nullable=False)
    email: Mapped[Optional[str]] = Column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = Column(String(50), nullable=True)
    status: Mapped[str] = Column(String(50), nullable=False, default="new")
    created_at: Mapped[datetime] = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, name={self.name}, status={self.status})>"
