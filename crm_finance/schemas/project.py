"""
Pydantic schemas for project endpoints.

WHAT: Request/response schemas for project status changes and the project
overview.

HOW: Uses Pydantic v2 with ORM mode for SQLAlchemy objects; invoice money
figures are attached by the route from the computed balances.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from crm_finance.models.project import ProjectStatus
from crm_finance.schemas.invoice import InvoiceResponse
from crm_finance.schemas.payment import PaymentResponse


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus = Field(..., description="Target status")


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    org_id: int
    name: str
    description: Optional[str] = None
    status: ProjectStatus
    client_id: Optional[int] = None
    client_email: Optional[str] = None
    budget: Optional[Decimal] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ClientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None


class CampaignResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    status: str
    budget: Optional[Decimal] = None
    created_at: datetime


class LeadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    status: str
    created_at: datetime


class ProjectSummary(BaseModel):
    invoice_count: int
    payment_count: int
    campaign_count: int
    lead_count: int
    total_invoiced: Decimal
    total_paid: Decimal
    total_due: Decimal
    total_pending: Decimal


class ProjectOverviewResponse(BaseModel):
    project: ProjectResponse
    client: Optional[ClientResponse] = None
    invoices: List[InvoiceResponse] = []
    payments: List[PaymentResponse] = []
    campaigns: List[CampaignResponse] = []
    leads: List[LeadResponse] = []
    summary: ProjectSummary


class ProjectStatusResponse(BaseModel):
    project: ProjectResponse
    invoice: Optional[InvoiceResponse] = Field(
        default=None,
        description="Invoice generated when the project was submitted",
    )
