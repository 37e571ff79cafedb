"""
Invoice schemas for API request/response validation.

WHAT: Pydantic schemas for invoices and their line items.

WHY: Schemas provide:
1. Type-safe request/response handling
2. OpenAPI documentation generation
3. Money serialized as exact decimals

HOW: Uses Pydantic v2 with Field constraints and model_config. Business
rules (positive quantities, date order, ownership) stay in the service so
they apply to every caller, not just the API.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from crm_finance.models.invoice import InvoiceStatus


# ============================================================================
# Request Schemas
# ============================================================================


class InvoiceItemIn(BaseModel):
    """A line item as submitted by the caller."""

    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., max_length=500, description="What is being billed")
    quantity: int = Field(..., description="Whole units, must be positive")
    unit_price: Decimal = Field(..., description="Price per unit, must be positive")


class InvoiceCreate(BaseModel):
    """
    Schema for creating an invoice.

    invoice_number is optional; when omitted the next number of the
    organization's yearly sequence is assigned.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    client_id: int = Field(..., description="Billed client")
    project_id: Optional[int] = Field(default=None, description="Project being billed")
    items: List[InvoiceItemIn] = Field(..., description="Line items")
    issue_date: datetime = Field(..., description="Issue date")
    due_date: datetime = Field(..., description="Due date, not before issue date")
    notes: Optional[str] = Field(default=None, max_length=5000)
    invoice_number: Optional[str] = Field(default=None, max_length=50)


class InvoiceFromProjectCreate(BaseModel):
    """
    Schema for creating an invoice from a project.

    The client comes from the project; dates default to now and now plus
    the default payment terms.
    """

    project_id: int
    items: List[InvoiceItemIn]
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=5000)


class InvoiceUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    client_id: Optional[int] = None
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    items: Optional[List[InvoiceItemIn]] = None


class InvoiceCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


# ============================================================================
# Response Schemas
# ============================================================================


class InvoiceItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    position: int


class InvoiceResponse(BaseModel):
    """
    Schema for invoice response data.

    amount_paid counts approved payments only; credit_balance is non-zero
    when approved payments exceed a reduced total.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    status: InvoiceStatus

    org_id: int
    client_id: int
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    project_id: Optional[int] = None
    renewed_from_id: Optional[int] = None

    total_amount: Decimal
    amount_paid: Decimal
    amount_pending: Decimal
    amount_due: Decimal
    credit_balance: Decimal

    issue_date: datetime
    due_date: datetime
    cancelled_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    is_paid: bool
    is_editable: bool
    items: List[InvoiceItemResponse] = []


class InvoiceStats(BaseModel):
    """Invoice statistics for the finance dashboard."""

    counts: Dict[str, int] = Field(description="Count by status")
    total_invoices: int
    total_invoiced: Decimal = Field(description="Sum of non-cancelled invoice totals")
    total_collected: Decimal = Field(description="Sum of approved payments")
    total_outstanding: Decimal = Field(description="Still owed on open invoices")


class CanRenewResponse(BaseModel):
    invoice_id: int
    can_renew: bool
