"""
Payment schemas for API request/response validation.

Amount and transaction id are checked by PaymentService so that a bad
request never leaves a row behind, whichever way it arrives.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from crm_finance.models.payment import PaymentStatus


class PaymentCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    invoice_id: int
    gateway_id: int
    amount: Decimal = Field(..., description="Amount paid, positive")
    transaction_id: str = Field(..., max_length=255, description="Gateway reference")
    paid_by: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None, max_length=5000)


class PaymentApprove(BaseModel):
    admin_notes: Optional[str] = Field(default=None, max_length=5000)


class PaymentReject(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=5000)


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    org_id: int
    invoice_id: int
    invoice_number: Optional[str] = None
    gateway_id: int
    gateway_name: Optional[str] = None
    project_id: Optional[int] = None
    client_id: Optional[int] = None

    amount: Decimal
    transaction_id: str
    payment_method: Optional[str] = None
    status: PaymentStatus
    paid_by: Optional[str] = None
    notes: Optional[str] = None

    paid_at: datetime
    verified_at: Optional[datetime] = None
    verified_by: Optional[int] = None
    admin_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
